"""Command and response values exchanged over a CDP connection."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Message:
    """Immutable command descriptor.

    The command id is not part of the message: the connection assigns a
    channel-unique id when the message is sent.

    Usage:
        message = Message("Page.navigate", {"url": "https://example.com"})
    """

    method: str
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.method or "." not in self.method:
            raise ValueError(f"Invalid CDP method name: {self.method!r}")
        # Own a copy so later changes to the caller's dict are not sent
        object.__setattr__(self, "params", dict(self.params or {}))

    def to_payload(self, message_id: int) -> Dict[str, Any]:
        """Wire representation for the given command id."""
        return {"id": message_id, "method": self.method, "params": dict(self.params)}


class Response:
    """Reply to one command, as received from the transport.

    Attributes:
        id: Command id the reply is correlated to
        data: Raw response frame
    """

    def __init__(self, data: Dict[str, Any]):
        self.data = data
        self.id: int = data["id"]

    @property
    def success(self) -> bool:
        return "error" not in self.data

    def is_successful(self) -> bool:
        return self.success

    @property
    def result(self) -> Optional[Dict[str, Any]]:
        if not self.success:
            return None
        return self.data.get("result", {})

    @property
    def error_message(self) -> Optional[str]:
        error = self.data.get("error")
        if error is None:
            return None
        if isinstance(error, dict):
            message = error.get("message", "Unknown CDP error")
            if error.get("data"):
                message = f"{message} ({error['data']})"
            return message
        return str(error)

    @property
    def error_code(self) -> Optional[int]:
        error = self.data.get("error")
        if isinstance(error, dict):
            return error.get("code")
        return None

    def get_result_data(self, key: str, default: Any = None) -> Any:
        """Get one member of the result object."""
        return (self.result or {}).get(key, default)

    def __repr__(self):
        status = "ok" if self.success else f"error={self.error_message!r}"
        return f"Response(id={self.id!r}, {status})"
