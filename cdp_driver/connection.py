"""CDP WebSocket connection management.

Provides CDPConnection for command execution and event subscription over a
synchronous WebSocket, and ResponseReader, the deferred handle returned for
every command sent.

There is no receive loop: frames are only read when something pumps the
connection with read_data(), either directly, through a ResponseReader, or
from a timeout-bounded wait.
"""

import json
import logging
from contextlib import ExitStack
from typing import Any, Callable, Dict, List, Optional

try:
    from websockets.exceptions import ConnectionClosed
    from websockets.sync.client import ClientConnection
    from websockets.sync.client import connect as ws_connect
except ImportError:
    raise ImportError(
        "websockets library not found. Install with: pip3 install websockets"
    )

from .exceptions import (
    CannotReadResponseError,
    ConnectionClosedError,
    ConnectionFailedError,
    InvalidResponseError,
    NoResponseAvailableError,
    OperationTimedOutError,
)
from .message import Message, Response
from .utils import Done, PollCondition, Wait, try_with_timeout

logger = logging.getLogger(__name__)

EventCallback = Callable[[Dict[str, Any]], None]


class PendingCommand:
    """A sent command waiting for its response.

    Owned by the connection. Resolved at most once; later resolution
    attempts are ignored.
    """

    def __init__(self, message_id: int, method: str):
        self.id = message_id
        self.method = method
        self.resolved = False
        self.response: Optional[Response] = None
        self.abandoned = False

    def resolve(self, response: Response) -> bool:
        if self.resolved:
            logger.warning(
                f"Ignoring duplicate response for command {self.id} ({self.method})"
            )
            return False
        self.response = response
        self.resolved = True
        return True


class CDPConnection:
    """Manages WebSocket connection to Chrome DevTools Protocol endpoint.

    Handles:
    - Connection lifecycle (connect, disconnect, context manager)
    - Command ids and the table of pending commands
    - Pumping buffered frames and routing them to commands or event callbacks

    Usage:
        with CDPConnection(ws_url) as conn:
            reader = conn.send_message(Message("Runtime.evaluate", {"expression": "1+1"}))
            response = reader.wait_for_response(1000)
            conn.subscribe("Page.lifecycleEvent", my_callback)

    Attributes:
        ws_url: WebSocket debugger URL
        send_sync_timeout: Default wait for synchronous commands, in milliseconds
        max_size: Maximum WebSocket message size in bytes (for large screenshots)
    """

    def __init__(
        self,
        ws_url: str,
        *,
        send_sync_timeout: int = 5000,
        max_size: int = 2_097_152  # 2MB default buffer
    ):
        """Initialize CDP connection.

        Args:
            ws_url: WebSocket debugger URL (e.g., ws://localhost:9222/devtools/page/ABC123)
            send_sync_timeout: Default synchronous command timeout in milliseconds
            max_size: Maximum WebSocket message size in bytes
        """
        if not ws_url.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URL: {ws_url}")

        self.ws_url = ws_url
        self.send_sync_timeout = send_sync_timeout
        self.max_size = max_size

        # Connection state
        self._ws: Optional[ClientConnection] = None
        self._exit_stack: Optional[ExitStack] = None
        self._next_command_id: int = 1
        self._pending_commands: Dict[int, PendingCommand] = {}
        self._event_handlers: Dict[str, List[EventCallback]] = {}
        self._is_connected: bool = False

    @property
    def is_connected(self) -> bool:
        """Check if WebSocket connection is active."""
        return self._is_connected and self._ws is not None

    def connect(self) -> None:
        """Open the WebSocket connection.

        Raises:
            ConnectionFailedError: If WebSocket connection fails
        """
        try:
            logger.info(f"Connecting to {self.ws_url}")
            stack = ExitStack()
            self._ws = stack.enter_context(ws_connect(self.ws_url, max_size=self.max_size))
            self._exit_stack = stack
            self._is_connected = True
            logger.info("CDP connection established")
        except Exception as e:
            raise ConnectionFailedError(
                f"Failed to connect to {self.ws_url}: {e}",
                details={"url": self.ws_url, "error": str(e)}
            ) from e

    def disconnect(self) -> None:
        """Close WebSocket connection and abandon pending commands."""
        logger.info("Disconnecting CDP connection")
        self._is_connected = False

        if self._exit_stack is not None:
            stack, self._exit_stack = self._exit_stack, None
            try:
                stack.close()
            except Exception as e:
                logger.warning(f"Error closing WebSocket: {e}")

        for pending in self._pending_commands.values():
            pending.abandoned = True
        self._pending_commands.clear()

        logger.info("CDP connection closed")

    def __enter__(self) -> "CDPConnection":
        """Context manager entry: connect automatically."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit: disconnect automatically."""
        self.disconnect()

    def send_message(self, message: Message) -> "ResponseReader":
        """Send a command without waiting for its response.

        Args:
            message: Command to send

        Returns:
            Unresolved ResponseReader for the command

        Raises:
            ConnectionClosedError: If connection is not active
        """
        if not self.is_connected:
            raise ConnectionClosedError(
                "Cannot send message: connection not active",
                details={"method": message.method},
            )

        cmd_id = self._next_command_id
        self._next_command_id += 1

        pending = PendingCommand(cmd_id, message.method)
        self._pending_commands[cmd_id] = pending

        try:
            self._ws.send(json.dumps(message.to_payload(cmd_id)))
        except ConnectionClosed as e:
            self._pending_commands.pop(cmd_id, None)
            self._is_connected = False
            raise ConnectionClosedError(
                f"Connection closed: {e}", details={"method": message.method}
            ) from e

        logger.debug(f"Sent command {cmd_id}: {message.method}")
        return ResponseReader(message, pending, self)

    def send_message_sync(
        self, message: Message, timeout: Optional[int] = None
    ) -> Response:
        """Send a command and pump the transport until its response arrives.

        Args:
            message: Command to send
            timeout: Wait in milliseconds (default: self.send_sync_timeout)

        Returns:
            The command's Response, successful or not

        Raises:
            NoResponseAvailableError: If no response arrived in time
            CommunicationError: On transport failure
        """
        reader = self.send_message(message)
        try:
            return reader.wait_for_response(timeout)
        except OperationTimedOutError as e:
            # A reply arriving later is logged as unknown and dropped
            self._pending_commands.pop(reader.message_id, None)
            raise NoResponseAvailableError(
                f"No response was sent for {message.method} in the given timeout",
                details={"method": message.method, "timeout": e.timeout},
            ) from e

    def read_data(self) -> bool:
        """Pump the transport once.

        Reads every frame already buffered, without waiting for more, and
        dispatches each in arrival order.

        Returns:
            True if at least one frame was read

        Raises:
            CannotReadResponseError: If the connection is closed or unreadable
            InvalidResponseError: If a frame is malformed
        """
        if self._ws is None:
            raise CannotReadResponseError("Cannot read data: connection not active")

        received = False
        while True:
            try:
                raw = self._ws.recv(timeout=0)
            except TimeoutError:
                return received
            except ConnectionClosed as e:
                self._is_connected = False
                raise CannotReadResponseError(
                    f"Connection closed: {e}", details={"url": self.ws_url}
                ) from e

            received = True
            self._dispatch(raw)

    def subscribe(self, event_name: str, callback: EventCallback) -> None:
        """Register callback for CDP event.

        Args:
            event_name: CDP event name (e.g., "Page.lifecycleEvent")
            callback: Function called with the event params

        Note:
            Callbacks only run while the connection is being pumped.
        """
        if event_name not in self._event_handlers:
            self._event_handlers[event_name] = []
        self._event_handlers[event_name].append(callback)
        logger.debug(f"Subscribed to event: {event_name}")

    def unsubscribe(self, event_name: str, callback: EventCallback) -> None:
        """Remove event callback.

        Args:
            event_name: CDP event name
            callback: Previously registered callback function
        """
        if event_name in self._event_handlers:
            try:
                self._event_handlers[event_name].remove(callback)
                logger.debug(f"Unsubscribed from event: {event_name}")
            except ValueError:
                logger.warning(f"Callback not found for event: {event_name}")

    def _dispatch(self, raw: Any) -> None:
        """Route one frame to its pending command or to event callbacks."""
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise InvalidResponseError(
                f"Malformed CDP message: {e}", details={"frame": str(raw)[:200]}
            ) from e

        if not isinstance(data, dict):
            raise InvalidResponseError(
                "CDP message is not an object", details={"frame": str(raw)[:200]}
            )

        # Command response (has "id" field)
        if "id" in data:
            self._handle_response(Response(data))
        # Event notification (has "method" field, no "id")
        elif "method" in data:
            self._handle_event(data["method"], data.get("params", {}))
        else:
            raise InvalidResponseError(
                "CDP message is neither a response nor an event",
                details={"frame": str(raw)[:200]},
            )

    def _handle_response(self, response: Response) -> None:
        pending = self._pending_commands.pop(response.id, None)
        if pending is None:
            logger.warning(f"Ignoring response for unknown command id {response.id}")
            return
        if pending.resolve(response):
            logger.debug(f"Received response {response.id}: {pending.method}")

    def _handle_event(self, event_name: str, params: Dict[str, Any]) -> None:
        logger.debug(f"Received event: {event_name}")
        for handler in list(self._event_handlers.get(event_name, [])):
            try:
                handler(params)
            except Exception as e:
                # Isolate handler errors so one subscriber cannot break dispatch
                logger.error(
                    f"Event handler error for {event_name}: {e}", exc_info=True
                )


class _ResponseArrived(PollCondition):
    DELAY = 10

    def __init__(self, reader: "ResponseReader"):
        self.reader = reader

    def step(self):
        if self.reader.check_for_response():
            return Done(self.reader.get_response())
        return Wait(self.DELAY)

    def describe(self) -> str:
        return f"response to {self.reader.message.method}"


class ResponseReader:
    """Deferred handle for one command's response.

    Unresolved until the connection has received the matching reply.
    Polling an unresolved reader pumps the connection; once resolved the
    cached Response is returned without touching the transport again.

    Usage:
        reader = conn.send_message(Message("Page.captureScreenshot"))
        ...
        if reader.check_for_response():
            data = reader.get_response().get_result_data("data")
    """

    def __init__(
        self, message: Message, pending: PendingCommand, connection: CDPConnection
    ):
        self.message = message
        self.connection = connection
        self._pending = pending
        self._response: Optional[Response] = None

    @property
    def message_id(self) -> int:
        return self._pending.id

    def has_response(self) -> bool:
        """Whether the reader is resolved. Never pumps."""
        return self._response is not None

    def check_for_response(self) -> bool:
        """Pump once if needed and report whether the response is here.

        Raises:
            ConnectionClosedError: If the connection closed with this command pending
            CommunicationError: On transport failure while pumping
        """
        if self._response is not None:
            return True

        if not self._pending.resolved:
            if self._pending.abandoned:
                raise ConnectionClosedError(
                    "Connection closed before a response was received",
                    details={"method": self.message.method, "id": self.message_id},
                )
            self.connection.read_data()

        if self._pending.resolved:
            self._response = self._pending.response
            return True
        return False

    def resolve(self) -> Optional[Response]:
        """Return the response, pumping once if it is not there yet."""
        self.check_for_response()
        return self._response

    def get_response(self) -> Response:
        """Return the cached response.

        Raises:
            NoResponseAvailableError: If the reader is not resolved yet
        """
        if self._response is None:
            raise NoResponseAvailableError(
                "Response is not available yet. "
                "Call wait_for_response() or check_for_response() first",
                details={"method": self.message.method, "id": self.message_id},
            )
        return self._response

    def wait_for_response(self, timeout: Optional[int] = None) -> Response:
        """Pump until the response arrives.

        Args:
            timeout: Wait in milliseconds (default: connection.send_sync_timeout)

        Raises:
            OperationTimedOutError: If no response arrived in time
        """
        if self._response is not None:
            return self._response
        if timeout is None:
            timeout = self.connection.send_sync_timeout
        return try_with_timeout(_ResponseArrived(self), timeout)

    def __repr__(self):
        state = "resolved" if self.has_response() else "pending"
        return f"ResponseReader(id={self.message_id}, method={self.message.method!r}, {state})"
