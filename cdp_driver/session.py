"""
CDP sessions and target discovery.

A CDPSession owns the connection to one target and sends commands on it.
TargetDiscovery finds targets through Chrome's HTTP endpoint and opens
sessions for them.
"""

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional

from .connection import CDPConnection, ResponseReader
from .exceptions import CDPError, CDPTargetNotFoundError
from .message import Message, Response

logger = logging.getLogger(__name__)


class Target:
    """
    Represents a debuggable Chrome target (page, worker, service worker, iframe).

    Attributes:
        id: Unique target ID
        type: Target type ("page", "iframe", "worker", "service_worker", "browser")
        title: Page title or worker name
        url: Target URL
        webSocketDebuggerUrl: CDP WebSocket URL for this target
    """

    def __init__(self, target_data: Dict[str, Any]):
        """
        Initialize Target from Chrome HTTP endpoint response.

        Args:
            target_data: Raw target dictionary from /json endpoint
        """
        self.id = target_data["id"]
        self.type = target_data["type"]
        self.title = target_data.get("title", "")
        self.url = target_data.get("url", "")
        self.webSocketDebuggerUrl = target_data.get("webSocketDebuggerUrl", "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert target to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "url": self.url,
            "webSocketDebuggerUrl": self.webSocketDebuggerUrl,
        }

    def __repr__(self):
        return f"Target(id={self.id!r}, type={self.type!r}, url={self.url!r})"


class CDPSession:
    """
    Command channel to one target.

    Usage:
        with CDPSession(CDPConnection(ws_url)) as session:
            response = session.send_message_sync(Message("Page.enable"))

    Attributes:
        target: Target the session is attached to, when known
    """

    def __init__(self, connection: CDPConnection, target: Optional[Target] = None):
        self._connection = connection
        self.target = target

    def get_connection(self) -> CDPConnection:
        return self._connection

    def send_message(self, message: Message) -> ResponseReader:
        return self._connection.send_message(message)

    def send_message_sync(
        self, message: Message, timeout: Optional[int] = None
    ) -> Response:
        return self._connection.send_message_sync(message, timeout)

    def open(self) -> "CDPSession":
        if not self._connection.is_connected:
            self._connection.connect()
        return self

    def close(self) -> None:
        self._connection.disconnect()

    def __enter__(self) -> "CDPSession":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self):
        return f"CDPSession(target={self.target!r}, url={self._connection.ws_url!r})"


class TargetDiscovery:
    """
    Finds Chrome targets and opens sessions on them.

    Provides target selection (by URL, type, ID) via Chrome HTTP endpoint.

    Usage:
        discovery = TargetDiscovery("localhost", 9222)
        targets = discovery.list_targets(target_type="page")
        session = discovery.connect_to_target(targets[0])

    Attributes:
        chrome_host: Chrome host (default: "localhost")
        chrome_port: Chrome debugging port (default: 9222)
        timeout: HTTP request timeout for target discovery, in seconds (default: 5s)
        send_sync_timeout: Command timeout for opened sessions, in milliseconds
        max_size: WebSocket message size limit for opened sessions
    """

    def __init__(
        self,
        chrome_host: str = "localhost",
        chrome_port: int = 9222,
        timeout: float = 5.0,
        send_sync_timeout: int = 5000,
        max_size: int = 2_097_152,
    ):
        """
        Initialize target discovery.

        Args:
            chrome_host: Chrome host
            chrome_port: Chrome debugging port (1-65535)
            timeout: HTTP request timeout in seconds
            send_sync_timeout: Command timeout for opened sessions, in milliseconds
            max_size: WebSocket message size limit for opened sessions

        Raises:
            ValueError: If chrome_port is out of range
        """
        if not 1 <= chrome_port <= 65535:
            raise ValueError(f"chrome_port must be 1-65535, got {chrome_port}")

        self.chrome_host = chrome_host
        self.chrome_port = chrome_port
        self.timeout = timeout
        self.send_sync_timeout = send_sync_timeout
        self.max_size = max_size

    def list_targets(
        self,
        target_type: Optional[str] = None,
        url_pattern: Optional[str] = None,
    ) -> List[Target]:
        """
        Fetch targets from Chrome HTTP endpoint with optional filtering.

        Args:
            target_type: Filter by target type ("page", "iframe", "worker", "service_worker", "browser")
            url_pattern: Filter by URL (case-insensitive substring match)

        Returns:
            List of Target objects matching filters

        Raises:
            CDPError: If HTTP endpoint is unreachable or returns invalid data
        """
        endpoint_url = f"http://{self.chrome_host}:{self.chrome_port}/json"

        try:
            with urllib.request.urlopen(endpoint_url, timeout=self.timeout) as response:
                targets_data = json.loads(response.read())
        except urllib.error.URLError as e:
            raise CDPError(
                f"Failed to connect to Chrome at {endpoint_url}: {e}",
                details={
                    "chrome_host": self.chrome_host,
                    "chrome_port": self.chrome_port,
                    "recovery": "Ensure Chrome is running with --remote-debugging-port",
                },
            ) from e
        except json.JSONDecodeError as e:
            raise CDPError(
                f"Invalid JSON response from Chrome endpoint: {e}",
                details={"endpoint": endpoint_url},
            ) from e

        targets = [Target(data) for data in targets_data]

        if target_type:
            targets = [t for t in targets if t.type == target_type]

        if url_pattern:
            url_pattern_lower = url_pattern.lower()
            targets = [t for t in targets if url_pattern_lower in t.url.lower()]

        return targets

    def get_target_by_id(self, target_id: str) -> Optional[Target]:
        """
        Find target by ID.

        Returns:
            Target object if found, None otherwise
        """
        for target in self.list_targets():
            if target.id == target_id:
                return target
        return None

    def connect_to_target(self, target: Target) -> CDPSession:
        """
        Open a session on the given target.

        Returns:
            Connected CDPSession

        Raises:
            CDPError: If the target has no WebSocket URL
            ConnectionFailedError: If the connection cannot be opened
        """
        if not target.webSocketDebuggerUrl:
            raise CDPError(
                f"Target {target.id} has no WebSocket debugger URL",
                details={
                    "target": target.id,
                    "recovery": "Close other DevTools clients attached to this target",
                },
            )

        connection = CDPConnection(
            target.webSocketDebuggerUrl,
            send_sync_timeout=self.send_sync_timeout,
            max_size=self.max_size,
        )
        logger.debug(f"Opening session on {target!r}")
        return CDPSession(connection, target).open()

    def connect_to_first_page(self, url_pattern: Optional[str] = None) -> CDPSession:
        """
        Open a session on the first page target, optionally matching a URL.

        Raises:
            CDPTargetNotFoundError: If no page targets found
        """
        targets = self.list_targets(target_type="page", url_pattern=url_pattern)

        if not targets:
            raise CDPTargetNotFoundError(
                "No page targets found",
                url_pattern=url_pattern,
                details={
                    "chrome_host": self.chrome_host,
                    "chrome_port": self.chrome_port,
                    "recovery": "Navigate to a URL in Chrome or check --remote-debugging-port",
                },
            )

        return self.connect_to_target(targets[0])
