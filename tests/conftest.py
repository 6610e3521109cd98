"""Shared fixtures: a scripted WebSocket standing in for Chrome."""

import json
from collections import deque
from typing import Any, Callable, Dict, Iterable, List, Optional
from unittest.mock import patch

import pytest
from websockets.exceptions import ConnectionClosedOK

from cdp_driver.connection import CDPConnection
from cdp_driver.page import Page
from cdp_driver.session import CDPSession

WS_URL = "ws://localhost:9222/devtools/page/page-1"


class FakeWebSocket:
    """Synchronous WebSocket double.

    Frames queued with push() are returned by recv() in order. Replies to
    commands are scripted per method with respond(); they are queued as soon
    as the command is sent, like a browser answering instantly.
    """

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.inbound: deque = deque()
        self.handlers: Dict[str, Callable[[dict], Iterable[Any]]] = {}
        self.recv_calls = 0
        self.closed = False
        self.entered = False

    # Scripting ___________________________________________________________________________________

    def push(self, *frames: Any) -> None:
        self.inbound.extend(frames)

    def push_event(self, method: str, params: Optional[dict] = None) -> None:
        self.push({"method": method, "params": params or {}})

    def respond(
        self,
        method: str,
        result: Optional[dict] = None,
        error: Optional[dict] = None,
        before: Iterable[Any] = (),
        after: Iterable[Any] = (),
    ) -> None:
        """Answer every `method` command, optionally surrounded by other frames."""

        def handler(message):
            reply = {"id": message["id"]}
            if error is not None:
                reply["error"] = error
            else:
                reply["result"] = result if result is not None else {}
            return [*before, reply, *after]

        self.handlers[method] = handler

    def methods_sent(self) -> List[str]:
        return [message["method"] for message in self.sent]

    # WebSocket API _______________________________________________________________________________

    def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        message = json.loads(data)
        self.sent.append(message)
        handler = self.handlers.get(message["method"])
        if handler:
            self.inbound.extend(handler(message))

    def recv(self, timeout: Optional[float] = None) -> str:
        self.recv_calls += 1
        if self.inbound:
            frame = self.inbound.popleft()
            if isinstance(frame, Exception):
                raise frame
            if isinstance(frame, (str, bytes)):
                return frame
            return json.dumps(frame)
        if self.closed:
            raise ConnectionClosedOK(None, None)
        raise TimeoutError("timed out while waiting for a message")

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeWebSocket":
        self.entered = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def lifecycle_event(name: str, loader_id: str, frame_id: str = "main", timestamp: float = 1.0) -> dict:
    return {
        "method": "Page.lifecycleEvent",
        "params": {"frameId": frame_id, "loaderId": loader_id, "name": name, "timestamp": timestamp},
    }


def frame_navigated(loader_id: str, url: str = "https://example.com/", frame_id: str = "main") -> dict:
    return {
        "method": "Page.frameNavigated",
        "params": {"frame": {"id": frame_id, "loaderId": loader_id, "url": url}},
    }


def frame_tree(loader_id: str = "loader-1", url: str = "about:blank") -> dict:
    return {
        "frame": {"id": "main", "loaderId": loader_id, "url": url},
        "childFrames": [
            {"frame": {"id": "child", "parentId": "main", "loaderId": "child-loader", "url": "about:blank"}},
        ],
    }


@pytest.fixture
def fake_ws():
    return FakeWebSocket()


@pytest.fixture
def connection(fake_ws):
    with patch("cdp_driver.connection.ws_connect", return_value=fake_ws):
        conn = CDPConnection(WS_URL, send_sync_timeout=50)
        conn.connect()
    yield conn
    conn.disconnect()


@pytest.fixture
def session(connection):
    return CDPSession(connection)


@pytest.fixture
def page(session):
    return Page(session, frame_tree())
