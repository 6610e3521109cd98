"""Unit tests for CDPConnection and ResponseReader with a scripted WebSocket.

Tests connection lifecycle, command/response correlation, event dispatch
and error handling without requiring real Chrome.
"""

import json
from unittest.mock import patch

import pytest
from websockets.exceptions import ConnectionClosedError as WSConnectionClosedError

from cdp_driver.connection import CDPConnection
from cdp_driver.exceptions import (
    CannotReadResponseError,
    ConnectionClosedError,
    ConnectionFailedError,
    InvalidResponseError,
    NoResponseAvailableError,
    OperationTimedOutError,
)
from cdp_driver.message import Message

from conftest import WS_URL, FakeWebSocket


@pytest.mark.unit
class TestCDPConnectionLifecycle:
    """Test connection lifecycle (connect, disconnect, context manager)."""

    def test_initialization(self):
        conn = CDPConnection(WS_URL, send_sync_timeout=1500, max_size=1_000_000)
        assert conn.ws_url == WS_URL
        assert conn.send_sync_timeout == 1500
        assert conn.max_size == 1_000_000
        assert not conn.is_connected

    def test_invalid_url_raises_error(self):
        with pytest.raises(ValueError, match="Invalid WebSocket URL"):
            CDPConnection("http://localhost:9222/test")

    @patch("cdp_driver.connection.ws_connect")
    def test_connect_success(self, mock_connect):
        mock_connect.return_value = FakeWebSocket()

        conn = CDPConnection(WS_URL)
        conn.connect()

        assert conn.is_connected
        mock_connect.assert_called_once_with(WS_URL, max_size=2_097_152)
        assert mock_connect.return_value.entered

    @patch("cdp_driver.connection.ws_connect")
    def test_connect_failure(self, mock_connect):
        mock_connect.side_effect = OSError("Connection refused")

        conn = CDPConnection(WS_URL)
        with pytest.raises(ConnectionFailedError, match="Failed to connect"):
            conn.connect()
        assert not conn.is_connected

    @patch("cdp_driver.connection.ws_connect")
    def test_context_manager(self, mock_connect):
        fake_ws = FakeWebSocket()
        mock_connect.return_value = fake_ws

        with CDPConnection(WS_URL) as conn:
            assert conn.is_connected

        assert not conn.is_connected
        assert fake_ws.closed

    def test_send_without_connection(self):
        conn = CDPConnection(WS_URL)
        with pytest.raises(ConnectionClosedError, match="connection not active"):
            conn.send_message(Message("Runtime.evaluate", {"expression": "1"}))

    def test_read_without_connection(self):
        conn = CDPConnection(WS_URL)
        with pytest.raises(CannotReadResponseError):
            conn.read_data()


@pytest.mark.unit
class TestSending:
    def test_ids_are_unique_and_increasing(self, connection, fake_ws):
        connection.send_message(Message("Page.enable"))
        connection.send_message(Message("Runtime.enable"))

        assert [m["id"] for m in fake_ws.sent] == [1, 2]
        assert fake_ws.sent[0] == {"id": 1, "method": "Page.enable", "params": {}}

    def test_params_are_sent(self, connection, fake_ws):
        connection.send_message(Message("Page.navigate", {"url": "https://example.com"}))
        assert fake_ws.sent[0]["params"] == {"url": "https://example.com"}

    def test_send_deferred_does_not_read(self, connection, fake_ws):
        fake_ws.respond("Page.enable")

        reader = connection.send_message(Message("Page.enable"))

        assert not reader.has_response()
        assert fake_ws.recv_calls == 0

    def test_send_sync_returns_matching_response(self, connection, fake_ws):
        fake_ws.respond("Runtime.evaluate", {"result": {"type": "number", "value": 2}})

        response = connection.send_message_sync(Message("Runtime.evaluate", {"expression": "1+1"}))

        assert response.id == 1
        assert response.is_successful()
        assert response.get_result_data("result") == {"type": "number", "value": 2}

    def test_send_sync_delivers_error_responses(self, connection, fake_ws):
        fake_ws.respond("Page.navigate", error={"code": -32000, "message": "Cannot navigate"})

        response = connection.send_message_sync(Message("Page.navigate", {"url": "x"}))

        assert not response.success
        assert response.error_message == "Cannot navigate"
        assert response.error_code == -32000

    def test_send_sync_without_reply_raises_no_response(self, connection):
        with pytest.raises(NoResponseAvailableError, match="Page.enable"):
            connection.send_message_sync(Message("Page.enable"), timeout=20)

    def test_timed_out_command_is_forgotten(self, connection, fake_ws, caplog):
        with pytest.raises(NoResponseAvailableError):
            connection.send_message_sync(Message("Page.enable"), timeout=20)
        assert connection._pending_commands == {}

        fake_ws.push({"id": 1, "result": {}})
        connection.read_data()

        assert "unknown command id 1" in caplog.text

    def test_send_on_closed_socket(self, connection, fake_ws):
        fake_ws.closed = True
        with pytest.raises(ConnectionClosedError):
            connection.send_message(Message("Page.enable"))
        assert not connection.is_connected


@pytest.mark.unit
class TestReadData:
    def test_returns_false_when_nothing_buffered(self, connection):
        assert connection.read_data() is False

    def test_drains_all_buffered_frames_in_order(self, connection, fake_ws):
        seen = []
        connection.subscribe("Page.lifecycleEvent", lambda params: seen.append(params["name"]))
        fake_ws.push_event("Page.lifecycleEvent", {"name": "init"})
        fake_ws.push_event("Page.lifecycleEvent", {"name": "DOMContentLoaded"})
        fake_ws.push_event("Page.lifecycleEvent", {"name": "load"})

        assert connection.read_data() is True
        assert seen == ["init", "DOMContentLoaded", "load"]
        assert not fake_ws.inbound

    def test_responses_and_events_interleaved(self, connection, fake_ws):
        events = []
        connection.subscribe("Network.requestWillBeSent", events.append)
        fake_ws.respond(
            "Network.enable",
            before=[{"method": "Network.requestWillBeSent", "params": {"requestId": "1"}}],
            after=[{"method": "Network.requestWillBeSent", "params": {"requestId": "2"}}],
        )

        response = connection.send_message_sync(Message("Network.enable"))

        assert response.is_successful()
        assert [e["requestId"] for e in events] == ["1", "2"]

    def test_malformed_frame(self, connection, fake_ws):
        fake_ws.push("not json{")
        with pytest.raises(InvalidResponseError, match="Malformed"):
            connection.read_data()

    def test_non_object_frame(self, connection, fake_ws):
        fake_ws.push(json.dumps([1, 2, 3]))
        with pytest.raises(InvalidResponseError):
            connection.read_data()

    def test_frame_without_id_or_method(self, connection, fake_ws):
        fake_ws.push({"params": {}})
        with pytest.raises(InvalidResponseError, match="neither"):
            connection.read_data()

    def test_closed_transport(self, connection, fake_ws):
        fake_ws.push(WSConnectionClosedError(None, None))
        with pytest.raises(CannotReadResponseError):
            connection.read_data()
        assert not connection.is_connected

    def test_unknown_response_id_is_ignored(self, connection, fake_ws):
        fake_ws.push({"id": 99, "result": {}})
        assert connection.read_data() is True


@pytest.mark.unit
class TestEventSubscription:
    def test_multiple_handlers_for_same_event(self, connection, fake_ws):
        first, second = [], []
        connection.subscribe("Console.messageAdded", first.append)
        connection.subscribe("Console.messageAdded", second.append)
        fake_ws.push_event("Console.messageAdded", {"text": "hi"})

        connection.read_data()

        assert first == [{"text": "hi"}]
        assert second == [{"text": "hi"}]

    def test_unsubscribe(self, connection, fake_ws):
        received = []
        connection.subscribe("Console.messageAdded", received.append)
        connection.unsubscribe("Console.messageAdded", received.append)
        fake_ws.push_event("Console.messageAdded", {"text": "hi"})

        connection.read_data()

        assert received == []

    def test_failing_handler_does_not_stop_dispatch(self, connection, fake_ws):
        received = []

        def broken(params):
            raise RuntimeError("boom")

        connection.subscribe("Console.messageAdded", broken)
        connection.subscribe("Console.messageAdded", received.append)
        fake_ws.push_event("Console.messageAdded", {"text": "hi"})

        connection.read_data()

        assert received == [{"text": "hi"}]


@pytest.mark.unit
class TestResponseReader:
    def test_check_for_response_pumps_until_resolved(self, connection, fake_ws):
        reader = connection.send_message(Message("Page.enable"))
        assert reader.check_for_response() is False

        fake_ws.push({"id": reader.message_id, "result": {}})
        assert reader.check_for_response() is True
        assert reader.get_response().id == reader.message_id

    def test_resolving_twice_returns_cached_response_without_pumping(self, connection, fake_ws):
        fake_ws.respond("Page.enable")
        reader = connection.send_message(Message("Page.enable"))

        first = reader.resolve()
        calls = fake_ws.recv_calls
        fake_ws.push_event("Page.loadEventFired", {})
        second = reader.resolve()

        assert first is not None
        assert second is first
        assert reader.wait_for_response() is first
        assert fake_ws.recv_calls == calls
        assert len(fake_ws.inbound) == 1

    def test_resolved_by_another_pump(self, connection, fake_ws):
        fake_ws.respond("Page.enable")
        reader = connection.send_message(Message("Page.enable"))

        connection.read_data()

        assert not reader.has_response()
        calls = fake_ws.recv_calls
        assert reader.check_for_response() is True
        assert fake_ws.recv_calls == calls

    def test_get_response_before_resolution(self, connection):
        reader = connection.send_message(Message("Page.enable"))
        with pytest.raises(NoResponseAvailableError, match="not available"):
            reader.get_response()

    def test_duplicate_response_is_ignored(self, connection, fake_ws):
        reader = connection.send_message(Message("Page.enable"))
        fake_ws.push({"id": reader.message_id, "result": {"first": True}})
        fake_ws.push({"id": reader.message_id, "result": {"first": False}})

        connection.read_data()

        assert reader.resolve().get_result_data("first") is True

    def test_wait_for_response_timeout(self, connection):
        reader = connection.send_message(Message("Page.enable"))
        with pytest.raises(OperationTimedOutError):
            reader.wait_for_response(timeout=20)

    def test_pending_command_after_disconnect(self, connection):
        reader = connection.send_message(Message("Page.enable"))
        connection.disconnect()

        with pytest.raises(ConnectionClosedError, match="before a response"):
            reader.check_for_response()

    def test_transport_error_surfaces_through_reader(self, connection, fake_ws):
        reader = connection.send_message(Message("Page.enable"))
        fake_ws.push("garbage")

        with pytest.raises(InvalidResponseError):
            reader.wait_for_response(timeout=1000)
