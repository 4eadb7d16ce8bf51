"""Tests for Slack chat adapter."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from slack_sdk.errors import SlackApiError
from slack_sdk.socket_mode.request import SocketModeRequest
from structlog.testing import capture_logs

from gen_alpha_bot.adapters.chat.slack import (
    SlackAdapter,
    classify_raw_message,
    classify_request,
)
from gen_alpha_bot.config.schema import SlackConfig
from gen_alpha_bot.models.events import ControlEventKind, MessageEvent, OtherEvent
from gen_alpha_bot.utils.errors import SendError, StreamConnectionError, UserLookupError


def events_api_request(envelope_id: str, event: dict[str, Any]) -> SocketModeRequest:
    """Build an events_api envelope wrapping ``event``."""
    return SocketModeRequest(
        type="events_api",
        envelope_id=envelope_id,
        payload={"type": "event_callback", "event": event},
    )


def message_event(ts: str, **extra: Any) -> dict[str, Any]:
    """Build a Slack message event."""
    return {"type": "message", "channel": "C1", "user": "U999", "text": "hi", "ts": ts, **extra}


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it is true."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


@pytest.fixture
def socket_client() -> MagicMock:
    """Create a mock Socket Mode client."""
    client = MagicMock()
    client.message_listeners = []
    client.socket_mode_request_listeners = []
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client.send_socket_mode_response = AsyncMock()
    return client


@pytest.fixture
def web_client() -> MagicMock:
    """Create a mock Web API client."""
    client = MagicMock()
    client.users_info = AsyncMock()
    client.chat_postMessage = AsyncMock(return_value={"ok": True, "ts": "1700000001.000200"})
    return client


@pytest.fixture
def adapter(
    slack_config: SlackConfig,
    web_client: MagicMock,
    socket_client: MagicMock,
    monkeypatch: pytest.MonkeyPatch,
) -> SlackAdapter:
    """Create an adapter wired to mock clients with a short poll interval."""
    monkeypatch.setattr(SlackAdapter, "POLL_INTERVAL", 0.01)
    return SlackAdapter(slack_config, web_client=web_client, socket_client=socket_client)


class TestClassifyRequest:
    """Test envelope classification."""

    def test_message_event(self):
        """Test message callbacks become message events."""
        req = events_api_request("E1", message_event("1.0", thread_ts="0.5"))

        event = classify_request(req)

        assert isinstance(event, MessageEvent)
        assert event.envelope_id == "E1"
        assert event.message.channel_id == "C1"
        assert event.message.user_id == "U999"
        assert event.message.thread_ts == "0.5"

    def test_bot_message_still_classified_as_message(self):
        """Test bot messages are left for the filter to reject."""
        req = events_api_request("E1", message_event("1.0", bot_id="B1"))

        event = classify_request(req)

        assert isinstance(event, MessageEvent)
        assert event.message.is_from_bot is True

    def test_other_event_type(self):
        """Test non-message events are classified as other."""
        req = events_api_request("E2", {"type": "reaction_added"})

        event = classify_request(req)

        assert isinstance(event, OtherEvent)
        assert event.type == "reaction_added"
        assert event.envelope_id == "E2"

    @pytest.mark.parametrize("subtype", ["message_changed", "message_deleted"])
    def test_edits_and_deletes_ignored(self, subtype: str):
        """Test edits and deletions are not treated as new messages."""
        req = events_api_request("E3", message_event("1.0", subtype=subtype))

        event = classify_request(req)

        assert isinstance(event, OtherEvent)
        assert event.type == f"message.{subtype}"

    def test_non_events_api_request(self):
        """Test interactive and slash command envelopes are other events."""
        req = SocketModeRequest(type="slash_commands", envelope_id="E4", payload={})

        event = classify_request(req)

        assert isinstance(event, OtherEvent)
        assert event.type == "slash_commands"
        assert event.envelope_id == "E4"


class TestClassifyRawMessage:
    """Test lifecycle notification classification."""

    def test_hello(self):
        """Test hello messages become control events."""
        event = classify_raw_message({"type": "hello"})
        assert event is not None
        assert event.kind == ControlEventKind.HELLO

    def test_disconnect(self):
        """Test disconnect messages keep the reason."""
        event = classify_raw_message({"type": "disconnect", "reason": "refresh_requested"})
        assert event is not None
        assert event.kind == ControlEventKind.DISCONNECTED
        assert event.detail == "refresh_requested"

    def test_envelope_ignored(self):
        """Test payload envelopes are not control events."""
        assert classify_raw_message({"type": "events_api", "envelope_id": "E1"}) is None


class TestSlackAdapterInit:
    """Test SlackAdapter initialization."""

    def test_registers_listeners(self, adapter: SlackAdapter, socket_client: MagicMock):
        """Test listeners are registered on a provided socket client."""
        assert len(socket_client.message_listeners) == 1
        assert len(socket_client.socket_mode_request_listeners) == 1
        assert adapter.is_connected is False

    def test_web_client_exposed(self, adapter: SlackAdapter, web_client: MagicMock):
        """Test the web client is available for setup verification."""
        assert adapter.web_client is web_client


class TestSlackAdapterRun:
    """Test the receive loop."""

    async def test_ack_before_dispatch_in_order(
        self, adapter: SlackAdapter, socket_client: MagicMock
    ):
        """Test every payload is acknowledged, in order, before dispatch."""
        order: list[tuple[str, str]] = []

        async def record_ack(response: Any) -> None:
            order.append(("ack", response.envelope_id))

        socket_client.send_socket_mode_response.side_effect = record_ack
        adapter.subscribe(lambda message: order.append(("dispatch", message.ts)))

        await adapter._on_request(socket_client, events_api_request("E1", message_event("1.0")))
        await adapter._on_request(socket_client, events_api_request("E2", {"type": "app_mention"}))
        await adapter._on_request(socket_client, events_api_request("E3", message_event("2.0")))

        shutdown = asyncio.Event()
        task = asyncio.create_task(adapter.run(shutdown))
        await wait_until(lambda: len(order) == 5)
        shutdown.set()
        await task

        assert order == [
            ("ack", "E1"),
            ("dispatch", "1.0"),
            ("ack", "E2"),
            ("ack", "E3"),
            ("dispatch", "2.0"),
        ]
        socket_client.connect.assert_awaited_once()
        socket_client.close.assert_awaited_once()
        assert adapter.is_connected is False

    async def test_control_events_not_acked(
        self, adapter: SlackAdapter, socket_client: MagicMock
    ):
        """Test lifecycle notifications are logged without acknowledgement."""
        await adapter._on_raw_message(socket_client, {"type": "hello"}, None)

        shutdown = asyncio.Event()
        with capture_logs() as logs:
            task = asyncio.create_task(adapter.run(shutdown))
            await wait_until(
                lambda: any(e["event"] == "slack_hello_received" for e in logs)
            )
            shutdown.set()
            await task

        socket_client.send_socket_mode_response.assert_not_awaited()

    async def test_ack_failure_still_dispatches(
        self, adapter: SlackAdapter, socket_client: MagicMock
    ):
        """Test a failed acknowledgement does not drop the message."""
        socket_client.send_socket_mode_response.side_effect = ConnectionError("closed")
        received: list[str] = []
        adapter.subscribe(lambda message: received.append(message.ts))

        await adapter._on_request(socket_client, events_api_request("E1", message_event("1.0")))

        shutdown = asyncio.Event()
        task = asyncio.create_task(adapter.run(shutdown))
        await wait_until(lambda: received == ["1.0"])
        shutdown.set()
        await task

    async def test_callback_error_does_not_stop_loop(
        self, adapter: SlackAdapter, socket_client: MagicMock
    ):
        """Test a raising callback does not stop later dispatches."""
        received: list[str] = []

        def callback(message: Any) -> None:
            received.append(message.ts)
            if message.ts == "1.0":
                raise RuntimeError("boom")

        adapter.subscribe(callback)

        await adapter._on_request(socket_client, events_api_request("E1", message_event("1.0")))
        await adapter._on_request(socket_client, events_api_request("E2", message_event("2.0")))

        shutdown = asyncio.Event()
        task = asyncio.create_task(adapter.run(shutdown))
        await wait_until(lambda: received == ["1.0", "2.0"])
        shutdown.set()
        await task

    async def test_heartbeat_logs_while_receiving(
        self,
        slack_config: SlackConfig,
        web_client: MagicMock,
        socket_client: MagicMock,
        monkeypatch: pytest.MonkeyPatch,
    ):
        """Test liveness is logged periodically without blocking dispatch."""
        monkeypatch.setattr(SlackAdapter, "POLL_INTERVAL", 0.01)
        config = slack_config.model_copy(update={"heartbeat_interval": 0.02})
        adapter = SlackAdapter(config, web_client=web_client, socket_client=socket_client)
        received: list[str] = []
        adapter.subscribe(lambda message: received.append(message.ts))

        shutdown = asyncio.Event()
        with capture_logs() as logs:
            task = asyncio.create_task(adapter.run(shutdown))
            await wait_until(lambda: sum(e["event"] == "bot_alive" for e in logs) >= 2)

            await adapter._on_request(
                socket_client, events_api_request("E1", message_event("1.0"))
            )
            await wait_until(lambda: received == ["1.0"])
            await wait_until(lambda: sum(e["event"] == "bot_alive" for e in logs) >= 3)

            shutdown.set()
            await task

        alive = [e for e in logs if e["event"] == "bot_alive"]
        assert alive[0]["connected"] is True
        assert alive[0]["log_level"] == "info"
        assert not any(t.get_name() == "slack_heartbeat" for t in asyncio.all_tasks())

    async def test_connect_failure_is_fatal(
        self, adapter: SlackAdapter, socket_client: MagicMock
    ):
        """Test that failing to open the stream raises StreamConnectionError."""
        socket_client.connect.side_effect = RuntimeError("invalid_auth")

        with pytest.raises(StreamConnectionError, match="invalid_auth"):
            await adapter.run(asyncio.Event())

    async def test_socket_error_queued_as_control_event(
        self, adapter: SlackAdapter
    ):
        """Test transport errors become connection error events."""
        ws_message = MagicMock()
        ws_message.data = "reset by peer"

        await adapter._on_socket_error(ws_message)

        event = adapter._events.get_nowait()
        assert event.kind == ControlEventKind.CONNECTION_ERROR
        assert event.detail == "reset by peer"


class TestSlackAdapterUserLookup:
    """Test author lookup."""

    async def test_get_user_profile(self, adapter: SlackAdapter, web_client: MagicMock):
        """Test resolving a user's profile."""
        web_client.users_info.return_value = {
            "ok": True,
            "user": {
                "id": "U999",
                "name": "bob",
                "real_name": "Bob Builder",
                "profile": {"display_name": "Bobby"},
            },
        }

        profile = await adapter.get_user_profile("U999")

        web_client.users_info.assert_awaited_once_with(user="U999")
        assert profile.username == "bob"
        assert profile.effective_display_name == "Bobby"

    async def test_api_error(self, adapter: SlackAdapter, web_client: MagicMock):
        """Test API failures raise UserLookupError."""
        web_client.users_info.side_effect = SlackApiError(
            "user_not_found", {"ok": False, "error": "user_not_found"}
        )

        with pytest.raises(UserLookupError):
            await adapter.get_user_profile("U000")

    async def test_empty_user_id(self, adapter: SlackAdapter, web_client: MagicMock):
        """Test messages without a user are rejected before calling Slack."""
        with pytest.raises(UserLookupError):
            await adapter.get_user_profile("")

        web_client.users_info.assert_not_awaited()


class TestSlackAdapterPostMessage:
    """Test publishing."""

    async def test_post_top_level(self, adapter: SlackAdapter, web_client: MagicMock):
        """Test posting a top-level channel message."""
        ts = await adapter.post_message("C1", "hello")

        assert ts == "1700000001.000200"
        web_client.chat_postMessage.assert_awaited_once_with(channel="C1", text="hello")

    async def test_post_in_thread(self, adapter: SlackAdapter, web_client: MagicMock):
        """Test posting a thread reply."""
        await adapter.post_message("C1", "hello", thread_ts="1.0")

        call_kwargs = web_client.chat_postMessage.call_args.kwargs
        assert call_kwargs["thread_ts"] == "1.0"

    async def test_post_failure(self, adapter: SlackAdapter, web_client: MagicMock):
        """Test API failures raise SendError."""
        web_client.chat_postMessage.side_effect = SlackApiError(
            "channel_not_found", {"ok": False, "error": "channel_not_found"}
        )

        with pytest.raises(SendError):
            await adapter.post_message("C404", "hello")

    async def test_each_call_posts(self, adapter: SlackAdapter, web_client: MagicMock):
        """Test there is no deduplication: two calls post twice."""
        await adapter.post_message("C1", "hello")
        await adapter.post_message("C1", "hello")

        assert web_client.chat_postMessage.await_count == 2
