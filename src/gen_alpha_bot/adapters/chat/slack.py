"""Slack chat adapter using Socket Mode.

This module implements the ChatProvider protocol for Slack using the
slack-sdk Socket Mode client for real-time events and the async Web API
client for outbound calls.

Features:
- Socket Mode connection with the SDK's own reconnect handling
- Envelopes narrowed into control, message and other events
- Every payload acknowledged in arrival order before it is dispatched
- Periodic heartbeat log while connected
- User lookup and message posting (top-level or threaded)
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any, assert_never

import aiohttp
import structlog
from slack_sdk.errors import SlackApiError
from slack_sdk.socket_mode.aiohttp import SocketModeClient
from slack_sdk.socket_mode.response import SocketModeResponse
from slack_sdk.web.async_client import AsyncWebClient

from ...config.schema import SlackConfig
from ...models.events import (
    ControlEvent,
    ControlEventKind,
    MessageEvent,
    OtherEvent,
    StreamEvent,
)
from ...models.message import AuthorProfile, InboundMessage
from ...utils.errors import SendError, StreamConnectionError, UserLookupError

if TYPE_CHECKING:
    from slack_sdk.socket_mode.async_client import AsyncBaseSocketModeClient
    from slack_sdk.socket_mode.request import SocketModeRequest

    from ...interfaces.chat import MessageCallback


log = structlog.get_logger()

# Edits and deletions are not new messages
IGNORED_MESSAGE_SUBTYPES = frozenset({"message_changed", "message_deleted"})

# Errors raised by the Web API client for failed calls
WEB_API_ERRORS = (SlackApiError, aiohttp.ClientError, TimeoutError)


def classify_request(req: SocketModeRequest) -> StreamEvent:
    """Narrow a Socket Mode request into a stream event.

    Args:
        req: The request received over the socket.

    Returns:
        A MessageEvent for ``message`` callbacks, otherwise an OtherEvent.
    """
    if req.type != "events_api":
        return OtherEvent(type=req.type, envelope_id=req.envelope_id)

    payload: dict[str, Any] = req.payload or {}
    if payload.get("type") != "event_callback":
        return OtherEvent(type=str(payload.get("type", "unknown")), envelope_id=req.envelope_id)

    event: dict[str, Any] = payload.get("event") or {}
    event_type = str(event.get("type", "unknown"))
    if event_type != "message":
        return OtherEvent(type=event_type, envelope_id=req.envelope_id)

    subtype = event.get("subtype")
    if subtype in IGNORED_MESSAGE_SUBTYPES:
        return OtherEvent(type=f"message.{subtype}", envelope_id=req.envelope_id)

    return MessageEvent(envelope_id=req.envelope_id, message=InboundMessage.from_event(event))


def classify_raw_message(message: dict[str, Any]) -> ControlEvent | None:
    """Pick out lifecycle notifications from raw socket messages.

    Args:
        message: Decoded JSON message from the socket.

    Returns:
        A ControlEvent, or None if the message is not a lifecycle notification.
    """
    message_type = message.get("type")
    if message_type == "hello":
        return ControlEvent(kind=ControlEventKind.HELLO)
    if message_type == "disconnect":
        return ControlEvent(kind=ControlEventKind.DISCONNECTED, detail=message.get("reason"))
    return None


class SlackAdapter:
    """Slack chat adapter implementing the ChatProvider protocol.

    Envelopes received by the Socket Mode client are classified and queued
    as they arrive. A single receive loop drains the queue: it acknowledges
    each payload, then hands message events to the subscribed callbacks.
    Callbacks must only schedule work; the loop never waits on message
    processing.

    Example:
        config = SlackConfig(
            bot_token="xoxb-...",
            app_token="xapp-...",
            target_users=["alice"],
        )
        adapter = SlackAdapter(config)
        adapter.subscribe(lambda message: print(message.text))

        shutdown = asyncio.Event()
        await adapter.run(shutdown)
    """

    # Seconds the receive loop waits for an event before re-checking shutdown
    POLL_INTERVAL = 1.0

    def __init__(
        self,
        config: SlackConfig,
        web_client: AsyncWebClient | None = None,
        socket_client: AsyncBaseSocketModeClient | None = None,
    ) -> None:
        """Initialize the Slack adapter.

        Args:
            config: Slack-specific configuration.
            web_client: Web API client. If None, creates one from the bot token.
            socket_client: Socket Mode client. If None, one is created when
                the adapter starts running.
        """
        self._config = config
        self._client = web_client or AsyncWebClient(token=config.bot_token)
        self._socket_client = socket_client
        self._connected = False

        self._events: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._callbacks: list[MessageCallback] = []

        if socket_client is not None:
            self._register_listeners(socket_client)

    @property
    def web_client(self) -> AsyncWebClient:
        """Return the Web API client."""
        return self._client

    @property
    def is_connected(self) -> bool:
        """Return True while the event stream is open."""
        return self._connected

    def subscribe(self, callback: MessageCallback) -> None:
        """Register a callback for normalized message events.

        Args:
            callback: Called with each InboundMessage after acknowledgement.
        """
        self._callbacks.append(callback)

    def _create_socket_client(self) -> AsyncBaseSocketModeClient:
        """Create the Socket Mode client (must run inside the event loop)."""
        client = SocketModeClient(
            app_token=self._config.app_token,
            web_client=self._client,
            auto_reconnect_enabled=True,
            on_error_listeners=[self._on_socket_error],
            on_close_listeners=[self._on_socket_close],
        )
        self._register_listeners(client)
        return client

    def _register_listeners(self, client: AsyncBaseSocketModeClient) -> None:
        """Register envelope listeners with the Socket Mode client."""
        client.message_listeners.append(self._on_raw_message)
        client.socket_mode_request_listeners.append(self._on_request)

    async def _on_request(
        self,
        client: AsyncBaseSocketModeClient,
        req: SocketModeRequest,
    ) -> None:
        """Queue a Socket Mode request for the receive loop."""
        self._events.put_nowait(classify_request(req))

    async def _on_raw_message(
        self,
        client: AsyncBaseSocketModeClient,
        message: dict[str, Any],
        raw_message: str | None,
    ) -> None:
        """Queue lifecycle notifications seen on the socket."""
        event = classify_raw_message(message)
        if event is not None:
            self._events.put_nowait(event)

    async def _on_socket_error(self, message: aiohttp.WSMessage) -> None:
        """Queue a connection error notification."""
        self._events.put_nowait(
            ControlEvent(kind=ControlEventKind.CONNECTION_ERROR, detail=str(message.data))
        )

    async def _on_socket_close(self, message: aiohttp.WSMessage) -> None:
        """Queue a disconnect notification."""
        self._events.put_nowait(
            ControlEvent(kind=ControlEventKind.DISCONNECTED, detail=str(message.extra or ""))
        )

    async def run(self, shutdown: asyncio.Event) -> None:
        """Open the event stream and process events until ``shutdown`` is set.

        Args:
            shutdown: Set by the owner to stop receiving events.

        Raises:
            StreamConnectionError: If the connection cannot be opened.
        """
        self._log_control_event(ControlEvent(kind=ControlEventKind.CONNECTING))

        try:
            if self._socket_client is None:
                self._socket_client = self._create_socket_client()
            await self._socket_client.connect()
        except Exception as e:
            log.error("slack_connection_failed", error=str(e))
            raise StreamConnectionError(f"Failed to connect to Slack: {e}") from e

        self._connected = True
        self._log_control_event(ControlEvent(kind=ControlEventKind.CONNECTED))

        heartbeat = asyncio.create_task(self._heartbeat(shutdown), name="slack_heartbeat")
        try:
            await self._receive_loop(shutdown)
        finally:
            heartbeat.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await heartbeat
            await self._close()

    async def _receive_loop(self, shutdown: asyncio.Event) -> None:
        """Handle queued events one at a time, in arrival order."""
        log.info("slack_receive_loop_started", callbacks=len(self._callbacks))

        while not shutdown.is_set():
            try:
                event = await asyncio.wait_for(self._events.get(), timeout=self.POLL_INTERVAL)
            except TimeoutError:
                continue
            await self._handle_event(event)

        log.info("slack_receive_loop_stopped", pending_events=self._events.qsize())

    async def _handle_event(self, event: StreamEvent) -> None:
        """Acknowledge and route a single event."""
        if isinstance(event, ControlEvent):
            self._log_control_event(event)
            return

        if event.envelope_id:
            await self._ack(event.envelope_id)

        if isinstance(event, OtherEvent):
            log.debug("slack_event_ignored", type=event.type)
        elif isinstance(event, MessageEvent):
            self._dispatch(event.message)
        else:
            assert_never(event)

    async def _ack(self, envelope_id: str) -> None:
        """Acknowledge an envelope so Slack does not redeliver it."""
        if self._socket_client is None:
            return
        try:
            await self._socket_client.send_socket_mode_response(
                SocketModeResponse(envelope_id=envelope_id)
            )
        except Exception as e:
            log.error("slack_ack_failed", envelope_id=envelope_id, error=str(e))

    def _dispatch(self, message: InboundMessage) -> None:
        """Hand a message to every subscribed callback."""
        log.debug(
            "slack_message_received",
            channel_id=message.channel_id,
            user_id=message.user_id,
            message_ts=message.ts,
        )
        for callback in self._callbacks:
            try:
                callback(message)
            except Exception as e:
                log.exception(
                    "message_callback_failed",
                    message_ts=message.ts,
                    error=str(e),
                )

    def _log_control_event(self, event: ControlEvent) -> None:
        """Log a connection lifecycle notification."""
        kind = event.kind
        if kind == ControlEventKind.CONNECTING:
            log.info("slack_connecting")
        elif kind == ControlEventKind.CONNECTED:
            log.info("slack_connected")
        elif kind == ControlEventKind.HELLO:
            log.info("slack_hello_received")
        elif kind == ControlEventKind.DISCONNECTED:
            log.warning("slack_disconnected", detail=event.detail)
        elif kind == ControlEventKind.CONNECTION_ERROR:
            log.warning("slack_connection_error", detail=event.detail)
        else:
            assert_never(kind)

    async def _heartbeat(self, shutdown: asyncio.Event) -> None:
        """Log a liveness message at a fixed interval."""
        interval = self._config.heartbeat_interval
        while not shutdown.is_set():
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=interval)
            except TimeoutError:
                log.info("bot_alive", connected=self._connected)

    async def _close(self) -> None:
        """Close the Socket Mode connection."""
        if self._socket_client is not None:
            try:
                await self._socket_client.close()
            except Exception as e:
                log.warning("disconnect_error", error=str(e))

        self._connected = False
        log.info("slack_disconnected_cleanly")

    async def get_user_profile(self, user_id: str) -> AuthorProfile:
        """Resolve display information for a user.

        Args:
            user_id: Slack user ID.

        Returns:
            The user's profile.

        Raises:
            UserLookupError: If the lookup fails.
        """
        if not user_id:
            raise UserLookupError("Message has no user ID")

        try:
            result = await self._client.users_info(user=user_id)
        except WEB_API_ERRORS as e:
            raise UserLookupError(f"Error getting user info for {user_id}: {e}") from e

        user: dict[str, Any] = result.get("user") or {}
        profile = AuthorProfile.from_slack_user(user)

        log.debug(
            "user_info_retrieved",
            user_id=profile.id,
            username=profile.username,
        )
        return profile

    async def post_message(
        self,
        channel_id: str,
        text: str,
        thread_ts: str | None = None,
    ) -> str:
        """Post a message to a channel, optionally in a thread.

        Args:
            channel_id: Target channel identifier.
            text: Message text (mrkdwn).
            thread_ts: Parent message timestamp for threading (optional).

        Returns:
            Timestamp (ts) of the posted message.

        Raises:
            SendError: If message delivery fails.
        """
        kwargs: dict[str, Any] = {
            "channel": channel_id,
            "text": text,
        }
        if thread_ts:
            kwargs["thread_ts"] = thread_ts

        try:
            result = await self._client.chat_postMessage(**kwargs)
        except WEB_API_ERRORS as e:
            log.error(
                "post_message_failed",
                channel_id=channel_id,
                error=str(e),
            )
            raise SendError(f"Failed to send message: {e}") from e

        message_ts: str = result.get("ts", "")
        log.debug(
            "message_sent",
            channel_id=channel_id,
            message_ts=message_ts,
            thread_ts=thread_ts,
        )
        return message_ts
