"""Per-message translation pipeline.

This module implements the MessageHandler class that takes one inbound
message through the full pipeline:
1. Pre-screen on channel and bot origin
2. Resolve the author's profile
3. Apply the full channel/user/bot filter
4. Translate the text
5. Publish the result to the originating channel

Every failure is contained to the message being processed: it is logged
and reported through the returned ProcessingResult, never raised.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Literal

import structlog

from gen_alpha_bot.core.message_filter import FilterConfig, prescreen, rejection_reason
from gen_alpha_bot.models.message import ProcessingResult
from gen_alpha_bot.utils.errors import SendError, TransformationError, UserLookupError

if TYPE_CHECKING:
    from gen_alpha_bot.interfaces.chat import ChatProvider
    from gen_alpha_bot.interfaces.transformer import Transformer
    from gen_alpha_bot.models.message import InboundMessage

log = structlog.get_logger()

ReplyMode = Literal["channel", "thread"]

REPLY_HEADER_TEMPLATE = "*{name}'s message in Gen Alpha:*"


def format_reply(speaker: str, translated: str) -> str:
    """Build the published text: a header naming the author, then the translation."""
    return f"{REPLY_HEADER_TEMPLATE.format(name=speaker)}\n{translated}"


class MessageHandler:
    """Runs the translation pipeline for a single message.

    The handler holds only read-only state (the filter configuration and
    the shared adapters), so one instance serves every concurrent message
    task. Each call to :meth:`handle` invokes the transformer at most once
    and publishes at most once.

    Example:
        handler = MessageHandler(chat, transformer, filter_config)
        result = await handler.handle(message)
    """

    def __init__(
        self,
        chat: ChatProvider,
        transformer: Transformer,
        filter_config: FilterConfig,
        reply_mode: ReplyMode = "channel",
        verbose: bool = False,
    ) -> None:
        """Initialize the MessageHandler.

        Args:
            chat: Chat provider for author lookup and publishing
            transformer: Translation service client
            filter_config: Channel and user allow-lists
            reply_mode: Post top-level ("channel") or as a thread reply ("thread")
            verbose: Log message and translation text
        """
        self._chat = chat
        self._transformer = transformer
        self._filter = filter_config
        self._reply_mode = reply_mode
        self._verbose = verbose

    async def handle(self, message: InboundMessage) -> ProcessingResult:
        """Process a message through the pipeline.

        Args:
            message: Normalized inbound message

        Returns:
            ProcessingResult indicating how processing ended
        """
        start_time = time.monotonic()

        reason = prescreen(message, self._filter)
        if reason is not None:
            log.debug("message_rejected", reason=reason)
            return ProcessingResult.REJECTED

        try:
            author = await self._chat.get_user_profile(message.user_id)
        except UserLookupError as e:
            log.error("author_lookup_failed", user_id=message.user_id, error=str(e))
            return self._finish(start_time, ProcessingResult.AUTHOR_LOOKUP_FAILED)

        reason = rejection_reason(message, self._filter, author)
        if reason is not None:
            log.debug(
                "message_rejected",
                reason=reason,
                user_id=message.user_id,
                username=author.username,
            )
            return ProcessingResult.REJECTED

        speaker = author.effective_display_name
        log.info("processing_message", user_id=message.user_id, speaker=speaker)
        if self._verbose:
            log.debug("message_text", text=message.text)

        try:
            translated = await self._transformer.transform(message.text, speaker)
        except TransformationError as e:
            log.error("transformation_failed", error=str(e), error_type=type(e).__name__)
            return self._finish(start_time, ProcessingResult.TRANSFORM_FAILED)

        if self._verbose:
            log.debug("message_translated", translated=translated)

        try:
            posted_ts = await self._chat.post_message(
                message.channel_id,
                format_reply(speaker, translated),
                thread_ts=self._reply_thread_ts(message),
            )
        except SendError as e:
            log.error("publish_failed", error=str(e))
            return self._finish(start_time, ProcessingResult.PUBLISH_FAILED)

        log.info("translation_published", posted_ts=posted_ts)
        return self._finish(start_time, ProcessingResult.PUBLISHED)

    def _reply_thread_ts(self, message: InboundMessage) -> str | None:
        """Return the parent timestamp to reply under, or None for a top-level post."""
        if self._reply_mode == "thread":
            return message.thread_ts or message.ts
        return None

    def _finish(self, start_time: float, result: ProcessingResult) -> ProcessingResult:
        """Log completion of an admitted message and pass the result through.

        Args:
            start_time: Monotonic time when processing started
            result: Processing result
        """
        duration = time.monotonic() - start_time
        emit = log.warning if result.is_error else log.info
        emit(
            "message_processing_complete",
            result=result.value,
            duration_seconds=round(duration, 2),
        )
        return result
