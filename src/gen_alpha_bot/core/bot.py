"""Bot lifecycle: wiring, per-message dispatch and graceful shutdown.

This module implements the Bot class that owns the running process:
- Subscribes to the chat provider's message events
- Runs every message through the MessageHandler as its own asyncio task,
  so a slow translation never holds up the receive loop
- Runs optional setup verification before connecting
- Stops on SIGTERM/SIGINT, letting in-flight messages finish
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

import structlog

from gen_alpha_bot.core.message_filter import FilterConfig
from gen_alpha_bot.core.message_handler import MessageHandler
from gen_alpha_bot.utils.errors import StartupError
from gen_alpha_bot.utils.logging import message_context
from gen_alpha_bot.utils.security import mask_config_value

if TYPE_CHECKING:
    from gen_alpha_bot.adapters.chat.slack_verify import SlackSetupVerifier
    from gen_alpha_bot.config.schema import BotConfig
    from gen_alpha_bot.interfaces.chat import ChatProvider
    from gen_alpha_bot.interfaces.transformer import Transformer
    from gen_alpha_bot.models.message import InboundMessage, ProcessingResult

log = structlog.get_logger()


class Bot:
    """Main orchestrator that connects the chat provider to the pipeline.

    The chat provider calls :meth:`dispatch` from its receive loop. Dispatch
    only creates a task and returns; a semaphore inside each task bounds how
    many messages are translated at once without ever blocking reception.

    Example:
        bot = await create_bot(config)
        await bot.start()  # Blocks until SIGTERM/SIGINT or stop()
    """

    def __init__(
        self,
        config: BotConfig,
        chat: ChatProvider,
        transformer: Transformer,
        verifier: SlackSetupVerifier | None = None,
    ) -> None:
        """Initialize the Bot.

        Args:
            config: Application configuration
            chat: Chat provider adapter
            transformer: Translation client
            verifier: Setup verifier to run before connecting (optional)

        Raises:
            ValueError: If the filter configuration is invalid
        """
        self._config = config
        self._chat = chat
        self._transformer = transformer
        self._verifier = verifier

        self._handler = MessageHandler(
            chat,
            transformer,
            FilterConfig.from_slack_config(config.slack),
            reply_mode=config.slack.reply_mode,
            verbose=config.logs,
        )

        self._semaphore = asyncio.Semaphore(config.runtime.max_concurrent)
        self._active_tasks: set[asyncio.Task[ProcessingResult | None]] = set()

        self._running = False
        self._shutdown_event = asyncio.Event()

        chat.subscribe(self.dispatch)

    @property
    def is_running(self) -> bool:
        """Return True if the bot is currently running."""
        return self._running

    @property
    def active_tasks(self) -> int:
        """Return the number of messages currently being processed."""
        return len(self._active_tasks)

    async def start(self) -> None:
        """Verify setup, connect and process messages until shutdown.

        Raises:
            StreamConnectionError: If the event stream cannot be opened
            StartupError: If the bot is already running
        """
        if self._running:
            raise StartupError("Bot is already running")

        self._running = True
        self._shutdown_event.clear()
        log.info("bot_starting")

        if self._config.logs:
            self._log_configuration()

        try:
            if self._verifier is not None:
                await self._verifier.verify()

            self._setup_signal_handlers()
            log.info("bot_started")
            await self._chat.run(self._shutdown_event)
        finally:
            self._remove_signal_handlers()
            await self._wait_for_tasks()
            await self._transformer.aclose()
            self._running = False
            log.info("bot_stopped")

    def stop(self) -> None:
        """Request a graceful shutdown.

        The receive loop stops taking new events; messages already being
        processed run to completion before :meth:`start` returns.
        """
        if not self._shutdown_event.is_set():
            log.info("bot_stopping", active_tasks=len(self._active_tasks))
            self._shutdown_event.set()

    def dispatch(self, message: InboundMessage) -> None:
        """Schedule a message for processing and return immediately."""
        task = asyncio.create_task(
            self.process_message(message),
            name=f"process_{message.channel_id}_{message.ts}",
        )
        self._active_tasks.add(task)
        task.add_done_callback(self._active_tasks.discard)

    async def process_message(self, message: InboundMessage) -> ProcessingResult | None:
        """Process a single message within the concurrency limit.

        Returns:
            The pipeline result, or None if processing raised unexpectedly
        """
        with message_context(message.channel_id, message.ts):
            async with self._semaphore:
                try:
                    return await self._handler.handle(message)
                except Exception as e:
                    log.exception("message_processing_error", error=str(e))
                    return None

    async def _wait_for_tasks(self) -> None:
        """Wait for in-flight messages to finish."""
        if not self._active_tasks:
            return

        log.info("waiting_for_active_tasks", count=len(self._active_tasks))
        await asyncio.gather(*self._active_tasks, return_exceptions=True)
        log.info("active_tasks_completed")

    def _log_configuration(self) -> None:
        slack = self._config.slack
        log.info(
            "bot_configuration",
            debug=self._config.debug,
            logs=self._config.logs,
            model=self._config.openai.model,
            channels="all" if slack.monitor_all_channels else slack.channel_ids,
            target_users=slack.target_users,
            reply_mode=slack.reply_mode,
            bot_token=mask_config_value("bot_token", slack.bot_token),
            app_token=mask_config_value("app_token", slack.app_token),
            openai_api_key=mask_config_value("api_key", self._config.openai.api_key),
        )

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_signal, sig)
            log.debug("signal_handler_registered", signal=sig.name)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)

    def _handle_signal(self, sig: signal.Signals) -> None:
        log.info("received_signal", signal=sig.name)
        self.stop()


async def create_bot(config: BotConfig) -> Bot:
    """Factory function to create a Bot with the Slack and OpenAI adapters.

    Must be awaited inside the running event loop: the Slack clients bind
    to it.

    Args:
        config: Application configuration

    Returns:
        Configured Bot instance
    """
    from gen_alpha_bot.adapters.chat.slack import SlackAdapter
    from gen_alpha_bot.adapters.chat.slack_verify import SlackSetupVerifier
    from gen_alpha_bot.adapters.llm.openai import OpenAITransformer

    chat = SlackAdapter(config.slack)
    transformer = OpenAITransformer(config.openai)

    verifier = None
    if config.should_verify_setup:
        verifier = SlackSetupVerifier(
            chat.web_client,
            config.slack,
            send_self_test=config.debug,
        )

    return Bot(config, chat, transformer, verifier=verifier)
