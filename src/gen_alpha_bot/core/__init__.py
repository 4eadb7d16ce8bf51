"""Core message pipeline.

- Bot: process lifecycle, per-message dispatch and shutdown
- MessageHandler: filter, translate and publish a single message
- message_filter: channel and user allow-lists
"""

from gen_alpha_bot.core.bot import Bot, create_bot
from gen_alpha_bot.core.message_filter import ALL_CHANNELS, FilterConfig, admit
from gen_alpha_bot.core.message_handler import MessageHandler, format_reply

__all__ = [
    "ALL_CHANNELS",
    "Bot",
    "FilterConfig",
    "MessageHandler",
    "admit",
    "create_bot",
    "format_reply",
]
