"""Channel and user filtering for inbound messages.

Decides whether a message is eligible for translation. Rules are applied in
order and the first failing rule rejects:

1. Channel: when an explicit channel list is configured, the message must
   come from one of those channels.
2. User: either the author's username or the author's user ID must be in the
   target user list.
3. Anti-loopback: messages from bots (including this one) are never admitted.

All checks are exact, case-sensitive set lookups. The filter holds no mutable
state and is safe to call from any number of concurrent tasks.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from gen_alpha_bot.config.schema import SlackConfig
    from gen_alpha_bot.models.message import AuthorProfile, InboundMessage


class AllChannels(Enum):
    """Sentinel type for monitoring every channel the bot has joined."""

    ALL = "all"


ALL_CHANNELS = AllChannels.ALL

RejectionReason = Literal["channel_not_monitored", "user_not_targeted", "bot_message"]


@dataclass(frozen=True)
class FilterConfig:
    """Immutable allow-lists built once at startup."""

    channels: frozenset[str] | Literal[AllChannels.ALL]
    users: frozenset[str]

    def __post_init__(self) -> None:
        if not self.users:
            raise ValueError("At least one target user is required")

    @property
    def monitors_all_channels(self) -> bool:
        """Return True when no explicit channel list is configured."""
        return self.channels is ALL_CHANNELS

    @classmethod
    def from_slack_config(cls, config: SlackConfig) -> FilterConfig:
        """Build the filter configuration from validated Slack settings."""
        channels: frozenset[str] | Literal[AllChannels.ALL] = (
            ALL_CHANNELS if not config.channel_ids else frozenset(config.channel_ids)
        )
        return cls(channels=channels, users=frozenset(config.target_users))


def channel_allowed(message: InboundMessage, config: FilterConfig) -> bool:
    """Check the channel rule."""
    if config.channels is ALL_CHANNELS:
        return True
    return message.channel_id in config.channels


def user_allowed(
    message: InboundMessage,
    config: FilterConfig,
    author: AuthorProfile,
) -> bool:
    """Check the user rule against both the username and the user ID."""
    return author.username in config.users or message.user_id in config.users


def prescreen(message: InboundMessage, config: FilterConfig) -> RejectionReason | None:
    """Apply the rules that don't need the author's profile.

    Used to skip the user lookup for messages that can never be admitted.

    Returns:
        The reason for rejection, or None if the message may still be admitted.
    """
    if not channel_allowed(message, config):
        return "channel_not_monitored"
    if message.is_from_bot:
        return "bot_message"
    return None


def rejection_reason(
    message: InboundMessage,
    config: FilterConfig,
    author: AuthorProfile,
) -> RejectionReason | None:
    """Return why a message is rejected, or None if it is admitted."""
    if not channel_allowed(message, config):
        return "channel_not_monitored"
    if not user_allowed(message, config, author):
        return "user_not_targeted"
    if message.is_from_bot:
        return "bot_message"
    return None


def admit(message: InboundMessage, config: FilterConfig, author: AuthorProfile) -> bool:
    """Decide whether a message should be translated."""
    return rejection_reason(message, config, author) is None
