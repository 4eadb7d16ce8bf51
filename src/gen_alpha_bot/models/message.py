"""Data models for chat messages."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

BOT_MESSAGE_SUBTYPE = "bot_message"


@dataclass(frozen=True)
class InboundMessage:
    """A normalized message event received from the chat platform.

    ``ts`` is unique per channel and increases in arrival order, so it
    identifies a single delivery of a message.
    """

    channel_id: str
    user_id: str
    text: str
    ts: str
    thread_ts: str | None = None  # None if not in a thread
    bot_id: str | None = None  # Set when an app or integration posted it
    subtype: str | None = None

    @property
    def is_from_bot(self) -> bool:
        """Return True if the message was posted by an automated sender."""
        return bool(self.bot_id) or self.subtype == BOT_MESSAGE_SUBTYPE

    @classmethod
    def from_event(cls, event: dict[str, Any]) -> "InboundMessage":
        """Build a message from a Slack ``message`` event payload."""
        return cls(
            channel_id=event.get("channel", ""),
            user_id=event.get("user", ""),
            text=event.get("text", ""),
            ts=event.get("ts", ""),
            thread_ts=event.get("thread_ts"),
            bot_id=event.get("bot_id") or None,
            subtype=event.get("subtype") or None,
        )


@dataclass(frozen=True)
class AuthorProfile:
    """Display information for the author of a message."""

    id: str
    username: str = ""
    real_name: str = ""
    display_name: str = ""

    @property
    def effective_display_name(self) -> str:
        """Speaker label: display name, then username, then real name."""
        return self.display_name or self.username or self.real_name

    @classmethod
    def from_slack_user(cls, user: dict[str, Any]) -> "AuthorProfile":
        """Build a profile from a ``users.info`` user object."""
        profile: dict[str, Any] = user.get("profile") or {}
        return cls(
            id=user.get("id", ""),
            username=user.get("name") or "",
            real_name=user.get("real_name") or profile.get("real_name") or "",
            display_name=profile.get("display_name") or "",
        )


class ProcessingResult(Enum):
    """Outcome of processing a message."""

    REJECTED = "rejected"
    PUBLISHED = "published"
    AUTHOR_LOOKUP_FAILED = "author_lookup_failed"
    TRANSFORM_FAILED = "transform_failed"
    PUBLISH_FAILED = "publish_failed"

    @property
    def is_error(self) -> bool:
        """Return True for terminal failure states."""
        return self in (
            ProcessingResult.AUTHOR_LOOKUP_FAILED,
            ProcessingResult.TRANSFORM_FAILED,
            ProcessingResult.PUBLISH_FAILED,
        )
