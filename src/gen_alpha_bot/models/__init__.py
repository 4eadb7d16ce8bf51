"""Data models and transfer objects."""

from .events import ControlEvent, ControlEventKind, MessageEvent, OtherEvent, StreamEvent
from .message import AuthorProfile, InboundMessage, ProcessingResult

__all__ = [
    # Message models
    "InboundMessage",
    "AuthorProfile",
    "ProcessingResult",
    # Stream events
    "ControlEventKind",
    "ControlEvent",
    "MessageEvent",
    "OtherEvent",
    "StreamEvent",
]
