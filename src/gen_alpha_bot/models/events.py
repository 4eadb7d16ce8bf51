"""Stream events delivered by the chat platform connection.

Every envelope received over the event stream is narrowed into exactly one of
three variants:

- :class:`ControlEvent` - connection lifecycle, logged only
- :class:`MessageEvent` - a ``message`` payload carrying an
  :class:`~gen_alpha_bot.models.message.InboundMessage`
- :class:`OtherEvent` - any other payload (reactions, joins, ...)

Payload variants carry the ``envelope_id`` that must be acknowledged before
the event is processed any further.
"""

from dataclasses import dataclass
from enum import StrEnum

from .message import InboundMessage


class ControlEventKind(StrEnum):
    """Connection lifecycle notifications."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    HELLO = "hello"
    DISCONNECTED = "disconnected"
    CONNECTION_ERROR = "connection_error"


@dataclass(frozen=True)
class ControlEvent:
    """A connection lifecycle notification."""

    kind: ControlEventKind
    detail: str | None = None


@dataclass(frozen=True)
class MessageEvent:
    """A ``message`` payload that must be acknowledged."""

    envelope_id: str
    message: InboundMessage


@dataclass(frozen=True)
class OtherEvent:
    """A payload this bot does not act on.

    ``envelope_id`` is None for envelopes that need no acknowledgement.
    """

    type: str
    envelope_id: str | None = None


StreamEvent = ControlEvent | MessageEvent | OtherEvent
