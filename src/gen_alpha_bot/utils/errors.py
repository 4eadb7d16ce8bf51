"""Exception hierarchy shared by the adapters and the message pipeline.

Per-message errors (user lookup, translation, posting) are caught by the
message handler and never leave the task processing that message. Only
:class:`StreamConnectionError` and configuration errors stop the process.
"""

from __future__ import annotations


class BotError(Exception):
    """Base exception for all bot errors."""


# =============================================================================
# Chat platform
# =============================================================================


class StreamConnectionError(BotError):
    """The event stream could not be opened or failed unrecoverably."""


class UserLookupError(BotError):
    """Resolving a message author's profile failed."""


class SendError(BotError):
    """Posting a message failed."""


# =============================================================================
# Text transformation
# =============================================================================


class TransformationError(BotError):
    """Base exception for translation failures."""


class TransformationRequestError(TransformationError):
    """The request could not be completed (network failure)."""


class TransformationTimeoutError(TransformationRequestError):
    """The request exceeded the configured timeout."""


class TransformationStatusError(TransformationError):
    """The service answered with a non-success status.

    Attributes:
        status_code: HTTP status returned by the service.
        body: Response body, verbatim.
    """

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"OpenAI API error: {body}, status code: {status_code}")
        self.status_code = status_code
        self.body = body


class TransformationDecodeError(TransformationError):
    """The response body could not be decoded."""


class EmptyTransformationError(TransformationError):
    """The response contained no usable completion."""


# =============================================================================
# Lifecycle
# =============================================================================


class StartupError(BotError):
    """Failed to start the bot."""
