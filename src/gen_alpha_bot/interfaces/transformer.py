"""Abstract interface for text transformation services."""

from typing import Protocol


class Transformer(Protocol):
    """Abstract interface for a remote text transformation.

    Implementations hold no per-call state and may be called concurrently.
    """

    async def transform(self, text: str, speaker: str) -> str:
        """
        Transform a message while preserving its meaning.

        A single attempt is made; there are no retries.

        Args:
            text: Original message text
            speaker: Human-readable name of the message's author

        Returns:
            The transformed text

        Raises:
            TransformationError: If the request fails, the service returns a
                non-success status, the response cannot be decoded, or it
                contains no candidates
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the client."""
        ...
