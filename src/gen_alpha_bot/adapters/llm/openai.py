"""OpenAI chat completion adapter for Gen Alpha translation.

This module implements the Transformer protocol against the OpenAI
chat completions endpoint (or any compatible endpoint) using httpx.

Each translation is a single request with a fixed system instruction and
a bounded timeout. There are no retries: a failed request fails the
translation of that message.
"""

from __future__ import annotations

import asyncio
import time

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ...config.schema import OpenAIConfig
from ...utils.errors import (
    EmptyTransformationError,
    TransformationDecodeError,
    TransformationRequestError,
    TransformationStatusError,
    TransformationTimeoutError,
)

log = structlog.get_logger()

SYSTEM_PROMPT = (
    "You are a Gen Alpha language translator. Your job is to translate normal messages "
    "into Gen Alpha slang and expressions. Be creative, use current youth trends, emojis, "
    "and make it funny but still understandable."
)

USER_PROMPT_TEMPLATE = (
    "Translate the following message to Gen Alpha slang/language (TikTok style, with emojis, "
    "internet abbreviations, and current youth trends). Make it humorous but keep the "
    'original meaning. The message is from {speaker}: "{text}"'
)


# Wire models
class ChatMessage(BaseModel):
    """A single chat message in a completion request or response."""

    role: str
    content: str | None = None


class ChatCompletionRequest(BaseModel):
    """Request body for the chat completions endpoint."""

    model: str
    messages: list[ChatMessage]
    max_tokens: int
    temperature: float


class ChatCompletionChoice(BaseModel):
    """One candidate in a completion response."""

    index: int = 0
    message: ChatMessage
    finish_reason: str | None = None


class ChatCompletionResponse(BaseModel):
    """Response body from the chat completions endpoint."""

    id: str = ""
    object: str = ""
    created: int = 0
    choices: list[ChatCompletionChoice] = []


class OpenAITransformer:
    """Translate messages into Gen Alpha slang with OpenAI.

    The adapter holds no per-call state; one instance is shared by every
    concurrent message task.

    Example:
        config = OpenAIConfig(api_key="sk-...")
        transformer = OpenAITransformer(config)

        text = await transformer.transform("hello world", "alice")
        await transformer.aclose()
    """

    def __init__(
        self,
        config: OpenAIConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the OpenAI adapter.

        Args:
            config: OpenAI-specific configuration.
            client: HTTP client to use. If None, creates one with the
                configured timeout.
        """
        self._config = config
        self._client = client or httpx.AsyncClient(timeout=config.timeout)

    @property
    def model_name(self) -> str:
        """Return the model identifier being used."""
        return self._config.model

    def build_request(self, text: str, speaker: str) -> ChatCompletionRequest:
        """Build the completion request for a message.

        Args:
            text: Original message text.
            speaker: Name of the message's author.

        Returns:
            The request body.
        """
        return ChatCompletionRequest(
            model=self._config.model,
            messages=[
                ChatMessage(role="system", content=SYSTEM_PROMPT),
                ChatMessage(
                    role="user",
                    content=USER_PROMPT_TEMPLATE.format(speaker=speaker, text=text),
                ),
            ],
            max_tokens=self._config.max_tokens,
            temperature=self._config.temperature,
        )

    async def transform(self, text: str, speaker: str) -> str:
        """Translate a message into Gen Alpha slang.

        Args:
            text: Original message text.
            speaker: Name of the message's author.

        Returns:
            The translated text from the first completion choice.

        Raises:
            TransformationTimeoutError: If the request times out.
            TransformationRequestError: If the request cannot be completed.
            TransformationStatusError: If the service returns a non-success status.
            TransformationDecodeError: If the response cannot be decoded.
            EmptyTransformationError: If the response has no choices.
        """
        request = self.build_request(text, speaker)

        log.debug(
            "transformation_request_start",
            model=self.model_name,
            speaker=speaker,
        )
        start = time.monotonic()

        try:
            # Deadline for the whole call, including a slowly streamed body
            async with asyncio.timeout(self._config.timeout):
                response = await self._client.post(
                    self._config.base_url,
                    json=request.model_dump(),
                    headers={"Authorization": f"Bearer {self._config.api_key}"},
                    timeout=self._config.timeout,
                )
        except (TimeoutError, httpx.TimeoutException) as e:
            raise TransformationTimeoutError(
                f"Request to OpenAI timed out after {self._config.timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise TransformationRequestError(f"Error making request to OpenAI: {e}") from e

        duration_ms = round((time.monotonic() - start) * 1000, 1)
        log.debug(
            "transformation_response_received",
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

        if not response.is_success:
            raise TransformationStatusError(response.status_code, response.text)

        try:
            completion = ChatCompletionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TransformationDecodeError(f"Error decoding OpenAI response: {e}") from e

        if not completion.choices:
            raise EmptyTransformationError("No completion choices returned from OpenAI")

        content = completion.choices[0].message.content
        if not content:
            raise EmptyTransformationError("First completion choice has no content")

        log.info(
            "transformation_complete",
            model=self.model_name,
            duration_ms=duration_ms,
        )
        return content

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
