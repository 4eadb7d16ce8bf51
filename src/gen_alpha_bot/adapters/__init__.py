"""Concrete implementations of provider interfaces."""

from .chat.slack import SlackAdapter
from .llm.openai import OpenAITransformer

__all__ = [
    "OpenAITransformer",
    "SlackAdapter",
]
