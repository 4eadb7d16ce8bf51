"""Protocol definitions for pluggable adapters."""

from .chat import ChatProvider, MessageCallback
from .transformer import Transformer

__all__ = ["ChatProvider", "MessageCallback", "Transformer"]
