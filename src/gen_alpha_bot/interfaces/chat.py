"""Abstract interface for chat platform integrations."""

import asyncio
from collections.abc import Callable
from typing import Protocol

from ..models.message import AuthorProfile, InboundMessage

MessageCallback = Callable[[InboundMessage], None]


class ChatProvider(Protocol):
    """Abstract interface for chat platform integrations.

    The provider owns the event stream subscription and exposes the two
    outbound calls the message pipeline needs: resolving an author and
    posting a message.
    """

    def subscribe(self, callback: MessageCallback) -> None:
        """
        Register a callback for normalized message events.

        The callback is invoked once per message event, in arrival order,
        after the event has been acknowledged. It must not block: long
        running work has to be scheduled elsewhere.

        Args:
            callback: Function receiving each InboundMessage
        """
        ...

    async def run(self, shutdown: asyncio.Event) -> None:
        """
        Open the event stream and process events until ``shutdown`` is set.

        Returns normally after a clean shutdown. Transient reconnects are
        handled internally.

        Raises:
            StreamConnectionError: If the stream cannot be opened or fails
                unrecoverably
        """
        ...

    async def get_user_profile(self, user_id: str) -> AuthorProfile:
        """
        Resolve display information for a user.

        Args:
            user_id: Platform user identifier

        Returns:
            The user's profile

        Raises:
            UserLookupError: If the lookup fails
        """
        ...

    async def post_message(
        self,
        channel_id: str,
        text: str,
        thread_ts: str | None = None,
    ) -> str:
        """
        Post a message to a channel, optionally as a thread reply.

        Calling this twice posts twice.

        Args:
            channel_id: Target channel identifier
            text: Message text
            thread_ts: Parent message timestamp for threading (optional)

        Returns:
            Timestamp of the posted message

        Raises:
            SendError: If message delivery fails
        """
        ...
