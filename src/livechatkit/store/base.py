"""Abstract base class for live-chat storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from livechatkit.models.auxiliary import ExternalMessage, Inquiry
from livechatkit.models.message import Message
from livechatkit.models.room import Room
from livechatkit.models.subscription import Subscription
from livechatkit.models.visitor import Visitor


class LivechatStore(ABC):
    """Persistent storage for rooms, messages, subscriptions, and visitors.

    Implement this ABC to plug in any storage backend (SQL, Mongo, etc.).
    The library ships with `InMemoryStore` for development and testing and
    `PostgresStore` for production.
    """

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Group the enclosed store calls into one atomic unit.

        The default implementation provides no atomicity: calls are applied
        as they are made and nothing is undone on error. Backends should
        override this with a real transaction (or snapshot and restore).
        """
        yield

    # Room operations

    @abstractmethod
    async def create_room(self, room: Room) -> Room:
        """Persist a new room."""
        ...

    @abstractmethod
    async def get_room(self, room_id: str) -> Room | None:
        """Get a room by ID, or ``None`` if it doesn't exist."""
        ...

    @abstractmethod
    async def update_room(self, room: Room) -> Room:
        """Update an existing room."""
        ...

    @abstractmethod
    async def delete_room(self, room_id: str) -> bool:
        """Delete a room. Returns ``True`` if the room existed."""
        ...

    @abstractmethod
    async def find_latest_room_by_visitor(
        self,
        visitor_id: str,
        open: bool | None = None,
        exclude_room_id: str | None = None,
    ) -> Room | None:
        """Most recent room (by ``ts``) of a visitor, optionally by open state."""
        ...

    @abstractmethod
    async def find_open_rooms_by_visitor_token(self, token: str) -> list[Room]:
        """Open rooms whose visitor carries *token*, newest first."""
        ...

    @abstractmethod
    async def inc_msg_count_and_set_last_message(
        self, room_id: str, inc: int, last_message_at: datetime
    ) -> None:
        """Increment ``msg_count`` and set ``last_message_at``."""
        ...

    @abstractmethod
    async def reopen_room(self, room_id: str) -> None:
        """Set ``open`` and clear the ``comment``/``duration`` annotations."""
        ...

    # Message operations

    @abstractmethod
    async def add_message(self, message: Message) -> Message:
        """Store a new message."""
        ...

    @abstractmethod
    async def get_message(self, message_id: str) -> Message | None:
        """Get a message by ID."""
        ...

    @abstractmethod
    async def list_messages(
        self, room_id: str, offset: int = 0, limit: int = 50, include_hidden: bool = False
    ) -> list[Message]:
        """List messages of a room in creation order."""
        ...

    @abstractmethod
    async def count_visible_messages(self, room_id: str) -> int:
        """Return the number of non-hidden messages in a room."""
        ...

    @abstractmethod
    async def reassign_messages(self, from_room_id: str, to_room_id: str) -> int:
        """Rewrite ``room_id`` of every message in *from_room_id*.

        Message identities and timestamps are preserved. Returns the number
        of messages moved (hidden ones included).
        """
        ...

    @abstractmethod
    async def find_last_visitor_message(self, room_id: str) -> Message | None:
        """Most recent visible message carrying a visitor token."""
        ...

    # Subscription operations

    @abstractmethod
    async def add_subscription(self, subscription: Subscription) -> Subscription:
        """Add a subscription (one per room and user)."""
        ...

    @abstractmethod
    async def get_subscription(self, room_id: str, user_id: str) -> Subscription | None:
        """Get the subscription of *user_id* on *room_id*."""
        ...

    @abstractmethod
    async def list_subscriptions(self, room_id: str) -> list[Subscription]:
        """List all subscriptions of a room."""
        ...

    @abstractmethod
    async def remove_subscriptions_by_room(self, room_id: str) -> int:
        """Remove every subscription of a room. Returns the number removed."""
        ...

    @abstractmethod
    async def update_subscriptions_by_room(self, room_id: str, fields: dict[str, Any]) -> int:
        """Set *fields* on every subscription of a room. Returns the number updated."""
        ...

    @abstractmethod
    async def open_subscription(self, room_id: str, user_id: str) -> bool:
        """Mark a user's subscription open. Returns ``True`` if it exists."""
        ...

    # Visitor operations

    @abstractmethod
    async def create_visitor(self, visitor: Visitor) -> Visitor:
        """Persist a new visitor."""
        ...

    @abstractmethod
    async def get_visitor(self, visitor_id: str) -> Visitor | None:
        """Get a visitor by ID."""
        ...

    @abstractmethod
    async def get_visitor_by_username(self, username: str) -> Visitor | None:
        """Look up a visitor by username."""
        ...

    # Auxiliary records

    @abstractmethod
    async def add_inquiry(self, inquiry: Inquiry) -> Inquiry:
        """Store a routing inquiry."""
        ...

    @abstractmethod
    async def list_inquiries(self, room_id: str) -> list[Inquiry]:
        """List inquiries of a room."""
        ...

    @abstractmethod
    async def delete_inquiries_by_room(self, room_id: str) -> int:
        """Delete inquiries of a room. Returns the number deleted."""
        ...

    @abstractmethod
    async def add_external_message(self, message: ExternalMessage) -> ExternalMessage:
        """Store an external (knowledge provider) message."""
        ...

    @abstractmethod
    async def list_external_messages(self, room_id: str) -> list[ExternalMessage]:
        """List external messages of a room."""
        ...

    @abstractmethod
    async def delete_external_messages_by_room(self, room_id: str) -> int:
        """Delete external messages of a room. Returns the number deleted."""
        ...
