"""In-memory implementation of LivechatStore."""

from __future__ import annotations

import contextvars
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from livechatkit.models.auxiliary import ExternalMessage, Inquiry
from livechatkit.models.message import Message
from livechatkit.models.room import Room
from livechatkit.models.subscription import Subscription
from livechatkit.models.visitor import Visitor
from livechatkit.store.base import LivechatStore

_MISSING = object()

# Undo journal of the transaction open in the current execution context.
_journal: contextvars.ContextVar[list[Callable[[], None]] | None] = contextvars.ContextVar(
    "_memory_store_journal", default=None
)


class InMemoryStore(LivechatStore):
    """Dict-based in-memory store for development and testing.

    Transactions keep an undo journal per execution context, so a rolled
    back transaction only reverts its own writes. Every mutation replaces
    dict values instead of mutating them in place; the journal relies on it.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}
        self._messages: dict[str, Message] = {}
        self._room_messages: dict[str, list[str]] = {}
        self._subscriptions: dict[str, dict[str, Subscription]] = {}
        self._visitors: dict[str, Visitor] = {}
        self._username_index: dict[str, str] = {}
        self._inquiries: dict[str, list[Inquiry]] = {}
        self._external_messages: dict[str, list[ExternalMessage]] = {}

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if _journal.get() is not None:
            # Nested: the outer transaction owns commit and rollback.
            yield
            return
        journal: list[Callable[[], None]] = []
        token = _journal.set(journal)
        try:
            yield
        except BaseException:
            for undo in reversed(journal):
                undo()
            raise
        finally:
            _journal.reset(token)

    def _put(self, mapping: dict[str, Any], key: str, value: Any) -> None:
        self._remember(mapping, key)
        mapping[key] = value

    def _pop(self, mapping: dict[str, Any], key: str) -> Any:
        self._remember(mapping, key)
        return mapping.pop(key, None)

    @staticmethod
    def _remember(mapping: dict[str, Any], key: str) -> None:
        journal = _journal.get()
        if journal is None:
            return
        previous = mapping.get(key, _MISSING)

        def undo() -> None:
            if previous is _MISSING:
                mapping.pop(key, None)
            else:
                mapping[key] = previous

        journal.append(undo)

    # Room operations

    async def create_room(self, room: Room) -> Room:
        self._put(self._rooms, room.id, room)
        if room.id not in self._room_messages:
            self._put(self._room_messages, room.id, [])
        return room

    async def get_room(self, room_id: str) -> Room | None:
        room = self._rooms.get(room_id)
        return room.model_copy(deep=True) if room is not None else None

    async def update_room(self, room: Room) -> Room:
        if room.id not in self._rooms:
            from livechatkit.core.framework import RoomNotFoundError

            raise RoomNotFoundError(f"Room {room.id} not found", method="update_room")
        self._put(self._rooms, room.id, room)
        return room

    async def delete_room(self, room_id: str) -> bool:
        if room_id not in self._rooms:
            return False
        self._pop(self._rooms, room_id)
        # Messages still owned by the room go with it.
        for mid in self._room_messages.get(room_id, []):
            self._pop(self._messages, mid)
        self._pop(self._room_messages, room_id)
        return True

    async def find_latest_room_by_visitor(
        self,
        visitor_id: str,
        open: bool | None = None,
        exclude_room_id: str | None = None,
    ) -> Room | None:
        best: Room | None = None
        for room in self._rooms.values():
            if room.visitor.id != visitor_id or room.id == exclude_room_id:
                continue
            if open is not None and room.open != open:
                continue
            if best is None or room.ts > best.ts:
                best = room
        return best.model_copy(deep=True) if best is not None else None

    async def find_open_rooms_by_visitor_token(self, token: str) -> list[Room]:
        rooms = [r for r in self._rooms.values() if r.open and r.visitor.token == token]
        rooms.sort(key=lambda r: r.ts, reverse=True)
        return [r.model_copy(deep=True) for r in rooms]

    async def inc_msg_count_and_set_last_message(
        self, room_id: str, inc: int, last_message_at: datetime
    ) -> None:
        room = self._rooms.get(room_id)
        if room is None:
            return
        self._put(
            self._rooms,
            room_id,
            room.model_copy(
                update={"msg_count": room.msg_count + inc, "last_message_at": last_message_at}
            ),
        )

    async def reopen_room(self, room_id: str) -> None:
        room = self._rooms.get(room_id)
        if room is None:
            return
        self._put(
            self._rooms,
            room_id,
            room.model_copy(update={"open": True, "comment": None, "duration": None}),
        )

    # Message operations

    async def add_message(self, message: Message) -> Message:
        self._put(self._messages, message.id, message)
        ids = self._room_messages.get(message.room_id, [])
        if message.id not in ids:
            self._put(self._room_messages, message.room_id, [*ids, message.id])
        return message

    async def get_message(self, message_id: str) -> Message | None:
        message = self._messages.get(message_id)
        return message.model_copy(deep=True) if message is not None else None

    def _room_message_list(self, room_id: str) -> list[Message]:
        ids = self._room_messages.get(room_id, [])
        return [self._messages[mid] for mid in ids if mid in self._messages]

    async def list_messages(
        self, room_id: str, offset: int = 0, limit: int = 50, include_hidden: bool = False
    ) -> list[Message]:
        messages = self._room_message_list(room_id)
        if not include_hidden:
            messages = [m for m in messages if not m.hidden]
        return [m.model_copy(deep=True) for m in messages[offset : offset + limit]]

    async def count_visible_messages(self, room_id: str) -> int:
        return sum(1 for m in self._room_message_list(room_id) if not m.hidden)

    async def reassign_messages(self, from_room_id: str, to_room_id: str) -> int:
        moving = self._room_message_list(from_room_id)
        if not moving:
            return 0
        for message in moving:
            moved = message.model_copy(update={"room_id": to_room_id})
            self._put(self._messages, message.id, moved)
        merged = self._room_message_list(to_room_id) + [self._messages[m.id] for m in moving]
        merged.sort(key=lambda m: m.created_at)
        self._put(self._room_messages, to_room_id, [m.id for m in merged])
        self._put(self._room_messages, from_room_id, [])
        return len(moving)

    async def find_last_visitor_message(self, room_id: str) -> Message | None:
        for message in reversed(self._room_message_list(room_id)):
            if not message.hidden and message.from_visitor:
                return message.model_copy(deep=True)
        return None

    # Subscription operations

    async def add_subscription(self, subscription: Subscription) -> Subscription:
        room_subs = self._subscriptions.get(subscription.room_id, {})
        self._put(
            self._subscriptions,
            subscription.room_id,
            {**room_subs, subscription.user_id: subscription},
        )
        return subscription

    async def get_subscription(self, room_id: str, user_id: str) -> Subscription | None:
        sub = self._subscriptions.get(room_id, {}).get(user_id)
        return sub.model_copy(deep=True) if sub is not None else None

    async def list_subscriptions(self, room_id: str) -> list[Subscription]:
        return [s.model_copy(deep=True) for s in self._subscriptions.get(room_id, {}).values()]

    async def remove_subscriptions_by_room(self, room_id: str) -> int:
        removed = self._pop(self._subscriptions, room_id)
        return len(removed) if removed else 0

    async def update_subscriptions_by_room(self, room_id: str, fields: dict[str, Any]) -> int:
        room_subs = self._subscriptions.get(room_id)
        if not room_subs:
            return 0
        self._put(
            self._subscriptions,
            room_id,
            {uid: sub.model_copy(update=fields) for uid, sub in room_subs.items()},
        )
        return len(room_subs)

    async def open_subscription(self, room_id: str, user_id: str) -> bool:
        room_subs = self._subscriptions.get(room_id, {})
        sub = room_subs.get(user_id)
        if sub is None:
            return False
        self._put(
            self._subscriptions,
            room_id,
            {**room_subs, user_id: sub.model_copy(update={"open": True})},
        )
        return True

    # Visitor operations

    async def create_visitor(self, visitor: Visitor) -> Visitor:
        self._put(self._visitors, visitor.id, visitor)
        self._put(self._username_index, visitor.username, visitor.id)
        return visitor

    async def get_visitor(self, visitor_id: str) -> Visitor | None:
        visitor = self._visitors.get(visitor_id)
        return visitor.model_copy(deep=True) if visitor is not None else None

    async def get_visitor_by_username(self, username: str) -> Visitor | None:
        visitor_id = self._username_index.get(username)
        if visitor_id is None:
            return None
        return await self.get_visitor(visitor_id)

    # Auxiliary records

    async def add_inquiry(self, inquiry: Inquiry) -> Inquiry:
        current = self._inquiries.get(inquiry.room_id, [])
        self._put(self._inquiries, inquiry.room_id, [*current, inquiry])
        return inquiry

    async def list_inquiries(self, room_id: str) -> list[Inquiry]:
        return [i.model_copy() for i in self._inquiries.get(room_id, [])]

    async def delete_inquiries_by_room(self, room_id: str) -> int:
        removed = self._pop(self._inquiries, room_id)
        return len(removed) if removed else 0

    async def add_external_message(self, message: ExternalMessage) -> ExternalMessage:
        current = self._external_messages.get(message.room_id, [])
        self._put(self._external_messages, message.room_id, [*current, message])
        return message

    async def list_external_messages(self, room_id: str) -> list[ExternalMessage]:
        return [m.model_copy() for m in self._external_messages.get(room_id, [])]

    async def delete_external_messages_by_room(self, room_id: str) -> int:
        removed = self._pop(self._external_messages, room_id)
        return len(removed) if removed else 0
