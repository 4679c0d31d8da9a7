"""InboundMessageRouter: deliver external messages into visitor rooms."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from livechatkit.core.locks import InMemoryLockManager, RoomLockManager, room_key, visitor_key
from livechatkit.models.auxiliary import Inquiry
from livechatkit.models.inbound import InboundResult, ParsedMessage
from livechatkit.models.message import Message
from livechatkit.models.room import Room
from livechatkit.models.visitor import Visitor

if TYPE_CHECKING:
    from livechatkit.providers.base import CommunicationService
    from livechatkit.store.base import LivechatStore

logger = logging.getLogger("livechatkit.inbound")


def _random_id() -> str:
    return uuid4().hex


class InboundMessageRouter:
    """Resolve the visitor and open room for an inbound message and store it.

    Visitor lookup, room selection and message insertion all happen under
    the visitor lock, then the room lock, the same keys the merge service
    takes.  A visitor therefore never gets a second open room while a merge
    on one of their rooms is in flight, and no message is written into a
    room a merge has just retired.

    Both guarantees hold only when the router and the
    :class:`RoomMergeService` share one ``RoomLockManager``, as
    ``LivechatKit`` wires them.
    """

    def __init__(
        self,
        store: LivechatStore,
        lock_manager: RoomLockManager | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._lock_manager = lock_manager or InMemoryLockManager()
        self._new_id = id_factory or _random_id

    async def route(self, message: ParsedMessage, service: CommunicationService) -> InboundResult:
        """Deliver *message* from *service* into the sender's open room."""
        username = message.sender
        async with self._lock_manager.locked(visitor_key(username)):
            visitor = await self._store.get_visitor_by_username(username)
            created_visitor = False
            if visitor is not None:
                rooms = await self._store.find_open_rooms_by_visitor_token(visitor.token)
                room_id = rooms[0].id if rooms else self._new_id()
                if len(rooms) > 1:
                    logger.warning(
                        "Visitor %s has %d open rooms, using the newest",
                        visitor.id,
                        len(rooms),
                        extra={"room_id": room_id},
                    )
            else:
                room_id = self._new_id()
                visitor = await self.register_guest(username, self._new_id())
                created_visitor = True

            rb_info = {
                "source": service.room_type(username),
                "visitor_send_info": username,
                "service_name": service.service_name,
            }
            async with self._lock_manager.locked(room_key(room_id)):
                stored, created_room = await self.send_message(visitor, room_id, message, rb_info)

        logger.debug(
            "Routed message from %s via %s",
            username,
            service.service_name,
            extra={"room_id": room_id, "created_room": created_room},
        )
        return InboundResult(
            room_id=room_id,
            message_id=stored.id,
            visitor_id=visitor.id,
            created_room=created_room,
            created_visitor=created_visitor,
        )

    async def register_guest(self, username: str, token: str) -> Visitor:
        """Create a visitor record for a first-time sender."""
        visitor = Visitor(username=username, token=token, display_name=username)
        await self._store.create_visitor(visitor)
        logger.info("Registered guest %s", username, extra={"visitor_id": visitor.id})
        return visitor

    async def send_message(
        self,
        visitor: Visitor,
        room_id: str,
        message: ParsedMessage,
        rb_info: dict[str, Any],
    ) -> tuple[Message, bool]:
        """Append *message* to *room_id*, opening the room if it does not exist.

        Returns the stored message and whether the room was created.
        """
        now = datetime.now(UTC)
        room = await self._store.get_room(room_id)
        created = room is None
        stored = Message(
            room_id=room_id,
            body=message.body,
            token=visitor.token,
            user_id=visitor.id,
            created_at=now,
            metadata={"external_id": message.external_id} if message.external_id else {},
        )
        async with self._store.transaction():
            if room is None:
                room = Room(id=room_id, visitor=visitor.ref(), open=True, ts=now, rb_info=rb_info)
                await self._store.create_room(room)
                await self._store.add_inquiry(
                    Inquiry(room_id=room_id, visitor_token=visitor.token, message=message.body)
                )
            await self._store.add_message(stored)
            await self._store.inc_msg_count_and_set_last_message(room_id, 1, now)
        return stored, created
