"""RoomMergeService: retire a stale room into a continuing one."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from livechatkit.config import LivechatConfig
from livechatkit.core.locks import InMemoryLockManager, RoomLockManager, room_key, visitor_key
from livechatkit.models.merge import MergeResult, MergeSettings
from livechatkit.models.room import Room

if TYPE_CHECKING:
    from livechatkit.authz.base import Authorizer
    from livechatkit.knowledge.base import KnowledgeAdapter
    from livechatkit.store.base import LivechatStore

logger = logging.getLogger("livechatkit.merge")


class RoomMergeService:
    """Moves history and subscription state from a closing room into a target room.

    A merge retires the closing room for good: its messages are re-pointed
    (not copied) to the target, its subscriptions and auxiliary records are
    removed and the room record is deleted.  The target is reopened and its
    subscriptions receive the settings derived from the closing room.

    The mutation sequence runs under the visitor and room locks of both rooms
    and inside a single store transaction.  If a step fails the transaction
    is rolled back and :class:`~livechatkit.core.framework.MergeConflictError`
    is raised.  Merges are not idempotent: merging a room that is already
    gone fails with ``RoomNotFoundError``.

    Share one ``RoomLockManager`` with the :class:`InboundMessageRouter` of
    the same store, as ``LivechatKit`` does. With separate managers inbound
    routing can open a second room for a visitor during a merge.
    """

    def __init__(
        self,
        store: LivechatStore,
        authorizer: Authorizer,
        lock_manager: RoomLockManager | None = None,
        knowledge: KnowledgeAdapter | None = None,
        config: LivechatConfig | None = None,
    ) -> None:
        self._store = store
        self._authorizer = authorizer
        self._config = config or LivechatConfig()
        self._lock_manager = lock_manager or InMemoryLockManager(self._config.max_locks)
        self._knowledge = knowledge
        self._background: set[asyncio.Task[None]] = set()

    # -- Lookups --

    async def _require(self, requester: str | None, capability: str | None, method: str) -> None:
        if capability is None:
            return
        if not requester or not await self._authorizer.has_permission(requester, capability):
            from livechatkit.core.framework import NotAuthorizedError

            raise NotAuthorizedError("Not authorized", method=method)

    async def _get_room(self, room_id: str, method: str) -> Room:
        room = await self._store.get_room(room_id)
        if room is None:
            from livechatkit.core.framework import RoomNotFoundError

            raise RoomNotFoundError(f"Room {room_id} not found", method=method)
        return room

    async def get_live_room(self, room_id: str, requester: str | None, method: str) -> Room:
        """Return the room if *requester* may view live-chat rooms."""
        await self._require(requester, self._config.view_capability, method)
        return await self._get_room(room_id, method)

    async def find_previous_room(self, room_id: str, requester: str | None) -> Room:
        """Most recent non-open room of the same visitor, other than *room_id*.

        Raises:
            NotAuthorizedError: The requester cannot view live-chat rooms.
            RoomNotFoundError: *room_id* does not exist, or the visitor has
                no earlier closed room.
        """
        method = "get_previous_room"
        room = await self.get_live_room(room_id, requester, method)
        previous = await self._store.find_latest_room_by_visitor(
            room.visitor.id, open=False, exclude_room_id=room.id
        )
        if previous is None:
            from livechatkit.core.framework import RoomNotFoundError

            raise RoomNotFoundError(f"No previous room for room {room_id}", method=method)
        return previous

    # -- Merge --

    async def merge_rooms(
        self, close_room_id: str, target_room_id: str, requester: str | None
    ) -> MergeResult:
        """Merge *close_room_id* into *target_room_id* on behalf of *requester*.

        Raises:
            NotAuthorizedError: Checked before any store access.
            RoomNotFoundError: Either room does not exist (also when a
                concurrent merge retired the closing room first).
            MergeConflictError: A mutation step failed; nothing was applied.
            ValueError: Both ids name the same room.
        """
        method = "merge_rooms"
        if close_room_id == target_room_id:
            raise ValueError("Cannot merge a room into itself")

        await self._require(requester, self._config.view_capability, method)
        await self._require(requester, self._config.edit_capability, method)

        close_room = await self._get_room(close_room_id, method)
        target_room = await self._get_room(target_room_id, method)

        visitor_keys = {
            visitor_key(close_room.visitor.username),
            visitor_key(target_room.visitor.username),
        }
        room_keys = {room_key(close_room_id), room_key(target_room_id)}
        async with (
            self._lock_manager.locked_many(visitor_keys),
            self._lock_manager.locked_many(room_keys),
        ):
            # Re-resolve under the locks: a concurrent merge may have retired
            # either room while we were waiting.
            close_room = await self._get_room(close_room_id, method)
            await self._get_room(target_room_id, method)

            old_subscription = await self._store.get_subscription(close_room_id, requester or "")
            settings = MergeSettings.derive(old_subscription, close_room.rb_info)

            try:
                async with self._store.transaction():
                    moved = await self._transfer(close_room_id, target_room_id, settings, requester)
            except Exception as exc:
                logger.exception(
                    "Merge of room %s into %s failed, rolled back",
                    close_room_id,
                    target_room_id,
                    extra={"room_id": close_room_id, "target_room_id": target_room_id},
                )
                from livechatkit.core.framework import MergeConflictError

                raise MergeConflictError(
                    f"Merge of room {close_room_id} into {target_room_id} failed: {exc}",
                    method=method,
                ) from exc

        self._schedule_knowledge_update(target_room_id)
        logger.info(
            "Merged room %s into %s (%d messages)",
            close_room_id,
            target_room_id,
            moved,
            extra={"room_id": close_room_id, "target_room_id": target_room_id},
        )
        return MergeResult(
            close_room_id=close_room_id,
            target_room_id=target_room_id,
            moved_messages=moved,
            settings=settings,
        )

    async def _transfer(
        self,
        close_room_id: str,
        target_room_id: str,
        settings: MergeSettings,
        requester: str | None,
    ) -> int:
        """Apply the mutation sequence. Must run inside a store transaction."""
        store = self._store
        visible = await store.count_visible_messages(close_room_id)
        await store.reassign_messages(close_room_id, target_room_id)
        await store.inc_msg_count_and_set_last_message(target_room_id, visible, datetime.now(UTC))

        await store.remove_subscriptions_by_room(close_room_id)
        await store.delete_room(close_room_id)
        await store.delete_inquiries_by_room(close_room_id)
        await store.delete_external_messages_by_room(close_room_id)

        await store.reopen_room(target_room_id)
        await store.update_subscriptions_by_room(target_room_id, settings.as_update())
        if requester:
            await store.open_subscription(target_room_id, requester)
        logger.debug(
            "Moved %d visible messages from %s to %s",
            visible,
            close_room_id,
            target_room_id,
        )
        return visible

    # -- Knowledge notification --

    def _schedule_knowledge_update(self, room_id: str) -> None:
        """Fire-and-forget: at most once, best effort, never awaited by the merge."""
        if self._knowledge is None or not self._config.notify_knowledge:
            return
        task = asyncio.get_running_loop().create_task(
            self._notify_knowledge(room_id), name=f"livechatkit-knowledge-{room_id}"
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _notify_knowledge(self, room_id: str) -> None:
        try:
            message = await self._store.find_last_visitor_message(room_id)
            if self._knowledge is not None and message is not None:
                await self._knowledge.on_message(message)
        except Exception:
            logger.exception("Error using knowledge provider", extra={"room_id": room_id})

    @property
    def pending_notifications(self) -> int:
        return len(self._background)

    async def drain(self) -> None:
        """Wait for outstanding knowledge notifications."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
