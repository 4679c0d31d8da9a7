"""Keyed async locking with LRU eviction."""

from __future__ import annotations

import asyncio
import contextvars
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import AsyncIterator, Iterable
from contextlib import AsyncExitStack, asynccontextmanager

# ContextVar tracking which keys the current execution context holds locks
# for.  asyncio.gather() copies the parent context to child tasks, so
# children see the parent's held set and can re-enter without deadlocking.
_held_keys: contextvars.ContextVar[frozenset[str]] = contextvars.ContextVar(
    "_livechat_locks_held", default=frozenset()
)


def room_key(room_id: str) -> str:
    return f"room:{room_id}"


def visitor_key(username: str) -> str:
    return f"visitor:{username}"


class RoomLockManager(ABC):
    """Abstract base for keyed locking of rooms and visitors.

    Implement this to plug in any locking backend (Redis, Postgres
    advisory locks, etc.).  The library ships with ``InMemoryLockManager``
    for single-process deployments.

    Keys are ``room:<id>`` and ``visitor:<username>``.  Callers that need
    both kinds take every ``visitor:`` key before any ``room:`` key, and
    keys of the same kind through :meth:`locked_many`, which acquires them
    in sorted order.  Holding to that order keeps the merge service and the
    inbound router from deadlocking each other.

    Implementations should be **reentrant** within the same execution
    context (including child tasks spawned by ``asyncio.gather``).
    """

    @abstractmethod
    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        """Acquire an exclusive lock for *key*."""
        yield  # pragma: no cover

    @asynccontextmanager
    async def locked_many(self, keys: Iterable[str]) -> AsyncIterator[None]:
        """Acquire the locks for all *keys* in sorted order."""
        async with AsyncExitStack() as stack:
            for key in sorted(set(keys)):
                await stack.enter_async_context(self.locked(key))
            yield


class InMemoryLockManager(RoomLockManager):
    """In-process keyed asyncio locks with LRU eviction.

    Reentrant within the same execution context: if the current context
    already holds the lock for a given key (including child tasks
    spawned by ``asyncio.gather``), ``locked()`` yields immediately
    instead of deadlocking.

    Suitable for single-process deployments.  For multi-process or
    distributed setups, provide a custom ``RoomLockManager`` backed by
    Redis, Postgres advisory locks, or similar.
    """

    def __init__(self, max_locks: int = 1024) -> None:
        self._locks: OrderedDict[str, asyncio.Lock] = OrderedDict()
        self._refcounts: dict[str, int] = {}
        self._max_locks = max_locks

    def _get_lock(self, key: str) -> asyncio.Lock:
        if key in self._locks:
            self._locks.move_to_end(key)
            self._refcounts[key] = self._refcounts.get(key, 0) + 1
            return self._locks[key]

        lock = asyncio.Lock()
        self._locks[key] = lock
        self._refcounts[key] = 1
        self._evict()
        return lock

    def _release_ref(self, key: str) -> None:
        """Decrement the reference count for a key."""
        count = self._refcounts.get(key, 0) - 1
        if count <= 0:
            self._refcounts.pop(key, None)
        else:
            self._refcounts[key] = count

    def _evict(self) -> None:
        if len(self._locks) <= self._max_locks:
            return
        to_remove: list[str] = []
        for key, lock in self._locks.items():
            if len(self._locks) - len(to_remove) <= self._max_locks:
                break
            if not lock.locked() and self._refcounts.get(key, 0) <= 0:
                to_remove.append(key)
        for key in to_remove:
            self._locks.pop(key)
            self._refcounts.pop(key, None)

    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        """Acquire the lock for a key (reentrant via ContextVar)."""
        held = _held_keys.get()
        if key in held:
            yield
            return

        lock = self._get_lock(key)
        try:
            async with lock:
                token = _held_keys.set(held | frozenset({key}))
                try:
                    yield
                finally:
                    _held_keys.reset(token)
        finally:
            self._release_ref(key)

    @property
    def size(self) -> int:
        """Return the number of locks currently tracked."""
        return len(self._locks)
