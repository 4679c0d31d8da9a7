"""PostgreSQL implementation of LivechatStore using asyncpg."""

from __future__ import annotations

import contextvars
import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from pydantic_core import to_jsonable_python

from livechatkit.models.auxiliary import ExternalMessage, Inquiry
from livechatkit.models.message import Message
from livechatkit.models.room import Room
from livechatkit.models.subscription import Subscription
from livechatkit.models.visitor import Visitor
from livechatkit.store.base import LivechatStore

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS lc_rooms (
    id TEXT PRIMARY KEY,
    visitor_id TEXT NOT NULL,
    visitor_token TEXT NOT NULL,
    open BOOLEAN NOT NULL DEFAULT TRUE,
    ts TIMESTAMPTZ NOT NULL DEFAULT now(),
    data JSONB NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_lc_rooms_visitor ON lc_rooms(visitor_id, ts DESC);
CREATE INDEX IF NOT EXISTS idx_lc_rooms_token_open ON lc_rooms(visitor_token) WHERE open;

CREATE TABLE IF NOT EXISTS lc_messages (
    id TEXT PRIMARY KEY,
    room_id TEXT NOT NULL,
    token TEXT,
    hidden BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    data JSONB NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_lc_messages_room ON lc_messages(room_id, created_at);

CREATE TABLE IF NOT EXISTS lc_subscriptions (
    room_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    data JSONB NOT NULL,
    PRIMARY KEY (room_id, user_id)
);

CREATE TABLE IF NOT EXISTS lc_visitors (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    data JSONB NOT NULL
);

CREATE TABLE IF NOT EXISTS lc_inquiries (
    id TEXT PRIMARY KEY,
    room_id TEXT NOT NULL,
    data JSONB NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_lc_inquiries_room ON lc_inquiries(room_id);

CREATE TABLE IF NOT EXISTS lc_external_messages (
    id TEXT PRIMARY KEY,
    room_id TEXT NOT NULL,
    data JSONB NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_lc_external_messages_room ON lc_external_messages(room_id);
"""

# Connection of the transaction open in the current execution context.
_tx_conn: contextvars.ContextVar[Any] = contextvars.ContextVar("_lc_tx_conn", default=None)


def _dump(model: Any) -> str:
    return str(model.model_dump_json())


def _affected(tag: str) -> int:
    """Row count from an asyncpg status tag such as ``'UPDATE 3'``."""
    try:
        return int(tag.rsplit(" ", 1)[-1])
    except ValueError:
        return 0


class PostgresStore(LivechatStore):
    """PostgreSQL-backed live-chat store using asyncpg."""

    def __init__(
        self,
        dsn: str | None = None,
        pool: Any = None,
    ) -> None:
        try:
            import asyncpg as _asyncpg
        except ImportError as exc:
            raise ImportError(
                "asyncpg is required for PostgresStore. "
                "Install it with: pip install livechatkit[postgres]"
            ) from exc
        self._asyncpg = _asyncpg
        self._dsn = dsn
        self._pool = pool
        self._owns_pool = pool is None

    async def init(self, min_size: int = 2, max_size: int = 10) -> None:
        """Create the connection pool (if needed) and ensure schema exists."""
        if self._pool is None:
            self._pool = await self._asyncpg.create_pool(
                self._dsn,
                min_size=min_size,
                max_size=max_size,
            )
        async with self._pool.acquire() as conn:
            await conn.execute(_SCHEMA)

    async def close(self) -> None:
        """Release the connection pool if we own it."""
        if self._pool is not None and self._owns_pool:
            await self._pool.close()
            self._pool = None

    async def __aenter__(self) -> PostgresStore:
        await self.init()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[Any]:
        conn = _tx_conn.get()
        if conn is not None:
            yield conn
            return
        async with self._pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if _tx_conn.get() is not None:
            yield
            return
        async with self._pool.acquire() as conn, conn.transaction():
            token = _tx_conn.set(conn)
            try:
                yield
            finally:
                _tx_conn.reset(token)

    # ── Room operations ──────────────────────────────────────────

    async def create_room(self, room: Room) -> Room:
        async with self._acquire() as conn:
            await conn.execute(
                "INSERT INTO lc_rooms (id, visitor_id, visitor_token, open, ts, data) "
                "VALUES ($1, $2, $3, $4, $5, $6)",
                room.id,
                room.visitor.id,
                room.visitor.token,
                room.open,
                room.ts,
                _dump(room),
            )
        return room

    async def get_room(self, room_id: str) -> Room | None:
        async with self._acquire() as conn:
            row = await conn.fetchrow("SELECT data FROM lc_rooms WHERE id = $1", room_id)
        if row is None:
            return None
        return Room.model_validate_json(row["data"])

    async def update_room(self, room: Room) -> Room:
        async with self._acquire() as conn:
            tag = await conn.execute(
                "UPDATE lc_rooms SET visitor_id = $2, visitor_token = $3, open = $4, ts = $5, "
                "data = $6 WHERE id = $1",
                room.id,
                room.visitor.id,
                room.visitor.token,
                room.open,
                room.ts,
                _dump(room),
            )
        if _affected(tag) == 0:
            from livechatkit.core.framework import RoomNotFoundError

            raise RoomNotFoundError(f"Room {room.id} not found", method="update_room")
        return room

    async def delete_room(self, room_id: str) -> bool:
        async with self._acquire() as conn:
            tag = await conn.execute("DELETE FROM lc_rooms WHERE id = $1", room_id)
            await conn.execute("DELETE FROM lc_messages WHERE room_id = $1", room_id)
        return bool(tag == "DELETE 1")

    async def find_latest_room_by_visitor(
        self,
        visitor_id: str,
        open: bool | None = None,
        exclude_room_id: str | None = None,
    ) -> Room | None:
        clauses = ["visitor_id = $1"]
        params: list[Any] = [visitor_id]
        idx = 2

        if open is not None:
            clauses.append(f"open = ${idx}")
            params.append(open)
            idx += 1
        if exclude_room_id is not None:
            clauses.append(f"id <> ${idx}")
            params.append(exclude_room_id)
            idx += 1

        where = " AND ".join(clauses)
        query = f"SELECT data FROM lc_rooms WHERE {where} ORDER BY ts DESC LIMIT 1"
        async with self._acquire() as conn:
            row = await conn.fetchrow(query, *params)
        if row is None:
            return None
        return Room.model_validate_json(row["data"])

    async def find_open_rooms_by_visitor_token(self, token: str) -> list[Room]:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                "SELECT data FROM lc_rooms WHERE visitor_token = $1 AND open ORDER BY ts DESC",
                token,
            )
        return [Room.model_validate_json(r["data"]) for r in rows]

    async def inc_msg_count_and_set_last_message(
        self, room_id: str, inc: int, last_message_at: datetime
    ) -> None:
        async with self._acquire() as conn:
            await conn.execute(
                "UPDATE lc_rooms SET data = data || jsonb_build_object("
                "'msg_count', COALESCE((data->>'msg_count')::int, 0) + $2, "
                "'last_message_at', $3::text) WHERE id = $1",
                room_id,
                inc,
                last_message_at.isoformat(),
            )

    async def reopen_room(self, room_id: str) -> None:
        async with self._acquire() as conn:
            await conn.execute(
                "UPDATE lc_rooms SET open = TRUE, "
                "data = (data || '{\"open\": true}'::jsonb) - 'comment' - 'duration' "
                "WHERE id = $1",
                room_id,
            )

    # ── Message operations ───────────────────────────────────────

    async def add_message(self, message: Message) -> Message:
        async with self._acquire() as conn:
            await conn.execute(
                "INSERT INTO lc_messages (id, room_id, token, hidden, created_at, data) "
                "VALUES ($1, $2, $3, $4, $5, $6)",
                message.id,
                message.room_id,
                message.token,
                message.hidden,
                message.created_at,
                _dump(message),
            )
        return message

    async def get_message(self, message_id: str) -> Message | None:
        async with self._acquire() as conn:
            row = await conn.fetchrow("SELECT data FROM lc_messages WHERE id = $1", message_id)
        if row is None:
            return None
        return Message.model_validate_json(row["data"])

    async def list_messages(
        self, room_id: str, offset: int = 0, limit: int = 50, include_hidden: bool = False
    ) -> list[Message]:
        hidden_clause = "" if include_hidden else " AND NOT hidden"
        async with self._acquire() as conn:
            rows = await conn.fetch(
                f"SELECT data FROM lc_messages WHERE room_id = $1{hidden_clause} "
                "ORDER BY created_at LIMIT $2 OFFSET $3",
                room_id,
                limit,
                offset,
            )
        return [Message.model_validate_json(r["data"]) for r in rows]

    async def count_visible_messages(self, room_id: str) -> int:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                "SELECT COUNT(*) AS cnt FROM lc_messages WHERE room_id = $1 AND NOT hidden",
                room_id,
            )
        return int(row["cnt"]) if row else 0

    async def reassign_messages(self, from_room_id: str, to_room_id: str) -> int:
        async with self._acquire() as conn:
            tag = await conn.execute(
                "UPDATE lc_messages SET room_id = $2, "
                "data = jsonb_set(data, '{room_id}', to_jsonb($2::text)) WHERE room_id = $1",
                from_room_id,
                to_room_id,
            )
        return _affected(tag)

    async def find_last_visitor_message(self, room_id: str) -> Message | None:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM lc_messages WHERE room_id = $1 AND token IS NOT NULL "
                "AND NOT hidden ORDER BY created_at DESC LIMIT 1",
                room_id,
            )
        if row is None:
            return None
        return Message.model_validate_json(row["data"])

    # ── Subscription operations ──────────────────────────────────

    async def add_subscription(self, subscription: Subscription) -> Subscription:
        async with self._acquire() as conn:
            await conn.execute(
                "INSERT INTO lc_subscriptions (room_id, user_id, data) VALUES ($1, $2, $3) "
                "ON CONFLICT (room_id, user_id) DO UPDATE SET data = EXCLUDED.data",
                subscription.room_id,
                subscription.user_id,
                _dump(subscription),
            )
        return subscription

    async def get_subscription(self, room_id: str, user_id: str) -> Subscription | None:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM lc_subscriptions WHERE room_id = $1 AND user_id = $2",
                room_id,
                user_id,
            )
        if row is None:
            return None
        return Subscription.model_validate_json(row["data"])

    async def list_subscriptions(self, room_id: str) -> list[Subscription]:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                "SELECT data FROM lc_subscriptions WHERE room_id = $1 ORDER BY user_id",
                room_id,
            )
        return [Subscription.model_validate_json(r["data"]) for r in rows]

    async def remove_subscriptions_by_room(self, room_id: str) -> int:
        async with self._acquire() as conn:
            tag = await conn.execute("DELETE FROM lc_subscriptions WHERE room_id = $1", room_id)
        return _affected(tag)

    async def update_subscriptions_by_room(self, room_id: str, fields: dict[str, Any]) -> int:
        async with self._acquire() as conn:
            tag = await conn.execute(
                "UPDATE lc_subscriptions SET data = data || $2::jsonb WHERE room_id = $1",
                room_id,
                json.dumps(to_jsonable_python(fields)),
            )
        return _affected(tag)

    async def open_subscription(self, room_id: str, user_id: str) -> bool:
        async with self._acquire() as conn:
            tag = await conn.execute(
                "UPDATE lc_subscriptions SET data = data || '{\"open\": true}'::jsonb "
                "WHERE room_id = $1 AND user_id = $2",
                room_id,
                user_id,
            )
        return _affected(tag) > 0

    # ── Visitor operations ───────────────────────────────────────

    async def create_visitor(self, visitor: Visitor) -> Visitor:
        async with self._acquire() as conn:
            await conn.execute(
                "INSERT INTO lc_visitors (id, username, data) VALUES ($1, $2, $3)",
                visitor.id,
                visitor.username,
                _dump(visitor),
            )
        return visitor

    async def get_visitor(self, visitor_id: str) -> Visitor | None:
        async with self._acquire() as conn:
            row = await conn.fetchrow("SELECT data FROM lc_visitors WHERE id = $1", visitor_id)
        if row is None:
            return None
        return Visitor.model_validate_json(row["data"])

    async def get_visitor_by_username(self, username: str) -> Visitor | None:
        async with self._acquire() as conn:
            row = await conn.fetchrow(
                "SELECT data FROM lc_visitors WHERE username = $1", username
            )
        if row is None:
            return None
        return Visitor.model_validate_json(row["data"])

    # ── Auxiliary records ────────────────────────────────────────

    async def add_inquiry(self, inquiry: Inquiry) -> Inquiry:
        async with self._acquire() as conn:
            await conn.execute(
                "INSERT INTO lc_inquiries (id, room_id, data) VALUES ($1, $2, $3)",
                inquiry.id,
                inquiry.room_id,
                _dump(inquiry),
            )
        return inquiry

    async def list_inquiries(self, room_id: str) -> list[Inquiry]:
        async with self._acquire() as conn:
            rows = await conn.fetch("SELECT data FROM lc_inquiries WHERE room_id = $1", room_id)
        return [Inquiry.model_validate_json(r["data"]) for r in rows]

    async def delete_inquiries_by_room(self, room_id: str) -> int:
        async with self._acquire() as conn:
            tag = await conn.execute("DELETE FROM lc_inquiries WHERE room_id = $1", room_id)
        return _affected(tag)

    async def add_external_message(self, message: ExternalMessage) -> ExternalMessage:
        async with self._acquire() as conn:
            await conn.execute(
                "INSERT INTO lc_external_messages (id, room_id, data) VALUES ($1, $2, $3)",
                message.id,
                message.room_id,
                _dump(message),
            )
        return message

    async def list_external_messages(self, room_id: str) -> list[ExternalMessage]:
        async with self._acquire() as conn:
            rows = await conn.fetch(
                "SELECT data FROM lc_external_messages WHERE room_id = $1", room_id
            )
        return [ExternalMessage.model_validate_json(r["data"]) for r in rows]

    async def delete_external_messages_by_room(self, room_id: str) -> int:
        async with self._acquire() as conn:
            tag = await conn.execute(
                "DELETE FROM lc_external_messages WHERE room_id = $1", room_id
            )
        return _affected(tag)
