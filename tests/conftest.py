"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from livechatkit.authz.static import StaticAuthorizer
from livechatkit.core.framework import LivechatKit
from livechatkit.knowledge.mock import MockKnowledgeAdapter
from livechatkit.models.enums import Capability
from livechatkit.models.message import Message
from livechatkit.models.room import Room
from livechatkit.models.subscription import Subscription
from livechatkit.models.visitor import Visitor
from livechatkit.store.base import LivechatStore
from livechatkit.store.memory import InMemoryStore

AGENT = "agent-1"
BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def advance() -> Callable[[int], Coroutine[Any, Any, None]]:
    """Yield control to let pending tasks run without real delay.

    Replaces ``await asyncio.sleep(0.05)`` patterns with zero-delay
    event loop yields::

        await advance()       # 5 yields (default)
        await advance(10)     # 10 yields for heavier workloads
    """

    async def _advance(n: int = 5) -> None:
        for _ in range(n):
            await asyncio.sleep(0)

    return _advance


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def authorizer() -> StaticAuthorizer:
    return StaticAuthorizer(
        grants={AGENT: {Capability.VIEW_LIVECHAT_ROOM, Capability.EDIT_LIVECHAT_ROOM}}
    )


@pytest.fixture
def knowledge() -> MockKnowledgeAdapter:
    return MockKnowledgeAdapter()


@pytest.fixture
def kit(
    store: InMemoryStore, authorizer: StaticAuthorizer, knowledge: MockKnowledgeAdapter
) -> LivechatKit:
    return LivechatKit(store=store, authorizer=authorizer, knowledge=knowledge)


@pytest.fixture
def visitor() -> Visitor:
    return make_visitor()


def make_visitor(username: str = "+15145550100", token: str = "tok-1", **kwargs: Any) -> Visitor:
    return Visitor(id=f"v-{token}", username=username, token=token, **kwargs)


def make_room(
    room_id: str,
    visitor: Visitor,
    open: bool = True,
    age_minutes: int = 0,
    **kwargs: Any,
) -> Room:
    return Room(
        id=room_id,
        visitor=visitor.ref(),
        open=open,
        ts=BASE_TIME - timedelta(minutes=age_minutes),
        **kwargs,
    )


def make_message(
    room_id: str,
    body: str = "hello",
    visitor: Visitor | None = None,
    minute: int = 0,
    **kwargs: Any,
) -> Message:
    return Message(
        room_id=room_id,
        body=body,
        token=visitor.token if visitor else None,
        user_id=visitor.id if visitor else AGENT,
        created_at=BASE_TIME + timedelta(minutes=minute),
        **kwargs,
    )


async def seed_room(
    store: LivechatStore,
    room: Room,
    visitor: Visitor | None = None,
    messages: int = 0,
    start_minute: int = 0,
    subscribers: tuple[str, ...] = (),
) -> list[Message]:
    """Create *room* with *messages* visitor messages and agent subscriptions."""
    await store.create_room(room)
    added: list[Message] = []
    for i in range(messages):
        msg = make_message(room.id, body=f"{room.id}-{i}", visitor=visitor, minute=start_minute + i)
        added.append(await store.add_message(msg))
    if messages:
        await store.inc_msg_count_and_set_last_message(room.id, messages, added[-1].created_at)
    for user_id in subscribers:
        await store.add_subscription(Subscription(room_id=room.id, user_id=user_id))
    return added
