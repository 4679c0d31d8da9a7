"""Room model."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class VisitorRef(BaseModel):
    """Denormalized reference to the visitor who owns a room."""

    id: str
    token: str
    username: str


class Room(BaseModel):
    """A live-chat conversation room.

    ``open = False`` marks an archived room. Only one room per visitor is
    expected to be open at a time; the store does not enforce this, the
    inbound router and the merge service do.
    """

    id: str
    visitor: VisitorRef
    open: bool = True
    ts: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_message_at: datetime | None = None
    msg_count: int = Field(default=0, ge=0)
    rb_info: dict[str, Any] | None = None
    comment: str | None = None
    duration: float | None = Field(default=None, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)
