"""Message model."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class Message(BaseModel):
    """A chat message owned by a room through ``room_id``."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    room_id: str
    body: str
    token: str | None = None
    user_id: str | None = None
    hidden: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def from_visitor(self) -> bool:
        """Visitor-authored messages carry the visitor token."""
        return self.token is not None
