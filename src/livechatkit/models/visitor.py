"""Visitor model."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from livechatkit.models.room import VisitorRef


class Visitor(BaseModel):
    """An external, possibly unauthenticated chat participant."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    username: str
    token: str
    display_name: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)

    def ref(self) -> VisitorRef:
        return VisitorRef(id=self.id, token=self.token, username=self.username)
