"""Auxiliary records keyed by room id."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from livechatkit.models.enums import InquiryStatus


class Inquiry(BaseModel):
    """Routing inquiry created when a visitor opens a new room."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    room_id: str
    visitor_token: str
    message: str = ""
    status: InquiryStatus = InquiryStatus.OPEN
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ExternalMessage(BaseModel):
    """A message produced by an external knowledge provider for a room."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    room_id: str
    body: str
    original_message_id: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)
