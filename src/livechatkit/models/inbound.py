"""Inbound message models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class ParsedMessage(BaseModel):
    """A message parsed out of an external service payload."""

    sender: str
    body: str
    external_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class InboundResult(BaseModel):
    """Result of routing an inbound message into a room."""

    room_id: str
    message_id: str
    visitor_id: str
    created_room: bool = False
    created_visitor: bool = False
    received: datetime = Field(default_factory=lambda: datetime.now(UTC))
