"""Subscription model."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class Subscription(BaseModel):
    """Per-agent membership and state record attached to a room."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    room_id: str
    user_id: str
    open: bool = False
    answered: bool = False
    last_activity: datetime | None = None
    last_customer_activity: datetime | None = None
    rb_info: dict[str, Any] | None = None
    settings: dict[str, Any] = Field(default_factory=dict)
