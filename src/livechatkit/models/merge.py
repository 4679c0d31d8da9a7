"""Merge settings and result models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from livechatkit.models.subscription import Subscription


class MergeSettings(BaseModel):
    """Subscription fields applied to the target room's subscriptions.

    Precedence: ``answered`` starts ``False`` and is only raised by a truthy
    value on the requester's old subscription; activity timestamps are copied
    when set; ``rb_info`` from the closed room, even an empty one, always
    wins over whatever the target subscription carries.
    """

    answered: bool = False
    last_activity: datetime | None = None
    last_customer_activity: datetime | None = None
    rb_info: dict[str, Any] | None = None

    @classmethod
    def derive(
        cls, old_subscription: Subscription | None, rb_info: dict[str, Any] | None
    ) -> MergeSettings:
        settings = cls()
        if old_subscription is not None:
            if old_subscription.answered:
                settings.answered = old_subscription.answered
            if old_subscription.last_activity:
                settings.last_activity = old_subscription.last_activity
            if old_subscription.last_customer_activity:
                settings.last_customer_activity = old_subscription.last_customer_activity
        if rb_info is not None:
            settings.rb_info = dict(rb_info)
        return settings

    def as_update(self) -> dict[str, Any]:
        """Fields to ``$set`` on a subscription; unset optionals are left alone."""
        return self.model_dump(exclude_none=True)


class MergeResult(BaseModel):
    """Outcome of a completed merge."""

    close_room_id: str
    target_room_id: str
    moved_messages: int = Field(ge=0)
    settings: MergeSettings
    merged_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
