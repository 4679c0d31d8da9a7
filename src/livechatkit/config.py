"""Framework configuration."""

from __future__ import annotations

from pydantic import BaseModel, Field

from livechatkit.models.enums import Capability


class LivechatConfig(BaseModel):
    """Configuration for :class:`~livechatkit.core.framework.LivechatKit`.

    Attributes:
        view_capability: Capability required to read a live-chat room.
        edit_capability: Capability required before a merge mutates state.
            ``None`` disables the write check, leaving only the view check.
        max_locks: Upper bound of idle locks kept by the in-memory lock manager.
        notify_knowledge: Whether merges notify the knowledge adapter.
    """

    view_capability: str = Capability.VIEW_LIVECHAT_ROOM.value
    edit_capability: str | None = Capability.EDIT_LIVECHAT_ROOM.value
    max_locks: int = Field(default=1024, ge=1)
    notify_knowledge: bool = True
