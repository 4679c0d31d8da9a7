"""All string enums for livechatkit."""

from __future__ import annotations

from enum import StrEnum, unique


@unique
class Capability(StrEnum):
    VIEW_LIVECHAT_ROOM = "view-l-room"
    EDIT_LIVECHAT_ROOM = "edit-l-room"
    VIEW_LIVECHAT_MANAGER = "view-livechat-manager"


@unique
class RoomType(StrEnum):
    SMS = "sms"
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    WEBHOOK = "webhook"


@unique
class InquiryStatus(StrEnum):
    OPEN = "open"
    TAKEN = "taken"
