"""SMS gateway communication service."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from livechatkit.models.enums import RoomType
from livechatkit.models.inbound import ParsedMessage
from livechatkit.providers.base import (
    CommunicationService,
    MalformedPayloadError,
    verify_basic_auth,
)
from livechatkit.providers.sms.config import SMSServiceConfig
from livechatkit.providers.sms.phone import normalize_phone

_WHATSAPP_PREFIX = "whatsapp:"


class SMSCommunicationService(CommunicationService):
    """Parses Twilio-style form webhooks (``From``, ``Body``, ``MessageSid``).

    Senders are normalized to E.164 so the same handset always maps to the
    same visitor. WhatsApp senders (``whatsapp:+1...``) keep their prefix
    and get the ``whatsapp`` room type.

    Note: gateways post form-encoded data. Convert to dict first:
        payload = dict(await request.form())
    """

    def __init__(self, config: SMSServiceConfig) -> None:
        self._config = config

    @property
    def service_name(self) -> str:
        return self._config.name

    def verify_authentication(self, authorization: str | None) -> bool:
        return verify_basic_auth(
            authorization,
            self._config.username,
            self._config.password.get_secret_value(),
        )

    def parse(self, payload: dict[str, Any]) -> ParsedMessage:
        if not isinstance(payload, dict):
            raise MalformedPayloadError("payload must be an object")
        raw_sender = payload.get("From")
        if not isinstance(raw_sender, str) or not raw_sender.strip():
            raise MalformedPayloadError("missing From")

        prefix = ""
        number = raw_sender.strip()
        if number.startswith(_WHATSAPP_PREFIX):
            prefix = _WHATSAPP_PREFIX
            number = number[len(_WHATSAPP_PREFIX) :]
        try:
            sender = prefix + normalize_phone(number, self._config.default_region)
        except ValueError as exc:
            raise MalformedPayloadError(str(exc)) from exc

        try:
            return ParsedMessage(
                sender=sender,
                body=str(payload.get("Body", "")),
                external_id=payload.get("MessageSid"),
                metadata={"to": payload.get("To", "")},
            )
        except ValidationError as exc:
            raise MalformedPayloadError(str(exc)) from exc

    def room_type(self, sender: str) -> str:
        if sender.startswith(_WHATSAPP_PREFIX):
            return RoomType.WHATSAPP.value
        return RoomType.SMS.value
