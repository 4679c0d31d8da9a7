"""Generic JSON webhook communication service."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from livechatkit.models.inbound import ParsedMessage
from livechatkit.providers.base import (
    CommunicationService,
    MalformedPayloadError,
    verify_basic_auth,
)
from livechatkit.providers.http.config import HTTPServiceConfig


class HTTPCommunicationService(CommunicationService):
    """Accepts a simple JSON body.

    Expected payload shape::

        {
            "from": "user-123",          // or "sender_id"
            "body": "Hello!",
            "external_id": "msg-456",    // optional
            "metadata": {}               // optional
        }
    """

    def __init__(self, config: HTTPServiceConfig | None = None) -> None:
        self._config = config or HTTPServiceConfig()

    @property
    def service_name(self) -> str:
        return self._config.name

    def verify_authentication(self, authorization: str | None) -> bool:
        if self._config.username is None or self._config.password is None:
            return True
        return verify_basic_auth(
            authorization,
            self._config.username,
            self._config.password.get_secret_value(),
        )

    def parse(self, payload: dict[str, Any]) -> ParsedMessage:
        if not isinstance(payload, dict):
            raise MalformedPayloadError("payload must be an object")
        sender = payload.get("from") or payload.get("sender_id")
        body = payload.get("body")
        if not isinstance(sender, str) or not sender:
            raise MalformedPayloadError("missing sender")
        if not isinstance(body, str):
            raise MalformedPayloadError("missing body")
        metadata = payload.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise MalformedPayloadError("metadata must be an object")
        try:
            return ParsedMessage(
                sender=sender,
                body=body,
                external_id=payload.get("external_id"),
                metadata=metadata,
            )
        except ValidationError as exc:
            raise MalformedPayloadError(str(exc)) from exc

    def room_type(self, sender: str) -> str:
        return self._config.room_type
