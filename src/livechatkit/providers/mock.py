"""Mock communication service for testing."""

from __future__ import annotations

from typing import Any

from livechatkit.models.inbound import ParsedMessage
from livechatkit.providers.base import CommunicationService, MalformedPayloadError


class MockCommunicationService(CommunicationService):
    """Accepts ``{"from": ..., "body": ...}`` and an optional fixed token."""

    def __init__(
        self, name: str = "mock", token: str | None = None, room_type: str = "mock"
    ) -> None:
        self._name = name
        self._token = token
        self._room_type = room_type
        self.parsed: list[ParsedMessage] = []

    @property
    def service_name(self) -> str:
        return self._name

    def verify_authentication(self, authorization: str | None) -> bool:
        return self._token is None or authorization == self._token

    def parse(self, payload: dict[str, Any]) -> ParsedMessage:
        if not isinstance(payload, dict) or "from" not in payload or "body" not in payload:
            raise MalformedPayloadError("payload needs 'from' and 'body'")
        message = ParsedMessage(sender=str(payload["from"]), body=str(payload["body"]))
        self.parsed.append(message)
        return message

    def room_type(self, sender: str) -> str:
        return self._room_type
