"""Communication services that turn external webhook payloads into messages."""

from livechatkit.providers.base import CommunicationService, MalformedPayloadError
from livechatkit.providers.mock import MockCommunicationService

__all__ = ["CommunicationService", "MalformedPayloadError", "MockCommunicationService"]
