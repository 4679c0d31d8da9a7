"""Generic JSON webhook service."""

from livechatkit.providers.http.config import HTTPServiceConfig
from livechatkit.providers.http.service import HTTPCommunicationService

__all__ = ["HTTPCommunicationService", "HTTPServiceConfig"]
