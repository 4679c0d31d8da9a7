"""Abstract base class for external communication services."""

from __future__ import annotations

import base64
import binascii
import hmac
from abc import ABC, abstractmethod
from typing import Any

from livechatkit.models.inbound import ParsedMessage


class MalformedPayloadError(ValueError):
    """The webhook payload could not be parsed into a message."""


def verify_basic_auth(header: str | None, username: str, password: str) -> bool:
    """Check an ``Authorization: Basic ...`` header against credentials."""
    if not header:
        return False
    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return False
    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return False
    user, sep, secret = decoded.partition(":")
    if not sep:
        return False
    user_ok = hmac.compare_digest(user.encode(), username.encode())
    secret_ok = hmac.compare_digest(secret.encode(), password.encode())
    return user_ok and secret_ok


class CommunicationService(ABC):
    """An external messaging service that posts inbound messages to us."""

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Name used in the ``incoming/<service>`` route."""
        ...

    @abstractmethod
    def verify_authentication(self, authorization: str | None) -> bool:
        """Return ``True`` if the ``Authorization`` header is acceptable."""
        ...

    @abstractmethod
    def parse(self, payload: dict[str, Any]) -> ParsedMessage:
        """Parse a webhook body.

        Raises:
            MalformedPayloadError: The payload is missing required fields.
        """
        ...

    def room_type(self, sender: str) -> str:
        """Source tag stored in the room's ``rb_info`` for *sender*."""
        return self.service_name
