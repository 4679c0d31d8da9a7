"""HTTP webhook service configuration."""

from __future__ import annotations

from pydantic import BaseModel, SecretStr, model_validator

from livechatkit.models.enums import RoomType


class HTTPServiceConfig(BaseModel):
    """Configuration for the generic JSON webhook service.

    When ``username`` and ``password`` are both unset the service accepts
    unauthenticated requests.
    """

    name: str = "http"
    username: str | None = None
    password: SecretStr | None = None
    room_type: str = RoomType.WEBHOOK.value

    @model_validator(mode="after")
    def _credentials_together(self) -> HTTPServiceConfig:
        if (self.username is None) != (self.password is None):
            raise ValueError("username and password must be set together")
        return self
