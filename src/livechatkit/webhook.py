"""Framework-neutral body of the ``incoming/<service>`` webhook route."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from livechatkit.providers.base import MalformedPayloadError

if TYPE_CHECKING:
    from livechatkit.core.framework import LivechatKit

logger = logging.getLogger("livechatkit.webhook")


class WebhookResponse(BaseModel):
    """Status code and JSON body to send back to the external service."""

    status_code: int
    body: dict[str, Any] = Field(default_factory=dict)


def _header(headers: Mapping[str, str], name: str) -> str | None:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


class WebhookEndpoint:
    """Handles a POST to ``incoming/<service>`` for any web framework.

    Mount it in your framework of choice, e.g. with FastAPI::

        endpoint = WebhookEndpoint(kit)

        @app.post("/livechat-api/incoming/{service}")
        async def incoming(service: str, request: Request):
            resp = await endpoint.handle(service, request.headers, await request.json())
            return JSONResponse(resp.body, status_code=resp.status_code)
    """

    def __init__(self, kit: LivechatKit) -> None:
        self._kit = kit

    async def handle(
        self,
        service_name: str,
        headers: Mapping[str, str],
        payload: Any,
    ) -> WebhookResponse:
        """Authenticate, parse and route one inbound payload.

        Returns ``404`` for an unknown service, ``401`` for a rejected
        ``Authorization`` header or a malformed payload, otherwise ``200``
        with the receipt time in epoch milliseconds.
        """
        service = self._kit.get_service(service_name)
        if service is None:
            return WebhookResponse(status_code=404)
        if not service.verify_authentication(_header(headers, "Authorization")):
            logger.warning("Rejected unauthenticated request", extra={"service": service_name})
            return WebhookResponse(status_code=401)
        try:
            message = service.parse(payload)
        except MalformedPayloadError:
            logger.warning("Rejected malformed request", extra={"service": service_name})
            return WebhookResponse(status_code=401)

        await self._kit.process_inbound(message, service)
        received = int(datetime.now(UTC).timestamp() * 1000)
        return WebhookResponse(status_code=200, body={"received": received})
