"""LivechatKit - central orchestrator for room merges and inbound messages."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from livechatkit.authz.base import Authorizer
from livechatkit.authz.static import StaticAuthorizer
from livechatkit.config import LivechatConfig
from livechatkit.core.inbound import InboundMessageRouter
from livechatkit.core.locks import InMemoryLockManager, RoomLockManager
from livechatkit.core.merge import RoomMergeService
from livechatkit.knowledge.base import KnowledgeAdapter
from livechatkit.models.framework_event import FrameworkEvent
from livechatkit.models.inbound import InboundResult, ParsedMessage
from livechatkit.models.merge import MergeResult
from livechatkit.models.room import Room
from livechatkit.providers.base import CommunicationService
from livechatkit.store.base import LivechatStore
from livechatkit.store.memory import InMemoryStore

__all__ = [
    "FrameworkEventHandler",
    "LivechatKit",
    "LivechatKitError",
    "MergeConflictError",
    "NotAuthorizedError",
    "RoomNotFoundError",
    "ServiceNotFoundError",
]

logger = logging.getLogger("livechatkit.framework")

FrameworkEventHandler = Callable[[FrameworkEvent], Awaitable[None]]


class LivechatKitError(Exception):
    """Base exception for all livechatkit errors.

    Attributes:
        method: Name of the operation that failed, for diagnostics.
    """

    def __init__(self, message: str = "", *, method: str | None = None) -> None:
        super().__init__(message)
        self.method = method


class NotAuthorizedError(LivechatKitError):
    """Requester lacks a required capability."""


class RoomNotFoundError(LivechatKitError):
    """Room does not exist, or no qualifying previous room exists."""


class MergeConflictError(LivechatKitError):
    """A merge failed after mutation began; the store transaction was rolled back."""


class ServiceNotFoundError(LivechatKitError):
    """No communication service registered under that name."""


class LivechatKit:
    """Central orchestrator tying storage, locking, merges, and inbound routing."""

    def __init__(
        self,
        store: LivechatStore | None = None,
        authorizer: Authorizer | None = None,
        lock_manager: RoomLockManager | None = None,
        knowledge: KnowledgeAdapter | None = None,
        services: list[CommunicationService] | None = None,
        config: LivechatConfig | None = None,
    ) -> None:
        """Initialise the orchestrator.

        Args:
            store: Persistent storage backend. Defaults to ``InMemoryStore``.
            authorizer: Capability checks for requesters. Defaults to a
                ``StaticAuthorizer`` with no grants, which denies everything.
            lock_manager: Keyed locking backend shared by merges and inbound
                routing. Defaults to ``InMemoryLockManager``. For
                multi-process deployments, supply a distributed implementation.
            knowledge: Optional knowledge/indexing adapter notified after merges.
            services: Communication services reachable through the webhook.
            config: Capability names and tuning knobs.
        """
        self._config = config or LivechatConfig()
        self._store = store or InMemoryStore()
        self._authorizer = authorizer or StaticAuthorizer()
        self._lock_manager = lock_manager or InMemoryLockManager(self._config.max_locks)
        self._services: dict[str, CommunicationService] = {}
        self._event_handlers: list[tuple[str, FrameworkEventHandler]] = []
        self._merge = RoomMergeService(
            self._store,
            self._authorizer,
            lock_manager=self._lock_manager,
            knowledge=knowledge,
            config=self._config,
        )
        self._inbound = InboundMessageRouter(self._store, lock_manager=self._lock_manager)
        for service in services or []:
            self.register_service(service)

    @property
    def store(self) -> LivechatStore:
        return self._store

    @property
    def config(self) -> LivechatConfig:
        return self._config

    @property
    def merge_service(self) -> RoomMergeService:
        return self._merge

    @property
    def inbound_router(self) -> InboundMessageRouter:
        return self._inbound

    # -- Services --

    def register_service(self, service: CommunicationService) -> None:
        """Register a communication service under its ``service_name``."""
        self._services[service.service_name] = service

    def get_service(self, name: str) -> CommunicationService | None:
        return self._services.get(name)

    # -- Rooms --

    async def get_previous_room(self, room_id: str, requester: str | None) -> Room:
        """Return the visitor's previous closed room. See ``RoomMergeService``."""
        return await self._merge.find_previous_room(room_id, requester)

    async def merge_rooms(
        self, close_room_id: str, target_room_id: str, requester: str | None
    ) -> MergeResult:
        """Merge *close_room_id* into *target_room_id*. See ``RoomMergeService``."""
        result = await self._merge.merge_rooms(close_room_id, target_room_id, requester)
        await self._emit_framework_event(
            "rooms_merged",
            room_id=target_room_id,
            data={
                "close_room_id": close_room_id,
                "moved_messages": result.moved_messages,
                "requester": requester,
            },
        )
        return result

    # -- Inbound --

    async def process_inbound(
        self, message: ParsedMessage, service: CommunicationService | str
    ) -> InboundResult:
        """Route an already-parsed message from *service* into its visitor's room."""
        if isinstance(service, str):
            resolved = self.get_service(service)
            if resolved is None:
                raise ServiceNotFoundError(
                    f"Service {service} not registered", method="process_inbound"
                )
            service = resolved
        result = await self._inbound.route(message, service)
        if result.created_room:
            await self._emit_framework_event(
                "room_created",
                room_id=result.room_id,
                data={"visitor_id": result.visitor_id, "service": service.service_name},
            )
        await self._emit_framework_event(
            "message_received",
            room_id=result.room_id,
            data={"message_id": result.message_id, "service": service.service_name},
        )
        return result

    # -- Framework events --

    def on(self, event_type: str) -> Callable[..., Any]:
        """Decorator to register a framework event handler filtered by type."""

        def decorator(fn: FrameworkEventHandler) -> FrameworkEventHandler:
            self._event_handlers.append((event_type, fn))
            return fn

        return decorator

    async def _emit_framework_event(
        self,
        event_type: str,
        room_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Emit a framework event to handlers registered for *event_type*."""
        fw_event = FrameworkEvent(type=event_type, room_id=room_id, data=data or {})
        for filter_type, handler in self._event_handlers:
            if filter_type == fw_event.type:
                try:
                    await handler(fw_event)
                except Exception:
                    logger.exception(
                        "Framework event handler failed",
                        extra={"event_type": fw_event.type, "room_id": fw_event.room_id},
                    )

    # -- Lifecycle --

    async def close(self) -> None:
        """Wait for background notifications to finish."""
        await self._merge.drain()

    async def __aenter__(self) -> LivechatKit:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
