"""livechatkit - async room merges and inbound webhooks for live-chat platforms."""

from livechatkit._version import __version__
from livechatkit.authz import Authorizer, StaticAuthorizer
from livechatkit.config import LivechatConfig
from livechatkit.core.framework import (
    LivechatKit,
    LivechatKitError,
    MergeConflictError,
    NotAuthorizedError,
    RoomNotFoundError,
    ServiceNotFoundError,
)
from livechatkit.core.inbound import InboundMessageRouter
from livechatkit.core.locks import InMemoryLockManager, RoomLockManager
from livechatkit.core.merge import RoomMergeService
from livechatkit.knowledge import KnowledgeAdapter, MockKnowledgeAdapter
from livechatkit.models.auxiliary import ExternalMessage, Inquiry
from livechatkit.models.enums import Capability, InquiryStatus, RoomType
from livechatkit.models.framework_event import FrameworkEvent
from livechatkit.models.inbound import InboundResult, ParsedMessage
from livechatkit.models.merge import MergeResult, MergeSettings
from livechatkit.models.message import Message
from livechatkit.models.room import Room, VisitorRef
from livechatkit.models.subscription import Subscription
from livechatkit.models.visitor import Visitor
from livechatkit.providers import (
    CommunicationService,
    MalformedPayloadError,
    MockCommunicationService,
)
from livechatkit.providers.http import HTTPCommunicationService, HTTPServiceConfig
from livechatkit.providers.sms import SMSCommunicationService, SMSServiceConfig
from livechatkit.store.base import LivechatStore
from livechatkit.store.memory import InMemoryStore
from livechatkit.webhook import WebhookEndpoint, WebhookResponse

__all__ = [
    "Authorizer",
    "Capability",
    "CommunicationService",
    "ExternalMessage",
    "FrameworkEvent",
    "HTTPCommunicationService",
    "HTTPServiceConfig",
    "InMemoryLockManager",
    "InMemoryStore",
    "InboundMessageRouter",
    "InboundResult",
    "Inquiry",
    "InquiryStatus",
    "KnowledgeAdapter",
    "LivechatConfig",
    "LivechatKit",
    "LivechatKitError",
    "LivechatStore",
    "MalformedPayloadError",
    "MergeConflictError",
    "MergeResult",
    "MergeSettings",
    "Message",
    "MockCommunicationService",
    "MockKnowledgeAdapter",
    "NotAuthorizedError",
    "ParsedMessage",
    "Room",
    "RoomLockManager",
    "RoomMergeService",
    "RoomNotFoundError",
    "RoomType",
    "SMSCommunicationService",
    "SMSServiceConfig",
    "ServiceNotFoundError",
    "StaticAuthorizer",
    "Subscription",
    "Visitor",
    "VisitorRef",
    "WebhookEndpoint",
    "WebhookResponse",
    "__version__",
]
