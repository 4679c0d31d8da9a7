"""SMS gateway webhook service."""

from livechatkit.providers.sms.config import SMSServiceConfig
from livechatkit.providers.sms.phone import is_valid_phone, normalize_phone
from livechatkit.providers.sms.service import SMSCommunicationService

__all__ = [
    "SMSCommunicationService",
    "SMSServiceConfig",
    "is_valid_phone",
    "normalize_phone",
]
