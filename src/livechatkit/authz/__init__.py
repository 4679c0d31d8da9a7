"""Capability checks for requesters."""

from livechatkit.authz.base import Authorizer
from livechatkit.authz.static import StaticAuthorizer

__all__ = ["Authorizer", "StaticAuthorizer"]
