"""Tests for StaticAuthorizer."""

from __future__ import annotations

from livechatkit.authz.static import StaticAuthorizer
from livechatkit.models.enums import Capability


class TestStaticAuthorizer:
    async def test_direct_grant(self) -> None:
        authz = StaticAuthorizer(grants={"u1": {Capability.VIEW_LIVECHAT_ROOM}})
        assert await authz.has_permission("u1", "view-l-room") is True
        assert await authz.has_permission("u1", "edit-l-room") is False
        assert await authz.has_permission("u2", "view-l-room") is False

    async def test_roles(self) -> None:
        authz = StaticAuthorizer(
            roles={"livechat-agent": {"view-l-room", "edit-l-room"}},
            user_roles={"u1": {"livechat-agent"}},
        )
        assert await authz.has_permission("u1", "edit-l-room") is True
        assert await authz.has_permission("u2", "edit-l-room") is False

    async def test_anonymous_denied(self) -> None:
        authz = StaticAuthorizer(grants={"": {"view-l-room"}})
        assert await authz.has_permission(None, "view-l-room") is False
        assert await authz.has_permission("", "view-l-room") is False

    async def test_grant_and_revoke(self) -> None:
        authz = StaticAuthorizer()
        authz.grant("u1", "view-l-room", "edit-l-room")
        assert await authz.has_permission("u1", "edit-l-room") is True
        authz.revoke("u1", "edit-l-room")
        assert await authz.has_permission("u1", "edit-l-room") is False
        assert await authz.has_permission("u1", "view-l-room") is True
        authz.revoke("nobody", "view-l-room")
