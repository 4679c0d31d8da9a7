"""Static in-process authorizer."""

from __future__ import annotations

from collections.abc import Iterable

from livechatkit.authz.base import Authorizer


class StaticAuthorizer(Authorizer):
    """Grants capabilities from a pre-configured mapping.

    Capabilities can be granted directly per user, or through roles::

        StaticAuthorizer(
            roles={"livechat-agent": {"view-l-room", "edit-l-room"}},
            user_roles={"agent-1": {"livechat-agent"}},
        )
    """

    def __init__(
        self,
        grants: dict[str, Iterable[str]] | None = None,
        roles: dict[str, Iterable[str]] | None = None,
        user_roles: dict[str, Iterable[str]] | None = None,
    ) -> None:
        self._grants = {uid: set(caps) for uid, caps in (grants or {}).items()}
        self._roles = {role: set(caps) for role, caps in (roles or {}).items()}
        self._user_roles = {uid: set(r) for uid, r in (user_roles or {}).items()}

    def grant(self, user_id: str, *capabilities: str) -> None:
        self._grants.setdefault(user_id, set()).update(capabilities)

    def revoke(self, user_id: str, *capabilities: str) -> None:
        self._grants.get(user_id, set()).difference_update(capabilities)

    async def has_permission(self, user_id: str | None, capability: str) -> bool:
        if not user_id:
            return False
        if capability in self._grants.get(user_id, set()):
            return True
        return any(
            capability in self._roles.get(role, set())
            for role in self._user_roles.get(user_id, set())
        )
