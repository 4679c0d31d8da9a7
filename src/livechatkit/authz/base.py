"""Abstract base class for capability checks."""

from __future__ import annotations

from abc import ABC, abstractmethod


class Authorizer(ABC):
    """Answers whether a requester holds a named capability."""

    @abstractmethod
    async def has_permission(self, user_id: str | None, capability: str) -> bool:
        """Return ``True`` if *user_id* holds *capability*.

        Args:
            user_id: The requester. ``None`` stands for an anonymous caller
                and must never be granted anything.
            capability: Capability name, e.g. ``"view-l-room"``.
        """
        ...
