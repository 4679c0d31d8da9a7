"""Abstract base class for knowledge/indexing adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod

from livechatkit.models.message import Message


class KnowledgeAdapter(ABC):
    """External system notified of visitor messages for search or ML indexing.

    Calls are best-effort: the framework runs them in the background, logs
    failures and never retries.
    """

    @abstractmethod
    async def on_message(self, message: Message) -> None:
        """Handle a visitor-authored message."""
        ...
