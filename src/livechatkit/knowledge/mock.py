"""Mock knowledge adapter for testing."""

from __future__ import annotations

from livechatkit.knowledge.base import KnowledgeAdapter
from livechatkit.models.message import Message


class MockKnowledgeAdapter(KnowledgeAdapter):
    """Records every message it receives; optionally fails on each call."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[Message] = []
        self._error = error

    async def on_message(self, message: Message) -> None:
        self.calls.append(message)
        if self._error is not None:
            raise self._error
