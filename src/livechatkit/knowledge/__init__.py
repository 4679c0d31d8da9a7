"""Knowledge/indexing adapters notified of visitor messages."""

from livechatkit.knowledge.base import KnowledgeAdapter
from livechatkit.knowledge.mock import MockKnowledgeAdapter

__all__ = ["KnowledgeAdapter", "MockKnowledgeAdapter"]
