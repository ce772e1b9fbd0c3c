"""
Base repository interface for agents.

The agent core only needs these operations; hosts back them with their own store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..agents.conversation import Conversation
from ..agents.models import Agent


class AgentRepository(ABC):
    """Persistence for agents and read access to their conversations."""

    @abstractmethod
    async def get(self, agent_id: str) -> Agent | None:
        """Get an agent by ID."""
        pass

    @abstractmethod
    async def save(self, agent: Agent) -> Agent:
        """Insert or replace an agent, assigning an ID when it has none."""
        pass

    @abstractmethod
    async def delete(self, agent_id: str) -> bool:
        """Delete an agent. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def set_last_active_message_count(self, agent_id: str, count: int) -> None:
        """Persist only the watermark, leaving the rest of the stored agent untouched."""
        pass

    @abstractmethod
    async def load_conversation(self, conversation_id: str) -> Conversation | None:
        """Load a conversation with its messages and channels."""
        pass
