from __future__ import annotations

import uuid

from ..agents.conversation import Conversation
from ..agents.models import Agent
from ..observability.logging import get_logger
from .base_repository import AgentRepository

log = get_logger("agents_repo")


class InMemoryAgentRepository(AgentRepository):
    """Process-local store used by tests and single-process hosts."""

    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}
        self._conversations: dict[str, Conversation] = {}

    async def get(self, agent_id: str) -> Agent | None:
        stored = self._agents.get(str(agent_id or ""))
        if stored is None:
            return None
        # callers get their own copy, like a fresh read from a database
        return stored.model_copy(deep=True)

    async def save(self, agent: Agent) -> Agent:
        if not agent.id:
            agent.id = uuid.uuid4().hex
        if agent.conversation is not None:
            agent.conversation_id = agent.conversation.id
        self._agents[agent.id] = agent.model_copy(update={"conversation": None}, deep=True)
        return agent

    async def delete(self, agent_id: str) -> bool:
        removed = self._agents.pop(str(agent_id or ""), None)
        if removed is not None:
            log.info("agent_deleted", agent_id=agent_id, agent_type=removed.agent_type)
        return removed is not None

    async def set_last_active_message_count(self, agent_id: str, count: int) -> None:
        stored = self._agents.get(str(agent_id or ""))
        if stored is None:
            log.warning("agent_watermark_missing_agent", agent_id=agent_id)
            return
        stored.last_active_message_count = int(count)

    async def load_conversation(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(str(conversation_id or ""))

    def put_conversation(self, conversation: Conversation) -> None:
        self._conversations[conversation.id] = conversation

    def remove_conversation(self, conversation_id: str) -> None:
        self._conversations.pop(conversation_id, None)
