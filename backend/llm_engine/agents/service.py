"""
Agent service: one object wiring activation, response and lifecycle together.

Hosts build one per process from their registry and repository and call it
from their message handlers and scheduled jobs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..observability.otel import AgentCallTracer, trace_agent_call
from ..repositories.base_repository import AgentRepository
from ..settings import Settings, settings as default_settings
from .activation import ActivationGate, MessagePreFilter
from .context.assembler import ContextAssembler
from .context.history import get_conversation_history
from .conversation import Channel, Message
from .keepalive import HttpLlmPinger, LlmPinger
from .lifecycle import AgentLifecycle
from .models import Agent, AgentEvaluation, MessageDraft
from .pipeline import ResponsePipeline
from .platforms import LlmPlatformCatalog
from .registry import AgentTypeRegistry


class AgentService:
    def __init__(
        self,
        registry: AgentTypeRegistry,
        repository: AgentRepository,
        *,
        settings: Settings | None = None,
        platforms: LlmPlatformCatalog | None = None,
        assembler: ContextAssembler | None = None,
        pre_filter: MessagePreFilter | None = None,
        tracer: AgentCallTracer = trace_agent_call,
        pinger: LlmPinger | None = None,
    ) -> None:
        s = settings or default_settings
        self.registry = registry
        self.repository = repository
        self.gate = ActivationGate(registry, repository, pre_filter=pre_filter)
        self.pipeline = ResponsePipeline(
            registry,
            assembler=assembler or ContextAssembler(get_conversation_history),
            tracer=tracer,
        )
        self.lifecycle = AgentLifecycle(
            registry,
            repository,
            platforms or LlmPlatformCatalog.from_settings(s),
            pinger=pinger or HttpLlmPinger(timeout_seconds=s.llm_ping_timeout_seconds),
        )

    async def create(self, agent: Agent) -> Agent:
        return await self.lifecycle.create(agent)

    async def load(self, agent_id: str) -> Agent | None:
        """Fetch an agent with its conversation loaded; None if the agent is gone."""
        agent = await self.repository.get(agent_id)
        if agent is None:
            return None
        if agent.conversation_id:
            agent.conversation = await self.repository.load_conversation(agent.conversation_id)
        return agent

    async def initialize(self, agent: Agent) -> bool:
        return await self.lifecycle.initialize(agent)

    async def start(self, agent: Agent) -> None:
        await self.lifecycle.start(agent)

    async def stop(self, agent: Agent) -> None:
        await self.lifecycle.stop(agent)

    async def evaluate(self, agent: Agent, user_message: Message | None = None) -> AgentEvaluation | None:
        return await self.gate.evaluate(agent, user_message)

    async def respond(self, agent: Agent, user_message: Message | None = None) -> list[MessageDraft]:
        return await self.pipeline.respond(agent, user_message)

    async def introduce(self, agent: Agent, channel: Channel) -> list[MessageDraft]:
        return await self.lifecycle.introduce(agent, channel)

    async def deep_patch(self, agent: Agent, patch: Mapping[str, Any]) -> Agent:
        self.lifecycle.deep_patch(agent, patch)
        return await self.repository.save(agent)
