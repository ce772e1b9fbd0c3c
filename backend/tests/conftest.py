from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

# Ensure `backend/` is on sys.path so `import llm_engine.*` works in tests.
BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))

from llm_engine.agents.models import AgentMessageAction, PerMessageTrigger, Triggers  # noqa: E402
from llm_engine.agents.registry import AgentType  # noqa: E402

T0 = datetime(2025, 3, 4, 14, 0, tzinfo=timezone.utc)


def at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


class EchoAgentType(AgentType):
    """Scriptable agent type: records what it was asked and echoes messages back."""

    key = "echo"
    name = "Echo"
    description = "Repeats what it hears"
    default_llm_platform = "openai"
    default_llm_model = "gpt-4o-mini"
    default_triggers = Triggers(per_message=PerMessageTrigger())

    def __init__(self) -> None:
        self.action = AgentMessageAction.CONTRIBUTE
        self.evaluation: dict[str, Any] | None = None
        self.responses: list[Any] | None = None
        self.introductions: list[Any] | None = None
        self.evaluated: list[Any] = []
        self.evaluated_by: list[str | None] = []
        self.responded: list[tuple[Any, Any]] = []
        self.calls: list[str] = []

    async def initialize(self, agent):
        self.calls.append("initialize")

    async def start(self, agent):
        self.calls.append("start")

    async def stop(self, agent):
        self.calls.append("stop")

    async def evaluate(self, agent, user_message):
        self.evaluated.append(user_message)
        self.evaluated_by.append(agent.id)
        if self.evaluation is not None:
            return self.evaluation
        return {
            "user_message": user_message,
            "action": self.action,
            "user_contribution_visible": True,
            "suggestion": None,
        }

    async def respond(self, agent, history, user_message):
        self.responded.append((history, user_message))
        if self.responses is not None:
            return self.responses
        body = user_message.body if user_message is not None else "tick"
        return [{"visible": True, "message": f"echo: {body}"}]

    async def introduce(self, agent, channel):
        return self.introductions


@dataclass
class AgentEnv:
    registry: Any
    repo: Any
    service: Any
    echo: EchoAgentType
    traces: list[tuple[str, dict]] = field(default_factory=list)
    pings: list[str] = field(default_factory=list)

    def conversation(self, *bodies: str, **kwargs: Any):
        """A stored conversation holding one user message per body, a minute apart."""
        from llm_engine.agents.conversation import Conversation, Message

        kwargs.setdefault("start_time", T0)
        conversation = Conversation(name="Town hall", **kwargs)
        for i, body in enumerate(bodies):
            conversation.messages.append(
                Message(body=body, owner=f"user-{i}", pseudonym=f"User {i}", created_at=at(i))
            )
        self.repo.put_conversation(conversation)
        return conversation

    async def add_agent(self, conversation, *, start: bool = True, **fields: Any):
        from llm_engine.agents.models import Agent

        fields.setdefault("agent_type", "echo")
        agent = await self.service.create(Agent(conversation=conversation, **fields))
        if start:
            await self.service.start(agent)
        return agent


@pytest.fixture()
def env() -> AgentEnv:
    from llm_engine.agents.registry import AgentTypeRegistry
    from llm_engine.agents.service import AgentService
    from llm_engine.repositories.agents_repo import InMemoryAgentRepository
    from llm_engine.settings import Settings

    echo = EchoAgentType()
    registry = AgentTypeRegistry([echo])
    repo = InMemoryAgentRepository()
    traces: list[tuple[str, dict]] = []
    pings: list[str] = []

    async def tracer(name, metadata, call):
        traces.append((name, dict(metadata)))
        return await call()

    async def pinger(agent):
        pings.append(agent.id)

    service = AgentService(
        registry,
        repo,
        settings=Settings(VLLM_API_URL="http://vllm.local/v1"),
        tracer=tracer,
        pinger=pinger,
    )
    return AgentEnv(registry=registry, repo=repo, service=service, echo=echo, traces=traces, pings=pings)
