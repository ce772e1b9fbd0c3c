"""
Agent types and the registry that maps an agent's `agent_type` key to one.

An agent type is the behaviour shared by every agent of that kind: its
defaults and its hooks. The registry is an ordinary object handed to the
services that need it; tests and hosts build their own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Iterable

from ..errors import UnknownAgentTypeError
from ..observability.logging import get_logger
from .models import ConversationHistorySettings, Triggers

if TYPE_CHECKING:
    from .context.history import ConversationHistory
    from .conversation import Channel, Message
    from .models import Agent, AgentEvaluation, AgentResponse

log = get_logger("agent_registry")


class AgentType(ABC):
    """
    Base class for agent behaviour.

    Subclasses set `key` and the defaults they need and override `evaluate` and
    `respond`. `initialize`, `start`, `stop` and `introduce` are optional.
    `parse_input`/`parse_output` are opt-in: define them as methods to have
    inbound messages translated before the hooks see them, or draft bodies
    re-rendered on demand.
    """

    key: str = ""
    name: str = ""
    description: str = ""
    priority: int = 100

    default_llm_templates: dict[str, str] | None = None
    default_llm_platform: str | None = None
    default_llm_model: str | None = None
    default_llm_model_options: dict[str, Any] | None = None
    default_triggers: Triggers | None = None
    default_conversation_history_settings: ConversationHistorySettings | None = None
    default_agent_config: dict[str, Any] | None = None
    rag_collection_name: str | None = None
    use_transcript_rag_collection: bool | None = None

    parse_input: Callable[[Message], Message] | None = None
    parse_output: Callable[[Any], Any] | None = None

    async def initialize(self, agent: Agent) -> None:
        return None

    async def start(self, agent: Agent) -> None:
        return None

    async def stop(self, agent: Agent) -> None:
        return None

    @abstractmethod
    async def evaluate(
        self, agent: Agent, user_message: Message | None
    ) -> AgentEvaluation | dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def respond(
        self, agent: Agent, history: ConversationHistory | None, user_message: Message | None
    ) -> list[AgentResponse | dict[str, Any]]:
        raise NotImplementedError

    async def introduce(
        self, agent: Agent, channel: Channel
    ) -> list[AgentResponse | dict[str, Any]] | None:
        return None

    def pre_validate(self, agent: Agent) -> None:
        """Last step of defaulting; adjust or reject the agent's configuration."""
        return None


class AgentTypeRegistry:
    def __init__(self, agent_types: Iterable[AgentType] = ()) -> None:
        self._types: dict[str, AgentType] = {}
        for agent_type in agent_types:
            self.register(agent_type)

    def register(self, agent_type: AgentType, *, key: str | None = None) -> None:
        k = str(key or agent_type.key or "").strip()
        if not k:
            raise ValueError("agent type key is required")
        if k in self._types:
            log.warning("agent_type_replaced", agent_type=k)
        self._types[k] = agent_type
        log.info("agent_type_registered", agent_type=k, name=agent_type.name or k)

    def unregister(self, key: str) -> bool:
        if key in self._types:
            del self._types[key]
            log.info("agent_type_unregistered", agent_type=key)
            return True
        return False

    def get(self, key: str | None) -> AgentType | None:
        return self._types.get(str(key or ""))

    def require(self, key: str | None) -> AgentType:
        agent_type = self.get(key)
        if agent_type is None:
            raise UnknownAgentTypeError(message=f"Unknown agent type {key}", agent_type=key)
        return agent_type

    def keys(self) -> list[str]:
        return sorted(self._types)

    def __contains__(self, key: object) -> bool:
        return key in self._types

    def __len__(self) -> int:
        return len(self._types)
