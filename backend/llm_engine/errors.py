from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class LlmEngineError(Exception):
    """Base error for the agent core.

    Configuration errors are raised while an agent is being validated; contract
    errors abort the current evaluate/respond call before any draft leaves it.
    """

    message: str
    agent_type: str | None = None
    agent_id: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class AgentConfigurationError(LlmEngineError):
    pass


@dataclass(slots=True)
class UnknownAgentTypeError(AgentConfigurationError):
    pass


@dataclass(slots=True)
class UnknownLlmPlatformError(AgentConfigurationError):
    platform: str | None = None


@dataclass(slots=True)
class MissingAgentIdentityError(AgentConfigurationError):
    pass


@dataclass(slots=True)
class AgentContractViolation(LlmEngineError):
    """An agent type returned something that does not satisfy its output contract."""

    prop: str | None = None


@dataclass(slots=True)
class InvalidAgentEvaluation(AgentContractViolation):
    pass


@dataclass(slots=True)
class InvalidAgentResponse(AgentContractViolation):
    pass


@dataclass(slots=True)
class MessageRejected(LlmEngineError):
    """An agent rejected an inbound user message; `suggestion` explains why."""

    suggestion: str | None = None


@dataclass(slots=True)
class UnsupportedTimeReference(LlmEngineError):
    pass
