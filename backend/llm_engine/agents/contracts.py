from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable

from pydantic import ValidationError

from ..errors import InvalidAgentEvaluation, InvalidAgentResponse
from .models import Agent, AgentEvaluation, AgentResponse

REQUIRED_EVALUATION_PROPS = ("user_message", "action", "user_contribution_visible", "suggestion")
REQUIRED_RESPONSE_PROPS = ("visible", "message")


def validate_evaluation(raw: Any, *, agent: Agent) -> AgentEvaluation:
    """Check an agent type's evaluate() result and return it as an `AgentEvaluation`."""
    if isinstance(raw, AgentEvaluation):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidAgentEvaluation(
            message=f"Agent evaluation must be a mapping, got {type(raw).__name__}",
            agent_type=agent.agent_type,
            agent_id=agent.id,
        )
    for prop in REQUIRED_EVALUATION_PROPS:
        if prop not in raw:
            raise InvalidAgentEvaluation(
                message=f"Agent evaluation missing required property {prop}",
                agent_type=agent.agent_type,
                agent_id=agent.id,
                prop=prop,
            )
    try:
        return AgentEvaluation.model_validate(dict(raw))
    except ValidationError as e:
        raise InvalidAgentEvaluation(
            message=f"Agent evaluation is malformed: {e.errors()[0].get('msg')}",
            agent_type=agent.agent_type,
            agent_id=agent.id,
        ) from e


def validate_response(raw: Any, *, agent: Agent) -> AgentResponse:
    if isinstance(raw, AgentResponse):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidAgentResponse(
            message=f"Agent response must be a mapping, got {type(raw).__name__}",
            agent_type=agent.agent_type,
            agent_id=agent.id,
        )
    for prop in REQUIRED_RESPONSE_PROPS:
        if prop not in raw:
            raise InvalidAgentResponse(
                message=f"Agent response missing required property {prop}",
                agent_type=agent.agent_type,
                agent_id=agent.id,
                prop=prop,
            )
    try:
        return AgentResponse.model_validate(dict(raw))
    except ValidationError as e:
        raise InvalidAgentResponse(
            message=f"Agent response is malformed: {e.errors()[0].get('msg')}",
            agent_type=agent.agent_type,
            agent_id=agent.id,
        ) from e


def validate_responses(raw: Iterable[Any] | None, *, agent: Agent) -> list[AgentResponse]:
    """Validate a whole batch up front so a bad item emits nothing."""
    if raw is None:
        return []
    if isinstance(raw, (Mapping, str, bytes)):
        raise InvalidAgentResponse(
            message="Agent responses must be a list",
            agent_type=agent.agent_type,
            agent_id=agent.id,
        )
    return [validate_response(r, agent=agent) for r in raw]
