"""
Job handlers the scheduler calls for agents, plus fan-out of a new user message.

Each handler owns one agent and one event. Failures are logged and swallowed
so one broken agent cannot stall the scheduler; nothing is retried here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Sequence

from ..agents.conversation import Conversation, Message
from ..agents.models import Agent, AgentMessageAction, MessageDraft
from ..agents.service import AgentService
from ..errors import MessageRejected
from ..observability.context import bind_job_id, reset_job_id
from ..observability.logging import get_logger

log = get_logger("agent_jobs")

# receives every draft an agent produces, in order
DraftSink = Callable[[Agent, MessageDraft], Awaitable[None]]


@dataclass
class DispatchOutcome:
    user_message_visible: bool = True
    responding_agents: list[Agent] = field(default_factory=list)


def _priority(service: AgentService, agent: Agent) -> int:
    if agent.priority is not None:
        return agent.priority
    return service.registry.require(agent.agent_type).priority


async def dispatch_user_message(
    service: AgentService,
    conversation: Conversation,
    agents: Sequence[Agent],
    message: Message,
) -> DispatchOutcome:
    """
    Run every agent's evaluation for a new user message, lowest priority value first.

    Raises MessageRejected as soon as one agent rejects the message. Agents
    that want to contribute are returned so the caller can schedule their
    responses after the message itself is stored.
    """
    outcome = DispatchOutcome()
    if not conversation.enable_agents:
        return outcome

    for agent in sorted(agents, key=lambda a: _priority(service, a)):
        agent.conversation = conversation
        evaluation = await service.evaluate(agent, message)
        if evaluation is None:
            continue
        if evaluation.action == AgentMessageAction.REJECT:
            log.info("user_message_rejected", agent_id=agent.id, suggestion=evaluation.suggestion)
            raise MessageRejected(
                message=evaluation.suggestion or "Message rejected",
                agent_type=agent.agent_type,
                agent_id=agent.id,
                suggestion=evaluation.suggestion,
            )
        if evaluation.action == AgentMessageAction.CONTRIBUTE:
            outcome.responding_agents.append(agent)
        if not evaluation.user_contribution_visible:
            outcome.user_message_visible = False
    return outcome


class AgentJobHandlers:
    def __init__(self, service: AgentService, deliver: DraftSink) -> None:
        self._service = service
        self._deliver = deliver

    async def _emit(self, agent: Agent, drafts: list[MessageDraft]) -> None:
        for draft in drafts:
            await self._deliver(agent, draft)

    async def agent_response(
        self, *, agent_id: str, message: Message | None = None, job_id: str | None = None
    ) -> list[MessageDraft]:
        token = bind_job_id(job_id)
        try:
            agent = await self._service.load(agent_id)
            if agent is None:
                log.warning("agent_not_found", agent_id=agent_id, job="agent_response")
                return []
            drafts = await self._service.respond(agent, message)
            await self._emit(agent, drafts)
            return drafts
        except Exception as e:
            log.error("agent_response_failed", agent_id=agent_id, error=str(e), error_type=type(e).__name__)
            return []
        finally:
            reset_job_id(token)

    async def agent_introduction(
        self, *, agent_id: str, channel_id: str, job_id: str | None = None
    ) -> list[MessageDraft]:
        token = bind_job_id(job_id)
        try:
            agent = await self._service.load(agent_id)
            if agent is None:
                log.warning("agent_not_found", agent_id=agent_id, job="agent_introduction")
                return []
            channels = agent.conversation.channels if agent.conversation else []
            channel = next((c for c in channels if c.id == channel_id), None)
            if channel is None:
                raise LookupError(f"Channel {channel_id} not found on agent conversation")
            drafts = await self._service.introduce(agent, channel)
            await self._emit(agent, drafts)
            return drafts
        except Exception as e:
            log.error("agent_introduction_failed", agent_id=agent_id, error=str(e), error_type=type(e).__name__)
            return []
        finally:
            reset_job_id(token)

    async def periodic_agent(self, *, agent_id: str, job_id: str | None = None) -> list[MessageDraft]:
        token = bind_job_id(job_id)
        try:
            agent = await self._service.load(agent_id)
            if agent is None:
                log.warning("agent_not_found", agent_id=agent_id, job="periodic_agent")
                return []
            evaluation = await self._service.evaluate(agent)
            if evaluation is None or evaluation.action != AgentMessageAction.CONTRIBUTE:
                return []
            drafts = await self._service.respond(agent)
            await self._emit(agent, drafts)
            return drafts
        except Exception as e:
            log.error("periodic_agent_failed", agent_id=agent_id, error=str(e), error_type=type(e).__name__)
            return []
        finally:
            reset_job_id(token)
