from __future__ import annotations

from typing import Sequence

from ..observability.logging import get_logger
from ..observability.otel import AgentCallTracer, trace_agent_call
from .context.assembler import ContextAssembler
from .contracts import validate_responses
from .conversation import Channel, Message
from .models import Agent, AgentResponse, MessageDraft
from .registry import AgentType, AgentTypeRegistry

log = get_logger("agent_pipeline")


def create_message_drafts(
    agent: Agent,
    agent_type: AgentType,
    responses: Sequence[AgentResponse],
    channel: Channel | None = None,
) -> list[MessageDraft]:
    """Stamp validated responses with the agent's identity; `channel` overrides each response's channels."""
    pseudonym = agent.pseudonym
    conversation_id = agent.conversation.id if agent.conversation is not None else agent.conversation_id
    drafts: list[MessageDraft] = []
    for response in responses:
        drafts.append(
            MessageDraft(
                body=response.message,
                conversation_id=conversation_id,
                pseudonym=pseudonym.pseudonym if pseudonym else None,
                pseudonym_id=pseudonym.id if pseudonym else None,
                visible=response.visible,
                pause=response.pause,
                channels=[channel.name] if channel is not None else response.channels,
                body_type=response.message_type,
                parse_output=agent_type.parse_output,
            )
        )
    return drafts


class ResponsePipeline:
    def __init__(
        self,
        registry: AgentTypeRegistry,
        *,
        assembler: ContextAssembler | None = None,
        tracer: AgentCallTracer = trace_agent_call,
    ) -> None:
        self._registry = registry
        self._assembler = assembler or ContextAssembler()
        self._tracer = tracer

    async def respond(self, agent: Agent, user_message: Message | None = None) -> list[MessageDraft]:
        """
        Run the agent type's respond hook over the agent's history slice.

        A periodic tick (no `user_message`) with nothing in its window yields no
        drafts without calling the hook. Every response is validated before any
        draft is built.
        """
        if not agent.active:
            return []

        agent_type = self._registry.require(agent.agent_type)
        history = self._assembler.assemble(agent, user_message, agent_type.parse_input)
        if history is not None and not history.messages and user_message is None:
            log.debug("agent_no_history_to_respond", agent_id=agent.id, agent_type=agent.agent_type)
            return []

        translated = user_message
        if user_message is not None and agent_type.parse_input:
            translated = agent_type.parse_input(user_message)

        metadata = {
            "agent.id": agent.id,
            "agent.type": agent.agent_type,
            "llm.model": agent.llm_model,
            "llm.platform": agent.llm_platform,
        }
        raw = await self._tracer(
            agent.agent_type, metadata, lambda: agent_type.respond(agent, history, translated)
        )
        responses = validate_responses(raw, agent=agent)
        drafts = create_message_drafts(agent, agent_type, responses)
        log.info(
            "agent_responded",
            agent_id=agent.id,
            agent_type=agent.agent_type,
            drafts=len(drafts),
            live_message=user_message is not None,
        )
        return drafts
