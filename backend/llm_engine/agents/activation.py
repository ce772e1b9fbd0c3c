"""
Decides whether an agent reacts to a message or a periodic tick.

Duplicate work is prevented by a persisted watermark: the number of messages
(not written by the agent) the agent last evaluated. Nothing here locks, so two
concurrent evaluations of the same agent can both run.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, Callable

from ..errors import AgentConfigurationError
from ..observability.logging import get_logger
from ..repositories.base_repository import AgentRepository
from .contracts import validate_evaluation
from .conversation import Conversation, Message
from .models import Agent, AgentEvaluation, AgentMessageAction
from .registry import AgentTypeRegistry

log = get_logger("agent_activation")

# (agent, message, message_count) -> admit?
MessagePreFilter = Callable[[Agent, Message, int], bool | Awaitable[bool]]


def is_own_message(agent: Agent, message: Message) -> bool:
    if agent.id and message.owner == agent.id:
        return True
    return bool(message.from_agent) and message.pseudonym is not None and message.pseudonym == agent.display_name


def count_messages(agent: Agent, conversation: Conversation, user_message: Message | None) -> int:
    """Messages not written by this agent, plus the live message if there is one."""
    count = sum(0 if is_own_message(agent, m) else 1 for m in conversation.messages)
    return count + (1 if user_message is not None else 0)


def admits_message(agent: Agent, conversation: Conversation, user_message: Message, message_count: int) -> bool:
    """Whether a live message may reach this agent's evaluate hook."""
    if user_message.pseudonym is not None and user_message.pseudonym in (agent.name, agent.display_name):
        return False
    if is_own_message(agent, user_message):
        return False
    # other agents' messages are not evaluated
    if user_message.from_agent:
        return False

    per_message = agent.triggers.per_message if agent.triggers else None
    if per_message is None:
        return False

    message_channels = user_message.channels or []
    if message_channels:
        trigger_channels = set(per_message.channels or [])
        on_trigger_channel = any(name in trigger_channels for name in message_channels)
        on_direct_channel = False
        if per_message.direct_messages:
            for name in message_channels:
                channel = conversation.channel(name)
                if channel is not None and channel.direct and channel.has_participant(agent.id):
                    on_direct_channel = True
                    break
        if not on_trigger_channel and not on_direct_channel:
            return False

    if (
        per_message.min_new_messages
        and message_count - agent.last_active_message_count < per_message.min_new_messages
    ):
        log.debug(
            "agent_not_enough_new_messages",
            agent_id=agent.id,
            new_messages=message_count - agent.last_active_message_count,
            min_new_messages=per_message.min_new_messages,
        )
        return False
    return True


class ActivationGate:
    def __init__(
        self,
        registry: AgentTypeRegistry,
        repository: AgentRepository,
        *,
        pre_filter: MessagePreFilter | None = None,
    ) -> None:
        self._registry = registry
        self._repository = repository
        self._pre_filter = pre_filter

    async def _pre_filter_admits(self, agent: Agent, message: Message, message_count: int) -> bool:
        if self._pre_filter is None:
            return True
        verdict = self._pre_filter(agent, message, message_count)
        if inspect.isawaitable(verdict):
            verdict = await verdict
        return bool(verdict)

    async def evaluate(self, agent: Agent, user_message: Message | None = None) -> AgentEvaluation | None:
        """
        Evaluate a live message (or a periodic tick when `user_message` is None).

        Returns None for an inactive agent and the neutral OK evaluation when
        there is nothing new or the message is not for this agent.
        """
        if not agent.active:
            return None

        conversation = agent.conversation
        if conversation is None:
            raise AgentConfigurationError(
                message=f"Missing conversation for agent {agent.id}",
                agent_type=agent.agent_type,
                agent_id=agent.id,
            )
        agent_type = self._registry.require(agent.agent_type)

        message_count = count_messages(agent, conversation, user_message)
        if message_count == agent.last_active_message_count:
            log.debug("agent_no_new_messages", agent_id=agent.id, agent_type=agent.agent_type)
            return AgentEvaluation.neutral()

        translated: Message | None = None
        if user_message is not None:
            if not admits_message(agent, conversation, user_message, message_count):
                return AgentEvaluation.neutral()
            if not await self._pre_filter_admits(agent, user_message, message_count):
                return AgentEvaluation.neutral()
            translated = agent_type.parse_input(user_message) if agent_type.parse_input else user_message

        evaluation = validate_evaluation(await agent_type.evaluate(agent, translated), agent=agent)

        if evaluation.action != AgentMessageAction.REJECT and message_count > agent.last_active_message_count:
            if agent.id:
                await self._repository.set_last_active_message_count(agent.id, message_count)
            agent.last_active_message_count = message_count

        log.info(
            "agent_evaluated",
            agent_id=agent.id,
            agent_type=agent.agent_type,
            conversation_id=conversation.id,
            action=evaluation.action.name,
            message_count=message_count,
        )
        return evaluation
