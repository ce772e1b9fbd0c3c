from __future__ import annotations

from typing import Callable, Sequence

from ...errors import AgentConfigurationError
from ...observability.logging import get_logger
from ..conversation import Conversation, Message
from ..models import Agent, ConversationHistorySettings
from .history import ConversationHistory, ParseInput, get_conversation_history

log = get_logger("context_assembler")

HistoryProvider = Callable[
    [
        Sequence[Message],
        ConversationHistorySettings | None,
        Sequence[str] | None,
        Sequence[str] | None,
        ParseInput | None,
    ],
    ConversationHistory,
]


def history_settings_for(agent: Agent, user_message: Message | None) -> ConversationHistorySettings | None:
    """Per-message settings for a live message, periodic settings for a tick, else the agent's own."""
    triggers = agent.triggers
    if user_message is not None:
        trigger_settings = triggers.per_message.conversation_history_settings if triggers and triggers.per_message else None
    else:
        trigger_settings = triggers.periodic.conversation_history_settings if triggers and triggers.periodic else None
    return trigger_settings or agent.conversation_history_settings


def direct_channels_between(conversation: Conversation, agent: Agent, user_message: Message | None) -> list[str]:
    """Names of direct channels carrying `user_message` that both its sender and the agent belong to."""
    if user_message is None:
        return []
    names = set(user_message.channels or [])
    return [
        c.name
        for c in conversation.channels
        if c.name in names
        and c.direct
        and c.has_participant(user_message.owner)
        and c.has_participant(agent.id)
    ]


class ContextAssembler:
    def __init__(self, history_provider: HistoryProvider = get_conversation_history) -> None:
        self._history_provider = history_provider

    def assemble(
        self,
        agent: Agent,
        user_message: Message | None,
        parse_input: ParseInput | None = None,
    ) -> ConversationHistory | None:
        """
        Build the history slice the agent's respond hook sees.

        Returns None when the agent has no history settings at all.
        """
        conversation = agent.conversation
        if conversation is None:
            raise AgentConfigurationError(
                message=f"Conversation must be loaded for agent {agent.id}",
                agent_type=agent.agent_type,
                agent_id=agent.id,
            )

        settings = history_settings_for(agent, user_message)
        if settings is None:
            return None

        direct_channels = direct_channels_between(conversation, agent, user_message)
        messages = conversation.messages
        # the live message is already the last one in the conversation
        if user_message is not None and messages:
            messages = messages[:-1]

        history = self._history_provider(
            messages,
            settings,
            [n for n in (agent.name, agent.display_name) if n],
            direct_channels,
            parse_input,
        )
        log.debug(
            "conversation_history_assembled",
            agent_id=agent.id,
            agent_type=agent.agent_type,
            messages=len(history.messages),
            direct_channels=direct_channels or None,
        )
        return history
