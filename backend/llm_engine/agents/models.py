from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, SkipValidation

from .conversation import Conversation, Message

# Token placed on pseudonyms synthesized for agents; never valid for a real user.
FAKE_AGENT_TOKEN = "FAKE_AGENT_TOKEN"


class AgentMessageAction(IntEnum):
    OK = 0
    REJECT = 1
    CONTRIBUTE = 2


class ConversationHistorySettings(BaseModel):
    count: int | None = None
    # seconds, measured back from end_time (or now)
    time_window: int | None = None
    end_time: datetime | None = None
    channels: list[str] | None = None
    direct_messages: bool = False


class PerMessageTrigger(BaseModel):
    min_new_messages: int | None = None
    direct_messages: bool = False
    channels: list[str] | None = None
    conversation_history_settings: ConversationHistorySettings | None = None


class PeriodicTrigger(BaseModel):
    # seconds
    timer_period: int
    conversation_history_settings: ConversationHistorySettings | None = None


class Triggers(BaseModel):
    per_message: PerMessageTrigger | None = None
    periodic: PeriodicTrigger | None = None


class Pseudonym(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    pseudonym: str | None = None
    token: str = FAKE_AGENT_TOKEN
    active: bool = True
    is_deleted: bool = False


class AgentEvaluation(BaseModel):
    model_config = ConfigDict(extra="allow")

    action: AgentMessageAction
    user_contribution_visible: bool
    agent_contribution_visible: bool | None = None
    suggestion: str | None = None
    user_message: SkipValidation[Message | None] = None

    @classmethod
    def neutral(cls) -> AgentEvaluation:
        return cls(action=AgentMessageAction.OK, user_contribution_visible=True)


class AgentResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    visible: bool
    message: Any
    channels: list[str] | None = None
    pause: float | None = None
    message_type: Literal["text", "json"] | None = None


class Agent(BaseModel):
    """
    A configured automated participant attached to one conversation.

    `conversation` is the hydrated back-reference; it is never serialized and is
    kept out of patches.
    """

    model_config = ConfigDict(extra="ignore")

    agent_type: str
    id: str | None = None
    name: str | None = None
    description: str | None = None
    instance_name: str | None = None
    priority: int | None = None
    pseudonyms: list[Pseudonym] = Field(default_factory=list)

    conversation_id: str | None = None
    conversation: SkipValidation[Conversation | None] = Field(default=None, exclude=True)

    llm_templates: dict[str, str] | None = None
    llm_platform: str | None = None
    llm_platform_options: dict[str, Any] | None = None
    llm_model: str | None = None
    llm_model_options: dict[str, Any] | None = None
    triggers: Triggers | None = None
    conversation_history_settings: ConversationHistorySettings | None = None
    rag_collection_name: str | None = None
    use_transcript_rag_collection: bool | None = None
    agent_config: dict[str, Any] | None = None

    active: bool = False
    last_active_message_count: int = 0

    @property
    def pseudonym(self) -> Pseudonym | None:
        return self.pseudonyms[0] if self.pseudonyms else None

    @property
    def display_name(self) -> str | None:
        p = self.pseudonym
        return p.pseudonym if p else self.name


@dataclass
class MessageDraft:
    """A message an agent wants to send; persistence and broadcast happen elsewhere."""

    body: Any
    conversation_id: str | None
    pseudonym: str | None
    pseudonym_id: str | None
    visible: bool = True
    pause: float | None = None
    channels: list[str] | None = None
    body_type: str | None = None
    parse_output: Callable[[Any], Any] | None = None
    from_agent: bool = True
    up_votes: list[str] = field(default_factory=list)
    down_votes: list[str] = field(default_factory=list)

    def rendered_body(self) -> Any:
        """Body after the agent type's output formatter, when it has one."""
        if self.parse_output is None:
            return self.body
        return self.parse_output(self.body)
