"""
Hydrated conversation state as the agent core reads it.

These are plain dataclasses: the surrounding application loads them from its
own store and hands them to the core; the core never persists them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Channel:
    name: str
    direct: bool = False
    # user and agent ids
    participants: list[str] = field(default_factory=list)
    id: str = field(default_factory=_new_id)

    def has_participant(self, participant_id: str | None) -> bool:
        return bool(participant_id) and participant_id in self.participants


@dataclass
class Message:
    body: Any
    owner: str | None = None
    pseudonym: str | None = None
    pseudonym_id: str | None = None
    from_agent: bool = False
    channels: list[str] | None = None
    body_type: str = "text"
    visible: bool = True
    conversation_id: str | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at


@dataclass
class Conversation:
    id: str = field(default_factory=_new_id)
    name: str = ""
    messages: list[Message] = field(default_factory=list)
    channels: list[Channel] = field(default_factory=list)
    start_time: datetime | None = None
    enable_agents: bool = True

    def channel(self, name: str) -> Channel | None:
        for c in self.channels:
            if c.name == name:
                return c
        return None
