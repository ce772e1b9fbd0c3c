from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence

from ...settings import settings as app_settings
from ..conversation import Message
from ..models import ConversationHistorySettings

ParseInput = Callable[[Message], Message]


@dataclass
class ConversationHistory:
    start: datetime | None
    end: datetime
    messages: list[Message] = field(default_factory=list)


def _now_like(reference: datetime | None) -> datetime:
    if reference is not None and reference.tzinfo is None:
        return datetime.now()
    return datetime.now(timezone.utc)


def get_conversation_history(
    messages: Sequence[Message],
    settings: ConversationHistorySettings | None = None,
    include_agents: Sequence[str] | None = None,
    direct_channels: Sequence[str] | None = None,
    parse_input: ParseInput | None = None,
    *,
    now: datetime | None = None,
) -> ConversationHistory:
    """
    Slice a conversation down to what an agent should see.

    Filters, in order: channels (the configured ones plus `direct_channels`
    when direct messages are enabled), a time window ending at `end_time` or
    now, the last `count` messages, and agent-authored messages whose
    pseudonym is not in `include_agents`.
    """
    settings = settings or ConversationHistorySettings(count=app_settings.default_history_count)
    sample = messages[0].updated_at if messages else None
    end = settings.end_time or now or _now_like(sample)
    start: datetime | None = None

    filtered = list(messages)
    use_direct = bool(direct_channels) and settings.direct_messages
    if settings.channels is not None or use_direct:
        channels = list(settings.channels or [])
        if use_direct:
            channels.extend(direct_channels or [])
        filtered = [m for m in filtered if any(c in channels for c in (m.channels or []))]

    if settings.time_window:
        start = end - timedelta(seconds=settings.time_window)
        filtered = [m for m in filtered if start <= m.updated_at <= end]
    elif settings.end_time:
        filtered = [m for m in filtered if m.updated_at <= settings.end_time]

    if settings.count:
        filtered = filtered[-settings.count :]

    if include_agents is not None:
        filtered = [m for m in filtered if not m.from_agent or m.pseudonym in include_agents]

    if start is None and filtered:
        start = filtered[0].updated_at

    if parse_input is not None:
        filtered = [parse_input(m) for m in filtered]

    return ConversationHistory(start=start, end=end, messages=filtered)
