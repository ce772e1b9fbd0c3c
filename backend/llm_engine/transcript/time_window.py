"""
Turn a classified time question into a concrete slice of the event transcript.

Clock times in questions ("what happened at 2:15") carry no date or am/pm;
they are placed on the event's start date and read as afternoon when the
event started in the afternoon.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from ..agents.conversation import Conversation, Message
from ..errors import UnsupportedTimeReference
from ..observability.logging import get_logger
from ..settings import settings
from ..utils.duration import parse_duration
from ..utils.time_query import TimeReference, classify_time_query

log = get_logger("transcript_time_window")

# half-width of the window around an absolute clock time
ABSOLUTE_TIME_TOLERANCE_SECONDS = 150

_RETENTION = re.compile(r"^(\w+)\s+(\w+)$")


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    @property
    def seconds(self) -> float:
        return (self.end - self.start).total_seconds()

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def clock_time_on(time_string: str, event_start: datetime) -> datetime:
    """Place "H[:MM[:SS]]" on the event's date, inferring pm from the event start."""
    try:
        parts = [int(p) for p in str(time_string).split(":")]
    except ValueError as e:
        raise UnsupportedTimeReference(message=f"Invalid clock time {time_string!r}") from e
    if not parts or len(parts) > 3:
        raise UnsupportedTimeReference(message=f"Invalid clock time {time_string!r}")
    hour, minute, second = (parts + [0, 0])[:3]

    if 1 <= hour <= 12 and event_start.hour >= 12 and hour != 12:
        hour += 12
    try:
        return event_start.replace(hour=hour, minute=minute, second=second, microsecond=0)
    except ValueError as e:
        raise UnsupportedTimeReference(message=f"Invalid clock time {time_string!r}") from e


def build_time_window(
    reference: TimeReference,
    event_start: datetime,
    end_time: datetime | None = None,
    *,
    now: datetime | None = None,
) -> TimeWindow:
    if reference.type == "relative":
        span = timedelta(seconds=int(reference.duration or 0))
        if reference.direction == "first":
            end = event_start + span
        else:
            end = end_time or now or datetime.now(event_start.tzinfo or timezone.utc)
        return TimeWindow(start=end - span, end=end)

    if reference.type == "absolute":
        if not reference.time:
            raise UnsupportedTimeReference(message="Absolute time reference without a time")
        at = clock_time_on(reference.time, event_start)
        tolerance = timedelta(seconds=ABSOLUTE_TIME_TOLERANCE_SECONDS)
        return TimeWindow(start=at - tolerance, end=at + tolerance)

    if reference.type == "range":
        if not reference.start_time or not reference.end_time:
            raise UnsupportedTimeReference(message="Range time reference without bounds")
        return TimeWindow(
            start=clock_time_on(reference.start_time, event_start),
            end=clock_time_on(reference.end_time, event_start),
        )

    raise UnsupportedTimeReference(message=f"Unsupported time query type {reference.type}")


def select_transcript_messages(
    conversation: Conversation, window: TimeWindow, channel: str | None = None
) -> list[Message]:
    name = channel or settings.transcript_channel
    return [
        m for m in conversation.messages if window.contains(m.created_at) and name in (m.channels or [])
    ]


def transcript_for_question(
    conversation: Conversation,
    question: str,
    end_time: datetime | None = None,
    *,
    now: datetime | None = None,
) -> list[Message] | None:
    """
    Transcript messages a time-scoped question refers to.

    None when the question has no time scope (callers fall back to semantic
    retrieval) or its time cannot be placed on the event.
    """
    if conversation.start_time is None:
        return None
    reference = classify_time_query(question, conversation.start_time, end_time or now)
    if reference is None:
        return None
    try:
        window = build_time_window(reference, conversation.start_time, end_time, now=now)
    except UnsupportedTimeReference as e:
        log.warning("transcript_time_window_failed", conversation_id=conversation.id, error=str(e))
        return None
    messages = select_transcript_messages(conversation, window)
    log.debug(
        "transcript_time_window",
        conversation_id=conversation.id,
        reference=reference.model_dump(exclude_none=True),
        messages=len(messages),
    )
    return messages


def parse_retention_period(text: str | None = None) -> timedelta:
    """Parse "<amount> <unit>" such as "3 months" into a timedelta."""
    raw = str(text if text is not None else settings.transcript_retention_period).strip()
    m = _RETENTION.match(raw)
    if not m:
        raise ValueError(f"Invalid retention period {raw!r}, expected '<amount> <unit>'")
    return timedelta(seconds=parse_duration(m.group(1), m.group(2)))
