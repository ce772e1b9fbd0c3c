"""
Temporal intent classification for free-text questions.

Maps a question asked during a live event ("what did I miss in the last 10
minutes?", "what happened at 2:15?", "catch me up") to a `TimeReference` that
callers use to scope transcript retrieval. Rules are tried in a fixed order and
the first match wins:

1. late-joiner / "from the beginning" requests
2. short clarification requests ("huh?", "what did she just say")
3. explicit ranges, clock times and durations
4. generic catch-up / summary requests

Everything here is pure and deterministic given `now`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel

from .duration import MIN_DURATION_SECONDS, parse_duration

RECENT_CLARIFICATION_SECONDS = 60
CATCHUP_RECENT_SECONDS = 180


class TimeReference(BaseModel):
    type: Literal["absolute", "relative", "range"]
    time: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    duration: int | None = None
    direction: Literal["first", "last"] | None = None

    @classmethod
    def relative(cls, duration: int, direction: Literal["first", "last"]) -> TimeReference:
        return cls(type="relative", duration=duration, direction=direction)

    @classmethod
    def absolute(cls, time: str) -> TimeReference:
        return cls(type="absolute", time=time)

    @classmethod
    def between(cls, start_time: str, end_time: str) -> TimeReference:
        return cls(type="range", start_time=start_time, end_time=end_time)


@dataclass(frozen=True)
class TimeQueryThresholds:
    """Scores used by the cascade. Override to tune acceptance of clock-time questions."""

    question_base_score: float = 0.3
    extraction_confidence: float = 0.5
    duration_confidence: float = 0.4
    question_starter_bonus: float = 0.2
    acceptance_threshold: float = 0.6
    recent_confidence: float = 0.8
    entire_event_confidence: float = 0.9


DEFAULT_THRESHOLDS = TimeQueryThresholds()


@dataclass(frozen=True)
class TimeQueryMatch:
    reference: TimeReference
    confidence: float
    rule: str


_WS = re.compile(r"\s+")
_PUNCT = re.compile(r"[^\w\s:?]")
_TRAILING_QMARKS = re.compile(r"\?+$")

_JUST_JOINED_PATTERNS = [
    # "what did I miss / catch me up / recap" ... "since the beginning / so far / joined"
    re.compile(
        r"\b(what\s+(all\s+)?(did\s+i\s+miss|have\s+i\s+missed|happened|was\s+(discussed|covered|said))"
        r"|catch\s+me\s+up|fill\s+me\s+in|(bring|get)\s+me\s+up\s+to\s+speed|tell\s+me\s+everything"
        r"|show\s+me\s+everything|give\s+me\s+(everything|summary)|summary|recap)\b"
        r".*\b(since\s+)?(beginning|start|started|began|top|joined|came\s+in|got\s+here|arrived|entered"
        r"|everything|so\s+far)\b",
        re.IGNORECASE,
    ),
    # same thing, arrival first: "just joined, what did I miss"
    re.compile(
        r"\b(just\s+)?(joined|came\s+in|got\s+here|arrived|entered|from\s+the\s+(beginning|start|top))\b"
        r".*\b(what\s+(did\s+i\s+miss|have\s+i\s+missed|happened)|catch\s+me\s+up|fill\s+me\s+in|summary|recap)\b",
        re.IGNORECASE,
    ),
    re.compile(r"^(tell\s+me\s+everything|show\s+me\s+everything|give\s+me\s+everything)$", re.IGNORECASE),
    re.compile(r"^from\s+everything$", re.IGNORECASE),
    re.compile(r"^from\s+the\s+beginning$", re.IGNORECASE),
]

_RECENT_PATTERNS = [
    re.compile(
        r"^(wait,?\s+)?(what(\s+was\s+that(\s+(question|statement|remark|comment|thing|part))?)?"
        r"|huh|come\s+again|pardon(\s+me)?|excuse\s+me|sorry)\??$",
        re.IGNORECASE,
    ),
    # no "I" here, "what did I miss" is a catch-up request
    re.compile(
        r"^(wait,?\s+)?what\s+did\s+(he|she|they|you|(the\s+)?speaker)\s*(just\s*)?(say|mention)\??$",
        re.IGNORECASE,
    ),
    re.compile(r"^(wait,?\s+)?what\s+did\s+i\s+just\s+miss\??$", re.IGNORECASE),
    re.compile(r"^what\s+is\s+(he|she|they)\s+talking\s+about(\s+now)?\??$", re.IGNORECASE),
    re.compile(
        r"^(sorry,?\s*)?(didn't|don't)\s+(catch|hear|get)\s+(that|it|you)(\s+(last\s+)?(part|bit|thing))?\??$",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b((can|could|would)\s+you\s+(repeat|say\s+that\s+again)|repeat\s+that|say\s+that\s+again)\b"
        r"|\bi\s+(missed|didn't\s+hear|didn't\s+catch)\s+(that|it|what\s+(he|she|they)\s+said)\b",
        re.IGNORECASE,
    ),
]

_RANGE = re.compile(
    r"\b(between|from)\s+(\d{1,2}(?::\d{2})?)\s*(?:am|pm)?\s+(and|to)\s+(\d{1,2}(?::\d{2})?)\s*(?:am|pm)?\b",
    re.IGNORECASE,
)
# the lookahead stops "from 2 to 3" being read as "from 2"
_CLOCK_TIME = re.compile(
    r"\b(at|around|during|before|after|since|from|until)\s*"
    r"(?:(\d{1,2}:\d{2})(?:\s*(?:am|pm))?|(\d{1,2})(?:\s*(?:am|pm))?)\b(?!\s*(?:to|and|-)*\s*\d)",
    re.IGNORECASE,
)
_DURATION = re.compile(
    r"\b(?:(last|past|first|for)\s+)?"
    r"(?:(\d+|a|an|one|two|three|four|five|six|seven|eight|nine|ten|fifteen|twenty|thirty|forty|fifty"
    r"|sixty|couple|few|several)\s+)?"
    r"(minute(?:s)?|hour(?:s)?|second(?:s)?|day(?:s)?|week(?:s)?|month(?:s)?|year(?:s)?|min(?:s)?"
    r"|sec(?:s)?|hr(?:s)?)(?:\s+(ago|back|earlier|before))?\b",
    re.IGNORECASE,
)
# h/m/s only count when glued to a number ("30s", "5 m")
_SHORT_DURATION = re.compile(
    r"\b(?:(last|past|first|for)\s+)?(\d+)\s*([hms])(?:\s+(ago|back|earlier|before))?\b",
    re.IGNORECASE,
)

_QUESTION_WORDS = re.compile(r"\b(what|when|can|could|tell me|did|show me|summarize|explain)\b", re.IGNORECASE)
_CONTENT_KEYWORDS = re.compile(
    r"\b(happen(ed)?|says?|said|discuss(ed)?|talk(ed)?|cover(ed)?|mention(ed)?|miss(ed)?|announce(ed)?"
    r"|note(s|d)|summary|summarize|catch\s+me\s+up|fill\s+me\s+in|(bring|get)\s+me\s+up\s+to\s+speed"
    r"|(go|went) over|present(ed)?)\b",
    re.IGNORECASE,
)
_QUESTION_STARTERS = re.compile(r"\b(what|can you|could you|tell me|recap|summarize|show me)\b", re.IGNORECASE)

_ENTIRE_EVENT_PATTERNS = [
    re.compile(
        r"\b((can|could|please|pls|plz)\s+)?(you\s+)?"
        r"(catch\s+me\s+up|fill\s+me\s+in|bring\s+me\s+up\s+to\s+speed|get\s+me\s+up\s+to\s+speed)\b"
    ),
    re.compile(r"\b(quick\s+(recap|summary)|tl\s*dr|tldr)\b"),
    re.compile(r"\b((what\s+(is|s)|whats)\s+the\s+gist(\s+of\s+(this|that))?)\b"),
]
_RECENT_CATCHUP_PATTERNS = [
    re.compile(r"\b((what\s+(is|s)|whats)\s+(happening|going\s+on|goin\s+on|up))\b"),
]

_BEEN_VERBS = [
    "discussed",
    "covered",
    "mentioned",
    "announced",
    "noted",
    "summarized",
    "recapped",
    "presented",
    "explained",
    "shown",
    "told",
    "given",
    "brought up",
    "gone over",
    "discussed about",
]

_TRANSCRIPT_REQUESTS = [
    "can you send me a transcript so far",
    "send me the transcript so far",
    "can i get the transcript so far",
    "can you send me the transcript",
    "can i get the transcript",
    "send transcript so far",
    "send transcript",
    "get transcript so far",
    "get transcript",
    "transcript so far",
    "transcript up to now",
    "transcript up to this point",
    "transcript so far please",
    "can you send transcript",
    "can you send the transcript",
    "can you send transcript so far",
    "can you send the transcript so far",
    "can i have the transcript so far",
    "can i have the transcript",
    "can i get transcript so far",
    "can i get transcript",
]

ENTIRE_TRANSCRIPT_PHRASES: tuple[str, ...] = (
    "catch me up",
    "what did i miss",
    "on what i missed",
    "what has been said",
    "what happened",
    "what was said",
    "what is this about",
    *(f"what has been {v}" for v in _BEEN_VERBS),
    "what's been said",
    *(f"what's been {v}" for v in _BEEN_VERBS),
    *_TRANSCRIPT_REQUESTS,
)

CATCHUP_PHRASES: tuple[str, ...] = (
    *ENTIRE_TRANSCRIPT_PHRASES,
    "what's happening",
    "what is happening",
    "what is going on",
    "what is up",
    "what is being talked about",
    "what is being said",
    *(f"what is being {v}" for v in _BEEN_VERBS),
    "what's going on",
    "what's up",
    "what's being talked about",
    "what's being said",
    *(f"what's being {v}" for v in _BEEN_VERBS),
)


def _phrase_key(phrase: str) -> str:
    # normalize_text turns apostrophes into spaces, so "what's" is matched as "what s"
    return _WS.sub(" ", phrase.lower().replace("'", " ")).strip()


_ENTIRE_TRANSCRIPT_KEYS = frozenset(_phrase_key(p) for p in ENTIRE_TRANSCRIPT_PHRASES)
_CATCHUP_KEYS = frozenset(_phrase_key(p) for p in CATCHUP_PHRASES)


def normalize_text(text: str) -> str:
    """Lowercase, collapse whitespace and replace punctuation other than `:` and `?` with spaces."""
    t = _WS.sub(" ", str(text or "").lower().strip())
    t = _PUNCT.sub(" ", t)
    return _WS.sub(" ", t)


def _now_for(reference: datetime | None) -> datetime:
    if reference is not None and reference.tzinfo is None:
        return datetime.now()
    return datetime.now(timezone.utc)


def duration_from_start(start: datetime, now: datetime) -> int:
    return max(MIN_DURATION_SECONDS, int((now - start).total_seconds() // 1))


def _format_clock(raw: str) -> str:
    return raw if ":" in raw else f"{raw}:00"


def _check_just_joined(
    text: str, start: datetime | None, now: datetime, thresholds: TimeQueryThresholds
) -> TimeQueryMatch | None:
    stripped = text.strip()
    if not any(p.search(stripped) for p in _JUST_JOINED_PATTERNS):
        return None
    if start is None:
        # without an event start there is no "beginning" to measure from
        return TimeQueryMatch(
            TimeReference.relative(CATCHUP_RECENT_SECONDS, "last"), thresholds.recent_confidence, "just_joined"
        )
    return TimeQueryMatch(
        TimeReference.relative(duration_from_start(start, now), "first"),
        thresholds.entire_event_confidence,
        "just_joined",
    )


def _check_recent_clarification(text: str, thresholds: TimeQueryThresholds) -> TimeQueryMatch | None:
    stripped = text.strip()
    if any(p.search(stripped) for p in _RECENT_PATTERNS):
        return TimeQueryMatch(
            TimeReference.relative(RECENT_CLARIFICATION_SECONDS, "last"),
            thresholds.recent_confidence,
            "recent_clarification",
        )
    return None


def extract_time_reference(
    normalized: str, thresholds: TimeQueryThresholds = DEFAULT_THRESHOLDS
) -> TimeQueryMatch | None:
    """Pull an explicit range, clock time or duration out of already-normalized text."""
    m = _RANGE.search(normalized)
    if m:
        return TimeQueryMatch(
            TimeReference.between(_format_clock(m.group(2)), _format_clock(m.group(4))),
            thresholds.extraction_confidence,
            "range",
        )

    m = _CLOCK_TIME.search(normalized)
    if m:
        return TimeQueryMatch(
            TimeReference.absolute(_format_clock(m.group(2) or m.group(3))),
            thresholds.extraction_confidence,
            "absolute",
        )

    m = _DURATION.search(normalized) or _SHORT_DURATION.search(normalized)
    if m:
        qualifier = (m.group(1) or "").lower()
        seconds = parse_duration(m.group(2) or "a", m.group(3))
        return TimeQueryMatch(
            TimeReference.relative(seconds, "first" if qualifier == "first" else "last"),
            thresholds.duration_confidence,
            "duration",
        )
    return None


def _accept_clock_question(
    text: str, normalized: str, extraction: TimeQueryMatch, thresholds: TimeQueryThresholds
) -> bool:
    is_question = "?" in text or bool(_QUESTION_WORDS.search(normalized))
    if not is_question or not _CONTENT_KEYWORDS.search(normalized):
        return False
    score = thresholds.question_base_score + extraction.confidence
    if _QUESTION_STARTERS.search(normalized):
        score += thresholds.question_starter_bonus
    return min(max(score, 0.0), 1.0) > thresholds.acceptance_threshold


def _check_catchup(
    normalized_text: str, start: datetime | None, now: datetime, thresholds: TimeQueryThresholds
) -> TimeQueryMatch | None:
    normalized = _TRAILING_QMARKS.sub("", normalized_text).strip()

    entire_event = any(p.search(normalized) for p in _ENTIRE_EVENT_PATTERNS)
    if entire_event and start is not None:
        return TimeQueryMatch(
            TimeReference.relative(duration_from_start(start, now), "first"),
            thresholds.entire_event_confidence,
            "catchup_entire_event",
        )
    if entire_event or any(p.search(normalized) for p in _RECENT_CATCHUP_PATTERNS):
        return TimeQueryMatch(
            TimeReference.relative(CATCHUP_RECENT_SECONDS, "last"),
            thresholds.recent_confidence,
            "catchup_recent",
        )

    candidate = _phrase_key(normalized)
    if start is not None and any(k in candidate for k in _ENTIRE_TRANSCRIPT_KEYS):
        return TimeQueryMatch(
            TimeReference.relative(duration_from_start(start, now), "first"),
            thresholds.entire_event_confidence,
            "catchup_entire_transcript",
        )
    if any(k in candidate for k in _CATCHUP_KEYS):
        return TimeQueryMatch(
            TimeReference.relative(CATCHUP_RECENT_SECONDS, "last"),
            thresholds.recent_confidence,
            "catchup_phrase",
        )
    return None


def match_time_query(
    text: str,
    reference_start_time: datetime | None,
    now: datetime | None = None,
    *,
    thresholds: TimeQueryThresholds = DEFAULT_THRESHOLDS,
) -> TimeQueryMatch | None:
    """Like `classify_time_query` but also reports the rule that fired and its confidence."""
    text = str(text or "")
    now = now or _now_for(reference_start_time)
    normalized = normalize_text(text)

    joined = _check_just_joined(text, reference_start_time, now, thresholds)
    if joined:
        return joined

    recent = _check_recent_clarification(text, thresholds)
    if recent:
        return recent

    # explicit times win over catch-up phrasing: "what happened at 2:15" is not a catch-up
    extraction = extract_time_reference(normalized, thresholds)
    if extraction is not None:
        if extraction.reference.type == "relative":
            return extraction
        if _accept_clock_question(text, normalized, extraction, thresholds):
            return extraction

    return _check_catchup(normalized, reference_start_time, now, thresholds)


def classify_time_query(
    text: str,
    reference_start_time: datetime | None,
    now: datetime | None = None,
    *,
    thresholds: TimeQueryThresholds = DEFAULT_THRESHOLDS,
) -> TimeReference | None:
    """
    Classify the time span a question is about.

    `reference_start_time` is when the event started; "catch me up" style
    questions span from it to `now`. Returns None when the text carries no
    temporal intent.
    """
    match = match_time_query(text, reference_start_time, now, thresholds=thresholds)
    return match.reference if match else None
