from __future__ import annotations

from datetime import datetime, timezone
from math import floor

_UNITS: tuple[tuple[str, float], ...] = (
    ("year", 60 * 60 * 24 * 365),
    ("month", 60 * 60 * 24 * 30),
    ("week", 60 * 60 * 24 * 7),
    ("day", 60 * 60 * 24),
    ("hour", 60 * 60),
    ("minute", 60),
    ("second", 1),
)

_NAMED = {
    ("year", -1): "last year",
    ("year", 1): "next year",
    ("month", -1): "last month",
    ("month", 1): "next month",
    ("week", -1): "last week",
    ("week", 1): "next week",
    ("day", -1): "yesterday",
    ("day", 1): "tomorrow",
}


def _round_half_up(x: float) -> int:
    # half-up, round() would turn 2.5 minutes into 2
    return int(floor(x + 0.5))


def time_diff_human(target: datetime, base: datetime | None = None) -> str:
    """Describe `target` relative to `base` ("in 5 minutes", "3 hours ago", "yesterday")."""
    base = base or datetime.now(timezone.utc)
    diff = (target - base).total_seconds()
    for unit, seconds in _UNITS:
        amount = _round_half_up(diff / seconds)
        if abs(amount) >= 1:
            named = _NAMED.get((unit, amount))
            if named:
                return named
            label = unit if abs(amount) == 1 else f"{unit}s"
            if amount > 0:
                return f"in {amount} {label}"
            return f"{abs(amount)} {label} ago"
    return "just now"
