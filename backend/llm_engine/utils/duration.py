from __future__ import annotations

MIN_DURATION_SECONDS = 30

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR

AMOUNT_WORDS: dict[str, int] = {
    "few": 3,
    "couple": 2,
    "several": 5,
    "a": 1,
    "an": 1,
    "zero": 0,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "thirteen": 13,
    "fourteen": 14,
    "fifteen": 15,
    "sixteen": 16,
    "seventeen": 17,
    "eighteen": 18,
    "nineteen": 19,
    "twenty": 20,
    "thirty": 30,
    "forty": 40,
    "fifty": 50,
    "sixty": 60,
    "seventy": 70,
    "eighty": 80,
    "ninety": 90,
}


def _amount(raw: str) -> int:
    word = str(raw or "").strip().lower()
    if AMOUNT_WORDS.get(word):
        return AMOUNT_WORDS[word]
    try:
        return int(word)
    except ValueError:
        return 0


def _unit_seconds(raw: str) -> int:
    unit = str(raw or "").strip().lower()
    if unit.startswith("hour") or unit in ("h", "hr", "hrs"):
        return _HOUR
    if unit.startswith("min") or unit == "m":
        return _MINUTE
    if unit.startswith("day"):
        return _DAY
    if unit.startswith("week"):
        return 7 * _DAY
    # month and year are approximations (30 and 365 days)
    if unit.startswith("month"):
        return 30 * _DAY
    if unit.startswith("year"):
        return 365 * _DAY
    # "sec", "s" and anything unrecognised count as seconds
    return 1


def parse_duration(amount: str, unit: str) -> int:
    """
    Convert a spoken amount + unit ("couple", "mins") to whole seconds.

    Never returns less than `MIN_DURATION_SECONDS`.
    """
    return max(MIN_DURATION_SECONDS, _amount(amount) * _unit_seconds(unit))
