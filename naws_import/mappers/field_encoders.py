"""
naws_import/mappers/field_encoders.py

NAWS day, time and coordinate encoders for the BMLT meeting schema.
"""

from __future__ import annotations

import math
import re

DEFAULT_START_TIME = "12:00"

DAY_TO_BMLT: dict[str, int] = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}

_NON_TIME_CHARS = re.compile(r"[^0-9:]")
_HHMM = re.compile(r"^\d{3,4}$")
_H_COLON_MM = re.compile(r"^(\d{1,2}):(\d{2})$")


def _parse_time(value: str | None) -> tuple[int, int] | None:
    """
    Return (hours, minutes) for a NAWS time cell, or None when unparsable.

    Accepts ``930``/``1930`` and ``9:30``/``19:30`` after dropping every
    character that is neither a digit nor a colon.
    """

    cleaned = _NON_TIME_CHARS.sub("", str(value or ""))

    if _HHMM.match(cleaned):
        number = int(cleaned)
        hours, minutes = divmod(number, 100)
    else:
        match = _H_COLON_MM.match(cleaned)
        if match is None:
            return None
        hours, minutes = int(match.group(1)), int(match.group(2))

    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return hours, minutes


def is_valid_time(value: str | None) -> bool:
    return _parse_time(value) is not None


def format_time_for_bmlt(value: str | None) -> str:
    """
    Encode a NAWS time cell as ``HH:MM``, falling back to noon.
    """

    parsed = _parse_time(value)
    if parsed is None:
        return DEFAULT_START_TIME
    hours, minutes = parsed
    return f"{hours:02d}:{minutes:02d}"


def is_valid_day(value: str | None) -> bool:
    return (value or "").strip().lower() in DAY_TO_BMLT


def map_day_to_bmlt(value: str | None) -> int:
    """
    Encode an English weekday name as 0 (Sunday) through 6 (Saturday).

    Unrecognized input encodes to 0.
    """

    return DAY_TO_BMLT.get((value or "").strip().lower(), 0)


def _parse_float(value: str | None) -> float | None:
    raw = (value or "").strip()
    if not raw:
        return None
    try:
        parsed = float(raw)
    except ValueError:
        return None
    if math.isnan(parsed) or math.isinf(parsed):
        return None
    return parsed


def is_valid_coordinate(value: str | None, minimum: float, maximum: float) -> bool:
    parsed = _parse_float(value)
    return parsed is not None and minimum <= parsed <= maximum


def parse_coordinate(value: str | None, default: float) -> float:
    parsed = _parse_float(value)
    return default if parsed is None else parsed
