#!/usr/bin/env python3
"""
File: time_parser.py
Author: Bastian Cerf
Date: 06/10/2025
Description:
    Parsing, normalization and validation of the "HH:MM" times typed by
    the user or received from the backend.

    A time of day is represented internally as a number of minutes
    since midnight (0 to 1439). Users are allowed to type shortcuts:
    - "HHMM" (4 digits), e.g. "0815" -> "08:15"
    - "H" or "HH" (hour only, 1 to 23), e.g. "8" -> "08:00"
    - "H:MM" or "HH:MM", e.g. "8:15" -> "08:15"
    Any other input, or out of range values, are left untouched so that
    the validation step can reject them.

Company: Mecacerf SA
Website: http://mecacerf.ch
Contact: info@mecacerf.ch
"""

# Standard libraries
import re
from typing import Optional

__all__ = [
    "TimeValidationError",
    "MINUTES_PER_DAY",
    "DEFAULT_CUTOFF",
    "normalize_time",
    "is_valid_time_or_empty",
    "validate_time",
    "parse_time_to_minutes",
    "parse_cutoff_to_minutes",
    "minutes_to_hhmm",
    "format_hours",
]

MINUTES_PER_DAY = 24 * 60

# Afternoon cutoff used when the backend doesn't provide a usable one
DEFAULT_CUTOFF = "17:00"

_FOUR_DIGITS = re.compile(r"^\d{4}$")
_HOUR_ONLY = re.compile(r"^\d{1,2}$")
_WITH_COLON = re.compile(r"^(\d{1,2}):(\d{2})$")
# Strict 24-hour form, after normalization
_CANONICAL = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
# Lenient form accepted when reading values (backend or stored)
_LENIENT = re.compile(r"^([0-1]?\d|2[0-3]):([0-5]\d)$")


class TimeValidationError(ValueError):
    """Malformed time text. Raised before any write is attempted."""

    def __init__(self, value: str):
        super().__init__(f"'{value}' is not a valid HH:MM time.")
        self.value = value


def _hhmm(hours: int, minutes: int) -> str:
    return f"{hours:02d}:{minutes:02d}"


def normalize_time(raw: str) -> str:
    """
    Normalize a user typed time to the canonical "HH:MM" form.

    Args:
        raw (str): Raw text.

    Returns:
        str: The canonical form, an empty string for blank input or the
            trimmed input if not recognized.
    """
    value = raw.strip()
    if not value:
        return ""

    if _FOUR_DIGITS.match(value):
        hours, minutes = int(value[:2]), int(value[2:])
        if 0 <= hours <= 23 and 0 <= minutes <= 59:
            return _hhmm(hours, minutes)
        return value

    match = _WITH_COLON.match(value)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if 0 <= hours <= 23 and 0 <= minutes <= 59:
            return _hhmm(hours, minutes)
        return value

    # Midnight is not accepted as an hour-only shortcut
    if _HOUR_ONLY.match(value) and 1 <= int(value) <= 23:
        return _hhmm(int(value), 0)

    return value


def is_valid_time_or_empty(value: str) -> bool:
    """
    Tell whether the given text is acceptable for an arrival or
    departure field. Empty means "unset" and is valid.
    """
    normalized = normalize_time(value)
    return not normalized or _CANONICAL.match(normalized) is not None


def validate_time(raw: str) -> str:
    """
    Normalize and validate a user typed time.

    Returns:
        str: Canonical "HH:MM" value or an empty string for "unset".

    Raises:
        TimeValidationError: The text is not a valid time.
    """
    normalized = normalize_time(raw)
    if normalized and not _CANONICAL.match(normalized):
        raise TimeValidationError(raw)
    return normalized


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    """
    Convert a "H:MM" or "HH:MM" time to minutes since midnight.

    Returns:
        Optional[int]: Minutes since midnight, `None` if the value is
            missing or malformed.
    """
    if value is None or not value.strip():
        return None

    match = _LENIENT.match(value.strip())
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def parse_cutoff_to_minutes(
    value: Optional[str], fallback: str = DEFAULT_CUTOFF
) -> int:
    """
    Parse the afternoon cutoff time, falling back to a default when the
    given value is unusable.
    """
    minutes = parse_time_to_minutes(value)
    if minutes is not None:
        return minutes

    minutes = parse_time_to_minutes(fallback)
    return minutes if minutes is not None else 17 * 60


def minutes_to_hhmm(minutes: int) -> str:
    """
    Format minutes since midnight as "HH:MM".
    """
    return _hhmm(minutes // 60, minutes % 60)


def format_hours(minutes: int) -> str:
    """
    Format a duration in minutes as decimal hours with one digit,
    e.g. 480 -> "8.0".
    """
    return f"{minutes / 60:.1f}"
