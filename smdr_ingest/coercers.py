"""Conversion of raw SMDR columns into nullable typed values.

Every coercer here is total: text that does not convert comes back as
``None`` and is stored as NULL, it never raises to the caller.
"""
import re
from datetime import datetime, timedelta
from typing import Optional

TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_INTEGER = re.compile(r"[+-]?[0-9]+")
_TIMESTAMP = re.compile(r"[0-9]{4}/[0-9]{2}/[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}")

TRUE_LITERALS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
FALSE_LITERALS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def coerce_text(value: str) -> Optional[str]:
    if value == "":
        return None
    return value


def coerce_int(value: str) -> Optional[int]:
    if not _INTEGER.fullmatch(value):
        return None
    number = int(value)
    if number < INT64_MIN or number > INT64_MAX:
        return None
    return number


def coerce_bool(value: str) -> Optional[bool]:
    if value in TRUE_LITERALS:
        return True
    if value in FALSE_LITERALS:
        return False
    return None


def coerce_timestamp(value: str) -> Optional[datetime]:
    """Parse ``YYYY/MM/DD HH:MM:SS`` into a naive datetime."""
    if not _TIMESTAMP.fullmatch(value):
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return None


def coerce_duration(value: str) -> Optional[timedelta]:
    """Parse ``H:M:S`` into elapsed time.

    Each segment follows the integer rules, so ``"90:00:00"`` is a valid
    ninety hours. Days and months are never split out.
    """
    segments = value.split(":")
    if len(segments) != 3:
        return None
    hours, minutes, seconds = (coerce_int(segment) for segment in segments)
    if hours is None or minutes is None or seconds is None:
        return None
    microseconds = (hours * 3600 + minutes * 60 + seconds) * 1_000_000
    try:
        return timedelta(microseconds=microseconds)
    except OverflowError:
        return None
