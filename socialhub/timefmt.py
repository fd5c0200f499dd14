"""Time formatting and small parsing helpers used across the service."""

from __future__ import annotations

import random
import re
import time

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
_DATE_FORMAT = "%Y%m%d"
_INT_SEPARATOR = re.compile(r"[ \t]*\|[ \t]*")


def format_log_time() -> str:
    """Return the current local time as ``YYYY-MM-DD HH:MM:SS``."""
    return time.strftime(_TIME_FORMAT, time.localtime())


def format_custom_time(timestamp: int) -> str:
    """Format a Unix timestamp in local time; an unrepresentable one gives ``""``."""
    try:
        return time.strftime(_TIME_FORMAT, time.localtime(timestamp))
    except (OverflowError, OSError, ValueError):
        return ""


def parse_time_tick(text: str) -> int:
    """Parse ``YYYY-MM-DD HH:MM:SS`` local time into a Unix timestamp.

    Empty or unparsable text gives 0. Daylight saving is taken as not in effect.
    """
    if not text:
        return 0
    try:
        parsed = time.strptime(text, _TIME_FORMAT)
    except ValueError:
        return 0
    try:
        return int(time.mktime(tuple(parsed[:8]) + (0,)))
    except (OverflowError, ValueError):
        return 0


def date_number(timestamp: int) -> int:
    """Return the local date of ``timestamp`` as an integer ``YYYYMMDD`` (0 on failure)."""
    try:
        return int(time.strftime(_DATE_FORMAT, time.localtime(timestamp)))
    except (OverflowError, OSError, ValueError):
        return 0


def split_ints(text: str) -> list[int]:
    """Split ``"1 | 2|3"`` style text into integers, skipping empty parts."""
    return [int(part) for part in _INT_SEPARATOR.split(text.strip()) if part]


def random_between(maximum: int, minimum: int) -> int:
    """Return a random integer in ``[minimum, maximum]``."""
    if maximum < minimum:
        raise ValueError(f"empty range: minimum {minimum} exceeds maximum {maximum}")
    return random.randint(minimum, maximum)