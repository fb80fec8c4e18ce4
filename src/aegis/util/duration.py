"""
Duration parsing and formatting.

Moderators type durations as a number followed by a single unit letter
(``30s``, ``10m``, ``1h``, ``7d``). :func:`parse_duration` converts such a token
into milliseconds and returns ``None`` for anything else, leaving it to the
caller to explain the accepted format.
"""

from __future__ import annotations

import re
from typing import Optional

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR

# Discord refuses communication timeouts longer than 28 days
MAX_TIMEOUT_MS = 28 * MS_PER_DAY

UNIT_MULTIPLIERS = {
    "s": MS_PER_SECOND,
    "m": MS_PER_MINUTE,
    "h": MS_PER_HOUR,
    "d": MS_PER_DAY,
}

DURATION_PATTERN = re.compile(r"^(\d+)([smhd])$")

DURATION_HELP = (
    "Use `s` for seconds, `m` for minutes, `h` for hours, or `d` for days "
    "(e.g., `10m`, `1h`, `7d`)."
)


def parse_duration(duration_str: str) -> Optional[int]:
    """
    Parse a duration token like ``"10m"`` into milliseconds.

    Args:
        duration_str: Token made of digits and one unit letter (s, m, h, d).
            Matching is case-insensitive and ignores surrounding whitespace.

    Returns:
        The duration in milliseconds, or ``None`` when the token is malformed
        or describes a zero-length duration.

    Example:
        >>> parse_duration("1h")
        3600000
        >>> parse_duration("10x") is None
        True
    """
    if not isinstance(duration_str, str):
        return None

    match = DURATION_PATTERN.match(duration_str.strip().lower())
    if not match:
        return None

    value = int(match.group(1))
    if value == 0:
        return None
    return value * UNIT_MULTIPLIERS[match.group(2)]


def format_duration(duration_ms: int) -> str:
    """Render milliseconds as the largest whole unit, e.g. ``300000 -> "5 minutes"``."""
    for size, label in (
        (MS_PER_DAY, "day"),
        (MS_PER_HOUR, "hour"),
        (MS_PER_MINUTE, "minute"),
        (MS_PER_SECOND, "second"),
    ):
        if duration_ms >= size and duration_ms % size == 0:
            count = duration_ms // size
            return f"{count} {label}{'s' if count != 1 else ''}"
    seconds = duration_ms / MS_PER_SECOND
    return f"{seconds:g} seconds"
