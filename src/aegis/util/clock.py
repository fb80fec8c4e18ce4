"""Millisecond clock used by the automod caches.

Time-dependent components take a :class:`Clock` instead of calling
``time.time()`` directly so tests can drive expiry deterministically.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current time in epoch milliseconds."""

    def now_ms(self) -> int: ...


class SystemClock:
    """Wall-clock implementation backed by :func:`time.time`."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


system_clock = SystemClock()
