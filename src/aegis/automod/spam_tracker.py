"""
Per-user message velocity tracking for spam detection.

Each (guild, user) pair has at most one :class:`SpamTrackerEntry`. A message
arriving more than ``window_ms`` after the user's previous one starts a new
burst at 1; otherwise the burst grows by one. The last-seen time is refreshed
on every message, so the window is an idle gap rather than a fixed clock
window: a user who never pauses for ``window_ms`` keeps accumulating.

When a burst reaches ``threshold`` the check reports a trip and drops the
entry, so the next message starts a fresh burst.

A background sweep removes entries idle for longer than the window, bounding
memory for users who stopped talking.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Dict, Tuple

from aegis.datatypes.automod_datatypes import SpamTrackerEntry
from aegis.datatypes.discord_datatypes import GuildID, UserID
from aegis.util.clock import Clock, system_clock
from aegis.util.logger import get_logger

logger = get_logger("spam_tracker")

SPAM_THRESHOLD = 5
SPAM_WINDOW_MS = 3000
SWEEP_INTERVAL_SECONDS = 10.0

TrackerKey = Tuple[GuildID, UserID]


class SpamRateTracker:
    """
    Burst counter keyed by (guild, user).

    Args:
        threshold: Burst size that trips the limiter.
        window_ms: Maximum gap between two messages of the same burst.
        sweep_interval: Seconds between background sweeps.
        clock: Time source used by the sweep.
    """

    def __init__(
        self,
        threshold: int = SPAM_THRESHOLD,
        window_ms: int = SPAM_WINDOW_MS,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
        clock: Clock = system_clock,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.window_ms = window_ms
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: Dict[TrackerKey, SpamTrackerEntry] = {}
        # check path and sweep both mutate _entries
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_entry(self, guild_id: GuildID, user_id: UserID) -> SpamTrackerEntry | None:
        """Return a copy of the tracked entry, or ``None``."""
        with self._lock:
            entry = self._entries.get((guild_id, user_id))
            if entry is None:
                return None
            return SpamTrackerEntry(entry.message_count, entry.last_seen_at_ms)

    def record_and_check(self, guild_id: GuildID, user_id: UserID, now_ms: int) -> bool:
        """
        Record one message and report whether it tripped the limiter.

        Returns:
            True if this message completed a burst of ``threshold`` messages.
        """
        key = (guild_id, user_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now_ms - entry.last_seen_at_ms > self.window_ms:
                entry = SpamTrackerEntry(message_count=1, last_seen_at_ms=now_ms)
            else:
                entry.message_count += 1
            entry.last_seen_at_ms = now_ms

            if entry.message_count >= self.threshold:
                self._entries.pop(key, None)
                tripped = True
            else:
                self._entries[key] = entry
                tripped = False

        if tripped:
            logger.info("[SPAM TRACKER] User %s tripped the spam limiter in guild %s", user_id, guild_id)
        return tripped

    def sweep(self, now_ms: int | None = None) -> int:
        """
        Remove entries idle for longer than the window.

        Returns:
            Number of entries evicted.
        """
        if now_ms is None:
            now_ms = self._clock.now_ms()
        with self._lock:
            stale = [key for key, entry in self._entries.items() if now_ms - entry.last_seen_at_ms > self.window_ms]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("[SPAM TRACKER] Swept %d idle entries", len(stale))
        return len(stale)

    # -------- Background sweep --------
    async def _run_sweeper(self) -> None:
        logger.info("[SPAM TRACKER] Starting idle sweep (interval=%.1fs)", self.sweep_interval)
        try:
            while True:
                await asyncio.sleep(self.sweep_interval)
                try:
                    self.sweep()
                except Exception as exc:
                    logger.error("[SPAM TRACKER] Unexpected error during sweep: %s", exc)
        except asyncio.CancelledError:
            logger.info("[SPAM TRACKER] Idle sweep cancelled")
            raise

    def start(self) -> None:
        """Start the background sweep on the running event loop."""
        if self._sweep_task and not self._sweep_task.done():
            logger.warning("[SPAM TRACKER] Sweep task already running")
            return
        self._sweep_task = asyncio.create_task(self._run_sweeper())

    @property
    def is_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def shutdown(self) -> None:
        """Stop the background sweep and forget all entries."""
        if self._sweep_task and not self._sweep_task.done():
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
        self._sweep_task = None
        with self._lock:
            self._entries.clear()
        logger.info("[SPAM TRACKER] Tracker shutdown complete")
