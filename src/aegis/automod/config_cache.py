"""
Read-through cache of guild automod configuration.

Each guild's snapshot is served from memory for a fixed time-to-live (five
minutes by default) and then fetched again from the settings store. Writes to
the store are never pushed into the cache, so a configuration change can take
up to one TTL to reach the classifier.

Concurrent misses for the same guild share a single in-flight fetch.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from aegis.datatypes.automod_datatypes import GuildAutomodConfig
from aegis.datatypes.discord_datatypes import GuildID
from aegis.util.clock import Clock, system_clock
from aegis.util.logger import get_logger

logger = get_logger("config_cache")

DEFAULT_TTL_MS = 5 * 60 * 1000


class AutomodConfigSource(Protocol):
    """Persistent store the cache reads from."""

    async def get_automod_config(self, guild_id: GuildID) -> Optional[GuildAutomodConfig]: ...


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    config: GuildAutomodConfig
    expires_at_ms: int


class GuildConfigCache:
    """TTL cache mapping guild id to :class:`GuildAutomodConfig`.

    Args:
        source: Store queried on a miss.
        ttl_ms: How long a fetched snapshot stays valid.
        clock: Time source used for expiry.
    """

    def __init__(
        self,
        source: AutomodConfigSource,
        ttl_ms: int = DEFAULT_TTL_MS,
        clock: Clock = system_clock,
    ) -> None:
        self._source = source
        self._ttl_ms = ttl_ms
        self._clock = clock
        self._entries: Dict[GuildID, _CacheEntry] = {}
        self._inflight: Dict[GuildID, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    async def get(self, guild_id: GuildID) -> GuildAutomodConfig:
        """
        Return the guild's configuration, fetching it on a miss or after expiry.

        Guilds without a stored record get :meth:`GuildAutomodConfig.default`.
        Store errors propagate to the caller and nothing is cached.
        """
        entry = self._entries.get(guild_id)
        if entry is not None:
            if self._clock.now_ms() < entry.expires_at_ms:
                return entry.config
            del self._entries[guild_id]
            logger.debug("[CONFIG CACHE] Entry for guild %s expired", guild_id)

        task = self._inflight.get(guild_id)
        if task is None:
            self.purge_expired()
            task = asyncio.ensure_future(self._fetch(guild_id))
            self._inflight[guild_id] = task
        # shield so one cancelled waiter does not cancel the fetch for the others
        return await asyncio.shield(task)

    def purge_expired(self) -> int:
        """Drop every expired snapshot and return how many were removed."""
        now = self._clock.now_ms()
        expired = [gid for gid, entry in self._entries.items() if now >= entry.expires_at_ms]
        for gid in expired:
            del self._entries[gid]
        return len(expired)

    async def _fetch(self, guild_id: GuildID) -> GuildAutomodConfig:
        try:
            config = await self._source.get_automod_config(guild_id)
            if config is None:
                config = GuildAutomodConfig.default()
            self._entries[guild_id] = _CacheEntry(config, self._clock.now_ms() + self._ttl_ms)
            logger.debug("[CONFIG CACHE] Cached config for guild %s for %d ms", guild_id, self._ttl_ms)
            return config
        finally:
            self._inflight.pop(guild_id, None)
