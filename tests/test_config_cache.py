"""Tests for the TTL cache in front of the guild settings store."""

import asyncio

import pytest

from aegis.automod.config_cache import DEFAULT_TTL_MS, GuildConfigCache
from aegis.datatypes.automod_datatypes import GuildAutomodConfig
from aegis.datatypes.discord_datatypes import GuildID

MINUTE_MS = 60 * 1000
GUILD = GuildID(10)


class FakeSource:
    """In-memory stand-in for the settings store."""

    def __init__(self) -> None:
        self.configs: dict = {}
        self.calls = 0
        self.delay = 0.0
        self.error: Exception | None = None

    async def get_automod_config(self, guild_id):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.configs.get(guild_id)


@pytest.fixture
def source():
    return FakeSource()


@pytest.fixture
def cache(source, fake_clock):
    return GuildConfigCache(source, clock=fake_clock)


def test_default_ttl_is_five_minutes():
    assert DEFAULT_TTL_MS == 5 * MINUTE_MS


@pytest.mark.asyncio
async def test_missing_record_yields_default_config(cache, source):
    config = await cache.get(GUILD)
    assert config == GuildAutomodConfig.default()
    assert config.block_invites is False
    assert config.mass_mention_limit == 0
    assert config.banned_words == ()
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_changes_are_invisible_until_ttl_elapses(cache, source, fake_clock):
    source.configs[GUILD] = GuildAutomodConfig.from_words(["old"])
    assert (await cache.get(GUILD)).banned_words == ("old",)

    # written after the entry was populated
    source.configs[GUILD] = GuildAutomodConfig.from_words(["new"], block_invites=True)

    fake_clock.advance(4 * MINUTE_MS)
    stale = await cache.get(GUILD)
    assert stale.banned_words == ("old",)
    assert stale.block_invites is False

    fake_clock.advance(2 * MINUTE_MS)
    fresh = await cache.get(GUILD)
    assert fresh.banned_words == ("new",)
    assert fresh.block_invites is True
    assert source.calls == 2


@pytest.mark.asyncio
async def test_hits_do_not_query_the_source(cache, source, fake_clock):
    await cache.get(GUILD)
    fake_clock.advance(MINUTE_MS)
    await cache.get(GUILD)
    await cache.get(GUILD)
    assert source.calls == 1


@pytest.mark.asyncio
async def test_store_errors_propagate_and_are_not_cached(cache, source):
    source.error = RuntimeError("db down")
    with pytest.raises(RuntimeError):
        await cache.get(GUILD)
    assert len(cache) == 0

    source.error = None
    assert await cache.get(GUILD) == GuildAutomodConfig.default()
    assert source.calls == 2


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_fetch(cache, source):
    source.delay = 0.01
    source.configs[GUILD] = GuildAutomodConfig.from_words(["spam"])

    results = await asyncio.gather(*(cache.get(GUILD) for _ in range(5)))

    assert source.calls == 1
    assert all(result.banned_words == ("spam",) for result in results)


@pytest.mark.asyncio
async def test_purge_expired_drops_only_expired_entries(cache, fake_clock):
    await cache.get(GuildID(1))
    fake_clock.advance(3 * MINUTE_MS)
    await cache.get(GuildID(2))
    fake_clock.advance(3 * MINUTE_MS)

    assert cache.purge_expired() == 1
    assert len(cache) == 1
