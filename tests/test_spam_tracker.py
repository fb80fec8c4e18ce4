"""Tests for the per-user spam limiter and its idle sweep."""

import asyncio

import pytest

from aegis.automod.spam_tracker import SPAM_THRESHOLD, SPAM_WINDOW_MS, SpamRateTracker
from aegis.datatypes.discord_datatypes import GuildID, UserID

GUILD = GuildID(1)
OTHER_GUILD = GuildID(2)
USER = UserID(100)
OTHER_USER = UserID(200)


@pytest.fixture
def tracker(fake_clock):
    return SpamRateTracker(clock=fake_clock)


def send_burst(tracker, count, start_ms, gap_ms=500, guild=GUILD, user=USER):
    results = []
    now = start_ms
    for _ in range(count):
        results.append(tracker.record_and_check(guild, user, now))
        now += gap_ms
    return results


def test_defaults_match_five_messages_in_three_seconds():
    assert SPAM_THRESHOLD == 5
    assert SPAM_WINDOW_MS == 3000


def test_fifth_message_in_burst_trips(tracker):
    results = send_burst(tracker, 5, start_ms=0)
    assert results == [False, False, False, False, True]


def test_trip_resets_state_to_fresh_burst(tracker):
    send_burst(tracker, 5, start_ms=0)
    assert tracker.get_entry(GUILD, USER) is None

    # the next four messages form a new burst and do not trip
    results = send_burst(tracker, 4, start_ms=2500)
    assert results == [False, False, False, False]
    assert tracker.get_entry(GUILD, USER).message_count == 4

    assert tracker.record_and_check(GUILD, USER, 4500) is True


def test_trailing_window_extends_with_each_message(tracker):
    # every gap is within the window, the whole burst spans 11.6 s
    results = send_burst(tracker, 5, start_ms=0, gap_ms=2900)
    assert results[-1] is True


def test_idle_gap_starts_fresh_count(tracker):
    send_burst(tracker, 4, start_ms=0)
    entry = tracker.get_entry(GUILD, USER)
    assert entry.message_count == 4

    # strictly more than the window later
    assert tracker.record_and_check(GUILD, USER, entry.last_seen_at_ms + SPAM_WINDOW_MS + 1) is False
    assert tracker.get_entry(GUILD, USER).message_count == 1


def test_gap_equal_to_window_still_counts(tracker):
    tracker.record_and_check(GUILD, USER, 0)
    tracker.record_and_check(GUILD, USER, SPAM_WINDOW_MS)
    assert tracker.get_entry(GUILD, USER).message_count == 2


def test_counts_are_per_guild_and_per_user(tracker):
    send_burst(tracker, 4, start_ms=0)
    assert tracker.record_and_check(GUILD, OTHER_USER, 2000) is False
    assert tracker.record_and_check(OTHER_GUILD, USER, 2000) is False
    assert tracker.get_entry(GUILD, OTHER_USER).message_count == 1
    assert tracker.get_entry(OTHER_GUILD, USER).message_count == 1
    assert tracker.get_entry(GUILD, USER).message_count == 4


def test_sweep_never_evicts_active_entries(tracker):
    tracker.record_and_check(GUILD, USER, 10_000)
    tracker.record_and_check(GUILD, OTHER_USER, 6_000)

    evicted = tracker.sweep(now_ms=10_000 + SPAM_WINDOW_MS)
    assert evicted == 1
    assert tracker.get_entry(GUILD, USER) is not None
    assert tracker.get_entry(GUILD, OTHER_USER) is None


def test_sweep_uses_injected_clock(tracker, fake_clock):
    tracker.record_and_check(GUILD, USER, fake_clock.now_ms())
    fake_clock.advance(SPAM_WINDOW_MS)
    assert tracker.sweep() == 0
    fake_clock.advance(1)
    assert tracker.sweep() == 1
    assert len(tracker) == 0


def test_rejects_non_positive_threshold():
    with pytest.raises(ValueError):
        SpamRateTracker(threshold=0)


@pytest.mark.asyncio
async def test_background_sweep_runs_and_stops(fake_clock):
    tracker = SpamRateTracker(sweep_interval=0.01, clock=fake_clock)
    tracker.record_and_check(GUILD, USER, fake_clock.now_ms())
    fake_clock.advance(SPAM_WINDOW_MS + 1)

    tracker.start()
    assert tracker.is_running
    for _ in range(50):
        if len(tracker) == 0:
            break
        await asyncio.sleep(0.01)
    assert len(tracker) == 0

    await tracker.shutdown()
    assert not tracker.is_running
