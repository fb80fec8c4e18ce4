"""Tests for content checks and their priority order."""

import pytest

from aegis.automod.policy_matcher import (
    DEFAULT_CHECKS,
    INVITE_PATTERN,
    PolicyMatcher,
    check_banned_words,
    check_invite_link,
    check_mass_mention,
)
from aegis.datatypes.automod_datatypes import GuildAutomodConfig, MessageEvent, ViolationKind, normalize_word
from aegis.datatypes.discord_datatypes import GuildID, UserID


def make_event(content: str = "", mentions: int = 0) -> MessageEvent:
    return MessageEvent(
        guild_id=GuildID(1),
        author_id=UserID(2),
        content=content,
        timestamp_ms=0,
        mentioned_user_ids=frozenset(UserID(1000 + i) for i in range(mentions)),
    )


@pytest.fixture
def matcher():
    return PolicyMatcher()


@pytest.mark.parametrize(
    "content",
    [
        "join discord.gg/abc12",
        "https://discord.com/invite/AbCdEf",
        "DISCORD.GG/xyz99 now",
        "see discord.com/ab",
    ],
)
def test_invite_pattern_matches(content):
    assert INVITE_PATTERN.search(content)


@pytest.mark.parametrize("content", ["discord.gg/a", "discord.org/abc12", "hello world", "discordgg/abc12"])
def test_invite_pattern_ignores_non_invites(content):
    assert INVITE_PATTERN.search(content) is None


def test_invite_check_only_when_enabled():
    event = make_event("discord.gg/abc12")
    assert check_invite_link(event, GuildAutomodConfig(block_invites=False)) is None

    decision = check_invite_link(event, GuildAutomodConfig(block_invites=True))
    assert decision.kind is ViolationKind.INVITE
    assert decision.reason == "Discord invites are not allowed here."
    assert decision.log_action == "Auto-Warn (Invite Link)"
    assert decision.log_color == "DarkOrange"


def test_mass_mention_boundary_is_strictly_greater_than():
    config = GuildAutomodConfig(mass_mention_limit=3)
    assert check_mass_mention(make_event(mentions=3), config) is None

    decision = check_mass_mention(make_event(mentions=4), config)
    assert decision.kind is ViolationKind.MENTION
    assert decision.reason == "Mass mentions are not allowed (Limit: 3)."


def test_mass_mention_disabled_by_zero_limit():
    assert check_mass_mention(make_event(mentions=50), GuildAutomodConfig(mass_mention_limit=0)) is None


def test_banned_words_match_whole_words_case_insensitively():
    config = GuildAutomodConfig.from_words(["heck"])
    decision = check_banned_words(make_event("What the HECK is this"), config)
    assert decision.kind is ViolationKind.WORD
    assert decision.word == "heck"
    assert decision.reason == 'Automatic detection of blacklisted word: "heck"'
    assert decision.log_color == "DarkRed"

    assert check_banned_words(make_event("checking heckler"), config) is None


def test_banned_words_escape_regex_characters():
    config = GuildAutomodConfig.from_words(["a.b"])
    assert check_banned_words(make_event("axb"), config) is None
    assert check_banned_words(make_event("say a.b now"), config) is not None


def test_first_banned_word_in_insertion_order_is_reported():
    config = GuildAutomodConfig.from_words(["zeta", "alpha"])
    decision = check_banned_words(make_event("alpha and zeta"), config)
    assert decision.word == "zeta"


def test_invite_takes_priority_over_banned_word(matcher):
    config = GuildAutomodConfig.from_words(["spam"], block_invites=True)
    decision = matcher.evaluate(make_event("spam discord.gg/abc12"), config)
    assert decision.kind is ViolationKind.INVITE


def test_mention_takes_priority_over_banned_word(matcher):
    config = GuildAutomodConfig.from_words(["spam"], mass_mention_limit=3)
    decision = matcher.evaluate(make_event("spam", mentions=4), config)
    assert decision.kind is ViolationKind.MENTION


def test_clean_message_yields_no_violation(matcher):
    config = GuildAutomodConfig.from_words(["spam"], block_invites=True, mass_mention_limit=3)
    decision = matcher.evaluate(make_event("hello there", mentions=2), config)
    assert decision.kind is ViolationKind.NONE
    assert not decision.is_violation


def test_checks_run_in_declared_order():
    assert DEFAULT_CHECKS == (check_invite_link, check_mass_mention, check_banned_words)

    custom = PolicyMatcher(checks=[check_banned_words, check_invite_link])
    config = GuildAutomodConfig.from_words(["spam"], block_invites=True)
    assert custom.evaluate(make_event("spam discord.gg/abc12"), config).kind is ViolationKind.WORD


def test_sharp_s_word_is_stored_and_matched_as_typed(matcher):
    assert normalize_word("  Straße ") == "straße"

    config = GuildAutomodConfig.from_words([normalize_word("Straße")])

    assert matcher.evaluate(make_event("what a STRAßE"), config).kind is ViolationKind.WORD
