"""Tests for moderation-log embeds and delivery."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from aegis.datatypes.action_datatypes import CaseKind, ModerationCaseRecord
from aegis.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from aegis.moderation.mod_log import ModLogNotifier, build_mod_log_embed, resolve_color


def make_record(duration_ms=None):
    return ModerationCaseRecord(
        guild_id=GuildID(1),
        kind=CaseKind.AUTO_WARN,
        target_id=UserID(42),
        target_tag="target#0001",
        moderator_id=UserID(999),
        moderator_tag="Aegis#0001",
        reason="Discord invites are not allowed here.",
        duration_ms=duration_ms,
        case_id=7,
    )


class FakeSettings:
    def __init__(self, channel_id=None) -> None:
        self.channel_id = channel_id

    async def get_log_channel(self, guild_id):
        return ChannelID(self.channel_id) if self.channel_id else None


class FakeGuild:
    def __init__(self, channel=None) -> None:
        self.id = 1
        self.channel = channel
        self.fetch_channel = AsyncMock(return_value=channel)

    def get_channel(self, channel_id):
        return self.channel


def test_resolve_color_known_and_unknown_tags():
    assert resolve_color("DarkRed") == discord.Color.dark_red()
    assert resolve_color("DarkPurple") == discord.Color.dark_purple()
    assert resolve_color("Blurple") == discord.Color.blurple()
    assert resolve_color("NoSuchColour") == discord.Color.light_grey()


def test_embed_contains_case_details():
    embed = build_mod_log_embed(make_record(), "Auto-Warn (Invite Link)", "DarkOrange")

    assert embed.title == "Auto-Warn (Invite Link)"
    assert embed.color == discord.Color.dark_orange()
    fields = {field.name: field.value for field in embed.fields}
    assert "42" in fields["User"]
    assert "Aegis#0001" in fields["Moderator"]
    assert fields["Reason"] == "Discord invites are not allowed here."
    assert "Duration" not in fields
    assert embed.footer.text == "Case #7"


def test_embed_includes_duration_when_present():
    embed = build_mod_log_embed(make_record(duration_ms=300_000), "Auto-Mute (Spam)", "DarkPurple")
    fields = {field.name: field.value for field in embed.fields}
    assert fields["Duration"] == "5 minutes"


@pytest.mark.asyncio
async def test_notify_without_log_channel_is_silent_no_op():
    guild = FakeGuild()
    notifier = ModLogNotifier(FakeSettings(channel_id=None))

    assert await notifier.notify(guild, make_record(), "Mute", "Blue") is False
    guild.fetch_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_notify_sends_embed_to_configured_channel():
    channel = SimpleNamespace(send=AsyncMock())
    notifier = ModLogNotifier(FakeSettings(channel_id=555))

    assert await notifier.notify(FakeGuild(channel), make_record(), "Mute", "Blue") is True

    channel.send.assert_awaited_once()
    embed = channel.send.await_args.kwargs["embed"]
    assert embed.title == "Mute"


@pytest.mark.asyncio
async def test_notify_falls_back_to_fetch_when_channel_not_cached():
    channel = SimpleNamespace(send=AsyncMock())
    guild = FakeGuild(channel)
    guild.get_channel = lambda channel_id: None
    notifier = ModLogNotifier(FakeSettings(channel_id=555))

    assert await notifier.notify(guild, make_record(), "Mute", "Blue") is True
    guild.fetch_channel.assert_awaited_once_with(555)


@pytest.mark.asyncio
async def test_notify_swallows_send_failures():
    forbidden = discord.Forbidden(SimpleNamespace(status=403, reason="Forbidden"), "missing access")
    channel = SimpleNamespace(send=AsyncMock(side_effect=forbidden))
    notifier = ModLogNotifier(FakeSettings(channel_id=555))

    assert await notifier.notify(FakeGuild(channel), make_record(), "Mute", "Blue") is False
