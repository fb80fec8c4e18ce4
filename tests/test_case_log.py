"""Tests for the moderation case log."""

import datetime

import pytest

from aegis.database.case_log import ModerationCaseLog
from aegis.datatypes.action_datatypes import CaseKind, ModerationCaseRecord
from aegis.datatypes.discord_datatypes import GuildID, UserID

GUILD = GuildID(1)
TARGET = UserID(10)
BASE_TIME = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)


def make_record(kind=CaseKind.WARN, *, target=TARGET, guild=GUILD, minutes=0, reason="reason"):
    return ModerationCaseRecord(
        guild_id=guild,
        kind=kind,
        target_id=target,
        target_tag=f"user{target}",
        moderator_id=UserID(99),
        moderator_tag="mod#0001",
        reason=reason,
        created_at=BASE_TIME + datetime.timedelta(minutes=minutes),
    )


@pytest.fixture
def case_log(database):
    return ModerationCaseLog(database)


@pytest.mark.asyncio
async def test_append_assigns_case_id(case_log):
    record = make_record()
    case_id = await case_log.append(record)
    assert case_id == record.case_id
    assert case_id > 0


@pytest.mark.asyncio
async def test_list_for_user_returns_warnings_newest_first(case_log):
    await case_log.append(make_record(CaseKind.WARN, minutes=0, reason="first"))
    await case_log.append(make_record(CaseKind.AUTO_WARN, minutes=1, reason="second"))
    await case_log.append(make_record(CaseKind.MUTE, minutes=2, reason="mute"))
    await case_log.append(make_record(CaseKind.WARN, minutes=3, reason="third"))
    await case_log.append(make_record(CaseKind.WARN, target=UserID(11), minutes=4, reason="someone else"))

    records = await case_log.list_for_user(GUILD, TARGET)

    assert [r.reason for r in records] == ["third", "second", "first"]
    assert records[1].kind is CaseKind.AUTO_WARN
    assert records[0].created_at == BASE_TIME + datetime.timedelta(minutes=3)


@pytest.mark.asyncio
async def test_list_for_user_with_explicit_kinds(case_log):
    await case_log.append(make_record(CaseKind.TIMEOUT, minutes=0))
    await case_log.append(make_record(CaseKind.WARN, minutes=1))

    records = await case_log.list_for_user(GUILD, TARGET, kinds=[CaseKind.TIMEOUT])
    assert [r.kind for r in records] == [CaseKind.TIMEOUT]
    assert await case_log.list_for_user(GUILD, TARGET, kinds=[]) == []


@pytest.mark.asyncio
async def test_count_and_pages(case_log):
    for minute in range(23):
        await case_log.append(make_record(minutes=minute, reason=f"case {minute}"))
    await case_log.append(make_record(guild=GuildID(2)))

    assert await case_log.count(GUILD) == 23

    first = await case_log.page(GUILD, 1)
    third = await case_log.page(GUILD, 3)
    assert len(first) == 10
    assert first[0].reason == "case 22"
    assert [r.reason for r in third] == ["case 2", "case 1", "case 0"]
    assert await case_log.page(GUILD, 4) == []
    assert await case_log.page(GUILD, 0) == []


@pytest.mark.asyncio
async def test_edit_reason_records_editor(case_log):
    case_id = await case_log.append(make_record(reason="old"))

    assert await case_log.edit_reason(case_id, "new", "mod#0002") is True
    assert await case_log.edit_reason(case_id + 100, "x", "mod#0002") is False

    (record,) = await case_log.list_for_user(GUILD, TARGET)
    assert record.reason == "new"
    assert record.edited_by == "mod#0002"
    assert record.edited_at is not None


@pytest.mark.asyncio
async def test_delete(case_log):
    case_id = await case_log.append(make_record())
    assert await case_log.delete(case_id) is True
    assert await case_log.delete(case_id) is False
    assert await case_log.count(GUILD) == 0


@pytest.mark.asyncio
async def test_duration_is_persisted(case_log):
    record = make_record(CaseKind.MUTE)
    record.duration_ms = 600_000
    await case_log.append(record)

    (stored,) = await case_log.list_for_user(GUILD, TARGET, kinds=[CaseKind.MUTE])
    assert stored.duration_ms == 600_000
