"""
discord_utils.py
================

Stateless helpers for Discord-specific checks and formatting used by the cogs.
"""

import datetime
from typing import Sequence, Union

import discord


def is_ignored_author(author: Union[discord.User, discord.Member]) -> bool:
    """
    Check if an author should be ignored by the message listener (bots or non-members).

    Args:
        author (discord.User | discord.Member): The user or member to check.

    Returns:
        bool: True if the author is a bot or not a guild member, False otherwise.
    """
    return author.bot or not isinstance(author, discord.Member)


def has_permissions(application_context: discord.ApplicationContext, **required_permissions) -> bool:
    """
    Check if the command issuer has all specified permissions in the guild.

    Args:
        application_context (discord.ApplicationContext): The command context.
        **required_permissions: Permission flags to check.

    Returns:
        bool: True if all permissions are present, False otherwise.
    """
    if not isinstance(application_context.author, discord.Member):
        return False
    return all(
        getattr(application_context.author.guild_permissions, permission_name, False)
        for permission_name in required_permissions
    )


def top_role_position(member: discord.Member) -> int:
    top_role = getattr(member, "top_role", None)
    return getattr(top_role, "position", 0)


def outranks(moderator: discord.Member, target: discord.Member) -> bool:
    """Return True if ``moderator``'s highest role is strictly above ``target``'s."""
    return top_role_position(moderator) > top_role_position(target)


def bot_can_moderate(guild: discord.Guild, target: discord.Member) -> bool:
    """
    Check whether the bot itself can time out ``target``.

    The bot needs Moderate Members, must outrank the target, and cannot act on
    the guild owner or an administrator.
    """
    bot_member = guild.me
    if bot_member is None:
        return False
    if target.id == guild.owner_id:
        return False
    if target.guild_permissions.administrator:
        return False
    if not bot_member.guild_permissions.moderate_members:
        return False
    return outranks(bot_member, target)


EMBED_DESCRIPTION_LIMIT = 4096


def join_within_limit(blocks: Sequence[str], limit: int = EMBED_DESCRIPTION_LIMIT, separator: str = "") -> str:
    """Join text blocks, replacing the tail with "…and N more." once ``limit`` would be exceeded."""
    description = ""
    for index, block in enumerate(blocks):
        piece = block if index == 0 else separator + block
        # leave room for the overflow marker
        if len(description) + len(piece) > limit - 32:
            lead = separator if index else ""
            description += f"{lead}…and {len(blocks) - index} more."
            break
        description += piece
    return description


def discord_timestamp(moment: datetime.datetime, style: str = "f") -> str:
    """Render ``moment`` as a Discord timestamp tag (``f`` full date, ``R`` relative)."""
    return f"<t:{int(moment.timestamp())}:{style}>"
