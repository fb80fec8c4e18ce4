"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers. Wrapping them keeps a guild id from
being passed where a user id is expected, while still hashing and comparing
like the underlying integer so they work as dictionary keys.
"""

from __future__ import annotations

from typing import Union

import discord


class Snowflake:
    """
    Base wrapper for a Discord snowflake ID.

    Subclasses only differ by name; two wrappers of different subclasses never
    compare equal even if they hold the same number.

    Example:
        >>> gid = GuildID(123456789012345678)
        >>> gid.to_int()
        123456789012345678
        >>> gid == 123456789012345678
        True
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        """
        Args:
            value: The snowflake as an int, a numeric string, or another wrapper.

        Raises:
            ValueError: If the value cannot be converted to a non-negative integer.
        """
        if isinstance(value, Snowflake):
            self._value = value._value
            return
        if isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        if isinstance(value, int):
            parsed = value
        elif isinstance(value, str):
            parsed = int(value.strip())
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")
        if parsed < 0:
            raise ValueError(f"{type(self).__name__} must be non-negative, got {parsed}")
        self._value = parsed

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls and storage."""
        return self._value

    def __int__(self) -> int:
        return self._value

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == other
        if isinstance(other, str):
            return str(self._value) == other.strip()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GuildID(Snowflake):
    """Snowflake of a guild (community)."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        return cls(guild.id)


class UserID(Snowflake):
    """Snowflake of a user or member."""

    __slots__ = ()

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        return cls(member.id)


class ChannelID(Snowflake):
    """Snowflake of a text channel or thread."""

    __slots__ = ()


class MessageID(Snowflake):
    """Snowflake of a single message."""

    __slots__ = ()


class RoleID(Snowflake):
    """Snowflake of a guild role."""

    __slots__ = ()
