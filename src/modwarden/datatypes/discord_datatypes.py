"""
Normalised Discord user identifiers.

Warning records are keyed by the user's snowflake. The warnings document
stores keys as decimal strings, gateway events carry integers, and slash
commands carry ``discord.User`` objects; every entry point goes through
:class:`UserID` so they all land on the same key.
"""

from __future__ import annotations

from typing import Union

import discord

SNOWFLAKE_MAX = 2**64 - 1

UserIDLike = Union[str, int, "UserID", discord.abc.Snowflake]


class UserID:
    """
    A validated Discord user snowflake.

    ``str(UserID(...))`` is the canonical record key: decimal digits with no
    sign, padding or leading zeros.

    Example:
        >>> str(UserID(" 0042 "))
        '42'
        >>> UserID(42) == "42"
        True

    Raises:
        ValueError: For booleans, negative or oversized numbers, and strings
            that are not plain decimal digits.
    """

    __slots__ = ("_key",)

    def __init__(self, value: UserIDLike) -> None:
        if isinstance(value, UserID):
            self._key = value._key
            return
        self._key = str(self._coerce(value))

    @staticmethod
    def _coerce(value: object) -> int:
        if isinstance(value, bool):
            raise ValueError(f"not a user ID: {value!r}")
        if isinstance(value, int):
            number = value
        elif isinstance(value, str):
            text = value.strip()
            if not text.isdigit():
                raise ValueError(f"not a user ID: {value!r}")
            number = int(text)
        elif isinstance(getattr(value, "id", None), int):
            number = value.id
        else:
            raise ValueError(f"not a user ID: {type(value).__name__}")
        if not 0 <= number <= SNOWFLAKE_MAX:
            raise ValueError(f"user ID out of snowflake range: {number}")
        return number

    @classmethod
    def from_user(cls, user: discord.abc.Snowflake) -> "UserID":
        return cls(user.id)

    def __int__(self) -> int:
        return int(self._key)

    def __str__(self) -> str:
        return self._key

    def __repr__(self) -> str:
        return f"UserID({self._key!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, UserID):
            return self._key == other._key
        if isinstance(other, (str, int)) and not isinstance(other, bool):
            try:
                return self._key == str(self._coerce(other))
            except ValueError:
                return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._key)
