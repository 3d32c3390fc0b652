"""String interning with identity-based equality."""

from __future__ import annotations

import functools


@functools.total_ordering
class Interned:
    """A string returned by a :class:`StringInterner`.

    Two interned strings are equal exactly when they are the same stored
    string; ordering falls back to comparing the text.
    """

    __slots__ = ("value",)

    def __init__(self, value: str) -> None:
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Interned):
            return NotImplemented
        return self.value is other.value

    def __lt__(self, other: Interned) -> bool:
        if not isinstance(other, Interned):
            return NotImplemented
        if self.value is other.value:
            return False
        return self.value < other.value

    def __hash__(self) -> int:
        return id(self.value)

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return repr(self.value)

    def __len__(self) -> int:
        return len(self.value)


class StringInterner:
    """Stores one canonical copy of every string handed to it."""

    def __init__(self) -> None:
        self._strs: dict[str, Interned] = {}

    def intern(self, text: str) -> Interned:
        """Return the canonical interned form of ``text``."""
        interned = self._strs.get(text)
        if interned is None:
            interned = Interned(text)
            self._strs[text] = interned
        return interned

    def __len__(self) -> int:
        return len(self._strs)

    def __contains__(self, text: object) -> bool:
        return text in self._strs