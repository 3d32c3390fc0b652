"""The heap of an interaction machine: pairs of words addressed by number.

A heap holds nodes of two words each.  Node ``k`` owns the words at
addresses ``2k`` and ``2k + 1``; the two words of a node are each other's
*other half*.  A word holds either nothing (``None``), the :data:`FREE`
marker, a :class:`FreeLink` to the next free node, or a port.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

HEAP_SIZE_BYTES = 1 << 40
NODE_BYTES = 16


class _FreeMarker:
    __slots__ = ()

    def __repr__(self) -> str:
        return "FREE"


FREE = _FreeMarker()
"""Stored in a word whose wire end has been released."""


@dataclass(frozen=True)
class FreeLink:
    """A freelist entry pointing at the next free node address, or ``None``."""

    next: Optional[int]


def other_half(addr: int) -> int:
    """Address of the other word of the node containing ``addr``."""
    return addr ^ 1


def left_half(addr: int) -> int:
    """Address of the first word of the node containing ``addr``."""
    return addr & ~1


def _is_port(value: Any) -> bool:
    return value is not None and value is not FREE and not isinstance(value, FreeLink)


class Heap:
    """A range of nodes over word storage that its slices share."""

    __slots__ = ("_words", "_start", "_stop")

    def __init__(self, nodes: int = HEAP_SIZE_BYTES // NODE_BYTES) -> None:
        if nodes <= 0:
            raise ValueError("a heap must hold at least one node")
        self._words: dict[int, Any] = {}
        self._start = 0
        self._stop = nodes

    @classmethod
    def _view(cls, words: dict[int, Any], start: int, stop: int) -> Heap:
        heap = cls.__new__(cls)
        heap._words = words
        heap._start = start
        heap._stop = stop
        return heap

    def __len__(self) -> int:
        return self._stop - self._start

    def __getitem__(self, index: int) -> int:
        """Address of the first word of the ``index``-th node of this heap."""
        if not 0 <= index < len(self):
            raise IndexError("node index out of range")
        return (self._start + index) * 2

    def slice(self, start: int, stop: Optional[int] = None) -> Heap:
        """A heap over nodes ``start`` to ``stop`` of this one, sharing storage."""
        if stop is None:
            stop = len(self)
        if not 0 <= start <= stop <= len(self):
            raise IndexError("heap slice out of range")
        return Heap._view(self._words, self._start + start, self._start + stop)

    def load(self, addr: int) -> Any:
        """Read the word at ``addr``."""
        return self._words.get(addr)

    def store(self, addr: int, value: Any) -> None:
        """Write ``value`` to the word at ``addr``."""
        if value is None:
            self._words.pop(addr, None)
        else:
            self._words[addr] = value

    def swap(self, addr: int, value: Any) -> Any:
        """Write ``value`` to ``addr`` and return what was there."""
        old = self.load(addr)
        self.store(addr, value)
        return old

    def compare_exchange(self, addr: int, current: Any, new: Any) -> bool:
        """Write ``new`` if the word holds ``current``; report whether it did."""
        old = self.load(addr)
        if old is current or old == current:
            self.store(addr, new)
            return True
        return False


@dataclass(frozen=True)
class Wire:
    """One end of a wire: a word of the heap holding the wire's target."""

    heap: Heap = field(compare=False, repr=False)
    addr: int

    def load_target(self) -> Any:
        """The port linked to this wire, or ``None`` if none is yet."""
        value = self.heap.load(self.addr)
        return value if _is_port(value) else None

    def swap_target(self, port: Any) -> Any:
        """Set the wire's target to ``port`` and return the previous port."""
        old = self.heap.swap(self.addr, port)
        return old if _is_port(old) else None

    def __repr__(self) -> str:
        return f"Wire({self.addr})"