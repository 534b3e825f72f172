"""
RNG - Seeded Streams and Shooter Queue
======================================

Provides the Mulberry32 stream shared by level generation and gameplay, and
the current/next color queue that arms the shooter.

Streams are plain values: every generation call and every session creates its
own, so levels stay reproducible from their number alone.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

_MASK32 = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply."""
    return (a * b) & _MASK32


class Mulberry32:
    """
    Mulberry32 pseudo-random stream over a single 32-bit state word.

    The same seed always yields the same sequence of floats in [0, 1).
    """

    def __init__(self, seed: int):
        """
        Initialize stream.

        Args:
            seed: Any integer. Reduced to 32 bits; zero is mapped to 1.
        """
        self._state = (int(seed) & _MASK32) % _MASK32 or 1

    @property
    def state(self) -> int:
        """Current 32-bit state word."""
        return self._state

    def next_float(self) -> float:
        """Advance the stream and return a float in [0, 1)."""
        s = (self._state + _INCREMENT) & _MASK32
        self._state = s
        t = _imul(s ^ (s >> 15), 1 | s)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK32) ^ t
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_POW_32

    __call__ = next_float

    def next_int(self, upper: int) -> int:
        """Uniform integer in [0, upper)."""
        if upper <= 0:
            raise ValueError(f"upper must be positive, got {upper}")
        return int(self.next_float() * upper)

    def choice(self, items: Sequence):
        """Uniformly pick one element of a non-empty sequence."""
        if not items:
            raise ValueError("Cannot choose from an empty sequence")
        return items[self.next_int(len(items))]

    def copy(self) -> "Mulberry32":
        """Independent stream positioned at the same point."""
        clone = Mulberry32(1)
        clone._state = self._state
        return clone

    def __repr__(self) -> str:
        return f"Mulberry32(state={self._state:#010x})"


class ShooterQueue:
    """
    Current/next color queue for the shooter.

    Colors are always drawn from the set handed in by the caller, which is the
    set of colors still present on the live board, so the player is never armed
    with a color that cannot match anything.
    """

    def __init__(self, seed: int):
        """
        Initialize queue.

        Args:
            seed: Seed of the queue's private stream.
        """
        self._rng = Mulberry32(seed)
        self._current: Optional[int] = None
        self._next: Optional[int] = None
        self._visible: bool = False

    @property
    def current_color(self) -> Optional[int]:
        """Color loaded in the shooter, None while hidden."""
        return self._current

    @property
    def next_color(self) -> Optional[int]:
        """Color queued after the current one."""
        return self._next

    @property
    def visible(self) -> bool:
        """False once the board has been cleared."""
        return self._visible

    def _draw(self, available: List[int]) -> int:
        return self._rng.choice(available)

    def reset(self, available: Iterable[int], seed: Optional[int] = None) -> None:
        """
        Arm both slots from scratch.

        Args:
            available: Colors present on the board.
            seed: New stream seed. Keeps current stream if None.
        """
        if seed is not None:
            self._rng = Mulberry32(seed)
        pool = sorted(set(available))
        if not pool:
            self.hide()
            return
        self._current = self._draw(pool)
        self._next = self._draw(pool)
        self._visible = True

    def rearm(self, available: Iterable[int]) -> None:
        """
        Promote the next color and queue a fresh one.

        A promoted color that has since vanished from the board is redrawn.
        An empty board hides the shooter instead.
        """
        pool = sorted(set(available))
        if not pool:
            self.hide()
            return

        current = self._next
        if current not in pool:
            current = self._draw(pool)
        self._current = current
        self._next = self._draw(pool)
        self._visible = True

    def hide(self) -> None:
        """Empty both slots (level cleared)."""
        self._current = None
        self._next = None
        self._visible = False
