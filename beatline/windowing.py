from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, TypeVar

from beatline.range import Range


R = TypeVar("R", bound=Range)


def safe_mod(value: float, divisor: float) -> float:
    """Modulo that always lands in [0, divisor) for positive divisors."""
    return ((value % divisor) + divisor) % divisor


@dataclass(frozen=True)
class BeatWindow:
    """Half-open beat range [old_pos, new_pos) scanned during one tick.

    When new_pos < old_pos the window has wrapped past the end of a cyclic
    region of length `length` and covers [old_pos, length) + [0, new_pos).
    """

    old_pos: float
    new_pos: float
    length: float

    @property
    def wrapped(self) -> bool:
        return self.old_pos > self.new_pos

    @classmethod
    def from_beats(cls, start_offset: float, beats_before: float, beats_after: float, length: float) -> "BeatWindow":
        return cls(
            old_pos=safe_mod(start_offset + beats_before, length),
            new_pos=safe_mod(start_offset + beats_after, length),
            length=length,
        )


def starting_in_range(items: Iterable[R], start: float, end: float) -> List[R]:
    # >= start and < end, so anything placed on beat 0 is never skipped
    if start <= end:
        return [x for x in items if start <= x.start < end]
    return [x for x in items if x.start >= start or x.start < end]


def ending_in_range(items: Iterable[R], start: float, end: float) -> List[R]:
    if start <= end:
        return [x for x in items if start <= x.end < end]
    return [x for x in items if x.end >= start or x.end < end]


def intersecting_range(items: Iterable[R], start: float, end: float) -> List[R]:
    if start <= end:
        return [x for x in items if min(end, x.end) >= max(start, x.start)]
    return [x for x in items if x.end >= start or x.start <= end]


def segment_needs_send(segment: Range, window: BeatWindow, function_valued: bool) -> bool:
    """False for constant segments the window has already moved fully past."""
    if function_valued:
        return True
    return not (window.new_pos > segment.end and segment.start < window.old_pos)


def contains_item(items: Sequence[object], item: object) -> bool:
    """Identity membership test; content items compare by identity."""
    return any(x is item for x in items)
