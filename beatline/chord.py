from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from beatline.windowing import safe_mod


class Chord:
    """A set of MIDI pitches with an optional root."""

    def __init__(self, pitches: Iterable[int] = (), root: Optional[int] = None) -> None:
        self._pitches: List[int] = []
        self._root: Optional[int] = None
        self.add_pitches(pitches)
        self.set_root(root)

    @property
    def pitches(self) -> List[int]:
        """Read-only view; use add_pitch/remove_pitches to modify."""
        return list(self._pitches)

    @property
    def root(self) -> Optional[int]:
        return self._root

    @root.setter
    def root(self, pitch: Optional[int]) -> None:
        self.set_root(pitch)

    def add_pitch(self, pitch: int) -> "Chord":
        if pitch not in self._pitches:
            self._pitches.append(int(pitch))
        return self

    def add_pitches(self, pitches: Iterable[int]) -> "Chord":
        for p in pitches:
            self.add_pitch(p)
        return self

    def remove_pitches(self, predicate: Callable[[int], bool]) -> "Chord":
        self._pitches = [p for p in self._pitches if not predicate(p)]
        if self._root is not None and self._root not in self._pitches:
            self._root = None
        return self

    def set_root(self, pitch: Optional[int]) -> "Chord":
        """Set the root, adding it to the pitches if missing."""
        if pitch is None:
            self._root = None
        else:
            self._root = int(pitch)
            self.add_pitch(pitch)
        return self

    def contains(self, pitch: int) -> bool:
        """Octave-agnostic membership."""
        pc = safe_mod(pitch, 12)
        return any(safe_mod(p, 12) == pc for p in self._pitches)

    def get_pitch(self, index: int) -> int:
        """Pitch at `index` of the sorted chord, continuing into other octaves.

        With pitches [60, 64, 67]: 0 -> 60, 3 -> 72, -1 -> 55.
        """
        if not self._pitches:
            raise ValueError("chord has no pitches")
        ordered = sorted(self._pitches)
        octave, i = divmod(int(index), len(ordered))
        return ordered[i] + 12 * octave

    def __repr__(self) -> str:
        return f"Chord({sorted(self._pitches)}, root={self._root})"
