from __future__ import annotations

from typing import Callable, List, Optional

from beatline.chord import Chord
from beatline.range import Range
from beatline.windowing import safe_mod


class ChordProgressionChord(Range):
    def __init__(self, start: float, duration: float, chord: Chord) -> None:
        super().__init__(start, duration)
        self.chord = chord


class ChordProgression(Range):
    """Chords laid out end to end over `duration` beats."""

    def __init__(self, duration: float) -> None:
        super().__init__(0, duration)
        self.chords: List[ChordProgressionChord] = []

    def add_chord(self, start: float, duration: float, chord: Chord) -> "ChordProgression":
        """Add a chord, trimming or dropping existing chords it overlaps."""
        new = ChordProgressionChord(start, duration, chord)
        swallowed = []
        for old in self.chords:
            if old.start >= new.start and old.end <= new.end:
                swallowed.append(old)
            elif new.start < old.end < new.end:
                old.end = new.start
            elif new.start < old.start < new.end:
                old_end = old.end
                old.start = new.end
                old.end = old_end
        if swallowed:
            self.remove_chords(lambda c: any(c is s for s in swallowed))
        self.chords.append(new)
        return self

    def remove_chords(self, predicate: Callable[[ChordProgressionChord], bool]) -> None:
        self.chords = [c for c in self.chords if not predicate(c)]

    def get_chords_in_range(self, range_start: float, range_end: float) -> List[ChordProgressionChord]:
        """Chords overlapping the range; if range_end < range_start the range wraps."""
        output = []
        for c in self.chords:
            if range_start <= range_end:
                if max(range_start, c.start) < min(range_end, c.end):
                    output.append(c)
            elif c.start < range_end or c.end > range_start:
                output.append(c)
        return output

    def get_chord_at(self, beat: float) -> Optional[ChordProgressionChord]:
        beat = safe_mod(beat, self.duration)
        for c in self.chords:
            if c.start <= beat < c.end:
                return c
        return None
