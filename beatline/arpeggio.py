from __future__ import annotations

from typing import Callable, List, Optional, Union

from beatline.chord import Chord
from beatline.note import Note
from beatline.range import Range
from beatline.windowing import ending_in_range, starting_in_range


# Chord -> MIDI pitch, or an index into the chord (see Chord.get_pitch)
PitchSource = Union[int, Callable[[Chord], int]]
# Constant, or percent-through-note -> value (tweens qualify)
PercentValue = Union[float, Callable[[float], float]]


class ArpeggioNote(Range):
    def __init__(self, start: float, duration: float, pitch: PitchSource, velocity: PercentValue, channel: Optional[int] = None) -> None:
        super().__init__(start, duration)
        self.pitch = pitch
        self.velocity = velocity
        self.channel = channel

    def get_pitch(self, chord: Chord) -> int:
        if callable(self.pitch):
            return int(self.pitch(chord))
        return chord.get_pitch(self.pitch)

    def get_velocity(self, percent: float) -> float:
        return self.velocity(percent) if callable(self.velocity) else self.velocity

    def create_note(self, chord: Optional[Chord], default_channel: int, percent: float = 0.0) -> Optional[Note]:
        if chord is None:
            return None
        return Note(
            self.get_pitch(chord),
            self.get_velocity(percent),
            self.channel if self.channel is not None else default_channel,
        )


class Arpeggio(Range):
    """A chord-relative note pattern, `duration` beats long."""

    def __init__(self, duration: float) -> None:
        super().__init__(0, duration)
        self.notes: List[ArpeggioNote] = []

    def add_note(self, start: float, duration: float, pitch: PitchSource, velocity: PercentValue, channel: Optional[int] = None) -> "Arpeggio":
        self.notes.append(ArpeggioNote(start, duration, pitch, velocity, channel))
        return self

    def get_notes_starting_in_range(self, start: float, end: float) -> List[ArpeggioNote]:
        return starting_in_range(self.notes, start, end)

    def get_notes_ending_in_range(self, start: float, end: float) -> List[ArpeggioNote]:
        return ending_in_range(self.notes, start, end)
