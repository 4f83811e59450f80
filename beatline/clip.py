from __future__ import annotations

from typing import Callable, List, Optional, Union

from beatline.note import Note
from beatline.range import Range
from beatline.windowing import ending_in_range, intersecting_range, starting_in_range


# Either a constant, or a function of beats elapsed since the item started
BeatValue = Union[float, Callable[[float], float]]


def evaluate(value: BeatValue, beat_offset: float) -> float:
    return value(beat_offset) if callable(value) else value


class ClipNote(Range):
    def __init__(self, start: float, duration: float, pitch: int, velocity: BeatValue, channel: Optional[int] = None) -> None:
        super().__init__(start, duration)
        self.pitch = int(pitch)
        self.velocity = velocity
        # None lets whatever plays the clip decide
        self.channel = channel

    def create_note(self, default_channel: int, beat_offset: float = 0.0) -> Note:
        return Note(
            self.pitch,
            evaluate(self.velocity, beat_offset),
            self.channel if self.channel is not None else default_channel,
        )


class ClipCC(Range):
    def __init__(self, start: float, duration: float, controller: int, value: BeatValue, channel: Optional[int] = None) -> None:
        super().__init__(start, duration)
        self.controller = int(controller)
        self.value = value
        self.channel = channel


class ClipBend(Range):
    """Pitch bend segment; percent runs from -1 to +1."""

    def __init__(self, start: float, duration: float, percent: BeatValue, channel: Optional[int] = None) -> None:
        super().__init__(start, duration)
        self.percent = percent
        self.channel = channel


class Clip(Range):
    """A loopable block of notes, control changes and bends, in beats from 0."""

    def __init__(self, duration: float) -> None:
        super().__init__(0, duration)
        self.notes: List[ClipNote] = []
        self.control_changes: List[ClipCC] = []
        self.bends: List[ClipBend] = []

    def add_note(self, start: float, duration: float, pitch: int, velocity: BeatValue, channel: Optional[int] = None) -> "Clip":
        self.notes.append(ClipNote(start, duration, pitch, velocity, channel))
        return self

    def add_cc(self, start: float, duration: float, controller: int, value: BeatValue, channel: Optional[int] = None) -> "Clip":
        self.control_changes.append(ClipCC(start, duration, controller, value, channel))
        return self

    def add_bend(self, start: float, duration: float, percent: BeatValue, channel: Optional[int] = None) -> "Clip":
        self.bends.append(ClipBend(start, duration, percent, channel))
        return self

    def get_notes_starting_in_range(self, start: float, end: float) -> List[ClipNote]:
        return starting_in_range(self.notes, start, end)

    def get_notes_ending_in_range(self, start: float, end: float) -> List[ClipNote]:
        return ending_in_range(self.notes, start, end)

    def get_control_changes_intersecting_range(self, start: float, end: float) -> List[ClipCC]:
        return intersecting_range(self.control_changes, start, end)

    def get_bends_intersecting_range(self, start: float, end: float) -> List[ClipBend]:
        return intersecting_range(self.bends, start, end)
