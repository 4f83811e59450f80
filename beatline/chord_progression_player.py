from __future__ import annotations

from typing import Optional

from beatline.chord_progression import ChordProgression, ChordProgressionChord
from beatline.events import ChordEventData, Event
from beatline.player import WindowedPlayer
from beatline.time_base import TimeBase


class ChordProgressionPlayer(WindowedPlayer):
    """Walks a ChordProgression and fires `on_chord_changed` when the chord changes.

    It produces no notes itself; consumers such as an Arpeggiator react
    to the event.
    """

    def __init__(self, progression: Optional[ChordProgression], time_base: Optional[TimeBase]) -> None:
        super().__init__(time_base)
        self.progression = progression
        self.on_chord_changed = Event()
        self._current_chord: Optional[ChordProgressionChord] = None

    @property
    def current_chord(self) -> Optional[ChordProgressionChord]:
        return self._current_chord

    def update(self, delta_ms: float) -> None:
        if not self.running or self.finished:
            return
        if self.progression is None or self.time_base is None:
            return
        if self.progression.duration <= 0:
            return

        window = self._advance(self.progression.duration)
        if window is None:
            return

        cpc = self.progression.get_chord_at(window.new_pos)
        if cpc is not self._current_chord:
            self._current_chord = cpc
            self.on_chord_changed.trigger(ChordEventData(self, cpc.chord if cpc is not None else None))
