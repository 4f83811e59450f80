from __future__ import annotations

from typing import Optional

from beatline.arpeggio import Arpeggio
from beatline.chord import Chord
from beatline.events import ChordEventData
from beatline.midi_out import MidiOut
from beatline.player import WindowedPlayer
from beatline.time_base import TimeBase
from beatline.windowing import contains_item, safe_mod


class Arpeggiator(WindowedPlayer):
    """Plays an Arpeggio shape around the current chord.

    Changing `chord` releases every sounding note; new notes pick up the
    new chord as they start. No chord means silence.
    """

    def __init__(self, arpeggio: Optional[Arpeggio], time_base: Optional[TimeBase], midi_out: Optional[MidiOut]) -> None:
        super().__init__(time_base)
        self.arpeggio = arpeggio
        self.midi_out = midi_out
        self.channel: int = 0
        self._chord: Optional[Chord] = None

    @property
    def chord(self) -> Optional[Chord]:
        return self._chord

    @chord.setter
    def chord(self, value: Optional[Chord]) -> None:
        self._chord = value
        self._end_all_notes()

    def follow(self, progression_player) -> None:
        """Take chord changes from a ChordProgressionPlayer."""

        def on_chord_changed(data: ChordEventData) -> None:
            self.chord = data.chord

        progression_player.on_chord_changed.add(on_chord_changed)

    def update(self, delta_ms: float) -> None:
        if not self.running or self.finished:
            return
        if self.arpeggio is None or self.time_base is None or self.midi_out is None:
            return
        if self.arpeggio.duration <= 0:
            return

        window = self._advance(self.arpeggio.duration)
        if window is None:
            return

        kept = []
        for s in self._sounding:
            arp_note = s.source
            if not arp_note.contains(window.new_pos) or not contains_item(self.arpeggio.notes, arp_note):
                s.note.stop()
                continue
            if callable(arp_note.velocity):
                s.note.velocity = arp_note.get_velocity(arp_note.get_percent(window.new_pos))
            kept.append(s)
        self._sounding = [s for s in kept if s.note.on]

        if self._chord is None:
            return
        for arp_note in self.arpeggio.get_notes_starting_in_range(window.old_pos, window.new_pos):
            offset = safe_mod(window.new_pos - arp_note.start, window.length)
            percent = offset / arp_note.duration if arp_note.duration else 0.0
            note = arp_note.create_note(self._chord, self.channel, percent)
            if note is None:
                continue
            self._start_note(note, arp_note, self.midi_out)
