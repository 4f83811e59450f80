from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from beatline.clock import ClockChild
from beatline.note import Note
from beatline.range import Range
from beatline.time_base import TimeBase
from beatline.windowing import BeatWindow


logger = logging.getLogger(__name__)


NoteModifier = Callable[[Note], None]


@dataclass
class SoundingNote:
    """A note a player has started, paired with the item that produced it."""

    note: Note
    source: Range


class WindowedPlayer(ClockChild):
    """Shared playback loop for clip, arpeggio and chord-progression players.

    Each update turns the time base's latest beat delta (scaled by `speed`)
    into a window over the content's cyclic length. A wrapped window means
    the content looped, and every sounding note is released before the
    new window is processed. With `beat_count` set, the player finishes
    once that many beats have passed.
    """

    def __init__(self, time_base: Optional[TimeBase]) -> None:
        super().__init__()
        self.time_base = time_base
        self.speed: float = 1.0
        self.start_beat: float = 0.0
        self.beat_count: Optional[float] = None
        self.running: bool = True
        self.note_modifier: Optional[NoteModifier] = None
        self._beats_passed: float = 0.0
        self._sounding: List[SoundingNote] = []

    @property
    def beats_passed(self) -> float:
        return self._beats_passed

    @property
    def sounding_notes(self) -> List[Note]:
        return [s.note for s in self._sounding]

    def start(self) -> None:
        self.running = True

    def pause(self) -> None:
        self.running = False

    def stop(self) -> None:
        """Stop playback, silence sounding notes and rewind to `start_beat`."""
        self.running = False
        self._end_all_notes()
        self._beats_passed = 0.0

    def finish(self) -> None:
        if self.finished:
            return
        self._end_all_notes()
        logger.debug("%s %s finished after %.3f beats", type(self).__name__, self.ref, self._beats_passed)
        super().finish()

    def _advance(self, length: float) -> Optional[BeatWindow]:
        """Consume this tick's beat delta; None when there is nothing to process."""
        tb = self.time_base
        beat_diff = (tb.total_beat - tb.total_beat_tracker.old_value) * self.speed
        if beat_diff == 0:
            return None

        window = BeatWindow.from_beats(self.start_beat, self._beats_passed, self._beats_passed + beat_diff, length)
        if window.wrapped:
            # Looped: notes longer than the loop would otherwise hang forever
            self._end_all_notes()

        self._beats_passed += beat_diff
        if self.beat_count is not None and self._beats_passed >= self.beat_count:
            self.finish()
            return None
        return window

    def _start_note(self, note: Note, source: Range, midi_out) -> None:
        if self.note_modifier is not None:
            self.note_modifier(note)
        self._sounding.append(SoundingNote(note, source))
        midi_out.add_note(note)

    def _end_all_notes(self) -> None:
        for s in self._sounding:
            s.note.stop()
        self._sounding = []
