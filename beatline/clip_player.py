from __future__ import annotations

from typing import Optional

from beatline.clip import Clip, evaluate
from beatline.midi_out import MidiOut
from beatline.player import WindowedPlayer
from beatline.time_base import TimeBase
from beatline.windowing import BeatWindow, contains_item, safe_mod, segment_needs_send


class ClipPlayer(WindowedPlayer):
    """Plays a Clip in a loop against a TimeBase, sending output to a MidiOut."""

    def __init__(self, clip: Optional[Clip], time_base: Optional[TimeBase], midi_out: Optional[MidiOut]) -> None:
        super().__init__(time_base)
        self.clip = clip
        self.midi_out = midi_out
        self.channel: int = 0

    def update(self, delta_ms: float) -> None:
        if not self.running or self.finished:
            return
        if self.clip is None or self.time_base is None or self.midi_out is None:
            return
        if self.clip.duration <= 0:
            return

        window = self._advance(self.clip.duration)
        if window is None:
            return

        self._update_sounding(window.new_pos)

        for clip_note in self.clip.get_notes_starting_in_range(window.old_pos, window.new_pos):
            note = clip_note.create_note(self.channel, safe_mod(window.new_pos - clip_note.start, window.length))
            self._start_note(note, clip_note, self.midi_out)

        self._send_segments(window)

    def _update_sounding(self, clip_beat: float) -> None:
        kept = []
        for s in self._sounding:
            clip_note = s.source
            if not clip_note.contains(clip_beat) or not contains_item(self.clip.notes, clip_note):
                s.note.stop()
                continue
            if callable(clip_note.velocity):
                s.note.velocity = clip_note.velocity(clip_beat - clip_note.start)
            kept.append(s)
        self._sounding = [s for s in kept if s.note.on]

    def _segment_offset(self, segment, window: BeatWindow) -> float:
        return max(0.0, min(window.new_pos - segment.start, segment.duration))

    def _send_segments(self, window: BeatWindow) -> None:
        for cc in self.clip.get_control_changes_intersecting_range(window.old_pos, window.new_pos):
            if not segment_needs_send(cc, window, callable(cc.value)):
                continue
            value = evaluate(cc.value, self._segment_offset(cc, window))
            self.midi_out.control_change(cc.controller, value, cc.channel if cc.channel is not None else self.channel)

        for bend in self.clip.get_bends_intersecting_range(window.old_pos, window.new_pos):
            if not segment_needs_send(bend, window, callable(bend.percent)):
                continue
            percent = evaluate(bend.percent, self._segment_offset(bend, window))
            self.midi_out.pitch_bend(percent, bend.channel if bend.channel is not None else self.channel)
