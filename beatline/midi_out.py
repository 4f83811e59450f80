from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from beatline.clock import ClockChild
from beatline.note import Note


logger = logging.getLogger(__name__)


def clamp7(value: float) -> int:
    return max(0, min(127, int(round(value))))


def bend_to_pitchwheel(percent: float) -> int:
    """Map a bend in [-1, 1] to mido's pitchwheel range [-8192, 8191]."""
    p = max(-1.0, min(1.0, float(percent)))
    return max(-8192, min(8191, int(round(p * 8192))))


class CoreSink:
    """Abstract sink interface used by MidiOut."""

    def note_on(self, channel: int, pitch: int, velocity: float) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def note_off(self, channel: int, pitch: int, velocity: float = 0) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def note_pressure(self, channel: int, pitch: int, value: float) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def control_change(self, channel: int, control: int, value: float) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def pitch_bend(self, channel: int, percent: float) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def panic(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class VirtualSink(CoreSink):
    """A minimal sink capturing events for tests and dry runs.

    Records tuples like (type, channel, pitch|control, value). Types: 'on',
    'off', 'pressure', 'cc', 'bend', 'panic'.
    """

    def __init__(self) -> None:
        self.events: List[Tuple[str, int, float, float]] = []

    def note_on(self, channel: int, pitch: int, velocity: float) -> None:
        self.events.append(("on", channel, pitch, clamp7(velocity)))

    def note_off(self, channel: int, pitch: int, velocity: float = 0) -> None:
        self.events.append(("off", channel, pitch, clamp7(velocity)))

    def note_pressure(self, channel: int, pitch: int, value: float) -> None:
        self.events.append(("pressure", channel, pitch, clamp7(value)))

    def control_change(self, channel: int, control: int, value: float) -> None:
        self.events.append(("cc", channel, control, clamp7(value)))

    def pitch_bend(self, channel: int, percent: float) -> None:
        self.events.append(("bend", channel, float(percent), 0))

    def panic(self) -> None:
        self.events.append(("panic", -1, -1, 0))

    def of_type(self, kind: str) -> List[Tuple[str, int, float, float]]:
        return [e for e in self.events if e[0] == kind]


class MessageSink(CoreSink):
    """Turns sink calls into mido messages and hands each one to `send`."""

    def send(self, msg) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def note_on(self, channel: int, pitch: int, velocity: float) -> None:
        import mido

        self.send(mido.Message("note_on", note=int(pitch), velocity=clamp7(velocity), channel=int(channel)))

    def note_off(self, channel: int, pitch: int, velocity: float = 0) -> None:
        import mido

        self.send(mido.Message("note_off", note=int(pitch), velocity=clamp7(velocity), channel=int(channel)))

    def note_pressure(self, channel: int, pitch: int, value: float) -> None:
        import mido

        self.send(mido.Message("polytouch", note=int(pitch), value=clamp7(value), channel=int(channel)))

    def control_change(self, channel: int, control: int, value: float) -> None:
        import mido

        self.send(mido.Message("control_change", control=int(control), value=clamp7(value), channel=int(channel)))

    def pitch_bend(self, channel: int, percent: float) -> None:
        import mido

        self.send(mido.Message("pitchwheel", pitch=bend_to_pitchwheel(percent), channel=int(channel)))

    def panic(self) -> None:
        import mido

        # Send All Notes Off across all channels
        for ch in range(16):
            # Sustain off
            self.send(mido.Message("control_change", control=64, value=0, channel=ch))
            # All Sound Off (120) then All Notes Off (123)
            self.send(mido.Message("control_change", control=120, value=0, channel=ch))
            self.send(mido.Message("control_change", control=123, value=0, channel=ch))


class MidoSink(MessageSink):
    def __init__(self, out_port):
        self.out = out_port

    def send(self, msg) -> None:
        self.out.send(msg)


def open_mido_output(name_filter: Optional[str] = None):
    """Open a Mido output port with safe fallbacks.

    - If mido/rtmidi are unavailable or the system MIDI stack is inaccessible,
      return a dummy object exposing `.send()`.
    - If a specific port is requested but not found, also fall back to dummy
      rather than crashing in headless CI environments.
    """
    class _DummyOut:
        name = "dummy"

        def send(self, *_args, **_kwargs):
            pass

        def close(self):
            pass

    try:
        import mido
    except ImportError:
        logger.debug("mido not importable; using dummy output")
        return _DummyOut()

    try:
        names = mido.get_output_names()
    except Exception as e:  # backend missing or system MIDI inaccessible
        logger.debug("cannot list MIDI outputs (%s); using dummy output", e)
        return _DummyOut()
    if name_filter:
        names = [n for n in names if name_filter in n]
    if not names:
        logger.debug("no MIDI output matching %r; using dummy output", name_filter)
        return _DummyOut()
    try:
        return mido.open_output(names[0])
    except Exception as e:
        logger.debug("failed to open %r (%s); using dummy output", names[0], e)
        return _DummyOut()


NotePredicate = Callable[[Note], bool]


class MidiOut(ClockChild):
    """Reconciles note state into a minimal stream of on/off/pressure messages.

    Holds every note that has been started but not yet flushed. Each
    update():
    - announces note-offs for notes that have just stopped, unless a later
      note of the same pitch and channel is still sounding (overlap masking)
    - announces note-ons for notes that turned on since they were added,
      and pressure changes for sounding notes whose velocity moved
    - drops the stopped notes
    """

    def __init__(self, sink: Optional[CoreSink] = None) -> None:
        super().__init__()
        self.sink = sink
        self._notes: List[Note] = []
        self.metrics: Dict[str, int] = {
            "msgs_note_on": 0,
            "msgs_note_off": 0,
            "msgs_note_pressure": 0,
            "msgs_cc": 0,
            "msgs_bend": 0,
            "suppressed_note_off": 0,
        }

    @property
    def notes(self) -> List[Note]:
        return self._notes

    def get_metrics(self) -> Dict[str, int]:
        return dict(self.metrics)

    # --- Sink forwarding ---
    def _emit(self, kind: str, *args) -> bool:
        if self.sink is None:
            logger.debug("no sink connected; dropping %s %s", kind, args)
            return False
        getattr(self.sink, kind)(*args)
        return True

    def _note_on(self, note: Note) -> None:
        if self._emit("note_on", note.channel, note.pitch, note.velocity):
            self.metrics["msgs_note_on"] += 1

    def _note_off(self, note: Note) -> None:
        if self._emit("note_off", note.channel, note.pitch, note.velocity):
            self.metrics["msgs_note_off"] += 1

    def _note_pressure(self, note: Note) -> None:
        if self._emit("note_pressure", note.channel, note.pitch, note.velocity):
            self.metrics["msgs_note_pressure"] += 1

    def control_change(self, controller: int, value: float, channel: int) -> None:
        if self._emit("control_change", channel, controller, value):
            self.metrics["msgs_cc"] += 1

    def pitch_bend(self, percent: float, channel: int) -> None:
        if self._emit("pitch_bend", channel, percent):
            self.metrics["msgs_bend"] += 1

    def panic(self) -> None:
        self._emit("panic")

    # --- Note management ---
    def add_note(self, note: Note) -> Note:
        """Register a note; one that is already on is announced immediately."""
        if note.on:
            self._note_on(note)
            note.on_tracker.accept()
            note.velocity_tracker.accept()
        self._notes.append(note)
        return note

    def stop_notes(self, predicate: Optional[NotePredicate] = None) -> None:
        """Flip matching notes off; the note-offs go out on the next update."""
        for n in self._notes:
            if predicate is None or predicate(n):
                n.stop()

    def _masked_by_later_note(self, index: int) -> bool:
        """True if a later note of the same pitch and channel accounts for this note-off.

        That is either a later duplicate still sounding, or one stopping in
        this same update, which sends the single note-off itself.
        """
        note = self._notes[index]
        for later in self._notes[index + 1:]:
            if later.pitch != note.pitch or later.channel != note.channel:
                continue
            if later.on and not later.on_tracker.is_dirty:
                return True
            if not later.on and later.on_tracker.is_dirty:
                return True
        return False

    def update(self, delta_ms: float) -> None:
        any_stopped = False

        # Note-offs first, so the scan sees which later duplicates are still sounding
        for i, note in enumerate(self._notes):
            if note.on:
                continue
            any_stopped = True
            if not note.on_tracker.is_dirty:
                continue
            if self._masked_by_later_note(i):
                self.metrics["suppressed_note_off"] += 1
            else:
                self._note_off(note)
            note.on_tracker.accept()

        for note in self._notes:
            if not note.on:
                continue
            if note.on_tracker.is_dirty:
                self._note_on(note)
                note.on_tracker.accept()
                note.velocity_tracker.accept()
            elif note.velocity_tracker.is_dirty:
                self._note_pressure(note)
                note.velocity_tracker.accept()

        if any_stopped:
            self._notes = [n for n in self._notes if n.on]

    def finish(self) -> None:
        """Stop every note and flush the note-offs before finishing."""
        if self.finished:
            return
        self.stop_notes()
        self.update(0)
        super().finish()
