from __future__ import annotations

import logging
import math
from typing import Optional

from beatline.clock import ClockChild
from beatline.events import Event, EventData, PositionEventData
from beatline.property_tracker import ChangeTracker
from beatline.time_sig import TimeSignature


logger = logging.getLogger(__name__)


def _positive(name: str, value: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a number (got {value!r})") from e
    if not v > 0:
        raise ValueError(f"{name} must be > 0 (got {value!r})")
    return v


class TimeBase(ClockChild):
    """Tempo-driven bar/beat position tracker.

    States: stopped (never advanced), running, disabled, finished.
    - update(ms) / update_from_quarter_note_delta(qn) advance the position.
    - Every position value is a ChangeTracker, so dependants can compare
      the position before and after the most recent update.
    - Assigning `time_sig` only queues the change; it is committed when
      the next bar starts.
    - set_song_position() jumps directly without rolling through bars.
    """

    def __init__(self, tempo: float, time_sig: Optional[TimeSignature] = None, tempo_multiplier: float = 1.0) -> None:
        super().__init__()
        self._tempo = _positive("tempo", tempo)
        self._tempo_multiplier = _positive("tempo_multiplier", tempo_multiplier)
        if time_sig is None:
            time_sig = TimeSignature.common_time()
        self._check_time_sig(time_sig)
        self._time_sig: ChangeTracker[TimeSignature] = ChangeTracker(time_sig)

        self._total_quarter_note = ChangeTracker(0.0)
        self._total_beat = ChangeTracker(0.0)
        self._bar = ChangeTracker(1)
        self._bar_quarter_note = ChangeTracker(0.0)
        self._bar_beat = ChangeTracker(0.0)
        self._enabled = ChangeTracker(True)
        # Beats contained in all completed bars, each under its own signature
        self._bar_start_beat = 0.0
        self._started = False

        self.on_started = Event()
        self.on_continued = Event()
        self.on_stopped = Event()
        self.on_position_changed = Event()

    # --- Configuration ---
    @property
    def tempo(self) -> float:
        return self._tempo

    @tempo.setter
    def tempo(self, value: float) -> None:
        self._tempo = _positive("tempo", value)

    @property
    def tempo_multiplier(self) -> float:
        return self._tempo_multiplier

    @tempo_multiplier.setter
    def tempo_multiplier(self, value: float) -> None:
        self._tempo_multiplier = _positive("tempo_multiplier", value)

    @staticmethod
    def _check_time_sig(value) -> None:
        if not isinstance(value, TimeSignature):
            raise TypeError(f"expected TimeSignature, got {type(value).__name__}")

    @property
    def time_sig(self) -> TimeSignature:
        """The committed signature; a newly assigned one waits for the next bar."""
        return self._time_sig.old_value

    @time_sig.setter
    def time_sig(self, value: TimeSignature) -> None:
        self._check_time_sig(value)
        self._time_sig.value = value

    @property
    def pending_time_sig(self) -> Optional[TimeSignature]:
        return self._time_sig.value if self._time_sig.is_dirty else None

    # --- Position ---
    @property
    def total_quarter_note(self) -> float:
        return self._total_quarter_note.value

    @property
    def total_quarter_note_tracker(self) -> ChangeTracker[float]:
        return self._total_quarter_note

    @property
    def total_beat(self) -> float:
        return self._total_beat.value

    @property
    def total_beat_tracker(self) -> ChangeTracker[float]:
        return self._total_beat

    @property
    def bar(self) -> int:
        return self._bar.value

    @property
    def bar_tracker(self) -> ChangeTracker[int]:
        return self._bar

    @property
    def bar_quarter_note(self) -> float:
        return self._bar_quarter_note.value

    @property
    def bar_quarter_note_tracker(self) -> ChangeTracker[float]:
        return self._bar_quarter_note

    @property
    def bar_beat(self) -> float:
        return self._bar_beat.value

    @property
    def bar_beat_tracker(self) -> ChangeTracker[float]:
        return self._bar_beat

    # --- State ---
    @property
    def started(self) -> bool:
        return self._started

    @property
    def enabled(self) -> bool:
        return self._enabled.value

    @enabled.setter
    def enabled(self, value: bool) -> None:
        value = bool(value)
        if self.finished or value == self._enabled.value:
            return
        self._enabled.value = value
        if not value:
            logger.debug("time base %s stopped at bar %s beat %.3f", self.ref, self.bar, self.bar_beat)
            self.on_stopped.trigger(EventData(self))
        elif self._started:
            logger.debug("time base %s continued", self.ref)
            self.on_continued.trigger(EventData(self))

    def finish(self) -> None:
        if self.finished:
            return
        self._enabled.value = False
        self._enabled.accept()
        self._accept_position()
        logger.debug("time base %s finished", self.ref)
        super().finish()

    # --- Boundary tests ---
    @staticmethod
    def _at_position(target: float, tracker: ChangeTracker[float]) -> bool:
        old, new = tracker.old_value, tracker.value
        if old == new:
            return new == target
        if old < new:
            return old < target <= new
        # Wrapped round into the next bar
        return target <= new or target > old

    def at_bar_beat(self, beat: float) -> bool:
        """True if the most recent update passed `beat` within the bar."""
        return self._at_position(beat, self._bar_beat)

    def at_bar_quarter_note(self, quarter_note: float) -> bool:
        return self._at_position(quarter_note, self._bar_quarter_note)

    # --- Advancing ---
    def update(self, delta_ms: float) -> bool:
        qn_delta = delta_ms * (self._tempo / 60000.0) * self._tempo_multiplier
        return self.update_from_quarter_note_delta(qn_delta)

    def _accept_position(self) -> None:
        self._total_quarter_note.accept()
        self._total_beat.accept()
        self._bar.accept()
        self._bar_quarter_note.accept()
        self._bar_beat.accept()

    def update_from_quarter_note_delta(self, qn_delta: float) -> bool:
        self._enabled.accept()
        # Committed even while disabled, so readers of the trackers see no movement
        self._accept_position()
        if not self.enabled:
            return False

        if qn_delta != 0 and not self._started:
            self._started = True
            logger.debug("time base %s started", self.ref)
            self.on_started.trigger(EventData(self))

        self._total_quarter_note.value += qn_delta
        self._bar_quarter_note.value += qn_delta
        while True:
            ts = self.time_sig
            qnpb = ts.quarter_notes_per_bar
            if self._bar_quarter_note.value < qnpb:
                break
            self._bar_quarter_note.value -= qnpb
            self._bar.value += 1
            self._bar_start_beat += ts.beats_per_bar
            if self._time_sig.is_dirty:
                logger.debug("time base %s: bar %d uses %r", self.ref, self._bar.value, self._time_sig.value)
            self._time_sig.accept()

        self._bar_beat.value = self.time_sig.quarter_note_to_beat(self._bar_quarter_note.value)
        self._total_beat.value = self._bar_start_beat + self._bar_beat.value
        return True

    def set_song_position(self, total_quarter_note: float) -> None:
        """Jump to an absolute position, measured in quarter notes from the start.

        Bars are counted under the committed signature; a pending signature
        stays pending. Both sides of every tracker are committed, so the
        jump does not register as movement for anything reading deltas.
        """
        if total_quarter_note < 0:
            raise ValueError(f"song position cannot be negative (got {total_quarter_note})")
        ts = self.time_sig
        qnpb = ts.quarter_notes_per_bar
        full_bars = math.floor(total_quarter_note / qnpb)
        bar_qn = total_quarter_note - full_bars * qnpb

        self._total_quarter_note.value = float(total_quarter_note)
        self._bar.value = full_bars + 1
        self._bar_quarter_note.value = bar_qn
        self._bar_start_beat = full_bars * ts.beats_per_bar
        self._bar_beat.value = ts.quarter_note_to_beat(bar_qn)
        self._total_beat.value = self._bar_start_beat + self._bar_beat.value
        self._accept_position()
        logger.debug("time base %s moved to bar %d beat %.3f", self.ref, self.bar, self.bar_beat)
        self.on_position_changed.trigger(PositionEventData(self, float(total_quarter_note)))
