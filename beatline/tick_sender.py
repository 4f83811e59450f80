from __future__ import annotations

import logging
import math

from beatline.clock import ClockChild
from beatline.events import EventData, PositionEventData
from beatline.time_base import TimeBase


logger = logging.getLogger(__name__)


# MIDI Song Position counts sixteenth notes in 14 bits
MAX_SONG_POSITION = 16383


class TickSender(ClockChild):
    """Sends MIDI clock and transport for a TimeBase, so other devices can follow it.

    `sink` is anything with `send(msg)` taking mido messages (MidoSink,
    MidiBus). Each update sends one "clock" per tick boundary the time
    base crossed, ticks_per_quarter_note to a quarter note. Time base
    events become "start", "continue", "stop" and "songpos".
    """

    def __init__(self, time_base: TimeBase, sink, ticks_per_quarter_note: int = 24) -> None:
        super().__init__()
        self.sink = sink
        self.ticks_per_quarter_note = ticks_per_quarter_note
        self.ticks_sent = 0
        self._time_base = time_base
        self._subscriptions = [
            (time_base.on_started, self._on_started),
            (time_base.on_continued, self._on_continued),
            (time_base.on_stopped, self._on_stopped),
            (time_base.on_position_changed, self._on_position_changed),
        ]
        for event, handler in self._subscriptions:
            event.add(handler)

    @property
    def time_base(self) -> TimeBase:
        return self._time_base

    @property
    def ticks_per_quarter_note(self) -> int:
        return self._ticks_per_quarter_note

    @ticks_per_quarter_note.setter
    def ticks_per_quarter_note(self, value: int) -> None:
        if not value > 0:
            raise ValueError(f"ticks_per_quarter_note must be > 0 (got {value!r})")
        self._ticks_per_quarter_note = value

    def _send(self, *args, **kwargs) -> None:
        import mido

        self.sink.send(mido.Message(*args, **kwargs))

    def _on_started(self, _data: EventData) -> None:
        self._send("start")

    def _on_continued(self, _data: EventData) -> None:
        self._send("continue")

    def _on_stopped(self, _data: EventData) -> None:
        self._send("stop")

    def _on_position_changed(self, data: PositionEventData) -> None:
        pos = int(round(data.total_quarter_note * 4))
        self._send("songpos", pos=max(0, min(MAX_SONG_POSITION, pos)))

    def update(self, delta_ms: float) -> None:
        tracker = self._time_base.total_quarter_note_tracker
        tpq = self._ticks_per_quarter_note
        # Boundaries in (old, new]; nothing for a standstill or a backwards step
        count = math.floor(tracker.value * tpq) - math.floor(tracker.old_value * tpq)
        for _ in range(max(0, count)):
            self._send("clock")
        self.ticks_sent += max(0, count)

    def finish(self) -> None:
        if self.finished:
            return
        for event, handler in self._subscriptions:
            event.remove(handler)
        logger.debug("tick sender %s finished after %d ticks", self.ref, self.ticks_sent)
        super().finish()
