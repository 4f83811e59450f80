from __future__ import annotations

from typing import Callable, Optional

from beatline.clock import ClockChild
from beatline.time_base import TimeBase


Action = Callable[[], None]


class CueBase(ClockChild):
    """Waits for something, runs `action` once, then finishes."""

    def __init__(self, action: Action) -> None:
        super().__init__()
        self.action = action

    def _ready(self, delta_ms: float) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    def update(self, delta_ms: float) -> None:
        if self.finished:
            return
        if self._ready(delta_ms):
            self.action()
            self.finish()


class MsCue(CueBase):
    def __init__(self, ms_count: float, action: Action) -> None:
        super().__init__(action)
        self.ms_count = ms_count
        self._ms_passed = 0.0

    def _ready(self, delta_ms: float) -> bool:
        self._ms_passed += delta_ms
        return self._ms_passed >= self.ms_count


class ConditionalCue(CueBase):
    def __init__(self, condition: Callable[[], bool], action: Action) -> None:
        super().__init__(action)
        self.condition = condition

    def _ready(self, delta_ms: float) -> bool:
        return bool(self.condition())


class BeatCue(CueBase):
    """Fires once `beat_count` beats of the time base have elapsed."""

    def __init__(self, time_base: TimeBase, beat_count: float, action: Action) -> None:
        super().__init__(action)
        self.time_base = time_base
        self.beat_count = beat_count
        self._beats_passed = 0.0

    def _ready(self, delta_ms: float) -> bool:
        tracker = self.time_base.total_beat_tracker
        self._beats_passed += tracker.value - tracker.old_value
        return self._beats_passed >= self.beat_count


class BarBeatCue(CueBase):
    """Fires the first time the time base passes `bar_beat`, optionally in a given bar."""

    def __init__(self, time_base: TimeBase, bar_beat: float, action: Action, bar: Optional[int] = None) -> None:
        super().__init__(action)
        self.time_base = time_base
        self.bar_beat = bar_beat
        self.bar = bar

    def _ready(self, delta_ms: float) -> bool:
        if not self.time_base.at_bar_beat(self.bar_beat):
            return False
        return self.bar is None or self.time_base.bar == self.bar


class Cue:
    @staticmethod
    def when(condition: Callable[[], bool], action: Action) -> ConditionalCue:
        return ConditionalCue(condition, action)

    @staticmethod
    def after_ms(ms_count: float, action: Action) -> MsCue:
        return MsCue(ms_count, action)

    @staticmethod
    def after_beats(time_base: TimeBase, beat_count: float, action: Action) -> BeatCue:
        return BeatCue(time_base, beat_count, action)

    @staticmethod
    def at_bar_beat(time_base: TimeBase, bar_beat: float, action: Action, bar: Optional[int] = None) -> BarBeatCue:
        return BarBeatCue(time_base, bar_beat, action, bar)
