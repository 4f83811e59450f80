from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from beatline.clock import ClockChild
from beatline.time_base import TimeBase


@dataclass(frozen=True)
class RepeatArgs:
    ms: float


@dataclass(frozen=True)
class FiniteRepeatArgs(RepeatArgs):
    percent: float


@dataclass(frozen=True)
class BeatRepeatArgs(FiniteRepeatArgs):
    beat: float


class ConditionalRepeat(ClockChild):
    """Calls `action` on every update until `condition()` is true."""

    def __init__(self, condition: Callable[[], bool], action: Callable[[RepeatArgs], None]) -> None:
        super().__init__()
        self.condition = condition
        self.action = action
        self._ms_passed = 0.0

    def update(self, delta_ms: float) -> None:
        if self.finished:
            return
        self._ms_passed += delta_ms
        if self.condition():
            self.finish()
        else:
            self.action(RepeatArgs(self._ms_passed))


class MsRepeat(ClockChild):
    def __init__(self, ms_count: float, action: Callable[[FiniteRepeatArgs], None]) -> None:
        super().__init__()
        self.ms_count = ms_count
        self.action = action
        self._ms_passed = 0.0

    def update(self, delta_ms: float) -> None:
        if self.finished:
            return
        self._ms_passed += delta_ms
        if self._ms_passed >= self.ms_count:
            self.finish()
        else:
            self.action(FiniteRepeatArgs(self._ms_passed, self._ms_passed / self.ms_count))


class BeatRepeat(ClockChild):
    """Calls `action` on every update for `beat_count` beats of the time base."""

    def __init__(self, time_base: TimeBase, beat_count: float, action: Callable[[BeatRepeatArgs], None]) -> None:
        super().__init__()
        self.time_base = time_base
        self.beat_count = beat_count
        self.action = action
        self._ms_passed = 0.0
        self._beats_passed = 0.0

    def update(self, delta_ms: float) -> None:
        if self.finished:
            return
        tracker = self.time_base.total_beat_tracker
        self._ms_passed += delta_ms
        self._beats_passed += tracker.value - tracker.old_value
        if self._beats_passed >= self.beat_count:
            self.finish()
        else:
            self.action(BeatRepeatArgs(self._ms_passed, self._beats_passed / self.beat_count, self._beats_passed))


class Repeat:
    @staticmethod
    def until(condition: Callable[[], bool], action: Callable[[RepeatArgs], None]) -> ConditionalRepeat:
        return ConditionalRepeat(condition, action)

    @staticmethod
    def for_ms(ms_count: float, action: Callable[[FiniteRepeatArgs], None]) -> MsRepeat:
        return MsRepeat(ms_count, action)

    @staticmethod
    def for_beats(time_base: TimeBase, beat_count: float, action: Callable[[BeatRepeatArgs], None]) -> BeatRepeat:
        return BeatRepeat(time_base, beat_count, action)
