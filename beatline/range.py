from __future__ import annotations


class Range:
    """One-dimensional span from `start` to `start + duration`, in beats.

    Base shape of every schedulable item: clip notes, control segments,
    arpeggio notes and progression chords.
    """

    def __init__(self, start: float, duration: float) -> None:
        self._start = float(start)
        self._duration = 0.0
        self.duration = duration

    @property
    def start(self) -> float:
        return self._start

    @start.setter
    def start(self, value: float) -> None:
        self._start = float(value)

    @property
    def duration(self) -> float:
        return self._duration

    @duration.setter
    def duration(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"duration cannot be negative (got {value})")
        self._duration = float(value)

    @property
    def end(self) -> float:
        return self._start + self._duration

    @end.setter
    def end(self, value: float) -> None:
        self.duration = value - self._start

    def get_percent(self, value: float) -> float:
        """How far through the range `value` sits; may fall outside 0..1."""
        if self._duration == 0:
            return 0.0
        return (value - self._start) / self._duration

    def contains(self, point: float) -> bool:
        return self._start <= point <= self.end

    def __repr__(self) -> str:
        return f"{type(self).__name__}(start={self._start}, duration={self._duration})"
