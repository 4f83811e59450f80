from __future__ import annotations

import math


class LinearTween:
    """Constant-rate movement from `from_` to `to` as percent goes 0 -> 1.

    Tweens are callable, so they can stand in anywhere a
    ``percent -> value`` function is accepted.
    """

    def __init__(self, from_: float, to: float) -> None:
        self.from_ = float(from_)
        self.to = float(to)

    def tween_equation(self, percent: float) -> float:
        return percent

    def update(self, percent: float) -> float:
        return self.from_ + self.tween_equation(percent) * (self.to - self.from_)

    def __call__(self, percent: float) -> float:
        return self.update(percent)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.from_:g}, {self.to:g})"


class SineInOutTween(LinearTween):
    def tween_equation(self, percent: float) -> float:
        return -(math.cos(math.pi * percent) - 1) / 2


class SineInTween(LinearTween):
    def tween_equation(self, percent: float) -> float:
        return 1 - math.cos((percent * math.pi) / 2)


class SineOutTween(LinearTween):
    def tween_equation(self, percent: float) -> float:
        return math.sin((percent * math.pi) / 2)


class Tween:
    @staticmethod
    def linear(from_: float, to: float) -> LinearTween:
        return LinearTween(from_, to)

    @staticmethod
    def sine_in_out(from_: float, to: float) -> SineInOutTween:
        return SineInOutTween(from_, to)

    @staticmethod
    def sine_in(from_: float, to: float) -> SineInTween:
        return SineInTween(from_, to)

    @staticmethod
    def sine_out(from_: float, to: float) -> SineOutTween:
        return SineOutTween(from_, to)
