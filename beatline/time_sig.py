from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple


# Swing is clamped so the division midpoint stays within 1%..99% of its length
SWING_LIMIT = 0.98


@dataclass(frozen=True)
class TimeSigDivision:
    """One beat of a bar: `count` notes of the denominator's length.

    `swing` overrides the time signature's default when not None.
    """

    count: float = 1
    swing: Optional[float] = None


def _clamp_swing(swing: float) -> float:
    return max(-SWING_LIMIT, min(SWING_LIMIT, float(swing)))


def swing_fraction(fraction: float, swing: float) -> float:
    """Map a fraction of elapsed time through a division to a fraction of its beat.

    The midpoint of the beat lands at (swing + 1) / 2 of the division's
    time; each half of the curve is linear. swing == 0 is the identity.
    """
    if swing == 0:
        return fraction
    mid = (_clamp_swing(swing) + 1) / 2
    if fraction <= mid:
        return (fraction / mid) * 0.5
    return 0.5 + ((fraction - mid) / (1 - mid)) * 0.5


def unswing_fraction(fraction: float, swing: float) -> float:
    """Inverse of swing_fraction."""
    if swing == 0:
        return fraction
    mid = (_clamp_swing(swing) + 1) / 2
    if fraction <= 0.5:
        return fraction * 2 * mid
    return mid + (fraction - 0.5) * 2 * (1 - mid)


def _coerce_division(value: Any) -> TimeSigDivision:
    if isinstance(value, TimeSigDivision):
        division = value
    elif isinstance(value, (int, float)):
        division = TimeSigDivision(value)
    elif isinstance(value, dict):
        division = TimeSigDivision(value.get("count", 1), value.get("swing"))
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        division = TimeSigDivision(value[0], value[1])
    else:
        raise ValueError(f"invalid division: {value!r}")
    if not isinstance(division.count, (int, float)) or division.count <= 0:
        raise ValueError(f"invalid division count: {division.count!r}")
    return division


class TimeSignature:
    """How quarter notes are grouped into beats, and beats into bars.

    Beats follow `divisions`: 7/8 counted as 2+2+3 is
    ``TimeSignature([2, 2, 3], 8)``, three beats per bar of unequal length.
    Swing is applied inside every division.
    """

    def __init__(self, divisions: Iterable[Any], denominator: int = 4, swing: float = 0.0) -> None:
        if not isinstance(denominator, int) or denominator <= 0 or (denominator & (denominator - 1)) != 0:
            raise ValueError(f"invalid denominator: {denominator!r}")
        divs = [_coerce_division(d) for d in divisions]
        if not divs:
            raise ValueError("expected at least one division")
        self._divisions: Tuple[TimeSigDivision, ...] = tuple(divs)
        self._denominator = denominator
        self._swing = float(swing)

    @property
    def divisions(self) -> Tuple[TimeSigDivision, ...]:
        return self._divisions

    @property
    def denominator(self) -> int:
        return self._denominator

    @property
    def swing(self) -> float:
        return self._swing

    @property
    def beats_per_bar(self) -> float:
        return len(self._divisions)

    @property
    def quarter_notes_per_bar(self) -> float:
        return sum(d.count for d in self._divisions) * 4 / self._denominator

    def division_length(self, division: TimeSigDivision) -> float:
        """Length of a division in quarter notes."""
        return division.count * 4 / self._denominator

    def division_swing(self, division: TimeSigDivision) -> float:
        return self._swing if division.swing is None else division.swing

    def quarter_note_to_beat(self, quarter_note: float) -> float:
        qnpb = self.quarter_notes_per_bar
        full_bars = math.floor(quarter_note / qnpb)
        remaining = quarter_note - full_bars * qnpb
        beat = 0.0
        for division in self._divisions:
            length = self.division_length(division)
            if remaining >= length:
                remaining -= length
                beat += 1
                continue
            beat += swing_fraction(remaining / length, self.division_swing(division))
            break
        return full_bars * self.beats_per_bar + beat

    def beat_to_quarter_note(self, beat: float) -> float:
        bpb = self.beats_per_bar
        full_bars = math.floor(beat / bpb)
        remaining = beat - full_bars * bpb
        quarter_note = 0.0
        for division in self._divisions:
            length = self.division_length(division)
            if remaining >= 1:
                quarter_note += length
                remaining -= 1
                continue
            quarter_note += unswing_fraction(remaining, self.division_swing(division)) * length
            break
        return full_bars * self.quarter_notes_per_bar + quarter_note

    @classmethod
    def common_time(cls, swing: float = 0.0) -> "TimeSignature":
        return cls([1, 1, 1, 1], 4, swing)

    def __repr__(self) -> str:
        counts = "+".join(f"{d.count:g}" for d in self._divisions)
        return f"{type(self).__name__}({counts}/{self._denominator}, swing={self._swing:g})"


class QuarterNoteTimeSignature(TimeSignature):
    """Identity beat policy: one beat per quarter note, whatever the divisions.

    Swing is the time signature's own value, applied per quarter note.
    When a bar holds a non-whole number of quarter notes, the trailing
    fragment is left unswung so positions never run past the bar.
    Per-division swing values are ignored.
    """

    @property
    def beats_per_bar(self) -> float:
        return self.quarter_notes_per_bar

    def _in_trailing_fragment(self, whole: int) -> bool:
        qnpb = self.quarter_notes_per_bar
        return qnpb % 1 != 0 and whole + 1 > qnpb

    def quarter_note_to_beat(self, quarter_note: float) -> float:
        qnpb = self.quarter_notes_per_bar
        full_bars = math.floor(quarter_note / qnpb)
        remaining = quarter_note - full_bars * qnpb
        whole = math.floor(remaining)
        if self._in_trailing_fragment(whole):
            beat = remaining
        else:
            beat = whole + swing_fraction(remaining - whole, self._swing)
        return full_bars * qnpb + beat

    def beat_to_quarter_note(self, beat: float) -> float:
        qnpb = self.quarter_notes_per_bar
        full_bars = math.floor(beat / qnpb)
        remaining = beat - full_bars * qnpb
        whole = math.floor(remaining)
        if self._in_trailing_fragment(whole):
            quarter_note = remaining
        else:
            quarter_note = whole + unswing_fraction(remaining - whole, self._swing)
        return full_bars * qnpb + quarter_note


def parse_time_signature(text: str, swing: float = 0.0, quarter_note_beats: bool = False) -> TimeSignature:
    """Parse "4/4", "7/8" or additive forms like "2+2+3/8".

    A plain numerator N gives N single-count divisions; an additive
    numerator gives one division per term.
    """
    try:
        top, bottom = str(text).strip().split("/")
        denominator = int(bottom)
        parts = [p.strip() for p in top.split("+")]
        if len(parts) == 1:
            divisions: List[float] = [1] * int(parts[0])
        else:
            divisions = [float(p) if "." in p else int(p) for p in parts]
    except ValueError as e:
        raise ValueError(f"invalid time signature {text!r}: {e}") from e
    cls = QuarterNoteTimeSignature if quarter_note_beats else TimeSignature
    return cls(divisions, denominator, swing)
