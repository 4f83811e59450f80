from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, List, Optional

from beatline.events import Event, EventData


logger = logging.getLogger(__name__)


class ClockChild:
    """Base for anything a Clock updates once per tick."""

    def __init__(self) -> None:
        self.ref: Optional[str] = None
        self._finished = False
        self.on_finished = Event()

    @property
    def finished(self) -> bool:
        return self._finished

    def update(self, delta_ms: float) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def finish(self) -> None:
        """Mark the child as done; the owning clock drops it after this tick."""
        if self._finished:
            return
        self._finished = True
        self.on_finished.trigger(EventData(self))

    def with_ref(self, ref: str):
        self.ref = ref
        return self


class Clock:
    """Calls update(delta_ms) on each registered child, in registration order.

    Children are registered explicitly. Order matters: a time base must be
    added before the players that read it, and players before the
    MidiOut that flushes their notes.
    """

    def __init__(self, ms_per_tick: float = 5.0) -> None:
        self.ms_per_tick = float(ms_per_tick)
        self._children: List[ClockChild] = []
        self._runner: Optional[InternalClock] = None

    @property
    def children(self) -> List[ClockChild]:
        return self._children

    @property
    def running(self) -> bool:
        return self._runner is not None and self._runner.running

    def add_child(self, child: ClockChild) -> ClockChild:
        self._children.append(child)
        return child

    def add_children(self, *children: ClockChild) -> None:
        for c in children:
            self.add_child(c)

    def get_child(self, ref: str) -> Optional[ClockChild]:
        for c in self._children:
            if c.ref == ref:
                return c
        return None

    def stop_children(self, predicate: Callable[[ClockChild], bool]) -> None:
        for c in list(self._children):
            if predicate(c):
                c.finish()

    def update_children(self, delta_ms: float) -> None:
        for child in list(self._children):
            if not child.finished:
                child.update(delta_ms)
        self._children = [c for c in self._children if not c.finished]

    def start(self) -> bool:
        """Start driving children from wall-clock time; False if already running."""
        if self.running:
            return False
        self._runner = InternalClock(self.ms_per_tick, self.update_children)
        self._runner.start()
        return True

    def stop(self) -> bool:
        if not self.running:
            return False
        self._runner.stop()
        self._runner = None
        return True

    def get_metrics(self) -> dict:
        return self._runner.get_metrics() if self._runner else {}


class InternalClock:
    """Daemon thread calling `tick_handler(delta_ms)` every `interval_ms`.

    Deltas are measured with time.monotonic, so a late wake-up yields a
    larger delta rather than lost time.
    """

    def __init__(self, interval_ms: float, tick_handler: Callable[[float], None]):
        self.interval = float(interval_ms) / 1000.0
        self.tick_handler = tick_handler
        self._t: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._jitter_ms: Deque[float] = deque(maxlen=512)
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._t is not None and self._t.is_alive() and not self._stop.is_set()

    def start(self):
        if self._t and self._t.is_alive():
            return
        self._stop.clear()
        self._t = threading.Thread(target=self._run, daemon=True)
        self._t.start()
        logger.debug("internal clock started (%.3f ms)", self.interval * 1000.0)

    def stop(self):
        self._stop.set()
        if self._t and self._t is not threading.current_thread():
            self._t.join(timeout=1.0)
        logger.debug("internal clock stopped")

    def _run(self):
        last = time.monotonic()
        next_call = last + self.interval
        while not self._stop.is_set():
            now = time.monotonic()
            if now >= next_call:
                with self._lock:
                    self._jitter_ms.append(max(0.0, (now - next_call) * 1000.0))
                next_call += self.interval
                # Don't try to catch up on missed ticks; the delta covers them
                if next_call < now:
                    next_call = now + self.interval
                delta_ms = (now - last) * 1000.0
                last = now
                self.tick_handler(delta_ms)
            else:
                time.sleep(min(0.002, max(0.0, next_call - now)))

    def _percentile(self, values: List[float], pct: float) -> float:
        if not values:
            return 0.0
        xs = sorted(values)
        k = (len(xs) - 1) * pct
        f = int(k)
        c = min(f + 1, len(xs) - 1)
        if f == c:
            return xs[f]
        return xs[f] * (c - k) + xs[c] * (k - f)

    def get_metrics(self) -> dict:
        with self._lock:
            samples = list(self._jitter_ms)
        return {
            "jitterMsP95": round(self._percentile(samples, 0.95), 3),
            "jitterMsP99": round(self._percentile(samples, 0.99), 3),
        }
