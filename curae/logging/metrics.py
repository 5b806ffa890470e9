# ==============================
# Metrics (In-Memory)
# ==============================
"""
Thread-safe in-memory counters and timers for the engine.

Names in use:
- retrieve.calls / retrieve.candidates / retrieve.ms
- ingest.documents / ingest.failures / ingest.ms
- store.persist_failures

Timers keep the most recent samples per name (bounded) plus lifetime count/total.
No exporters.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Deque, Dict, Iterator, Tuple

DEFAULT_TIMER_WINDOW = 1000


@dataclass
class Timer:
    name: str
    started: float


class Metrics:
    def __init__(self, *, timer_window: int = DEFAULT_TIMER_WINDOW) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._timer_window = timer_window
        # recent samples only; totals cover the whole process lifetime
        self._timers_ms: Dict[str, Deque[int]] = {}
        self._timer_totals: Dict[str, Tuple[int, int]] = {}

    def inc(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def start_timer(self, name: str) -> Timer:
        return Timer(name=name, started=time.perf_counter())

    def stop_timer(self, timer: Timer) -> int:
        elapsed_ms = int((time.perf_counter() - timer.started) * 1000)
        with self._lock:
            samples = self._timers_ms.get(timer.name)
            if samples is None:
                samples = self._timers_ms[timer.name] = deque(maxlen=self._timer_window)
            samples.append(elapsed_ms)
            count, total = self._timer_totals.get(timer.name, (0, 0))
            self._timer_totals[timer.name] = (count + 1, total + elapsed_ms)
        return elapsed_ms

    @contextmanager
    def timed(self, name: str) -> Iterator[Timer]:
        timer = self.start_timer(name)
        try:
            yield timer
        finally:
            self.stop_timer(timer)

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timers_ms": {k: list(v) for k, v in self._timers_ms.items()},
                "timer_totals": {k: {"count": c, "total_ms": t} for k, (c, t) in self._timer_totals.items()},
            }
