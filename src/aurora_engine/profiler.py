"""Per-stage timing for session ticks.

    profiler = TickProfiler()
    with profiler.stage("classification"):
        symbol = classifier.classify_frame(frame)
    profiler.summary()  # {"classification": {"avg_ms": ..., "p95_ms": ...}}
"""

from __future__ import annotations

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator


@dataclass
class StageStats:
    name: str
    avg_ms: float
    min_ms: float
    max_ms: float
    p95_ms: float
    calls: int


class TickProfiler:
    """Rolling-window timer keyed by stage name. Stages are created on first use."""

    def __init__(self, window_size: int = 120, enabled: bool = True):
        self.window_size = window_size
        self.enabled = enabled
        self._samples: dict[str, deque[float]] = {}
        self._calls: dict[str, int] = {}

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return

        t0 = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - t0) * 1000.0
            self._samples.setdefault(name, deque(maxlen=self.window_size)).append(elapsed_ms)
            self._calls[name] = self._calls.get(name, 0) + 1

    def stats(self, name: str) -> StageStats | None:
        samples = self._samples.get(name)
        if not samples:
            return None

        ordered = sorted(samples)
        n = len(ordered)
        return StageStats(
            name=name,
            avg_ms=sum(ordered) / n,
            min_ms=ordered[0],
            max_ms=ordered[-1],
            p95_ms=ordered[min(n - 1, int(n * 0.95))],
            calls=self._calls[name],
        )

    def summary(self) -> dict[str, dict]:
        result = {}
        for name in self._samples:
            s = self.stats(name)
            if s is None:
                continue
            result[name] = {
                "avg_ms": round(s.avg_ms, 3),
                "min_ms": round(s.min_ms, 3),
                "max_ms": round(s.max_ms, 3),
                "p95_ms": round(s.p95_ms, 3),
                "calls": s.calls,
            }
        return result

    def reset(self):
        self._samples.clear()
        self._calls.clear()
