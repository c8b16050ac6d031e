"""Prometheus-compatible metrics for AuroraEngine.

Renders the Prometheus text exposition format directly; no client library.

Tracked metrics:
- aurora_engine_symbols_confirmed_total (counter, by symbol)
- aurora_engine_objects_confirmed_total (counter, by label)
- aurora_engine_announcements_total (counter, by channel)
- aurora_engine_navigation_changes_total (counter)
- aurora_engine_frames_total (counter, by stream)
- aurora_engine_malformed_observations_total (counter)
- aurora_engine_input_unavailable_total (counter)
- aurora_engine_tick_latency_seconds (histogram)
- aurora_engine_active_sessions (gauge)
- aurora_engine_uptime_seconds (gauge)
"""

from __future__ import annotations

import threading
import time
from collections import Counter


class _Histogram:
    def __init__(self, buckets: list[float]):
        self.buckets = sorted(buckets)
        self.bucket_counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float):
        with self._lock:
            self.count += 1
            self.sum += value
            for i, b in enumerate(self.buckets):
                if value <= b:
                    self.bucket_counts[i] += 1
                    break

    def render(self, name: str, help_text: str) -> list[str]:
        lines = [f"# HELP {name} {help_text}", f"# TYPE {name} histogram"]
        with self._lock:
            cumulative = 0
            for b, n in zip(self.buckets, self.bucket_counts):
                cumulative += n
                lines.append(f'{name}_bucket{{le="{b}"}} {cumulative}')
            lines.append(f'{name}_bucket{{le="+Inf"}} {self.count}')
            lines.append(f"{name}_sum {self.sum:.6f}")
            lines.append(f"{name}_count {self.count}")
        return lines


def _labelled(name: str, help_text: str, label: str, counts: Counter) -> list[str]:
    lines = [f"# HELP {name} {help_text}", f"# TYPE {name} counter"]
    for key, count in sorted(counts.items()):
        lines.append(f'{name}{{{label}="{key}"}} {count}')
    return lines


def _scalar(name: str, help_text: str, kind: str, value) -> list[str]:
    return [f"# HELP {name} {help_text}", f"# TYPE {name} {kind}", f"{name} {value}"]


class MetricsCollector:
    """Thread-safe counters shared by every session of a process."""

    def __init__(self):
        self._symbols: Counter = Counter()
        self._objects: Counter = Counter()
        self._announcements: Counter = Counter()
        self._frames: Counter = Counter()
        self._navigation_changes = 0
        self._malformed = 0
        self._unavailable = 0
        self._active_sessions = 0
        self._lock = threading.Lock()
        # 0.5ms .. 50ms; the core is expected to sit well under one video frame
        self._latency = _Histogram([0.0005, 0.001, 0.002, 0.005, 0.010, 0.020, 0.033, 0.050])
        self._start_time = time.time()

    def record_symbol(self, symbol: str):
        with self._lock:
            self._symbols[symbol] += 1

    def record_object(self, label: str):
        with self._lock:
            self._objects[label] += 1

    def record_announcement(self, channel: str):
        with self._lock:
            self._announcements[channel] += 1

    def record_navigation_change(self):
        with self._lock:
            self._navigation_changes += 1

    def record_malformed(self, count: int = 1):
        with self._lock:
            self._malformed += count

    def record_input_unavailable(self):
        with self._lock:
            self._unavailable += 1

    def record_tick(self, stream: str, latency_seconds: float):
        with self._lock:
            self._frames[stream] += 1
        self._latency.observe(latency_seconds)

    def session_opened(self):
        with self._lock:
            self._active_sessions += 1

    def session_closed(self):
        with self._lock:
            self._active_sessions = max(0, self._active_sessions - 1)

    @property
    def symbol_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._symbols)

    @property
    def object_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._objects)

    @property
    def frame_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._frames)

    def render(self) -> str:
        p = "aurora_engine"
        with self._lock:
            blocks = [
                _scalar(f"{p}_uptime_seconds", "Time since collector creation", "gauge",
                        f"{time.time() - self._start_time:.1f}"),
                _labelled(f"{p}_symbols_confirmed_total", "Confirmed gesture symbols",
                          "symbol", self._symbols),
                _labelled(f"{p}_objects_confirmed_total", "Objects that reached a stable lock",
                          "label", self._objects),
                _labelled(f"{p}_announcements_total", "Announcements passed by the gate",
                          "channel", self._announcements),
                _labelled(f"{p}_frames_total", "Ticks processed", "stream", self._frames),
                _scalar(f"{p}_navigation_changes_total", "Navigation instruction changes",
                        "counter", self._navigation_changes),
                _scalar(f"{p}_malformed_observations_total", "Hands rejected as malformed",
                        "counter", self._malformed),
                _scalar(f"{p}_input_unavailable_total", "Frame source failures reported",
                        "counter", self._unavailable),
                _scalar(f"{p}_active_sessions", "Sessions currently open", "gauge",
                        self._active_sessions),
            ]
        blocks.append(self._latency.render(f"{p}_tick_latency_seconds", "Core tick latency in seconds"))
        return "\n\n".join("\n".join(b) for b in blocks) + "\n"
