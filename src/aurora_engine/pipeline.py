"""Per-tick sessions wiring the core components to an event sink.

A session owns the current state objects of its components and advances
them once per tick. Nothing else mutates them, so no locking is needed as
long as one tick finishes before the next starts.

    session = GestureSession(mode=Mode.LETTERS)
    session.on_symbol_confirmed(lambda symbol, ts: print(symbol))
    session.on_announcement(tts.say)
    for frame in frames:
        session.process(frame.hands, frame.timestamp)

    detections = DetectionSession()
    detections.on_navigation_instruction(print)
    detections.process([Detection("person", (600, 0, 80, 300), 0.9)], now_ms)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from aurora_engine.announce import AnnouncementCooldown, AnnouncementGate, Channel
from aurora_engine.classifier import GestureClassifier, Mode
from aurora_engine.config import EngineConfig
from aurora_engine.debounce import GestureHoldState, HoldDebouncer
from aurora_engine.features import GeometricFeatureExtractor
from aurora_engine.hands import REFERENCE_HEIGHT, REFERENCE_WIDTH, parse_observations
from aurora_engine.lexicon import spoken_form
from aurora_engine.metrics import MetricsCollector
from aurora_engine.navigation import NavigationAdvisor, NavigationState
from aurora_engine.profiler import TickProfiler
from aurora_engine.stability import (
    ConfirmedDetectionEntry,
    Detection,
    DetectionStabilityTracker,
    StabilityState,
    TrackedDetection,
)

logger = logging.getLogger("aurora_engine.pipeline")


@dataclass
class GestureTick:
    """Outcome of one gesture tick."""
    symbol: Optional[str]
    progress: float
    confirmed: Optional[str] = None
    announcement: Optional[str] = None
    rejected_hands: int = 0
    timestamp: float = 0.0


@dataclass
class DetectionTick:
    """Outcome of one detection tick."""
    detections: list[TrackedDetection]
    navigation: str
    navigation_changed: bool = False
    newly_confirmed: list[ConfirmedDetectionEntry] = field(default_factory=list)
    announcements: list[str] = field(default_factory=list)
    rejected_detections: int = 0
    timestamp: float = 0.0


class _Session:
    """Listener registry, announcement gate and instrumentation shared by sessions."""

    stream = "session"

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        profiler: Optional[TickProfiler] = None,
    ):
        self.config = (config or EngineConfig()).validate()
        self.metrics = metrics
        self.profiler = profiler or TickProfiler()
        self.gate = AnnouncementGate.from_config(self.config.announcements)
        self.cooldown = AnnouncementCooldown()
        self._listeners: dict[str, list[Callable[..., Any]]] = {}

    def _add(self, event: str, callback: Callable[..., Any]):
        self._listeners.setdefault(event, []).append(callback)

    def _emit(self, event: str, *args):
        for cb in self._listeners.get(event, []):
            cb(*args)

    def on_announcement(self, callback: Callable[[str], None]):
        """Register a sink for gated utterances (e.g. a speech synthesizer)."""
        self._add("announcement", callback)

    def on_input_unavailable(self, callback: Callable[[str], None]):
        self._add("input_unavailable", callback)

    def report_unavailable(self, reason: str):
        """Forward an acquisition failure to listeners. The core does not retry."""
        logger.warning("%s input unavailable: %s", self.stream, reason)
        if self.metrics:
            self.metrics.record_input_unavailable()
        self._emit("input_unavailable", reason)

    def _announce(self, channel: Channel, text: str, now: float) -> bool:
        decision = self.gate.offer(self.cooldown, channel, text, now)
        self.cooldown = decision.state
        if decision.emitted:
            if self.metrics:
                self.metrics.record_announcement(channel.value)
            self._emit("announcement", text)
        return decision.emitted

    def _finish_tick(self, started: float):
        if self.metrics:
            self.metrics.record_tick(self.stream, time.perf_counter() - started)


class GestureSession(_Session):
    """Hand landmarks in, confirmed symbols and utterances out."""

    stream = "gestures"

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        mode: Mode = Mode.LETTERS,
        classifier: Optional[GestureClassifier] = None,
        metrics: Optional[MetricsCollector] = None,
        profiler: Optional[TickProfiler] = None,
    ):
        super().__init__(config, metrics, profiler)
        self.mode = Mode(mode)
        self.extractor = GeometricFeatureExtractor(self.config.features)
        self.classifier = classifier or GestureClassifier(config=self.config.features)
        self.debouncer = HoldDebouncer(self.config.hold.hold_duration_ms)
        self.hold_state = GestureHoldState()

    def on_symbol_confirmed(self, callback: Callable[[str, float], None]):
        self._add("symbol_confirmed", callback)

    def on_symbol(self, callback: Callable[[Optional[str], float], None]):
        """Per-tick raw symbol and hold progress, for live display."""
        self._add("symbol", callback)

    def process(
        self,
        hands: Sequence,
        now: float,
        frame_size: tuple[int, int] = (REFERENCE_WIDTH, REFERENCE_HEIGHT),
    ) -> GestureTick:
        """Advance one tick.

        Args:
            hands: HandObservations or raw (21, 2|3) point lists; malformed
                hands are skipped for this tick.
            now: Timestamp in milliseconds.
            frame_size: Pixel size of the frame raw point lists refer to.
        """
        started = time.perf_counter()

        with self.profiler.stage("features"):
            observations, rejected = parse_observations(hands or [], frame_size)
            frame = self.extractor.frame(observations)
        if rejected and self.metrics:
            self.metrics.record_malformed(rejected)

        with self.profiler.stage("classification"):
            symbol = self.classifier.classify_frame(frame, self.mode)

        with self.profiler.stage("debounce"):
            result = self.debouncer.update(self.hold_state, symbol, now)
            self.hold_state = result.state

        self._emit("symbol", symbol, result.progress)

        tick = GestureTick(
            symbol=symbol,
            progress=result.progress,
            confirmed=result.confirmed,
            rejected_hands=rejected,
            timestamp=now,
        )

        if result.confirmed is not None:
            logger.info("Confirmed symbol %s", result.confirmed)
            if self.metrics:
                self.metrics.record_symbol(result.confirmed)
            self._emit("symbol_confirmed", result.confirmed, now)
            utterance = spoken_form(result.confirmed)
            if self._announce(Channel.GESTURE, utterance, now):
                tick.announcement = utterance

        self._finish_tick(started)
        return tick

    def reset(self):
        self.hold_state = GestureHoldState()
        self.cooldown = AnnouncementCooldown()


class DetectionSession(_Session):
    """Detector boxes in, stable detections, navigation and utterances out."""

    stream = "detections"

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        profiler: Optional[TickProfiler] = None,
    ):
        super().__init__(config, metrics, profiler)
        self.tracker = DetectionStabilityTracker(self.config.stability)
        self.advisor = NavigationAdvisor(self.config.navigation)
        self.stability = StabilityState()
        self.navigation = NavigationState()

    def on_detections_updated(self, callback: Callable[[list[TrackedDetection]], None]):
        self._add("detections_updated", callback)

    def on_navigation_instruction(self, callback: Callable[[str], None]):
        self._add("navigation_instruction", callback)

    def on_object_confirmed(self, callback: Callable[[ConfirmedDetectionEntry], None]):
        self._add("object_confirmed", callback)

    @property
    def history(self) -> list[ConfirmedDetectionEntry]:
        """Most-recent-first log of confirmed objects."""
        return list(self.stability.history)

    @staticmethod
    def _coerce(detections: Sequence) -> tuple[list[Detection], int]:
        parsed: list[Detection] = []
        rejected = 0
        for raw in detections:
            if isinstance(raw, Detection):
                parsed.append(raw)
                continue
            try:
                parsed.append(Detection.from_dict(raw))
            except (TypeError, ValueError, AttributeError) as e:
                rejected += 1
                logger.warning("Skipping malformed detection %r: %s", raw, e)
        return parsed, rejected

    def process(self, detections: Sequence, now: float) -> DetectionTick:
        """Advance one tick. `detections` may be Detection objects or dicts."""
        started = time.perf_counter()
        parsed, rejected = self._coerce(detections or [])

        with self.profiler.stage("stability"):
            update = self.tracker.update(self.stability, parsed, now)
            self.stability = update.state

        with self.profiler.stage("navigation"):
            nav = self.advisor.update(self.navigation, update.detections)
            self.navigation = nav.state

        self._emit("detections_updated", update.detections)

        tick = DetectionTick(
            detections=update.detections,
            navigation=nav.instruction,
            navigation_changed=nav.emitted is not None,
            newly_confirmed=update.newly_confirmed,
            rejected_detections=rejected,
            timestamp=now,
        )

        if nav.emitted is not None:
            if self.metrics:
                self.metrics.record_navigation_change()
            self._emit("navigation_instruction", nav.emitted)
            if self._announce(Channel.NAVIGATION, nav.emitted, now):
                tick.announcements.append(nav.emitted)

        for entry in update.newly_confirmed:
            if self.metrics:
                self.metrics.record_object(entry.label)
            self._emit("object_confirmed", entry)
            text = f"Confirmed {entry.label}"
            if self._announce(Channel.OBJECT, text, now):
                tick.announcements.append(text)

        self._finish_tick(started)
        return tick

    def reset(self):
        self.stability = StabilityState()
        self.navigation = NavigationState()
        self.cooldown = AnnouncementCooldown()
