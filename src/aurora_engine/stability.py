"""Per-class hysteresis over noisy object-detector output.

Each class label owns a small integer counter. A frame with a qualifying
detection of the class bumps it by one per qualifying box; any frame without
one decays it by one.
What counts as qualifying depends on where the counter already is:

    counter < warm_counter   -> score must exceed entry_score (0.70)
    counter >= warm_counter  -> score must reach continue_score (0.45)

so a class has to be seen clearly to get going but survives the usual
per-frame score wobble once it has. A class is "locked" at lock_counter (8).
Detections at or below noise_floor (0.40) are treated as absent.

The first time a class locks (and has not been logged within the history
window) a ConfirmedDetectionEntry is prepended to a short history and
returned as an "object confirmed" candidate.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from aurora_engine.config import StabilityConfig

logger = logging.getLogger("aurora_engine.stability")


@dataclass(frozen=True)
class Detection:
    """One scored box from the detector, in detector pixel space."""

    label: str
    bbox: tuple[float, float, float, float]  # x, y, w, h
    score: float

    @property
    def center_x(self) -> float:
        x, _y, w, _h = self.bbox
        return x + w / 2

    @classmethod
    def from_dict(cls, data: dict) -> Detection:
        label = data.get("label", data.get("class"))
        if not label:
            raise ValueError("detection has no class label")
        bbox = data.get("bbox")
        if bbox is None or len(bbox) != 4:
            raise ValueError(f"detection bbox must have 4 values, got {bbox!r}")
        score = float(data.get("score", 0.0))
        return cls(label=str(label), bbox=tuple(float(v) for v in bbox), score=score)

    def to_dict(self) -> dict:
        return {"label": self.label, "bbox": list(self.bbox), "score": self.score}


@dataclass(frozen=True)
class TrackedDetection:
    detection: Detection
    counter: int
    is_locked: bool

    @property
    def label(self) -> str:
        return self.detection.label

    @property
    def score(self) -> float:
        return self.detection.score

    def to_dict(self) -> dict:
        return {**self.detection.to_dict(), "counter": self.counter, "is_locked": self.is_locked}


@dataclass(frozen=True)
class ConfirmedDetectionEntry:
    label: str
    timestamp: float
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> dict:
        return {"label": self.label, "timestamp": self.timestamp, "id": self.id}


@dataclass(frozen=True)
class StabilityState:
    counters: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    history: tuple[ConfirmedDetectionEntry, ...] = ()

    def counter(self, label: str) -> int:
        return self.counters.get(label, 0)


@dataclass(frozen=True)
class StabilityUpdate:
    state: StabilityState
    detections: list[TrackedDetection]
    newly_confirmed: list[ConfirmedDetectionEntry]


class DetectionStabilityTracker:
    """Turns per-frame detections into filtered, lock-annotated detections."""

    def __init__(self, config: Optional[StabilityConfig] = None):
        self.config = config or StabilityConfig()
        self.config.validate()

    def threshold_for(self, counter: int) -> float:
        """Score a detection must reach for a class currently at `counter`."""
        if counter >= self.config.warm_counter:
            return self.config.continue_score
        return self.config.entry_score

    def qualifies(self, score: float, counter: int) -> bool:
        cfg = self.config
        if score <= cfg.noise_floor:
            return False
        if counter >= cfg.warm_counter:
            return score >= cfg.continue_score
        return score > cfg.entry_score

    def is_locked(self, counter: int) -> bool:
        return counter >= self.config.lock_counter

    def update(
        self,
        state: StabilityState,
        detections: Sequence[Detection],
        now: float,
    ) -> StabilityUpdate:
        cfg = self.config
        previous = state.counters

        qualifying: list[Detection] = []
        hits: dict[str, int] = {}
        for det in detections:
            if self.qualifies(det.score, previous.get(det.label, 0)):
                qualifying.append(det)
                hits[det.label] = hits.get(det.label, 0) + 1

        counters: dict[str, int] = {}
        for label in set(previous) | set(hits):
            before = previous.get(label, 0)
            if label in hits:
                after = min(cfg.counter_cap, before + hits[label])
            else:
                after = max(0, before - 1)
            if after > 0:
                counters[label] = after
            if self.is_locked(before) and not self.is_locked(after):
                logger.debug("Lost lock on %s (counter %d)", label, after)

        tracked = [
            TrackedDetection(
                detection=det,
                counter=counters[det.label],
                is_locked=self.is_locked(counters[det.label]),
            )
            for det in qualifying
        ]

        history = state.history
        newly_confirmed: list[ConfirmedDetectionEntry] = []
        for item in tracked:
            if not item.is_locked:
                continue
            recent = any(
                entry.label == item.label and now - entry.timestamp < cfg.history_window_ms
                for entry in history
            )
            if recent:
                continue
            entry = ConfirmedDetectionEntry(label=item.label, timestamp=now)
            history = (entry,) + history[: cfg.history_size - 1]
            newly_confirmed.append(entry)
            logger.info("Confirmed %s (counter %d, score %.2f)", item.label, item.counter, item.score)

        new_state = replace(
            state,
            counters=MappingProxyType(counters),
            history=history,
        )
        return StabilityUpdate(state=new_state, detections=tracked, newly_confirmed=newly_confirmed)
