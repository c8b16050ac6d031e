"""Geometric feature extraction from hand landmarks.

Turns 21 landmarks into the handful of booleans and distances the rule
tables consume. Everything is computed in reference-resolution pixels so the
pixel thresholds mean the same thing at any input frame size.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from aurora_engine.config import FeatureConfig
from aurora_engine.hands import (
    FINGER_PIPS,
    FINGER_TIPS,
    INDEX_PIP,
    INDEX_TIP,
    MIDDLE_PIP,
    MIDDLE_TIP,
    THUMB_IP,
    THUMB_MCP,
    THUMB_TIP,
    WRIST,
    HandObservation,
)

logger = logging.getLogger("aurora_engine.features")


@dataclass(frozen=True)
class HandFeatures:
    """Derived per-frame description of one hand.

    Finger tuples are ordered index, middle, ring, pinky.
    """

    finger_extended: tuple[bool, bool, bool, bool]
    thumb_up: bool
    thumb_out: bool
    pinches: tuple[bool, bool, bool, bool]
    index_middle_spread: float
    index_middle_crossed: bool

    @property
    def extended_count(self) -> int:
        return sum(self.finger_extended)

    @property
    def is_closed(self) -> bool:
        return not any(self.finger_extended)

    @property
    def is_open(self) -> bool:
        return all(self.finger_extended)

    def only(self, *fingers: str) -> bool:
        """True if exactly the named fingers are extended."""
        names = ("index", "middle", "ring", "pinky")
        wanted = tuple(name in fingers for name in names)
        return self.finger_extended == wanted


# --- Hand count sum type ---

@dataclass(frozen=True)
class NoHands:
    pass


@dataclass(frozen=True)
class OneHand:
    features: HandFeatures


@dataclass(frozen=True)
class TwoHands:
    first: HandFeatures
    second: HandFeatures
    horizontal_gap: float  # |wrist_a.x - wrist_b.x| in reference pixels


HandFrame = Union[NoHands, OneHand, TwoHands]


def _distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(a - b))


class GeometricFeatureExtractor:
    """Pure landmark -> feature mapping. Holds only thresholds."""

    def __init__(self, config: Optional[FeatureConfig] = None):
        self.config = config or FeatureConfig()

    def _points(self, observation: HandObservation) -> np.ndarray:
        return observation.normalized(
            (self.config.reference_width, self.config.reference_height)
        )

    def extract(self, observation: HandObservation) -> HandFeatures:
        lm = self._points(observation)
        return self._extract_points(lm)

    def _extract_points(self, lm: np.ndarray) -> HandFeatures:
        # Image y grows downward: "above" means a smaller y
        extended = tuple(
            bool(lm[tip, 1] < lm[pip, 1]) for tip, pip in zip(FINGER_TIPS, FINGER_PIPS)
        )

        thumb_tip = lm[THUMB_TIP]
        thumb_up = bool(thumb_tip[1] < lm[THUMB_IP, 1])
        thumb_out = abs(thumb_tip[0] - lm[THUMB_MCP, 0]) > self.config.thumb_out_px

        pinches = tuple(
            _distance(thumb_tip, lm[tip]) < self.config.pinch_px for tip in FINGER_TIPS
        )

        spread = _distance(lm[INDEX_TIP], lm[MIDDLE_TIP])

        tips_order = lm[INDEX_TIP, 0] - lm[MIDDLE_TIP, 0]
        pips_order = lm[INDEX_PIP, 0] - lm[MIDDLE_PIP, 0]
        crossed = bool(
            (tips_order > 0 and pips_order < 0) or (tips_order < 0 and pips_order > 0)
        )

        return HandFeatures(
            finger_extended=extended,  # type: ignore[arg-type]
            thumb_up=thumb_up,
            thumb_out=bool(thumb_out),
            pinches=pinches,  # type: ignore[arg-type]
            index_middle_spread=spread,
            index_middle_crossed=crossed,
        )

    def frame(self, observations: Sequence[HandObservation]) -> HandFrame:
        """Reduce a tick's observations to the no/one/two-hand variant.

        Only the first two hands are considered.
        """
        if not observations:
            return NoHands()
        if len(observations) == 1:
            return OneHand(self.extract(observations[0]))

        a, b = observations[0], observations[1]
        lm_a, lm_b = self._points(a), self._points(b)
        gap = abs(float(lm_a[WRIST, 0] - lm_b[WRIST, 0]))
        return TwoHands(
            first=self._extract_points(lm_a),
            second=self._extract_points(lm_b),
            horizontal_gap=gap,
        )
