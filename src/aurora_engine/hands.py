"""Hand observation model: landmark layout, validation and normalization.

Landmarks arrive from an external pose model in frame pixel space. Every
threshold in the engine is calibrated against a 640x480 reference frame, so
observations are rescaled to that resolution before any geometry is done.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from aurora_engine.errors import MalformedObservationError

logger = logging.getLogger("aurora_engine.hands")

REFERENCE_WIDTH = 640
REFERENCE_HEIGHT = 480

# Hand landmark indices
WRIST = 0
THUMB_CMC, THUMB_MCP, THUMB_IP, THUMB_TIP = 1, 2, 3, 4
INDEX_MCP, INDEX_PIP, INDEX_DIP, INDEX_TIP = 5, 6, 7, 8
MIDDLE_MCP, MIDDLE_PIP, MIDDLE_DIP, MIDDLE_TIP = 9, 10, 11, 12
RING_MCP, RING_PIP, RING_DIP, RING_TIP = 13, 14, 15, 16
PINKY_MCP, PINKY_PIP, PINKY_DIP, PINKY_TIP = 17, 18, 19, 20

NUM_LANDMARKS = 21

# Index, middle, ring, pinky
FINGER_TIPS = (INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP)
FINGER_PIPS = (INDEX_PIP, MIDDLE_PIP, RING_PIP, PINKY_PIP)


@dataclass(frozen=True)
class HandObservation:
    """One detected hand in one frame: 21 landmarks plus the frame they live in.

    Use `from_points` to build one from untrusted model output; it rejects
    anything that is not a finite (21, 2) or (21, 3) array.
    """

    landmarks: np.ndarray
    frame_size: tuple[int, int] = (REFERENCE_WIDTH, REFERENCE_HEIGHT)

    @classmethod
    def from_points(
        cls,
        points: Union[np.ndarray, Sequence[Sequence[float]]],
        frame_size: tuple[int, int] = (REFERENCE_WIDTH, REFERENCE_HEIGHT),
    ) -> HandObservation:
        try:
            arr = np.array(points, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise MalformedObservationError(f"landmarks are not numeric: {e}") from e

        if arr.ndim != 2 or arr.shape[0] != NUM_LANDMARKS or arr.shape[1] not in (2, 3):
            raise MalformedObservationError(
                f"expected {NUM_LANDMARKS} landmarks of 2 or 3 coordinates, got shape {arr.shape}"
            )
        if not np.all(np.isfinite(arr)):
            raise MalformedObservationError("landmarks contain NaN or infinite values")

        width, height = frame_size
        if width <= 0 or height <= 0:
            raise MalformedObservationError(f"invalid frame size {frame_size}")

        arr.setflags(write=False)
        return cls(landmarks=arr, frame_size=(int(width), int(height)))

    def normalized(
        self,
        reference: tuple[int, int] = (REFERENCE_WIDTH, REFERENCE_HEIGHT),
    ) -> np.ndarray:
        """Return (21, 2) x/y landmarks rescaled to the reference resolution."""
        width, height = self.frame_size
        scale = np.array([reference[0] / width, reference[1] / height])
        return self.landmarks[:, :2] * scale

    def to_list(self) -> list[list[float]]:
        return self.landmarks.tolist()


def parse_observations(
    raw_hands: Sequence,
    frame_size: tuple[int, int] = (REFERENCE_WIDTH, REFERENCE_HEIGHT),
) -> tuple[list[HandObservation], int]:
    """Build observations from raw point lists, dropping malformed hands.

    Returns (observations, rejected_count). A malformed hand never aborts the
    rest of the frame.
    """
    observations: list[HandObservation] = []
    rejected = 0
    for i, raw in enumerate(raw_hands):
        if isinstance(raw, HandObservation):
            observations.append(raw)
            continue
        try:
            observations.append(HandObservation.from_points(raw, frame_size))
        except MalformedObservationError as e:
            rejected += 1
            logger.warning("Skipping hand %d this tick: %s", i, e)
    return observations, rejected
