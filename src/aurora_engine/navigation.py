"""Spatial navigation hints from stabilized detections.

Picks the single most confident obstacle and says which side of the frame is
free. Only a changed instruction is emitted, so a steady scene stays quiet.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from aurora_engine.config import NavigationConfig
from aurora_engine.stability import Detection, TrackedDetection

logger = logging.getLogger("aurora_engine.navigation")

PATH_CLEAR = "PATH CLEAR"


class Zone(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


_TEMPLATES = {
    Zone.CENTER: "{label} AHEAD. STEER RIGHT.",
    Zone.LEFT: "{label} ON LEFT. PATH CLEAR ON RIGHT.",
    Zone.RIGHT: "{label} ON RIGHT. PATH CLEAR ON LEFT.",
}


@dataclass(frozen=True)
class NavigationState:
    last_instruction: str = PATH_CLEAR


@dataclass(frozen=True)
class NavigationUpdate:
    state: NavigationState
    instruction: str
    obstacle: Optional[Detection] = None
    zone: Optional[Zone] = None
    emitted: Optional[str] = None  # set only when the instruction changed


class NavigationAdvisor:
    def __init__(self, config: Optional[NavigationConfig] = None):
        self.config = config or NavigationConfig()
        self.config.validate()
        self._obstacles = frozenset(self.config.obstacle_classes)

    def select_obstacle(self, detections: Sequence[Detection]) -> Optional[Detection]:
        """Highest-score detection of an obstacle class; earlier wins on ties."""
        best: Optional[Detection] = None
        for det in detections:
            if det.label not in self._obstacles:
                continue
            if best is None or det.score > best.score:
                best = det
        return best

    def zone_of(self, center_x: float) -> Zone:
        width = self.config.frame_width
        left = self.config.left_boundary * width
        right = self.config.right_boundary * width
        if left < center_x < right:
            return Zone.CENTER
        if center_x <= left:
            return Zone.LEFT
        return Zone.RIGHT

    def instruction_for(self, obstacle: Optional[Detection]) -> tuple[str, Optional[Zone]]:
        if obstacle is None:
            return PATH_CLEAR, None
        zone = self.zone_of(obstacle.center_x)
        return _TEMPLATES[zone].format(label=obstacle.label.upper()), zone

    def update(
        self,
        state: NavigationState,
        detections: Sequence[Detection | TrackedDetection],
    ) -> NavigationUpdate:
        plain = [d.detection if isinstance(d, TrackedDetection) else d for d in detections]
        obstacle = self.select_obstacle(plain)
        instruction, zone = self.instruction_for(obstacle)

        if instruction == state.last_instruction:
            return NavigationUpdate(state=state, instruction=instruction, obstacle=obstacle, zone=zone)

        logger.info("Navigation: %s", instruction)
        return NavigationUpdate(
            state=NavigationState(last_instruction=instruction),
            instruction=instruction,
            obstacle=obstacle,
            zone=zone,
            emitted=instruction,
        )
