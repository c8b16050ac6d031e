"""Engine configuration.

All numeric thresholds live here as tunable values. What is not tunable is
their relative ordering (entry harder than continuation, lock harder than
warm), which `validate()` enforces.

Load from YAML:
    config = EngineConfig.from_yaml("aurora.yml")

YAML layout mirrors the dataclasses:
    hold:
      hold_duration_ms: 1200
    stability:
      entry_score: 0.75
    announcements:
      cooldowns_ms: {object: 4000, navigation: 5000, gesture: 1000}
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from aurora_engine.errors import ConfigError
from aurora_engine.hands import REFERENCE_HEIGHT, REFERENCE_WIDTH

logger = logging.getLogger("aurora_engine.config")

MAX_HOLD_DURATION_MS = 1200.0

# Announcement channel names, matching announce.Channel
CHANNELS = ("object", "navigation", "gesture")


def _check_number(path: str, value: Any, integer: bool = False):
    kinds = int if integer else (int, float)
    if isinstance(value, bool) or not isinstance(value, kinds):
        kind = "an integer" if integer else "a number"
        raise ConfigError(f"{path} must be {kind}, got {value!r}")


@dataclass
class FeatureConfig:
    reference_width: int = REFERENCE_WIDTH
    reference_height: int = REFERENCE_HEIGHT
    thumb_out_px: float = 40.0
    pinch_px: float = 45.0
    spread_px: float = 55.0  # index/middle spread separating V from U
    hands_together_px: float = 60.0  # wrist gap for the two-hand clear signal

    def validate(self):
        _check_number("features.reference_width", self.reference_width, integer=True)
        _check_number("features.reference_height", self.reference_height, integer=True)
        if self.reference_width <= 0 or self.reference_height <= 0:
            raise ConfigError("reference resolution must be positive")
        for name in ("thumb_out_px", "pinch_px", "spread_px", "hands_together_px"):
            _check_number(f"features.{name}", getattr(self, name))
            if getattr(self, name) <= 0:
                raise ConfigError(f"features.{name} must be positive")


@dataclass
class HoldConfig:
    hold_duration_ms: float = 1000.0

    def validate(self):
        _check_number("hold.hold_duration_ms", self.hold_duration_ms)
        if not 0 < self.hold_duration_ms <= MAX_HOLD_DURATION_MS:
            raise ConfigError(
                f"hold.hold_duration_ms must be in (0, {MAX_HOLD_DURATION_MS:g}], "
                f"got {self.hold_duration_ms}"
            )


@dataclass
class StabilityConfig:
    noise_floor: float = 0.40
    entry_score: float = 0.70
    continue_score: float = 0.45
    warm_counter: int = 5
    lock_counter: int = 8
    counter_cap: int = 15
    history_size: int = 5
    history_window_ms: float = 10_000.0

    def validate(self):
        for name in ("noise_floor", "entry_score", "continue_score", "history_window_ms"):
            _check_number(f"stability.{name}", getattr(self, name))
        for name in ("warm_counter", "lock_counter", "counter_cap", "history_size"):
            _check_number(f"stability.{name}", getattr(self, name), integer=True)
        if not 0.0 <= self.noise_floor < self.continue_score < self.entry_score <= 1.0:
            raise ConfigError(
                "stability scores must satisfy 0 <= noise_floor < continue_score "
                f"< entry_score <= 1 (got {self.noise_floor}, {self.continue_score}, "
                f"{self.entry_score})"
            )
        if not 0 < self.warm_counter < self.lock_counter <= self.counter_cap:
            raise ConfigError(
                "stability counters must satisfy 0 < warm_counter < lock_counter "
                f"<= counter_cap (got {self.warm_counter}, {self.lock_counter}, "
                f"{self.counter_cap})"
            )
        if self.history_size < 1:
            raise ConfigError("stability.history_size must be at least 1")
        if self.history_window_ms < 0:
            raise ConfigError("stability.history_window_ms must be non-negative")


@dataclass
class NavigationConfig:
    obstacle_classes: list[str] = field(default_factory=lambda: ["person", "chair", "couch"])
    frame_width: float = 1280.0
    left_boundary: float = 1 / 3
    right_boundary: float = 2 / 3

    def validate(self):
        for name in ("frame_width", "left_boundary", "right_boundary"):
            _check_number(f"navigation.{name}", getattr(self, name))
        if not isinstance(self.obstacle_classes, list) or not all(
            isinstance(label, str) and label for label in self.obstacle_classes
        ):
            raise ConfigError("navigation.obstacle_classes must be a list of class names")
        if self.frame_width <= 0:
            raise ConfigError("navigation.frame_width must be positive")
        if not 0.0 < self.left_boundary < self.right_boundary < 1.0:
            raise ConfigError(
                "navigation zone boundaries must satisfy 0 < left < right < 1 "
                f"(got {self.left_boundary}, {self.right_boundary})"
            )


@dataclass
class AnnouncementConfig:
    cooldowns_ms: dict[str, float] = field(default_factory=lambda: {
        "object": 4000.0,
        "navigation": 5000.0,
        "gesture": 1000.0,
    })

    def validate(self):
        if not isinstance(self.cooldowns_ms, dict):
            raise ConfigError("announcements.cooldowns_ms must map channel names to milliseconds")
        for channel, cooldown in self.cooldowns_ms.items():
            if channel not in CHANNELS:
                raise ConfigError(
                    f"unknown announcement channel {channel!r}, expected one of {list(CHANNELS)}"
                )
            _check_number(f"announcements.cooldowns_ms.{channel}", cooldown)
            if cooldown < 0:
                raise ConfigError(f"announcements.cooldowns_ms.{channel} must be non-negative")


_SECTIONS = {
    "features": FeatureConfig,
    "hold": HoldConfig,
    "stability": StabilityConfig,
    "navigation": NavigationConfig,
    "announcements": AnnouncementConfig,
}


@dataclass
class EngineConfig:
    """Complete configuration tree for a session."""

    features: FeatureConfig = field(default_factory=FeatureConfig)
    hold: HoldConfig = field(default_factory=HoldConfig)
    stability: StabilityConfig = field(default_factory=StabilityConfig)
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    announcements: AnnouncementConfig = field(default_factory=AnnouncementConfig)

    def validate(self) -> EngineConfig:
        for name in _SECTIONS:
            getattr(self, name).validate()
        return self

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict | None) -> EngineConfig:
        data = data or {}
        unknown = set(data) - set(_SECTIONS)
        if unknown:
            raise ConfigError(f"unknown config sections: {sorted(unknown)}")

        sections: dict[str, Any] = {}
        for name, section_cls in _SECTIONS.items():
            raw = data.get(name) or {}
            if not isinstance(raw, dict):
                raise ConfigError(f"config section '{name}' must be a mapping")
            known = {f.name for f in fields(section_cls)}
            extra = set(raw) - known
            if extra:
                raise ConfigError(f"unknown keys in '{name}': {sorted(extra)}")
            if name == "announcements" and "cooldowns_ms" in raw:
                # Partial channel overrides keep the other defaults
                overrides = raw["cooldowns_ms"] or {}
                if not isinstance(overrides, dict):
                    raise ConfigError("announcements.cooldowns_ms must be a mapping")
                merged = AnnouncementConfig().cooldowns_ms
                merged.update(overrides)
                raw = {**raw, "cooldowns_ms": merged}
            try:
                sections[name] = section_cls(**raw)
            except TypeError as e:
                raise ConfigError(f"invalid '{name}' section: {e}") from e

        return cls(**sections).validate()

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        """Load and validate a YAML config file."""
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"config file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"could not parse {path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")

        config = cls.from_dict(data)
        logger.info("Loaded config from %s", path)
        return config

    def to_yaml(self, path: str | Path | None = None) -> str:
        """Serialize to YAML. Writes to `path` when given and returns the text."""
        text = yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        if path is not None:
            Path(path).write_text(text)
        return text
