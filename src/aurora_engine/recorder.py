"""Session recording and replay: capture per-tick input to disk.

Recordings hold exactly what a session consumes (landmarks or detections with
timestamps), so a replay reproduces every confirmation, lock and navigation
change deterministically:
- Reproducible testing without a camera or model
- Tuning thresholds against the same footage
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from aurora_engine.errors import RecordingError
from aurora_engine.hands import REFERENCE_HEIGHT, REFERENCE_WIDTH, HandObservation
from aurora_engine.loop import DetectionInput, Frame, HandInput
from aurora_engine.stability import Detection

FORMAT_VERSION = 1
KINDS = ("hands", "detections")


class SessionRecorder:
    """Records per-tick input frames.

    Usage:
        recorder = SessionRecorder("hands")
        recorder.start()
        # In your frame loop:
        recorder.add_hands(hands)
        # When done:
        recorder.save("session.json")
    """

    def __init__(self, kind: str = "hands"):
        if kind not in KINDS:
            raise ValueError(f"kind must be one of {KINDS}, got {kind!r}")
        self.kind = kind
        self._frames: list[dict] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self):
        self._frames = []
        self._start_time = time.monotonic()
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        """Duration in milliseconds."""
        if not self._frames:
            return 0.0
        return self._frames[-1]["timestamp"] - self._frames[0]["timestamp"]

    def _timestamp(self, timestamp: Optional[float]) -> float:
        if timestamp is not None:
            return float(timestamp)
        return (time.monotonic() - self._start_time) * 1000.0

    def add_hands(
        self,
        hands: list,
        frame_size: tuple[int, int] = (REFERENCE_WIDTH, REFERENCE_HEIGHT),
        timestamp: Optional[float] = None,
    ):
        if not self._recording:
            return
        if self.kind != "hands":
            raise ValueError("this recorder records detections")

        serialized = [
            h.to_list() if isinstance(h, HandObservation) else np.asarray(h).tolist()
            for h in hands
        ]
        self._frames.append({
            "timestamp": self._timestamp(timestamp),
            "hands": serialized,
            "frame_size": list(frame_size),
        })

    def add_detections(self, detections: list, timestamp: Optional[float] = None):
        if not self._recording:
            return
        if self.kind != "detections":
            raise ValueError("this recorder records hands")

        serialized = [d.to_dict() if isinstance(d, Detection) else dict(d) for d in detections]
        self._frames.append({
            "timestamp": self._timestamp(timestamp),
            "detections": serialized,
        })

    def save(self, path: str | Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "kind": self.kind,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": self._frames,
        }
        with open(path, "w") as f:
            json.dump(data, f)


class SessionPlayer:
    """Replays a recorded session.

    Usage:
        player = SessionPlayer.load("session.json")
        for frame in player.play():
            session.process(frame.hands, frame.timestamp, frame.frame_size)
    """

    def __init__(self, kind: str, frames: list[Frame]):
        self.kind = kind
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> SessionPlayer:
        path = Path(path)
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RecordingError(f"could not read recording {path}: {e}") from e

        if not isinstance(data, dict):
            raise RecordingError(f"{path}: recording must be a JSON object")
        version = data.get("version")
        if version != FORMAT_VERSION:
            raise RecordingError(f"{path}: unsupported recording version {version!r}")
        kind = data.get("kind", "hands")
        if kind not in KINDS:
            raise RecordingError(f"{path}: unknown recording kind {kind!r}")

        frames: list[Frame] = []
        try:
            for raw in data["frames"]:
                if kind == "hands":
                    frames.append(HandInput(
                        timestamp=float(raw["timestamp"]),
                        hands=raw.get("hands", []),
                        frame_size=tuple(raw.get("frame_size", (REFERENCE_WIDTH, REFERENCE_HEIGHT))),
                    ))
                else:
                    frames.append(DetectionInput(
                        timestamp=float(raw["timestamp"]),
                        detections=raw.get("detections", []),
                    ))
        except (KeyError, TypeError, ValueError) as e:
            raise RecordingError(f"{path}: malformed frame: {e}") from e

        return cls(kind, frames)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        """Duration in milliseconds."""
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp - self._frames[0].timestamp

    def play(self) -> Iterator[Frame]:
        """Iterate through all frames instantly (no timing)."""
        yield from self._frames

    def play_realtime(self, speed: float = 1.0) -> Iterator[Frame]:
        """Replay at original timing (or scaled by speed factor)."""
        if not self._frames:
            return

        start = time.monotonic()
        origin = self._frames[0].timestamp
        for frame in self._frames:
            target = (frame.timestamp - origin) / 1000.0 / speed
            elapsed = time.monotonic() - start
            if target > elapsed:
                time.sleep(target - elapsed)
            yield frame

    def as_source(self, speed: Optional[float] = None) -> ReplaySource:
        """Wrap as an async FrameSource; `speed=None` replays without delays."""
        return ReplaySource(self._frames, speed)


class ReplaySource:
    """FrameSource over recorded frames."""

    def __init__(self, frames: list[Frame], speed: Optional[float] = None):
        self._frames = list(frames)
        self._index = 0
        self._speed = speed
        self.closed = False

    async def next_frame(self) -> Optional[Frame]:
        if self.closed or self._index >= len(self._frames):
            return None
        frame = self._frames[self._index]
        if self._speed and self._index > 0:
            gap = frame.timestamp - self._frames[self._index - 1].timestamp
            await asyncio.sleep(max(0.0, gap / 1000.0 / self._speed))
        self._index += 1
        return frame

    async def close(self) -> None:
        self.closed = True
