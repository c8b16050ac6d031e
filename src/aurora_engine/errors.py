"""Exception hierarchy for AuroraEngine."""

from __future__ import annotations


class AuroraError(Exception):
    """Base class for all engine errors."""


class MalformedObservationError(AuroraError, ValueError):
    """A hand observation does not have 21 finite landmarks."""


class ConfigError(AuroraError, ValueError):
    """Configuration values are missing, mistyped or violate an ordering invariant."""


class InputUnavailableError(AuroraError):
    """The frame source (camera, pose model, detector) could not deliver a frame.

    The core never retries; whoever owns acquisition decides what to do.
    """

    def __init__(self, reason: str = "input unavailable"):
        super().__init__(reason)
        self.reason = reason


class RecordingError(AuroraError):
    """A session recording could not be read."""
