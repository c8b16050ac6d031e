"""AuroraEngine - gesture and object stabilization core for assistive vision."""

__version__ = "0.1.0"

from aurora_engine.errors import (
    AuroraError,
    ConfigError,
    InputUnavailableError,
    MalformedObservationError,
    RecordingError,
)
from aurora_engine.config import EngineConfig
from aurora_engine.hands import HandObservation
from aurora_engine.features import GeometricFeatureExtractor, HandFeatures, NoHands, OneHand, TwoHands
from aurora_engine.classifier import GestureClassifier, Mode, Rule, RuleTable
from aurora_engine.debounce import GestureHoldState, HoldDebouncer
from aurora_engine.stability import (
    ConfirmedDetectionEntry,
    Detection,
    DetectionStabilityTracker,
    StabilityState,
    TrackedDetection,
)
from aurora_engine.navigation import NavigationAdvisor, NavigationState
from aurora_engine.announce import AnnouncementCooldown, AnnouncementGate, Channel
from aurora_engine.pipeline import DetectionSession, GestureSession
from aurora_engine.loop import DetectionInput, FrameLoop, HandInput
from aurora_engine.recorder import SessionPlayer, SessionRecorder
from aurora_engine.practice import PracticeLevel, PracticeSession
from aurora_engine.profiler import TickProfiler
from aurora_engine.metrics import MetricsCollector
