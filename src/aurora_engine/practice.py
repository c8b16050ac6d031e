"""Fingerspelling practice driven by confirmed symbols.

A level produces an ordered list of targets (letters or words). Confirmed
symbols from a GestureSession are fed in; each one is checked against the
letter currently expected. Words are spelled letter by letter, except that a
two-hand word token equal to the whole word (HELP, YES) completes it at once.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Optional

from aurora_engine.classifier import GestureClassifier, Mode
from aurora_engine.lexicon import ASL_ALPHABET, recognizable_letters

logger = logging.getLogger("aurora_engine.practice")

KINDS = ("sequence", "random_letters", "words")


@dataclass
class PracticeLevel:
    """A named practice level."""
    title: str
    kind: str  # "sequence" | "random_letters" | "words"
    description: str = ""
    data: list[str] = field(default_factory=list)
    count: int = 10  # number of targets for random_letters

    def __post_init__(self):
        if self.kind not in KINDS:
            raise ValueError(f"unknown practice kind {self.kind!r}")

    def targets(self, rng: random.Random) -> list[str]:
        if self.kind == "sequence":
            return list(self.data)
        if self.kind == "random_letters":
            pool = self.data or [e.letter for e in ASL_ALPHABET]
            return [rng.choice(pool) for _ in range(self.count)]
        return [w.upper() for w in self.data]


@dataclass
class PracticeEvent:
    """Result of feeding one confirmed symbol."""
    symbol: str
    expected: Optional[str]
    correct: bool
    target_completed: Optional[str] = None  # set when a whole target was finished
    level_completed: bool = False
    progress: float = 0.0  # fraction of targets done, 0..1


def spellable(target: str, vocabulary: list[str]) -> bool:
    """True if every letter of `target` (or the whole token) can be signed."""
    present = set(vocabulary)
    return target in present or all(ch in present for ch in target)


# Default levels only ask for what the default classifier can emit
_VOCABULARY = GestureClassifier().vocabulary(Mode.LETTERS)
_LETTERS = [e.letter for e in recognizable_letters(_VOCABULARY)]

DEFAULT_LEVELS = [
    PracticeLevel(
        title="Level 1: Letter by Letter",
        kind="sequence",
        description="Learn the recognized letters in alphabet order with emoji guides.",
        data=list(_LETTERS),
    ),
    PracticeLevel(
        title="Level 2: Random Recall",
        kind="random_letters",
        description="Match random letters to test your memory.",
        data=list(_LETTERS),
        count=10,
    ),
    PracticeLevel(
        title="Level 3: Word Builder",
        kind="words",
        description="Standard words for daily use.",
        data=["HELP", "YES", "CALL", "BUS", "DAY", "FLY"],
    ),
]


class PracticeSession:
    """Tracks a learner's position within one level."""

    def __init__(self, level: PracticeLevel, seed: Optional[int] = None):
        self.level = level
        self._targets = level.targets(random.Random(seed))
        self._target_index = 0
        self._letter_index = 0
        self.attempts = 0
        self.correct = 0

    @property
    def targets(self) -> list[str]:
        return list(self._targets)

    @property
    def completed(self) -> bool:
        return self._target_index >= len(self._targets)

    @property
    def current_target(self) -> Optional[str]:
        if self.completed:
            return None
        return self._targets[self._target_index]

    @property
    def expected(self) -> Optional[str]:
        """The next symbol the learner should sign."""
        target = self.current_target
        if target is None:
            return None
        return target[self._letter_index]

    @property
    def progress(self) -> float:
        if not self._targets:
            return 1.0
        return self._target_index / len(self._targets)

    @property
    def accuracy(self) -> float:
        return self.correct / self.attempts if self.attempts else 0.0

    def _advance_target(self) -> str:
        done = self._targets[self._target_index]
        self._target_index += 1
        self._letter_index = 0
        return done

    def feed(self, symbol: str) -> PracticeEvent:
        expected = self.expected
        if expected is None:
            return PracticeEvent(symbol, None, False, level_completed=True, progress=1.0)

        self.attempts += 1
        target = self.current_target
        finished: Optional[str] = None

        if len(target) > 1 and symbol == target:
            self.correct += 1
            finished = self._advance_target()
        elif symbol == expected:
            self.correct += 1
            self._letter_index += 1
            if self._letter_index >= len(target):
                finished = self._advance_target()
        else:
            logger.debug("Practice miss: expected %s, got %s", expected, symbol)
            return PracticeEvent(symbol, expected, False, progress=self.progress)

        if finished:
            logger.info("Practice target %s done (%d/%d)",
                        finished, self._target_index, len(self._targets))
        return PracticeEvent(
            symbol=symbol,
            expected=expected,
            correct=True,
            target_completed=finished,
            level_completed=self.completed,
            progress=self.progress,
        )

    def reset(self):
        self._target_index = 0
        self._letter_index = 0
        self.attempts = 0
        self.correct = 0
