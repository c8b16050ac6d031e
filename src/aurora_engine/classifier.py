"""Rule-based gesture classification over hand features.

Rules are kept in explicit ordered tables of (predicate, result) pairs and
evaluated first-match-wins, so the priority between visually overlapping
poses is the table order and nothing else. A fist with the thumb up reads as
"A" only because the "A" rule sits above the "S" rule.

Two-hand composite gestures form their own table. When a frame carries two
hands the composite table is consulted first; a composite match replaces
single-hand classification for that frame.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional

from aurora_engine.config import FeatureConfig
from aurora_engine.features import HandFeatures, HandFrame, NoHands, OneHand, TwoHands


class Mode(Enum):
    LETTERS = "letters"
    NUMBERS = "numbers"


@dataclass(frozen=True)
class Rule:
    """A tagged (predicate, result) pair."""

    tag: str
    result: str
    predicate: Callable
    description: str = ""

    def to_dict(self) -> dict:
        return {"tag": self.tag, "result": self.result, "description": self.description}


class RuleTable:
    """Ordered, immutable sequence of rules. First match wins."""

    def __init__(self, rules: list[Rule]):
        tags = [r.tag for r in rules]
        if len(tags) != len(set(tags)):
            raise ValueError(f"duplicate rule tags in table: {tags}")
        self._rules = tuple(rules)

    def first_match(self, *args) -> Optional[Rule]:
        for rule in self._rules:
            if rule.predicate(*args):
                return rule
        return None

    def results(self) -> list[str]:
        return [r.result for r in self._rules]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)


def letter_rules(spread_px: float = 55.0) -> RuleTable:
    """Default single-hand fingerspelling table."""
    return RuleTable([
        Rule("a", "A", lambda f: f.is_closed and f.thumb_up,
             "fist with thumb raised alongside"),
        Rule("s", "S", lambda f: f.is_closed,
             "fist, thumb across the fingers"),
        Rule("b", "B", lambda f: f.is_open and not f.thumb_out,
             "flat hand, fingers together, thumb folded in"),
        Rule("c", "C", lambda f: f.is_open and f.thumb_out,
             "all fingers up with the thumb out"),
        Rule("f", "F", lambda f: f.pinches[0] and f.only("middle", "ring", "pinky"),
             "thumb and index touch, other fingers up"),
        Rule("l", "L", lambda f: f.only("index") and f.thumb_out,
             "index up, thumb out"),
        Rule("d", "D", lambda f: f.only("index"),
             "index up, thumb in"),
        Rule("r", "R", lambda f: f.only("index", "middle") and f.index_middle_crossed,
             "index and middle crossed"),
        Rule("v", "V", lambda f: f.only("index", "middle") and f.index_middle_spread > spread_px,
             "index and middle spread apart"),
        Rule("u", "U", lambda f: f.only("index", "middle"),
             "index and middle together"),
        Rule("w", "W", lambda f: f.only("index", "middle", "ring"),
             "index, middle and ring up"),
        Rule("ily", "\U0001F91F", lambda f: f.only("index", "pinky") and f.thumb_out,
             "I love you: thumb, index and pinky out"),
        Rule("y", "Y", lambda f: f.only("pinky") and f.thumb_out,
             "pinky and thumb out"),
        Rule("i", "I", lambda f: f.only("pinky"),
             "pinky up"),
    ])


def number_rules() -> RuleTable:
    """Default counting table.

    6-9 are three raised fingers with the thumb touching the fourth. Low
    counts fall through to a plain extended-finger count.
    """
    return RuleTable([
        Rule("six", "6", lambda f: f.pinches[3] and f.only("index", "middle", "ring"),
             "thumb touches pinky"),
        Rule("seven", "7", lambda f: f.pinches[2] and f.only("index", "middle", "pinky"),
             "thumb touches ring"),
        Rule("eight", "8", lambda f: f.pinches[1] and f.only("index", "ring", "pinky"),
             "thumb touches middle"),
        Rule("nine", "9", lambda f: f.pinches[0] and f.only("middle", "ring", "pinky"),
             "thumb touches index"),
        Rule("five", "5", lambda f: f.extended_count == 4 and f.thumb_out,
             "open hand, thumb out"),
        Rule("four", "4", lambda f: f.extended_count == 4,
             "four fingers, thumb in"),
        Rule("three", "3", lambda f: f.extended_count == 3, "three fingers"),
        Rule("two", "2", lambda f: f.extended_count == 2, "two fingers"),
        Rule("one", "1", lambda f: f.extended_count == 1, "one finger"),
        Rule("zero", "0", lambda f: f.extended_count == 0, "closed hand"),
    ])


def composite_rules(hands_together_px: float = 60.0) -> RuleTable:
    """Default two-hand table. Predicates take a TwoHands frame."""
    return RuleTable([
        Rule("affirmative", "YES",
             lambda t: all(h.is_closed and h.thumb_up for h in (t.first, t.second)),
             "both fists with thumbs up"),
        Rule("help", "HELP",
             lambda t: t.first.is_open and t.second.is_open,
             "both hands fully open"),
        Rule("clear", "CLEAR",
             lambda t: t.horizontal_gap < hands_together_px,
             "hands brought together"),
    ])


class GestureClassifier:
    """Maps hand features (or a whole hand frame) to a symbol or None.

    Stateless: the same input always produces the same symbol.
    """

    def __init__(
        self,
        letters: Optional[RuleTable] = None,
        numbers: Optional[RuleTable] = None,
        composites: Optional[RuleTable] = None,
        config: Optional[FeatureConfig] = None,
    ):
        config = config or FeatureConfig()
        self._tables = {
            Mode.LETTERS: letters or letter_rules(config.spread_px),
            Mode.NUMBERS: numbers or number_rules(),
        }
        self._composites = composites or composite_rules(config.hands_together_px)

    def rules(self, mode: Mode) -> RuleTable:
        return self._tables[Mode(mode)]

    @property
    def composite_rules(self) -> RuleTable:
        return self._composites

    def match(self, features: HandFeatures, mode: Mode = Mode.LETTERS) -> Optional[Rule]:
        return self.rules(mode).first_match(features)

    def classify(self, features: HandFeatures, mode: Mode = Mode.LETTERS) -> Optional[str]:
        """Classify a single hand."""
        rule = self.match(features, mode)
        return rule.result if rule else None

    def match_frame(self, frame: HandFrame, mode: Mode = Mode.LETTERS) -> Optional[Rule]:
        if isinstance(frame, NoHands):
            return None
        if isinstance(frame, OneHand):
            return self.match(frame.features, mode)
        if isinstance(frame, TwoHands):
            composite = self._composites.first_match(frame)
            if composite is not None:
                return composite
            return self.match(frame.first, mode)
        raise TypeError(f"unsupported hand frame: {frame!r}")

    def classify_frame(self, frame: HandFrame, mode: Mode = Mode.LETTERS) -> Optional[str]:
        """Classify everything seen in one tick."""
        rule = self.match_frame(frame, mode)
        return rule.result if rule else None

    def vocabulary(self, mode: Mode = Mode.LETTERS) -> list[str]:
        """Every symbol this classifier can emit in `mode`."""
        return self.rules(mode).results() + self._composites.results()
