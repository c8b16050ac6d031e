"""Tests for fingerspelling practice levels."""

import pytest

from aurora_engine.classifier import GestureClassifier, Mode
from aurora_engine.practice import DEFAULT_LEVELS, PracticeLevel, PracticeSession, spellable


def sequence(*letters):
    return PracticeLevel(title="test", kind="sequence", data=list(letters))


class TestPracticeLevel:
    def test_default_levels(self):
        assert [lvl.kind for lvl in DEFAULT_LEVELS] == ["sequence", "random_letters", "words"]
        assert DEFAULT_LEVELS[0].data[:3] == ["A", "B", "C"]
        assert "HELP" in DEFAULT_LEVELS[2].data

    @pytest.mark.parametrize("index", range(len(DEFAULT_LEVELS)))
    def test_default_levels_can_be_finished(self, index):
        vocabulary = GestureClassifier().vocabulary(Mode.LETTERS)
        targets = PracticeSession(DEFAULT_LEVELS[index], seed=3).targets
        assert targets
        assert all(spellable(t, vocabulary) for t in targets)

    def test_letter_level_skips_unrecognized_letters(self):
        letters = DEFAULT_LEVELS[0].data
        assert "E" not in letters
        assert letters == sorted(letters)

    def test_spellable(self):
        vocabulary = ["B", "U", "S", "HELP"]
        assert spellable("BUS", vocabulary)
        assert spellable("HELP", vocabulary)
        assert not spellable("HELLO", vocabulary)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            PracticeLevel(title="x", kind="speed")

    def test_random_letters_are_seeded(self):
        a = PracticeSession(DEFAULT_LEVELS[1], seed=7).targets
        b = PracticeSession(DEFAULT_LEVELS[1], seed=7).targets
        assert a == b
        assert len(a) == 10
        assert all(len(t) == 1 for t in a)

    def test_random_pool(self):
        level = PracticeLevel(title="x", kind="random_letters", data=["L"], count=3)
        assert PracticeSession(level, seed=1).targets == ["L", "L", "L"]


class TestPracticeSession:
    def test_correct_letters_advance(self):
        session = PracticeSession(sequence("A", "B"))
        assert session.expected == "A"
        event = session.feed("A")
        assert event.correct
        assert event.target_completed == "A"
        assert session.expected == "B"
        assert session.progress == 0.5

    def test_wrong_letter_does_not_advance(self):
        session = PracticeSession(sequence("A", "B"))
        event = session.feed("S")
        assert not event.correct
        assert event.expected == "A"
        assert session.expected == "A"
        assert session.accuracy == 0.0

    def test_level_completion(self):
        session = PracticeSession(sequence("A", "B"))
        session.feed("A")
        event = session.feed("B")
        assert event.level_completed
        assert session.completed
        assert session.expected is None
        assert session.progress == 1.0

    def test_feed_after_completion(self):
        session = PracticeSession(sequence("A"))
        session.feed("A")
        event = session.feed("A")
        assert event.level_completed
        assert not event.correct
        assert session.attempts == 1

    def test_words_spelled_letter_by_letter(self):
        level = PracticeLevel(title="w", kind="words", data=["no"])
        session = PracticeSession(level)
        assert session.current_target == "NO"
        assert session.feed("N").target_completed is None
        assert session.expected == "O"
        assert session.feed("O").target_completed == "NO"

    def test_word_token_completes_word(self):
        level = PracticeLevel(title="w", kind="words", data=["HELP", "YES"])
        session = PracticeSession(level)
        event = session.feed("HELP")
        assert event.correct
        assert event.target_completed == "HELP"
        assert session.current_target == "YES"

    def test_accuracy_and_reset(self):
        session = PracticeSession(sequence("A", "B"))
        session.feed("A")
        session.feed("C")
        assert session.accuracy == 0.5
        session.reset()
        assert session.expected == "A"
        assert session.attempts == 0
