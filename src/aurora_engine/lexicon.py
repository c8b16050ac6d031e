"""ASL fingerspelling reference data."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LexiconEntry:
    letter: str
    name: str  # NATO phonetic name
    emoji: str = ""  # hand-shape guide shown next to the letter

    def to_dict(self) -> dict:
        return {"letter": self.letter, "name": self.name, "emoji": self.emoji}


ASL_ALPHABET: tuple[LexiconEntry, ...] = (
    LexiconEntry("A", "Alpha", "\u270A"),
    LexiconEntry("B", "Bravo", "\u270B"),
    LexiconEntry("C", "Charlie", "\u21AA\uFE0F"),
    LexiconEntry("D", "Delta", "\u261D\uFE0F"),
    LexiconEntry("E", "Echo", "\u270A"),
    LexiconEntry("F", "Foxtrot", "\U0001F44C"),
    LexiconEntry("G", "Golf", "\U0001F448"),
    LexiconEntry("H", "Hotel", "\U0001F449"),
    LexiconEntry("I", "India", "\U0001F919"),
    LexiconEntry("J", "Juliet", "\u2934\uFE0F"),
    LexiconEntry("K", "Kilo", "\U0001F596"),
    LexiconEntry("L", "Lima", "\U0001F91F"),
    LexiconEntry("M", "Mike", "\U0001F91A"),
    LexiconEntry("N", "November", "\U0001F44B"),
    LexiconEntry("O", "Oscar", "\U0001F44C"),
    LexiconEntry("P", "Papa", "\U0001F447"),
    LexiconEntry("Q", "Quebec", "\U0001F90F"),
    LexiconEntry("R", "Romeo", "\U0001F91E"),
    LexiconEntry("S", "Sierra", "\U0001F44A"),
    LexiconEntry("T", "Tango", "\U0001F91B"),
    LexiconEntry("U", "Uniform", "\u270C\uFE0F"),
    LexiconEntry("V", "Victor", "\u270C\uFE0F"),
    LexiconEntry("W", "Whiskey", "\U0001F91F"),
    LexiconEntry("X", "X-ray", "\u261D\uFE0F"),
    LexiconEntry("Y", "Yankee", "\U0001F919"),
    LexiconEntry("Z", "Zulu", "\u261D\uFE0F"),
)

_BY_LETTER = {e.letter: e for e in ASL_ALPHABET}

# Symbols whose written form is not what a speech engine should say
SPOKEN_FORMS = {
    "\U0001F91F": "I love you",
    "YES": "Yes",
    "HELP": "Help",
    "CLEAR": "Clear",
}


def lookup(letter: str) -> Optional[LexiconEntry]:
    return _BY_LETTER.get(letter.upper())


def spoken_form(symbol: str) -> str:
    return SPOKEN_FORMS.get(symbol, symbol)


def recognizable_letters(vocabulary: list[str]) -> list[LexiconEntry]:
    """Lexicon entries whose letter appears in a classifier vocabulary."""
    present = set(vocabulary)
    return [e for e in ASL_ALPHABET if e.letter in present]
