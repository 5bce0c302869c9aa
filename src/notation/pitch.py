"""
Pitch and duration model for staff notation.

Pitches are diatonic letters with an optional stored accidental and an
octave. Durations are the five note values a contributor can place.
"""

import re
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Optional, Union


LETTERS = ['C', 'D', 'E', 'F', 'G', 'A', 'B']

# Semitone offset of each natural letter from A in the same octave
LETTER_SEMITONES = {'C': -9, 'D': -7, 'E': -5, 'F': -4, 'G': -2, 'A': 0, 'B': 2}

REFERENCE_FREQUENCY = 440.0

_PITCH_PATTERN = re.compile(r'^([A-G])(#|b)?(\d)$')


class Accidental(Enum):
    """Stored (sounding) accidental of a pitch."""
    SHARP = "#"
    FLAT = "b"

    @property
    def semitones(self) -> int:
        return 1 if self is Accidental.SHARP else -1

    @classmethod
    def from_symbol(cls, symbol: Optional[str]) -> Optional['Accidental']:
        """Map '#'/'sharp' and 'b'/'flat' to an accidental, anything else to None."""
        if symbol in ('#', 'sharp'):
            return cls.SHARP
        if symbol in ('b', 'flat'):
            return cls.FLAT
        return None


@dataclass(frozen=True)
class Pitch:
    """
    A notated pitch.

    Attributes:
        letter: Diatonic letter (C-B)
        octave: Scientific octave number (C4 is middle C)
        accidental: Stored accidental, None for natural
    """
    letter: str
    octave: int
    accidental: Optional[Accidental] = None

    def __post_init__(self):
        if self.letter not in LETTERS:
            raise ValueError(f"Invalid letter: {self.letter}. Must be one of {LETTERS}.")

    @classmethod
    def parse(cls, text: str) -> 'Pitch':
        """Parse a pitch string such as 'F#4' or 'Bb3'."""
        match = _PITCH_PATTERN.match(text.strip()) if text else None
        if not match:
            raise ValueError(f"Invalid pitch: {text!r}")
        letter, symbol, octave = match.groups()
        return cls(letter=letter, octave=int(octave), accidental=Accidental.from_symbol(symbol))

    @classmethod
    def parse_or_none(cls, text: Optional[str]) -> Optional['Pitch']:
        """Parse a pitch string, returning None when it is malformed."""
        try:
            return cls.parse(text)
        except (ValueError, AttributeError):
            return None

    @property
    def diatonic_index(self) -> int:
        """Absolute diatonic step count (letters mod 7 with octave carry)."""
        return LETTERS.index(self.letter) + self.octave * 7

    @classmethod
    def from_diatonic_index(cls, index: int, accidental: Optional[Accidental] = None) -> 'Pitch':
        octave, letter_idx = divmod(index, 7)
        return cls(letter=LETTERS[letter_idx], octave=octave, accidental=accidental)

    @property
    def semitones_from_a4(self) -> int:
        semitones = LETTER_SEMITONES[self.letter] + (self.octave - 4) * 12
        if self.accidental is not None:
            semitones += self.accidental.semitones
        return semitones

    @property
    def frequency(self) -> float:
        """Equal-tempered frequency in Hz relative to A4 = 440 Hz."""
        return REFERENCE_FREQUENCY * 2 ** (self.semitones_from_a4 / 12)

    @property
    def midi_number(self) -> int:
        return 69 + self.semitones_from_a4

    def with_accidental(self, accidental: Optional[Accidental]) -> 'Pitch':
        return Pitch(letter=self.letter, octave=self.octave, accidental=accidental)

    def __str__(self) -> str:
        symbol = self.accidental.value if self.accidental else ''
        return f"{self.letter}{symbol}{self.octave}"


def pitch_to_frequency(pitch: Union[str, Pitch, None]) -> float:
    """Frequency for a pitch or pitch string; malformed input sounds at 440 Hz."""
    if not isinstance(pitch, Pitch):
        pitch = Pitch.parse_or_none(pitch)
    if pitch is None:
        return REFERENCE_FREQUENCY
    return pitch.frequency


class Duration(Enum):
    """Note values with their beat counts and notation glyph codes."""
    WHOLE = ("whole", Fraction(4), "w")
    HALF = ("half", Fraction(2), "h")
    QUARTER = ("quarter", Fraction(1), "q")
    EIGHTH = ("eighth", Fraction(1, 2), "8")
    SIXTEENTH = ("sixteenth", Fraction(1, 4), "16")

    def __init__(self, label: str, beats: Fraction, glyph: str):
        self.label = label
        self.beats = beats
        self.glyph = glyph

    @property
    def rest_glyph(self) -> str:
        return self.glyph + "r"

    @classmethod
    def from_name(cls, name: Optional[str]) -> 'Duration':
        """Look up a duration by name; unknown names default to a quarter."""
        for duration in cls:
            if duration.label == name:
                return duration
        return cls.QUARTER

    @classmethod
    def from_beat_count(cls, beats: Union[Fraction, float]) -> Optional['Duration']:
        """Exact reverse lookup of a beat count, None if no note value matches."""
        beats = to_beats(beats)
        for duration in cls:
            if duration.beats == beats:
                return duration
        return None

    @classmethod
    def from_beats(cls, beats: float) -> 'Duration':
        """Closest note value for a dragged length in beats."""
        if beats >= 3:
            return cls.WHOLE
        if beats >= 1.5:
            return cls.HALF
        if beats >= 0.75:
            return cls.QUARTER
        if beats >= 0.375:
            return cls.EIGHTH
        return cls.SIXTEENTH

    @classmethod
    def longest_first(cls):
        return sorted(cls, key=lambda d: d.beats, reverse=True)


SMALLEST_DURATION = Duration.SIXTEENTH


def to_beats(value: Union[Fraction, int, float, str]) -> Fraction:
    """Convert a stored beat value to an exact rational."""
    if isinstance(value, Fraction):
        return value
    if isinstance(value, int):
        return Fraction(value)
    return Fraction(value).limit_denominator(64)
