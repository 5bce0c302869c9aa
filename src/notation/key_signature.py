"""
Key signatures and displayed-accidental resolution.

A key signature is a letter -> forced accidental map derived from the
circle of fifths. The resolver decides which glyph (if any) a pitch needs
on the staff once the key signature is taken into account.
"""

from enum import Enum
from typing import Dict, Optional, Union

from .pitch import Accidental, Pitch


SHARP_ORDER = ['F', 'C', 'G', 'D', 'A', 'E', 'B']
FLAT_ORDER = ['B', 'E', 'A', 'D', 'G', 'C', 'F']

NATURAL_GLYPH = "n"

KeyMap = Dict[str, Accidental]


class KeySignature(Enum):
    """The 15 canonical major keys with their signed accidental count."""
    C = ("C", 0)
    G = ("G", 1)
    D = ("D", 2)
    A = ("A", 3)
    E = ("E", 4)
    B = ("B", 5)
    F_SHARP = ("F#", 6)
    C_SHARP = ("C#", 7)
    F = ("F", -1)
    B_FLAT = ("Bb", -2)
    E_FLAT = ("Eb", -3)
    A_FLAT = ("Ab", -4)
    D_FLAT = ("Db", -5)
    G_FLAT = ("Gb", -6)
    C_FLAT = ("Cb", -7)

    def __init__(self, key_name: str, fifths: int):
        self.key_name = key_name
        self.fifths = fifths

    @classmethod
    def from_name(cls, name: Optional[str]) -> 'KeySignature':
        """Look up a key by name (e.g. 'D', 'Bb'); unknown names map to C."""
        if name:
            name = name.strip()
            if name.lower().endswith(' major'):
                name = name[:-len(' major')].strip()
            for key in cls:
                if key.key_name == name:
                    return key
        return cls.C

    @property
    def accidentals(self) -> KeyMap:
        """Letter -> forced accidental for this key."""
        if self.fifths > 0:
            return {letter: Accidental.SHARP for letter in SHARP_ORDER[:self.fifths]}
        if self.fifths < 0:
            return {letter: Accidental.FLAT for letter in FLAT_ORDER[:-self.fifths]}
        return {}


def key_accidentals(key: Union[str, KeySignature, None]) -> KeyMap:
    """Build the forced-accidental map for a key name or key signature."""
    if not isinstance(key, KeySignature):
        key = KeySignature.from_name(key)
    return key.accidentals


def resolve_display_accidental(pitch: Union[Pitch, str], key_map: KeyMap) -> Optional[str]:
    """
    Decide the accidental glyph to draw next to a pitch.

    Returns None when the key signature already implies the pitch, 'n' when
    a natural pitch cancels a forced accidental, and '#' or 'b' when the
    pitch's own accidental diverges from the key.
    """
    if not isinstance(pitch, Pitch):
        pitch = Pitch.parse_or_none(pitch)
        if pitch is None:
            return None

    forced = key_map.get(pitch.letter)
    if pitch.accidental == forced:
        return None
    if pitch.accidental is not None:
        return pitch.accidental.value
    return NATURAL_GLYPH


def harmonize(pitch: Pitch, key_map: KeyMap) -> Pitch:
    """Apply the key's forced accidental for the pitch's letter."""
    return pitch.with_accidental(key_map.get(pitch.letter))
