"""
Staff geometry.

Maps pitches to vertical staff positions (and back) for each clef, and
beat positions to horizontal coordinates inside a measure's note area.

Staff positions are measured in line spacings: position 0 is the top
line, 4 is the bottom line, and every 0.5 is one diatonic step down.
"""

import math
from dataclasses import dataclass
from fractions import Fraction
from typing import List, Optional, Union

from ..notation.key_signature import KeyMap, harmonize
from ..notation.note import Clef
from ..notation.pitch import Duration, Pitch, to_beats


def _clef(clef: Union[Clef, str, None]) -> Clef:
    return clef if isinstance(clef, Clef) else Clef.from_name(clef)


def pitch_to_position(pitch: Union[Pitch, str, None], clef: Union[Clef, str, None]) -> float:
    """
    Staff position of a pitch (0 = top line, 4 = bottom line).

    Malformed pitches sit on the middle line.
    """
    if not isinstance(pitch, Pitch):
        pitch = Pitch.parse_or_none(pitch)
        if pitch is None:
            return 2.0
    base = _clef(clef).top_line
    return (base.diatonic_index - pitch.diatonic_index) / 2


def position_to_pitch(position: float, clef: Union[Clef, str, None], key_map: Optional[KeyMap] = None) -> Pitch:
    """
    Pitch at a staff position, harmonized to the key signature.

    Continuous positions are rounded to the nearest half-line step.
    """
    steps = int(round(position * 2))
    base = _clef(clef).top_line
    pitch = Pitch.from_diatonic_index(base.diatonic_index - steps)
    return harmonize(pitch, key_map or {})


def ledger_lines(position: float) -> List[int]:
    """Positions of the ledger lines a note at this position needs."""
    if position < 0:
        return list(range(-1, math.ceil(position) - 1, -1))
    if position > 4:
        return list(range(5, int(math.floor(position)) + 1))
    return []


@dataclass
class StaffGeometry:
    """
    Vertical pixel geometry of a five-line staff.

    Attributes:
        top_y: Y of the top staff line
        line_spacing: Distance between adjacent staff lines
    """
    top_y: float
    line_spacing: float = 10.0

    @property
    def bottom_y(self) -> float:
        return self.top_y + 4 * self.line_spacing

    def position_to_y(self, position: float) -> float:
        return self.top_y + position * self.line_spacing

    def y_to_position(self, y: float) -> float:
        """Continuous y to the nearest half-line position."""
        raw = (y - self.top_y) / self.line_spacing
        return round(raw * 2) / 2

    def pitch_to_y(self, pitch: Union[Pitch, str], clef: Union[Clef, str, None]) -> float:
        return self.position_to_y(pitch_to_position(pitch, clef))

    def y_to_pitch(self, y: float, clef: Union[Clef, str, None], key_map: Optional[KeyMap] = None) -> Pitch:
        return position_to_pitch(self.y_to_position(y), clef, key_map)


@dataclass
class MeasureGeometry:
    """
    Horizontal pixel geometry of one measure's note area.

    Attributes:
        note_start_x: X where notes may start (after any clef/key glyphs)
        note_end_x: X where the note area ends
        beats_per_measure: Beat capacity of the measure
    """
    note_start_x: float
    note_end_x: float
    beats_per_measure: int = 4

    @property
    def width(self) -> float:
        return self.note_end_x - self.note_start_x

    def beat_to_x(self, beat: Union[Fraction, float]) -> float:
        fraction = (float(beat) - 1) / self.beats_per_measure
        return self.note_start_x + fraction * self.width

    def x_to_beat(self, x: float, duration: Duration = Duration.QUARTER) -> Fraction:
        """
        Snap an x coordinate to the beat grid of the selected note value.

        The result is clamped to the last grid slot that still fits the
        note inside the measure.
        """
        subdivisions = int(self.beats_per_measure / duration.beats)
        if subdivisions < 1 or self.width <= 0:
            return Fraction(1)
        relative = (x - self.note_start_x) / self.width
        grid = int(round(relative * subdivisions))
        grid = max(0, min(grid, subdivisions - 1))
        return 1 + grid * duration.beats

    def snap_x(self, x: float, duration: Duration = Duration.QUARTER) -> float:
        return self.beat_to_x(self.x_to_beat(x, duration))

    def clamp_x(self, x: float) -> float:
        return max(self.note_start_x, min(x, self.note_end_x))

    def beat_grid(self) -> List[float]:
        """X of every beat boundary, barlines included."""
        return [self.beat_to_x(to_beats(b + 1)) for b in range(self.beats_per_measure + 1)]
