"""
Simplified one-octave staff for the beginner view.

Eight fixed pitches from C4 to C5 are mapped straight to staff
positions, notes are drawn as coloured blocks one beat cell per beat.
"""

from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, Optional, Union

from ..notation.pitch import Duration, Pitch


BEGINNER_PITCHES = ['C5', 'B4', 'A4', 'G4', 'F4', 'E4', 'D4', 'C4']

BEGINNER_POSITIONS: Dict[str, float] = {
    'C5': -1.0, 'B4': -0.5, 'A4': 0.0, 'G4': 0.5,
    'F4': 1.0, 'E4': 1.5, 'D4': 2.0, 'C4': 2.5,
}

DEFAULT_POSITION = 1.0

NOTE_COLORS = {
    'C': '#B07CC6',  # purple
    'D': '#E8943A',  # orange
    'E': '#5CB85C',  # green
    'F': '#D94A7A',  # pink
    'G': '#5B9BD5',  # blue
    'A': '#E8C94A',  # yellow
    'B': '#CF5C5C',  # red
}


@dataclass
class BeginnerStaff:
    """
    Pixel geometry of the beginner staff.

    Attributes:
        top_y: Y of the top staff line
        line_spacing: Half the distance between drawn staff lines
        left_margin: X where the first beat cell starts
        music_width: Width of the beat cells area
        beats_per_measure: Number of beat cells
    """
    top_y: float = 40.0
    line_spacing: float = 16.0
    left_margin: float = 60.0
    music_width: float = 520.0
    beats_per_measure: int = 4

    @property
    def beat_width(self) -> float:
        return self.music_width / self.beats_per_measure

    def pitch_to_y(self, pitch: Union[Pitch, str]) -> float:
        """Y for one of the eight beginner pitches; others sit at the default row."""
        position = BEGINNER_POSITIONS.get(str(pitch), DEFAULT_POSITION)
        return self.top_y + position * self.line_spacing * 2

    def y_to_pitch(self, y: float) -> Pitch:
        """Nearest beginner pitch to a y coordinate."""
        best = min(BEGINNER_PITCHES, key=lambda p: abs(self.pitch_to_y(p) - y))
        return Pitch.parse(best)

    def x_to_beat(self, x: float) -> int:
        """Whole-beat cell under an x coordinate, clamped to the measure."""
        relative = x - self.left_margin
        beat = int(relative // self.beat_width) + 1
        return max(1, min(self.beats_per_measure, beat))

    def beat_to_x(self, beat: Union[Fraction, float]) -> float:
        return self.left_margin + (float(beat) - 1) * self.beat_width

    def block_width(self, duration: Duration) -> float:
        return float(duration.beats) * self.beat_width

    def resize_duration(self, original: Duration, dx: float) -> Duration:
        """Note value after dragging a block's edge by dx pixels."""
        delta = round(dx / self.beat_width)
        beats = max(0.25, float(original.beats) + delta)
        return Duration.from_beats(beats)


def note_color(pitch: Optional[Union[Pitch, str]]) -> str:
    """Block colour for a pitch letter."""
    letter = str(pitch)[0] if pitch else ''
    return NOTE_COLORS.get(letter, '#666666')
