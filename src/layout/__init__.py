"""
Layout module for the ensemble score engine.

Staff geometry (pitch <-> staff position, beat <-> x), multi-measure
system layout with hit-testing, and the beginner one-octave staff.
"""

from .geometry import (
    StaffGeometry, MeasureGeometry, pitch_to_position, position_to_pitch, ledger_lines
)
from .system_layout import LayoutConfig, ScoreLayout, StaveEntry, SystemBounds
from .beginner import BeginnerStaff, BEGINNER_PITCHES, note_color

__all__ = [
    'StaffGeometry',
    'MeasureGeometry',
    'pitch_to_position',
    'position_to_pitch',
    'ledger_lines',
    'LayoutConfig',
    'ScoreLayout',
    'StaveEntry',
    'SystemBounds',
    'BeginnerStaff',
    'BEGINNER_PITCHES',
    'note_color',
]
