"""
Notation module for the ensemble score engine.

Pitch and duration model, key signatures, measure completion and
notation export (JSON, MusicXML).
"""

from .pitch import Pitch, Accidental, Duration, pitch_to_frequency, to_beats
from .key_signature import KeySignature, key_accidentals, resolve_display_accidental, harmonize
from .note import (
    Note, Instrument, Score, ScoreData, Clef, Dynamic, EditAccidental, DEFAULT_INSTRUMENTS
)
from .measure import MeasureEvent, complete_measure, fill_rests, rest_position, fits_in_measure
from .converter import JSONConverter, MusicXMLConverter, complete_score

__all__ = [
    'Pitch',
    'Accidental',
    'Duration',
    'pitch_to_frequency',
    'to_beats',
    'KeySignature',
    'key_accidentals',
    'resolve_display_accidental',
    'harmonize',
    'Note',
    'Instrument',
    'Score',
    'ScoreData',
    'Clef',
    'Dynamic',
    'EditAccidental',
    'DEFAULT_INSTRUMENTS',
    'MeasureEvent',
    'complete_measure',
    'fill_rests',
    'rest_position',
    'fits_in_measure',
    'JSONConverter',
    'MusicXMLConverter',
    'complete_score',
]
