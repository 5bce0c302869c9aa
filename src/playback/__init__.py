"""
Playback module for the ensemble score engine.

Timbre profiles, ADSR envelopes, playback scheduling, the progress-driven
playback engine, offline synthesis and MIDI export.
"""

from .timbre import TimbreProfile, TIMBRES, timbre_for
from .envelope import Envelope, build_envelope
from .scheduler import (
    PlaybackFilters, PlaybackSchedule, ScheduledNote, schedule_playback, note_offset
)
from .engine import AudioSink, RecordingSink, PlaybackEngine, ProgressUpdate
from .synthesizer import Synthesizer
from .midi_export import MIDIConverter

__all__ = [
    'TimbreProfile',
    'TIMBRES',
    'timbre_for',
    'Envelope',
    'build_envelope',
    'PlaybackFilters',
    'PlaybackSchedule',
    'ScheduledNote',
    'schedule_playback',
    'note_offset',
    'AudioSink',
    'RecordingSink',
    'PlaybackEngine',
    'ProgressUpdate',
    'Synthesizer',
    'MIDIConverter',
]
