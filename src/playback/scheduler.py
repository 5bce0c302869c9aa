"""
Playback scheduling.

Converts the note set of a score into absolute start/stop times with the
synthesis parameters of each instrument. The whole score is scheduled at
once when playback starts; scores are small (tens of measures), and the
number of oscillators a single schedule may hold is capped by
max_voices.
"""

import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Iterable, List, Optional, Set, Tuple

from ..notation.note import Dynamic, Note, Score
from ..notation.pitch import Pitch
from .envelope import Envelope, build_envelope
from .timbre import TimbreProfile, timbre_for


logger = logging.getLogger(__name__)

DEFAULT_MAX_VOICES = 4096

# Oscillators keep running briefly after the envelope reaches zero
STOP_TAIL = 0.05

DYNAMIC_VELOCITIES = {
    Dynamic.PPP: 16, Dynamic.PP: 33, Dynamic.P: 49, Dynamic.MP: 64,
    Dynamic.MF: 80, Dynamic.F: 96, Dynamic.FF: 112, Dynamic.FFF: 127,
}


@dataclass
class PlaybackFilters:
    """
    Mute/solo state of the mixer.

    Attributes:
        muted: Instruments that never sound
        solo: When set, the only instrument that sounds
    """
    muted: Set[str] = field(default_factory=set)
    solo: Optional[str] = None

    def toggle_mute(self, instrument_id: str) -> None:
        if instrument_id in self.muted:
            self.muted.discard(instrument_id)
        else:
            self.muted.add(instrument_id)

    def toggle_solo(self, instrument_id: str) -> None:
        self.solo = None if self.solo == instrument_id else instrument_id

    def is_audible(self, instrument_id: str) -> bool:
        if self.solo is not None and instrument_id != self.solo:
            return False
        return instrument_id not in self.muted


@dataclass
class ScheduledNote:
    """
    One sound-generation instruction.

    Attributes:
        instrument_id: Instrument whose timbre is used
        pitch: Sounding pitch
        frequency: Fundamental frequency in Hz
        start: Offset from the playback start instant in seconds
        duration: Sounding duration in seconds
        measure, beat: Position in the score
        timbre: Synthesis parameters
        envelope: Gain envelope in schedule time
        velocity: MIDI velocity derived from the dynamic marking
        note_id: Source note id
    """
    instrument_id: str
    pitch: Pitch
    frequency: float
    start: float
    duration: float
    measure: int
    beat: Fraction
    timbre: TimbreProfile
    envelope: Envelope
    velocity: int = 80
    note_id: Optional[str] = None

    @property
    def end(self) -> float:
        return self.start + self.duration

    @property
    def stop_time(self) -> float:
        """When the oscillators of this note are stopped."""
        return self.end + STOP_TAIL

    @property
    def voice_count(self) -> int:
        """Oscillators needed: one per harmonic plus the vibrato LFO."""
        return len(self.timbre.harmonics) + 1

    def partials(self) -> List[Tuple[float, float]]:
        """(frequency, gain) of every harmonic oscillator."""
        return [
            (self.frequency * (h + 1), amplitude * self.timbre.gain)
            for h, amplitude in enumerate(self.timbre.harmonics)
        ]

    def to_dict(self) -> dict:
        return {
            'note_id': self.note_id,
            'instrument_id': self.instrument_id,
            'pitch': str(self.pitch),
            'frequency': round(self.frequency, 3),
            'measure': self.measure,
            'beat': float(self.beat),
            'start': round(self.start, 6),
            'duration': round(self.duration, 6),
            'velocity': self.velocity,
            'envelope_compressed': self.envelope.compressed,
        }


@dataclass
class PlaybackSchedule:
    """
    The complete set of scheduled notes for one play() call.

    Attributes:
        events: Scheduled notes ordered by start time
        total_duration: Seconds from the start measure to the end of the score
        start_measure: Measure playback starts at
        beats_per_measure: Beats per measure of the score
        seconds_per_beat: 60 / tempo
    """
    events: List[ScheduledNote]
    total_duration: float
    start_measure: int
    beats_per_measure: int
    seconds_per_beat: float

    @property
    def seconds_per_measure(self) -> float:
        return self.beats_per_measure * self.seconds_per_beat

    @property
    def voice_count(self) -> int:
        return sum(event.voice_count for event in self.events)

    def position_at(self, elapsed: float) -> Tuple[int, float]:
        """
        Playhead position after `elapsed` seconds.

        Returns:
            (current measure, fraction of the measure elapsed in [0, 1))
        """
        elapsed = max(0.0, elapsed)
        measures_elapsed = int(elapsed // self.seconds_per_measure)
        current = self.start_measure + measures_elapsed
        in_measure = elapsed - measures_elapsed * self.seconds_per_measure
        return current, in_measure / self.seconds_per_measure

    def to_dict(self) -> dict:
        return {
            'start_measure': self.start_measure,
            'total_duration': self.total_duration,
            'events': [event.to_dict() for event in self.events],
        }


def note_offset(note: Note, start_measure: int, beats_per_measure: int, seconds_per_beat: float) -> float:
    """Seconds from the playback start instant to the note's onset."""
    beats = (note.measure - start_measure) * beats_per_measure + (note.beat - 1)
    return float(beats) * seconds_per_beat


def schedule_playback(
    score: Score,
    notes: Iterable[Note],
    from_measure: int = 1,
    filters: Optional[PlaybackFilters] = None,
    max_voices: int = DEFAULT_MAX_VOICES
) -> PlaybackSchedule:
    """
    Schedule every audible note of the score.

    Args:
        score: Score metadata (tempo, time signature, measure count)
        notes: All notes of the score
        from_measure: Measure playback starts at
        filters: Mute/solo state
        max_voices: Cap on oscillators scheduled at once

    Returns:
        PlaybackSchedule with events ordered by start time
    """
    if not score.contains_measure(from_measure):
        raise ValueError(
            f"Invalid from_measure: {from_measure}. Must be in [1, {score.total_measures}]."
        )
    filters = filters or PlaybackFilters()
    beats_per_measure = score.beats_per_measure
    seconds_per_beat = score.seconds_per_beat

    events: List[ScheduledNote] = []
    skipped = 0
    for note in notes:
        if not note.sounds or note.measure < from_measure or note.measure > score.total_measures:
            continue
        if not filters.is_audible(note.instrument_id):
            continue

        start = note_offset(note, from_measure, beats_per_measure, seconds_per_beat)
        duration = float(note.beats) * seconds_per_beat
        timbre = timbre_for(note.instrument_id)
        events.append(ScheduledNote(
            instrument_id=note.instrument_id,
            pitch=note.pitch,
            frequency=note.pitch.frequency,
            start=start,
            duration=duration,
            measure=note.measure,
            beat=note.beat,
            timbre=timbre,
            envelope=build_envelope(timbre, start, duration),
            velocity=DYNAMIC_VELOCITIES[note.dynamic],
            note_id=note.id,
        ))

    events.sort(key=lambda e: (e.start, e.instrument_id))

    kept: List[ScheduledNote] = []
    voices = 0
    for event in events:
        if voices + event.voice_count > max_voices:
            skipped += 1
            continue
        voices += event.voice_count
        kept.append(event)
    if skipped:
        logger.warning(f"Voice limit {max_voices} reached, {skipped} notes were not scheduled")

    total_beats = (score.total_measures - from_measure + 1) * beats_per_measure
    schedule = PlaybackSchedule(
        events=kept,
        total_duration=total_beats * seconds_per_beat,
        start_measure=from_measure,
        beats_per_measure=beats_per_measure,
        seconds_per_beat=seconds_per_beat,
    )
    logger.debug(
        f"Scheduled {len(kept)} notes ({voices} voices) from measure {from_measure}, "
        f"total {schedule.total_duration:.2f}s"
    )
    return schedule
