"""
Measure completion.

Turns the sparse notes of one (instrument, measure) pair into an ordered,
gap-free sequence of events, synthesizing rests wherever nobody has
placed anything yet.
"""

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Iterable, List, Optional, Union

from .key_signature import KeyMap, resolve_display_accidental
from .note import Clef, Note
from .pitch import SMALLEST_DURATION, Duration, Pitch, to_beats


logger = logging.getLogger(__name__)

# Gaps at or below this size are treated as already filled
BEAT_TOLERANCE = Fraction(1, 1000)


@dataclass
class MeasureEvent:
    """
    One playable event of a completed measure.

    Attributes:
        beat: Beat position (1-indexed)
        duration: Note value
        is_rest: True for rests, both placed and synthesized
        staff_pitch: Pitch whose letter/octave places the glyph on the staff
        display_accidental: Accidental glyph to draw ('#', 'b', 'n' or None)
        note: Source note, None for synthesized rests
    """
    beat: Fraction
    duration: Duration
    is_rest: bool
    staff_pitch: Pitch
    display_accidental: Optional[str] = None
    note: Optional[Note] = None

    @property
    def beats(self) -> Fraction:
        return self.duration.beats

    @property
    def glyph(self) -> str:
        return self.duration.rest_glyph if self.is_rest else self.duration.glyph

    @property
    def is_generated(self) -> bool:
        return self.note is None

    def to_dict(self) -> dict:
        return {
            'beat': float(self.beat),
            'duration': self.duration.label,
            'glyph': self.glyph,
            'is_rest': self.is_rest,
            'staff_pitch': f"{self.staff_pitch.letter}{self.staff_pitch.octave}",
            'display_accidental': self.display_accidental,
            'note_id': self.note.id if self.note else None,
        }


def rest_position(clef: Union[Clef, str, None]) -> Pitch:
    """Pitch at the vertical middle of the clef's staff, where rests sit."""
    if not isinstance(clef, Clef):
        clef = Clef.from_name(clef)
    return clef.rest_pitch


def fill_rests(start_beat: Fraction, gap: Union[Fraction, float], clef: Clef) -> List[MeasureEvent]:
    """
    Decompose a gap into rests, longest note value first.

    A remainder shorter than a sixteenth is dropped.
    """
    remaining = to_beats(gap)
    beat = to_beats(start_beat)
    rests = []
    for duration in Duration.longest_first():
        while remaining >= duration.beats:
            rests.append(MeasureEvent(
                beat=beat,
                duration=duration,
                is_rest=True,
                staff_pitch=clef.rest_pitch,
            ))
            beat += duration.beats
            remaining -= duration.beats
    if remaining > 0:
        logger.debug(f"Dropping {remaining} beat residue smaller than a {SMALLEST_DURATION.label}")
    return rests


def _note_event(note: Note, clef: Clef, key_map: KeyMap) -> MeasureEvent:
    if note.is_rest:
        return MeasureEvent(
            beat=note.beat,
            duration=note.duration,
            is_rest=True,
            staff_pitch=clef.rest_pitch,
            note=note,
        )
    if note.pitch is None:
        # Unparseable pitch: draw on the middle line without an accidental
        return MeasureEvent(
            beat=note.beat,
            duration=note.duration,
            is_rest=False,
            staff_pitch=Clef.TREBLE.rest_pitch,
            note=note,
        )
    return MeasureEvent(
        beat=note.beat,
        duration=note.duration,
        is_rest=False,
        staff_pitch=note.pitch.with_accidental(None),
        display_accidental=resolve_display_accidental(note.pitch, key_map),
        note=note,
    )


def complete_measure(
    notes: Iterable[Note],
    clef: Union[Clef, str, None],
    key_map: KeyMap,
    beats_per_measure: int
) -> List[MeasureEvent]:
    """
    Fill one instrument's measure with notes and rests.

    Args:
        notes: Notes of a single (instrument, measure) pair, in any order
        clef: Clef of the instrument (unknown clefs fall back to treble)
        key_map: Forced accidentals of the key signature
        beats_per_measure: Beat capacity of the measure

    Returns:
        Events in ascending beat order whose beat counts fill the measure
    """
    if not isinstance(clef, Clef):
        clef = Clef.from_name(clef)

    events: List[MeasureEvent] = []
    cursor = Fraction(1)

    for note in sorted(notes, key=lambda n: n.beat):
        if note.beat > cursor + BEAT_TOLERANCE:
            events.extend(fill_rests(cursor, note.beat - cursor, clef))
            cursor = note.beat

        events.append(_note_event(note, clef, key_map))
        cursor += note.beats

    remaining = beats_per_measure - cursor + 1
    if remaining > BEAT_TOLERANCE:
        events.extend(fill_rests(cursor, remaining, clef))

    return events


def used_beats(notes: Iterable[Note]) -> Fraction:
    """Total beat count already placed in a measure."""
    return sum((note.beats for note in notes), Fraction(0))


def fits_in_measure(
    existing: Iterable[Note],
    beat: Union[Fraction, float],
    duration: Duration,
    beats_per_measure: int,
    is_rest: bool = False
) -> bool:
    """
    Check whether a new note can be placed without breaking the measure.

    The beat sum of the measure must stay within capacity, the note must end
    inside the measure and it must not overlap an existing sounding note.
    """
    existing = list(existing)
    beat = to_beats(beat)
    if beat < 1:
        return False
    if used_beats(existing) + duration.beats > beats_per_measure:
        return False
    if beat + duration.beats - 1 > beats_per_measure:
        return False
    if is_rest:
        return True
    end = beat + duration.beats
    return not any(
        not other.is_rest and beat < other.end_beat and other.beat < end
        for other in existing
    )
