"""
Note, instrument and score data structures.

Represents the contributed notes of a shared score along with the
fixed instrument set and the score-wide metadata.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, List, Optional, Tuple

from .key_signature import KeyMap, KeySignature
from .pitch import Accidental, Duration, Pitch, to_beats


class Dynamic(Enum):
    """Musical dynamics (volume/intensity markings)."""
    PPP = "ppp"  # pianississimo
    PP = "pp"    # pianissimo
    P = "p"      # piano
    MP = "mp"    # mezzo-piano
    MF = "mf"    # mezzo-forte
    F = "f"      # forte
    FF = "ff"    # fortissimo
    FFF = "fff"  # fortississimo

    @classmethod
    def from_value(cls, value: Optional[str]) -> 'Dynamic':
        """Unknown or missing markings default to mezzo-forte."""
        for dynamic in cls:
            if dynamic.value == value:
                return dynamic
        return cls.MF


class Clef(Enum):
    """Staff clefs with the pitch on the top line and the rest position."""
    TREBLE = ("treble", Pitch('F', 5), Pitch('B', 4))
    ALTO = ("alto", Pitch('G', 4), Pitch('C', 4))
    BASS = ("bass", Pitch('A', 3), Pitch('D', 3))

    def __init__(self, label: str, top_line: Pitch, rest_pitch: Pitch):
        self.label = label
        self.top_line = top_line
        self.rest_pitch = rest_pitch

    @classmethod
    def from_name(cls, name: Optional[str]) -> 'Clef':
        """Unknown clefs default to treble."""
        for clef in cls:
            if clef.label == name:
                return clef
        return cls.TREBLE


class EditAccidental(Enum):
    """Accidental chosen in the placement toolbar (overrides the harmonized pitch)."""
    SHARP = "sharp"
    FLAT = "flat"
    NATURAL = "natural"

    def apply(self, pitch: Pitch) -> Pitch:
        if self is EditAccidental.SHARP:
            return pitch.with_accidental(Accidental.SHARP)
        if self is EditAccidental.FLAT:
            return pitch.with_accidental(Accidental.FLAT)
        return pitch.with_accidental(None)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with microseconds, sortable as text."""
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


@dataclass
class Note:
    """
    A contributed note or rest in one instrument's measure.

    Attributes:
        id: Opaque identifier assigned by the store
        instrument_id: Owning instrument
        measure: Measure number (1-indexed)
        beat: Beat position within the measure (1-indexed, rational)
        duration: Note value
        pitch: Notated pitch (None for rests or malformed pitch strings)
        is_rest: True for an explicitly placed rest
        accidental: Accidental override chosen at placement time (optional)
        dynamic: Dynamic marking
        session_id: Creating session, the only one allowed to delete
        created_at: Store creation timestamp (ISO-8601, UTC)
    """
    instrument_id: str
    measure: int
    beat: Fraction
    duration: Duration = Duration.QUARTER
    pitch: Optional[Pitch] = None
    is_rest: bool = False
    accidental: Optional[EditAccidental] = None
    dynamic: Dynamic = Dynamic.MF
    session_id: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None

    def __post_init__(self):
        self.beat = to_beats(self.beat)
        if self.measure < 1:
            raise ValueError(f"Invalid measure: {self.measure}. Must be >= 1.")
        if self.beat < 1:
            raise ValueError(f"Invalid beat: {self.beat}. Must be >= 1.")

    @property
    def beats(self) -> Fraction:
        """Beat count occupied by this note."""
        return self.duration.beats

    @property
    def end_beat(self) -> Fraction:
        """First beat after this note (exclusive end of its span)."""
        return self.beat + self.beats

    @property
    def sounds(self) -> bool:
        return not self.is_rest and self.pitch is not None

    def overlaps_with(self, other: 'Note') -> bool:
        """Check if two notes in the same instrument/measure share any beat span."""
        return (self.instrument_id == other.instrument_id and
                self.measure == other.measure and
                self.beat < other.end_beat and
                other.beat < self.end_beat)

    def with_updates(self, **fields) -> 'Note':
        return replace(self, **fields)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Note':
        """
        Build a note from a store record.

        Malformed durations become quarters and malformed pitch strings are
        kept as None so one bad record never breaks a whole measure.
        """
        is_rest = bool(data.get('is_rest', False))
        accidental = data.get('accidental')
        return cls(
            id=data.get('id'),
            instrument_id=data['instrument_id'],
            measure=int(data['measure']),
            beat=to_beats(data.get('beat', 1)),
            duration=Duration.from_name(data.get('duration')),
            pitch=None if is_rest else Pitch.parse_or_none(data.get('pitch')),
            is_rest=is_rest,
            accidental=EditAccidental(accidental) if accidental in {a.value for a in EditAccidental} else None,
            dynamic=Dynamic.from_value(data.get('dynamic')),
            session_id=data.get('session_id'),
            created_at=data.get('created_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert note to a store record."""
        beat = float(self.beat) if self.beat.denominator != 1 else int(self.beat)
        result = {
            'id': self.id,
            'instrument_id': self.instrument_id,
            'pitch': str(self.pitch) if self.pitch is not None else None,
            'measure': self.measure,
            'beat': beat,
            'duration': self.duration.label,
            'is_rest': self.is_rest,
            'accidental': self.accidental.value if self.accidental else None,
            'dynamic': self.dynamic.value,
            'session_id': self.session_id,
        }
        if self.created_at is not None:
            result['created_at'] = self.created_at
        return result


@dataclass(frozen=True)
class Instrument:
    """A part in the ensemble."""
    id: str
    name: str
    abbreviation: str
    clef: Clef
    sort_order: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Instrument':
        return cls(
            id=data['id'],
            name=data.get('name', data['id']),
            abbreviation=data.get('abbreviation', data['id']),
            clef=Clef.from_name(data.get('clef')),
            sort_order=int(data.get('sort_order', 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'abbreviation': self.abbreviation,
            'clef': self.clef.label,
            'sort_order': self.sort_order,
        }


DEFAULT_INSTRUMENTS: List[Instrument] = [
    Instrument('violin1', 'Violin I', 'Vln. I', Clef.TREBLE, 1),
    Instrument('violin2', 'Violin II', 'Vln. II', Clef.TREBLE, 2),
    Instrument('viola', 'Viola', 'Vla.', Clef.ALTO, 3),
    Instrument('cello', 'Violoncello', 'Vc.', Clef.BASS, 4),
    Instrument('contrabass', 'Contrabass', 'Cb.', Clef.BASS, 5),
]


def parse_time_signature(text: str) -> Tuple[int, int]:
    """Parse '4/4' style time signatures."""
    try:
        beats, unit = (int(part) for part in str(text).split('/'))
    except ValueError:
        raise ValueError(f"Invalid time_signature: {text!r}")
    return beats, unit


@dataclass
class Score:
    """
    Score-wide metadata shared by every contributor.

    Attributes:
        title: Piece title
        key_signature: Major key of the piece
        time_signature: Time signature as (beats per measure, beat unit)
        tempo: Tempo in BPM
        total_measures: Number of measures notes may be placed in
    """
    title: str = "Untitled No. 1"
    key_signature: KeySignature = KeySignature.D
    time_signature: Tuple[int, int] = (4, 4)
    tempo: int = 100
    total_measures: int = 32
    _key_map: KeyMap = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        """Validate score parameters."""
        if self.tempo <= 0:
            raise ValueError(f"Invalid tempo: {self.tempo}. Must be > 0.")
        if len(self.time_signature) != 2 or any(x <= 0 for x in self.time_signature):
            raise ValueError(f"Invalid time_signature: {self.time_signature}")
        if self.total_measures < 1:
            raise ValueError(f"Invalid total_measures: {self.total_measures}. Must be >= 1.")

    @property
    def beats_per_measure(self) -> int:
        return self.time_signature[0]

    @property
    def beat_unit(self) -> int:
        return self.time_signature[1]

    @property
    def seconds_per_beat(self) -> float:
        return 60.0 / self.tempo

    @property
    def key_map(self) -> KeyMap:
        """Forced accidentals of the current key, recomputed when the key changes."""
        if self._key_map is None:
            self._key_map = self.key_signature.accidentals
        return self._key_map

    def set_key(self, key: KeySignature) -> None:
        self.key_signature = key
        self._key_map = None

    def contains_measure(self, measure: int) -> bool:
        return 1 <= measure <= self.total_measures

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Score':
        return cls(
            title=data.get('title', "Untitled No. 1"),
            key_signature=KeySignature.from_name(data.get('key_signature')),
            time_signature=parse_time_signature(data.get('time_signature', '4/4')),
            tempo=int(data.get('tempo', 100)),
            total_measures=int(data.get('total_measures', 32)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'key_signature': self.key_signature.key_name,
            'time_signature': f"{self.time_signature[0]}/{self.time_signature[1]}",
            'tempo': self.tempo,
            'total_measures': self.total_measures,
        }


@dataclass
class ScoreData:
    """
    Full score payload: metadata, instruments and every contributed note.

    Mirrors the store's fetch_score() result.
    """
    score: Score = field(default_factory=Score)
    instruments: List[Instrument] = field(default_factory=lambda: list(DEFAULT_INSTRUMENTS))
    notes: List[Note] = field(default_factory=list)

    def __post_init__(self):
        self.instruments = sorted(self.instruments, key=lambda i: i.sort_order)

    def instrument(self, instrument_id: str) -> Optional[Instrument]:
        for instrument in self.instruments:
            if instrument.id == instrument_id:
                return instrument
        return None

    def notes_for(self, instrument_id: str, measure: int) -> List[Note]:
        """Notes of one (instrument, measure) pair."""
        return [n for n in self.notes if n.instrument_id == instrument_id and n.measure == measure]

    def group_notes(self) -> Dict[Tuple[str, int], List[Note]]:
        """Group notes by (instrument, measure)."""
        groups: Dict[Tuple[str, int], List[Note]] = {}
        for note in self.notes:
            groups.setdefault((note.instrument_id, note.measure), []).append(note)
        return groups

    @property
    def note_count(self) -> int:
        """Number of sounding (non-rest) notes."""
        return sum(1 for n in self.notes if not n.is_rest)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScoreData':
        instruments = [Instrument.from_dict(i) for i in data.get('instruments', [])]
        return cls(
            score=Score.from_dict(data.get('score', {})),
            instruments=instruments or list(DEFAULT_INSTRUMENTS),
            notes=[Note.from_dict(n) for n in data.get('notes', [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score.to_dict(),
            'instruments': [i.to_dict() for i in self.instruments],
            'notes': [n.to_dict() for n in self.notes],
        }
