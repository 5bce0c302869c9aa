"""
Tests for notes, instruments and score metadata.
"""

import pytest
from fractions import Fraction

from src.notation.key_signature import KeySignature
from src.notation.note import (
    Clef, Dynamic, EditAccidental, Instrument, Note, Score, ScoreData, DEFAULT_INSTRUMENTS
)
from src.notation.pitch import Accidental, Duration, Pitch


class TestNote:
    """Test Note class."""

    def test_note_creation(self):
        """Test creating a note."""
        note = Note(instrument_id='viola', measure=3, beat=2.5, duration=Duration.EIGHTH,
                    pitch=Pitch.parse("D4"))
        assert note.beat == Fraction(5, 2)
        assert note.end_beat == 3
        assert note.dynamic is Dynamic.MF
        assert note.sounds

    def test_invalid_measure(self):
        """Test invalid measure raises error."""
        with pytest.raises(ValueError, match="Invalid measure"):
            Note(instrument_id='viola', measure=0, beat=1)

    def test_invalid_beat(self):
        """Test invalid beat raises error."""
        with pytest.raises(ValueError, match="Invalid beat"):
            Note(instrument_id='viola', measure=1, beat=0.5)

    def test_rest_does_not_sound(self):
        """Test rests are silent."""
        rest = Note(instrument_id='cello', measure=1, beat=1, is_rest=True)
        assert not rest.sounds

    def test_overlap(self):
        """Test overlap detection within one measure."""
        a = Note(instrument_id='cello', measure=1, beat=1, duration=Duration.HALF)
        b = Note(instrument_id='cello', measure=1, beat=2)
        c = Note(instrument_id='cello', measure=1, beat=3)
        d = Note(instrument_id='viola', measure=1, beat=2)
        assert a.overlaps_with(b)
        assert not a.overlaps_with(c)
        assert not a.overlaps_with(d)

    def test_from_dict_tolerant(self):
        """Test malformed records degrade to defaults."""
        note = Note.from_dict({
            'id': 'n1', 'instrument_id': 'violin2', 'measure': '4', 'beat': 1.5,
            'duration': 'breve', 'pitch': 'Q9', 'dynamic': 'loud', 'accidental': 'double',
        })
        assert note.measure == 4
        assert note.beat == Fraction(3, 2)
        assert note.duration is Duration.QUARTER
        assert note.pitch is None
        assert note.dynamic is Dynamic.MF
        assert note.accidental is None

    def test_dict_round_trip(self):
        """Test store records survive conversion."""
        note = Note(instrument_id='violin1', measure=2, beat=Fraction(3, 2), duration=Duration.EIGHTH,
                    pitch=Pitch.parse("C#5"), accidental=EditAccidental.SHARP, dynamic=Dynamic.FF,
                    session_id='s1', id='abc', created_at='2026-01-01T00:00:00.000000Z')
        record = note.to_dict()
        assert record['beat'] == 1.5
        assert record['pitch'] == "C#5"
        assert Note.from_dict(record) == note

    def test_edit_accidental(self):
        """Test toolbar accidentals override the stored accidental."""
        pitch = Pitch.parse("F#4")
        assert EditAccidental.NATURAL.apply(pitch) == Pitch.parse("F4")
        assert EditAccidental.FLAT.apply(pitch).accidental is Accidental.FLAT


class TestInstrument:
    """Test instruments and clefs."""

    def test_default_ensemble(self):
        """Test the string section clefs."""
        clefs = {i.id: i.clef for i in DEFAULT_INSTRUMENTS}
        assert clefs == {
            'violin1': Clef.TREBLE, 'violin2': Clef.TREBLE, 'viola': Clef.ALTO,
            'cello': Clef.BASS, 'contrabass': Clef.BASS,
        }

    def test_unknown_clef_defaults_to_treble(self):
        """Test tolerant clef lookup."""
        instrument = Instrument.from_dict({'id': 'harp', 'clef': 'tenor'})
        assert instrument.clef is Clef.TREBLE
        assert instrument.name == 'harp'


class TestScore:
    """Test score metadata."""

    def test_defaults(self):
        """Test default score."""
        score = Score()
        assert score.title == "Untitled No. 1"
        assert score.key_signature is KeySignature.D
        assert score.beats_per_measure == 4
        assert score.seconds_per_beat == pytest.approx(0.6)
        assert score.total_measures == 32

    def test_invalid_tempo(self):
        """Test invalid tempo raises error."""
        with pytest.raises(ValueError, match="Invalid tempo"):
            Score(tempo=0)

    def test_key_map_recomputed_on_key_change(self):
        """Test the cached key map follows the key."""
        score = Score()
        assert set(score.key_map) == {'F', 'C'}
        score.set_key(KeySignature.F)
        assert score.key_map == {'B': Accidental.FLAT}

    def test_from_dict(self):
        """Test parsing score metadata."""
        score = Score.from_dict({'title': 'Etude', 'key_signature': 'Eb major',
                                 'time_signature': '3/4', 'tempo': 90, 'total_measures': 8})
        assert score.key_signature is KeySignature.E_FLAT
        assert score.time_signature == (3, 4)
        assert score.to_dict()['key_signature'] == 'Eb'

    def test_invalid_time_signature(self):
        """Test malformed time signatures raise."""
        with pytest.raises(ValueError):
            Score.from_dict({'time_signature': 'common'})


class TestScoreData:
    """Test the full score payload."""

    def test_instruments_sorted(self):
        """Test instruments are ordered by sort order."""
        data = ScoreData(instruments=list(reversed(DEFAULT_INSTRUMENTS)))
        assert [i.id for i in data.instruments][0] == 'violin1'

    def test_note_count_excludes_rests(self):
        """Test rests are not counted."""
        data = ScoreData(notes=[
            Note(instrument_id='viola', measure=1, beat=1, pitch=Pitch.parse("C4")),
            Note(instrument_id='viola', measure=1, beat=2, is_rest=True),
        ])
        assert data.note_count == 1
        assert list(data.group_notes()) == [('viola', 1)]

    def test_from_dict_without_instruments(self):
        """Test the default ensemble is used when none is given."""
        data = ScoreData.from_dict({'score': {}, 'notes': []})
        assert len(data.instruments) == 5
