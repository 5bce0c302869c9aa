"""
Tests for the in-memory note store.
"""

import json
import logging
import pytest

from src.collab.errors import NoteNotFoundOrForbiddenError, NoteValidationError
from src.collab.store import InMemoryNoteStore
from src.notation.note import Note, Score, ScoreData
from src.notation.pitch import Duration, Pitch


class Ticker:
    """Deterministic, text-sortable timestamp source."""

    def __init__(self):
        self.count = 0

    def __call__(self):
        self.count += 1
        return f"2026-01-01T00:00:00.{self.count:06d}Z"


def make_note(measure=1, beat=1, session_id='alice', instrument_id='violin1', **kwargs):
    kwargs.setdefault('pitch', Pitch.parse("A4"))
    return Note(instrument_id=instrument_id, measure=measure, beat=beat,
                session_id=session_id, **kwargs)


@pytest.fixture
def store():
    return InMemoryNoteStore(ScoreData(score=Score(total_measures=8)), clock=Ticker())


class TestCreateNote:
    """Test note creation rules."""

    def test_assigns_id_and_timestamp(self, store):
        """Test the store assigns identity."""
        saved = store.create_note(make_note())
        assert saved.id
        assert saved.created_at == "2026-01-01T00:00:00.000001Z"
        assert store.fetch_note_count() == 1

    def test_measure_out_of_range(self, store):
        """Test measures beyond the score are refused."""
        with pytest.raises(NoteValidationError, match="Measure out of range"):
            store.create_note(make_note(measure=9))

    def test_unknown_instrument(self, store):
        """Test unknown instruments are refused."""
        with pytest.raises(NoteValidationError, match="Unknown instrument"):
            store.create_note(make_note(instrument_id='tuba'))

    def test_validation_error_is_value_error(self):
        """Test the error taxonomy."""
        assert issubclass(NoteValidationError, ValueError)
        assert issubclass(NoteNotFoundOrForbiddenError, LookupError)


class TestDeleteNote:
    """Test session-owned deletes."""

    def test_owner_can_delete(self, store):
        """Test the creating session may delete."""
        saved = store.create_note(make_note())
        assert store.delete_note(saved.id, 'alice')
        assert store.fetch_note_count() == 0

    def test_other_session_refused(self, store):
        """Test other sessions get the same error as a missing note."""
        saved = store.create_note(make_note())
        with pytest.raises(NoteNotFoundOrForbiddenError) as forbidden:
            store.delete_note(saved.id, 'bob')
        with pytest.raises(NoteNotFoundOrForbiddenError) as missing:
            store.delete_note('no-such-id', 'bob')
        assert str(forbidden.value).replace(saved.id, 'X') == str(missing.value).replace('no-such-id', 'X')
        assert store.fetch_note_count() == 1

    def test_anonymous_refused(self, store):
        """Test deletes without a session are refused."""
        saved = store.create_note(make_note(session_id=None))
        with pytest.raises(NoteNotFoundOrForbiddenError):
            store.delete_note(saved.id, None)


class TestUpdateNote:
    """Test note updates."""

    def test_update_fields(self, store):
        """Test pitch and duration changes."""
        saved = store.create_note(make_note())
        updated = store.update_note(saved.id, 'alice', pitch=Pitch.parse("B4"), duration=Duration.HALF)
        assert updated.pitch == Pitch.parse("B4")
        assert updated.duration is Duration.HALF
        assert updated.created_at == saved.created_at

    def test_non_owner_allowed_by_default(self, store, caplog):
        """Test any session may update unless ownership is required."""
        saved = store.create_note(make_note())
        with caplog.at_level(logging.WARNING):
            updated = store.update_note(saved.id, 'bob', beat=2)
        assert updated.beat == 2
        assert "does not own it" in caplog.text

    def test_owner_required(self):
        """Test ownership enforcement when enabled."""
        store = InMemoryNoteStore(update_requires_owner=True)
        saved = store.create_note(make_note())
        with pytest.raises(NoteNotFoundOrForbiddenError):
            store.update_note(saved.id, 'bob', beat=2)
        assert store.update_note(saved.id, 'alice', beat=2).beat == 2

    def test_unknown_field(self, store):
        """Test only editable fields can change."""
        saved = store.create_note(make_note())
        with pytest.raises(NoteValidationError, match="cannot be updated"):
            store.update_note(saved.id, 'alice', measure=3)

    def test_missing_note(self, store):
        """Test updating a missing note."""
        with pytest.raises(NoteNotFoundOrForbiddenError):
            store.update_note('nope', 'alice', beat=2)


class TestFetch:
    """Test reading from the store."""

    def test_fetch_score_ordered(self, store):
        """Test notes come back ordered by measure and beat."""
        store.create_note(make_note(measure=2, beat=1))
        store.create_note(make_note(measure=1, beat=3))
        store.create_note(make_note(measure=1, beat=1))
        data = store.fetch_score()
        assert [(n.measure, n.beat) for n in data.notes] == [(1, 1), (1, 3), (2, 1)]

    def test_fetch_returns_copies(self, store):
        """Test callers cannot mutate stored notes."""
        store.create_note(make_note())
        data = store.fetch_score()
        data.notes[0].beat = 4
        assert store.fetch_score().notes[0].beat == 1

    def test_fetch_since_is_strict(self, store):
        """Test only notes created after the timestamp are returned."""
        first = store.create_note(make_note(beat=1))
        second = store.create_note(make_note(beat=2))
        since = store.fetch_notes_since(first.created_at)
        assert [n.id for n in since] == [second.id]
        assert store.fetch_notes_since(second.created_at) == []

    def test_note_count_excludes_rests(self, store):
        """Test rests are not counted."""
        store.create_note(make_note(beat=1))
        store.create_note(make_note(beat=2, pitch=None, is_rest=True))
        assert store.fetch_note_count() == 1


class TestFromFile:
    """Test loading a store from disk."""

    def test_from_file(self, tmp_path):
        """Test loading a fetch_score payload."""
        payload = {
            'score': {'title': 'Canon', 'key_signature': 'G', 'total_measures': 4},
            'notes': [{'id': 'n1', 'instrument_id': 'cello', 'measure': 1, 'beat': 1,
                       'duration': 'whole', 'pitch': 'G2', 'session_id': 'x'}],
        }
        path = tmp_path / "score.json"
        path.write_text(json.dumps(payload))

        store = InMemoryNoteStore.from_file(path)
        data = store.fetch_score()
        assert data.score.title == 'Canon'
        assert data.notes[0].id == 'n1'
        assert data.notes[0].created_at is not None

    def test_missing_file(self, tmp_path):
        """Test missing files raise."""
        with pytest.raises(FileNotFoundError):
            InMemoryNoteStore.from_file(tmp_path / "missing.json")
