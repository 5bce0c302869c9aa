"""
Authoritative note storage.

NoteStore is the interface a client session talks to; InMemoryNoteStore
implements the shared store's rules (measure range validation,
session-owned deletes, creation timestamps) without any transport.
"""

import copy
import json
import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..notation.note import ScoreData, Note, utc_timestamp
from .errors import NoteNotFoundOrForbiddenError, NoteValidationError


UPDATABLE_FIELDS = ('pitch', 'beat', 'duration', 'accidental', 'dynamic')


class NoteStore(ABC):
    """Abstract shared store of score metadata and contributed notes."""

    @abstractmethod
    def fetch_score(self) -> ScoreData:
        """Score metadata, instruments and every note ordered by (measure, beat)."""
        pass

    @abstractmethod
    def create_note(self, note: Note) -> Note:
        """
        Store a new note.

        Returns:
            The stored note with its id and creation timestamp

        Raises:
            NoteValidationError: If the note's measure or instrument is invalid
        """
        pass

    @abstractmethod
    def update_note(self, note_id: str, session_id: Optional[str] = None, **fields) -> Note:
        """
        Change pitch, beat, duration, accidental or dynamic of a note.

        Raises:
            NoteNotFoundOrForbiddenError: If the note cannot be updated
        """
        pass

    @abstractmethod
    def delete_note(self, note_id: str, session_id: Optional[str]) -> bool:
        """
        Delete a note owned by session_id.

        Raises:
            NoteNotFoundOrForbiddenError: If the note is missing or owned by another session
        """
        pass

    @abstractmethod
    def fetch_notes_since(self, timestamp: str) -> List[Note]:
        """Notes created strictly after timestamp, ordered by (measure, beat)."""
        pass

    @abstractmethod
    def fetch_note_count(self) -> int:
        """Number of non-rest notes."""
        pass


def _ordered(notes: List[Note]) -> List[Note]:
    return sorted(notes, key=lambda n: (n.measure, n.beat))


class InMemoryNoteStore(NoteStore):
    """
    Note store held in memory.

    Update ownership is configurable: by default any session may update
    any note, only deletes are restricted to the creating session.
    """

    def __init__(
        self,
        data: Optional[ScoreData] = None,
        update_requires_owner: bool = False,
        clock: Callable[[], str] = utc_timestamp
    ):
        """
        Initialize the store.

        Args:
            data: Initial score, instruments and notes
            update_requires_owner: Restrict updates to the creating session
            clock: Source of creation timestamps
        """
        data = data or ScoreData()
        self.score = data.score
        self.instruments = list(data.instruments)
        self.notes: Dict[str, Note] = {}
        self.update_requires_owner = update_requires_owner
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        for note in data.notes:
            stored = copy.copy(note)
            stored.id = stored.id or str(uuid.uuid4())
            stored.created_at = stored.created_at or self.clock()
            self.notes[stored.id] = stored

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], **kwargs) -> 'InMemoryNoteStore':
        return cls(ScoreData.from_dict(payload), **kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> 'InMemoryNoteStore':
        """Load a store from a JSON file holding a fetch_score() payload."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Score file not found: {path}")
        with open(path, 'r', encoding='utf-8') as f:
            return cls.from_dict(json.load(f), **kwargs)

    def fetch_score(self) -> ScoreData:
        return ScoreData(
            score=copy.copy(self.score),
            instruments=list(self.instruments),
            notes=[copy.copy(n) for n in _ordered(list(self.notes.values()))],
        )

    def create_note(self, note: Note) -> Note:
        if not self.score.contains_measure(note.measure):
            raise NoteValidationError(
                f"Measure out of range: {note.measure} (score has {self.score.total_measures})"
            )
        if not any(i.id == note.instrument_id for i in self.instruments):
            raise NoteValidationError(f"Unknown instrument: {note.instrument_id}")

        stored = copy.copy(note)
        stored.id = str(uuid.uuid4())
        stored.created_at = self.clock()
        self.notes[stored.id] = stored
        self.logger.debug(f"Created note {stored.id} in {stored.instrument_id} m{stored.measure}")
        return copy.copy(stored)

    def update_note(self, note_id: str, session_id: Optional[str] = None, **fields) -> Note:
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise NoteValidationError(f"Fields cannot be updated: {sorted(unknown)}")

        note = self.notes.get(note_id)
        if note is None:
            raise NoteNotFoundOrForbiddenError(note_id)
        if note.session_id != session_id:
            if self.update_requires_owner:
                raise NoteNotFoundOrForbiddenError(note_id)
            self.logger.warning(f"Note {note_id} updated by a session that does not own it")

        updated = note.with_updates(**fields)
        self.notes[note_id] = updated
        return copy.copy(updated)

    def delete_note(self, note_id: str, session_id: Optional[str]) -> bool:
        note = self.notes.get(note_id)
        if note is None or session_id is None or note.session_id != session_id:
            raise NoteNotFoundOrForbiddenError(note_id)
        del self.notes[note_id]
        self.logger.debug(f"Deleted note {note_id}")
        return True

    def fetch_notes_since(self, timestamp: str) -> List[Note]:
        return [copy.copy(n) for n in _ordered(
            [n for n in self.notes.values() if n.created_at > timestamp]
        )]

    def fetch_note_count(self) -> int:
        return sum(1 for n in self.notes.values() if not n.is_rest)
