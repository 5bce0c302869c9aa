"""
Client session over a shared note store.

A ScoreSession is the application context of one contributor: it holds
the local copy of the score, places and removes notes through the store,
and merges notes added by other contributors by polling.
"""

import logging
import time
import uuid
from typing import Callable, List, Optional

from ..notation.key_signature import KeyMap
from ..notation.measure import fits_in_measure
from ..notation.note import Dynamic, EditAccidental, Note, ScoreData, utc_timestamp
from ..notation.pitch import Duration, Pitch, to_beats
from .errors import NoteNotFoundOrForbiddenError, NoteValidationError, StoreUnavailableError
from .store import NoteStore


DEFAULT_POLL_INTERVAL = 15.0


class ScoreSession:
    """
    One contributor's view of the shared score.

    Store failures never raise out of the session: they are logged and
    the local state is left as it was.
    """

    def __init__(
        self,
        store: NoteStore,
        session_id: Optional[str] = None,
        clock: Callable[[], str] = utc_timestamp
    ):
        """
        Initialize the session.

        Args:
            store: Shared note store
            session_id: Anonymous identity used for delete ownership (random if None)
            clock: Source of poll watermark timestamps
        """
        self.store = store
        self.session_id = session_id or str(uuid.uuid4())
        self.clock = clock
        self.data = ScoreData()
        self.placed: List[Note] = []
        self.last_fetch: Optional[str] = None
        self.logger = logging.getLogger(__name__)

        self.on_change: Optional[Callable[[], None]] = None
        self.on_rejected: Optional[Callable[[str], None]] = None

    @property
    def key_map(self) -> KeyMap:
        return self.data.score.key_map

    def load(self) -> bool:
        """Fetch the full score; returns False if the store is unreachable."""
        requested_at = self.clock()
        try:
            self.data = self.store.fetch_score()
        except StoreUnavailableError as e:
            self.logger.error(f"Could not load score: {e}")
            return False
        self.last_fetch = requested_at
        self.logger.info(
            f"Loaded '{self.data.score.title}': {len(self.data.instruments)} instruments, "
            f"{len(self.data.notes)} notes"
        )
        return True

    def notes_for(self, instrument_id: str, measure: int) -> List[Note]:
        return self.data.notes_for(instrument_id, measure)

    def find_note(self, note_id: str) -> Optional[Note]:
        for note in self.data.notes:
            if note.id == note_id:
                return note
        return None

    def can_place(
        self,
        instrument_id: str,
        measure: int,
        beat,
        duration: Duration,
        is_rest: bool = False
    ) -> bool:
        """Local capacity check for a new note, no store round-trip."""
        if not self.data.score.contains_measure(measure):
            return False
        return fits_in_measure(
            self.notes_for(instrument_id, measure),
            beat,
            duration,
            self.data.score.beats_per_measure,
            is_rest,
        )

    def _reject(self, reason: str) -> None:
        self.logger.info(f"Rejected: {reason}")
        if self.on_rejected:
            self.on_rejected(reason)

    def _changed(self) -> None:
        if self.on_change:
            self.on_change()

    def place_note(
        self,
        instrument_id: str,
        measure: int,
        beat,
        pitch: Optional[Pitch],
        duration: Duration = Duration.QUARTER,
        is_rest: bool = False,
        accidental: Optional[EditAccidental] = None,
        dynamic: Dynamic = Dynamic.MF
    ) -> Optional[Note]:
        """
        Place a note (or rest) in a measure.

        Args:
            instrument_id: Target instrument
            measure: Target measure
            beat: Beat position (1-indexed)
            pitch: Harmonized pitch under the pointer, required unless placing a rest
            duration: Selected note value
            is_rest: Place a rest instead of a note
            accidental: Toolbar accidental overriding the pitch's accidental
            dynamic: Dynamic marking

        Returns:
            The stored note, None if it was rejected or the store failed
        """
        beat = to_beats(beat)
        if not self.can_place(instrument_id, measure, beat, duration, is_rest):
            self._reject(f"{duration.label} at m{measure} beat {beat} does not fit in {instrument_id}")
            return None
        if not is_rest and pitch is None:
            self._reject(f"No pitch for note at m{measure} beat {beat} in {instrument_id}")
            return None

        if is_rest:
            pitch = None
        elif accidental is not None and pitch is not None:
            pitch = accidental.apply(pitch)

        note = Note(
            instrument_id=instrument_id,
            measure=measure,
            beat=beat,
            duration=duration,
            pitch=pitch,
            is_rest=is_rest,
            accidental=None if is_rest else accidental,
            dynamic=dynamic,
            session_id=self.session_id,
        )
        try:
            saved = self.store.create_note(note)
        except NoteValidationError as e:
            self._reject(str(e))
            return None
        except StoreUnavailableError as e:
            self.logger.error(f"Failed to place note: {e}")
            return None

        self.placed.append(saved)
        self.data.notes.append(saved)
        self._changed()
        return saved

    def update_note(self, note_id: str, **fields) -> Optional[Note]:
        """
        Change a note's pitch, beat, duration, accidental or dynamic.

        A changed span must still fit in the measure.
        """
        current = self.find_note(note_id)
        if current is None:
            self._reject(f"Note {note_id} is not in the local score")
            return None

        beat = to_beats(fields.get('beat', current.beat))
        duration = fields.get('duration', current.duration)
        if beat != current.beat or duration != current.duration:
            others = [n for n in self.notes_for(current.instrument_id, current.measure) if n.id != note_id]
            if not fits_in_measure(others, beat, duration, self.data.score.beats_per_measure, current.is_rest):
                self._reject(f"{duration.label} at beat {beat} does not fit in m{current.measure}")
                return None

        try:
            updated = self.store.update_note(note_id, self.session_id, **fields)
        except (NoteNotFoundOrForbiddenError, NoteValidationError) as e:
            self._reject(str(e))
            return None
        except StoreUnavailableError as e:
            self.logger.error(f"Failed to update note {note_id}: {e}")
            return None

        self.data.notes = [updated if n.id == note_id else n for n in self.data.notes]
        self._changed()
        return updated

    def delete_note(self, note_id: str) -> bool:
        """Delete a note this session created; other sessions' notes are refused."""
        try:
            self.store.delete_note(note_id, self.session_id)
        except NoteNotFoundOrForbiddenError as e:
            self._reject(str(e))
            return False
        except StoreUnavailableError as e:
            self.logger.error(f"Failed to delete note {note_id}: {e}")
            return False

        self.data.notes = [n for n in self.data.notes if n.id != note_id]
        self.placed = [n for n in self.placed if n.id != note_id]
        self._changed()
        return True

    def undo(self) -> Optional[Note]:
        """Remove the last note this session placed; it stays undoable if the delete fails."""
        if not self.placed:
            return None
        last = self.placed[-1]
        if self.delete_note(last.id):
            return last
        return None

    def toggle_at(
        self,
        instrument_id: str,
        measure: int,
        beat,
        pitch: Optional[Pitch],
        **placement
    ) -> Optional[Note]:
        """
        Click behaviour of the editor: an occupied beat deletes, a free one places.

        Returns:
            The deleted or placed note, None if nothing changed
        """
        beat = to_beats(beat)
        existing = next((n for n in self.notes_for(instrument_id, measure) if n.beat == beat), None)
        if existing is not None:
            return existing if self.delete_note(existing.id) else None
        return self.place_note(instrument_id, measure, beat, pitch, **placement)

    def poll(self) -> int:
        """
        Merge notes other contributors created since the last successful fetch.

        Notes already known by id are skipped, so repeated delivery is harmless.

        Returns:
            Number of notes added to the local score
        """
        if self.last_fetch is None:
            return 0
        requested_at = self.clock()
        try:
            new_notes = self.store.fetch_notes_since(self.last_fetch)
        except StoreUnavailableError as e:
            self.logger.error(f"Poll failed: {e}")
            return 0

        known = {n.id for n in self.data.notes}
        added = 0
        for note in new_notes:
            if note.id not in known:
                self.data.notes.append(note)
                known.add(note.id)
                added += 1
        self.last_fetch = requested_at

        if added:
            self.logger.info(f"Merged {added} new notes")
            self._changed()
        return added

    def run_polling(
        self,
        interval: float = DEFAULT_POLL_INTERVAL,
        max_polls: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> int:
        """
        Poll the store every `interval` seconds.

        Returns:
            Total number of notes merged
        """
        total = 0
        polls = 0
        while max_polls is None or polls < max_polls:
            sleep(interval)
            total += self.poll()
            polls += 1
        return total

    def note_count(self) -> Optional[int]:
        try:
            return self.store.fetch_note_count()
        except StoreUnavailableError as e:
            self.logger.error(f"Could not fetch note count: {e}")
            return None
