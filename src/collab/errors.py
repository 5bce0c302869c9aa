"""
Errors raised by note stores.
"""


class NoteValidationError(ValueError):
    """A note was refused by the store (e.g. measure out of range)."""


class NoteNotFoundOrForbiddenError(LookupError):
    """The note does not exist or is not owned by the requesting session."""

    def __init__(self, note_id: str):
        super().__init__(f"Note {note_id} not found or not owned by this session")
        self.note_id = note_id


class StoreUnavailableError(RuntimeError):
    """Transient failure talking to the store; nothing was applied."""
