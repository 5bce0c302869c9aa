"""
Collaboration module for the ensemble score engine.

The shared note store interface, an in-memory store, and the client
session that places notes and merges other contributors' notes.
"""

from .errors import NoteValidationError, NoteNotFoundOrForbiddenError, StoreUnavailableError
from .store import NoteStore, InMemoryNoteStore
from .session import ScoreSession, DEFAULT_POLL_INTERVAL

__all__ = [
    'NoteValidationError',
    'NoteNotFoundOrForbiddenError',
    'StoreUnavailableError',
    'NoteStore',
    'InMemoryNoteStore',
    'ScoreSession',
    'DEFAULT_POLL_INTERVAL',
]
