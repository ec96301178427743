"""Defines the exceptions raised by notekeeper.

Every exception derives from :class:`NoteError` and carries a one-line :attr:`NoteError.message`,
plus structured attributes describing what went wrong, so that callers can inspect failures without
matching on message text.
"""

from typing import Optional


class NoteError(Exception):
    """Base class for all errors raised by notekeeper."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class FilesystemError(NoteError):
    """Raised when reading or writing a file fails at the operating system level."""
    def __init__(self, path: str, cause: OSError):
        super().__init__(f'Filesystem error for {path}: {cause.strerror or cause}')
        self.path = path
        self.cause = cause


class SerializationError(NoteError):
    """Raised when a file's contents cannot be parsed into notes."""
    def __init__(self, path: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f'Cannot parse {path}: {reason}')
        self.path = path
        self.reason = reason
        self.cause = cause


class ValidationError(NoteError):
    """Raised when a value violates a constraint on a note field."""
    def __init__(self, field: str, reason: str):
        super().__init__(f'Invalid {field}: {reason}')
        self.field = field
        self.reason = reason


class NotFoundError(NoteError):
    """Raised when no note exists with the requested id."""
    def __init__(self, note_id: str):
        super().__init__(f'Note not found: {note_id}')
        self.note_id = note_id


class InvalidInputError(NoteError):
    """Raised when a command-line argument (or equivalent API parameter) is malformed."""
    def __init__(self, argument: str, value: str, reason: str):
        super().__init__(f'Invalid value for {argument} [{value}]: {reason}')
        self.argument = argument
        self.value = value
        self.reason = reason
