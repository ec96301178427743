"""Defines the API for exporting and importing notes.

The most important classes are :class:`Exporter` and :class:`Importer`.
"""

from datetime import datetime, timezone
from typing import List

from notekeeper.errors import FilesystemError, SerializationError, ValidationError
from notekeeper.models import Note

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S UTC'


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


class Exporter:
    """Base class for exporters, which render a list of notes as a single document."""
    def render(self, notes: List[Note]) -> str:
        raise NotImplementedError()


class Importer:
    """Base class for importers, which build new notes from a document.

    Imported notes always get fresh ids and timestamps; they are not saved by the importer.
    """
    def load(self, path: str) -> List[Note]:
        """Reads the file and parses it with :meth:`parse`.

        Raises :exc:`notekeeper.errors.FilesystemError` if the file cannot be read, or
        :exc:`notekeeper.errors.SerializationError` if it is not valid UTF-8.
        """
        try:
            with open(path, 'r', encoding='utf-8') as file:
                text = file.read()
        except OSError as e:
            raise FilesystemError(path, e) from e
        except UnicodeDecodeError as e:
            raise SerializationError(path, str(e), e) from e
        return self.parse(text, path)

    def parse(self, text: str, source: str) -> List[Note]:
        """Builds a note for every record in the text.

        Raises :exc:`notekeeper.errors.SerializationError` if the text is malformed, or
        :exc:`notekeeper.errors.ValidationError` if any record violates a note constraint.
        The source is only used in error messages.
        """
        raise NotImplementedError()


def record_error(error: ValidationError, index: int, source: str) -> ValidationError:
    """Returns a copy of the error that also says which record it came from."""
    return ValidationError(error.field, f'{error.reason} (record {index + 1} in {source})')
