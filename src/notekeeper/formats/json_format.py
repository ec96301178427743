import json
from typing import List

from notekeeper.errors import SerializationError, ValidationError
from notekeeper.formats.base import Exporter, Importer, record_error
from notekeeper.models import Note


class JSONExporter(Exporter):
    """Renders an array of full note records, in the same shape as the stored files."""
    def render(self, notes: List[Note]) -> str:
        return json.dumps([note.as_json() for note in notes], indent=2, ensure_ascii=False) + '\n'


class JSONImporter(Importer):
    """Parses an array of note-like objects, or a single object.

    Each object needs a ``title`` and may have ``content``, ``tags``, ``metadata``, and ``is_archived``.
    Any other keys, including ``id`` and timestamps, are ignored.
    """
    def parse(self, text: str, source: str) -> List[Note]:
        try:
            data = json.loads(text)
        except ValueError as e:
            raise SerializationError(source, str(e), e) from e
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise SerializationError(source, 'expected a JSON array of notes')
        notes = []
        for index, record in enumerate(data):
            if not isinstance(record, dict):
                raise SerializationError(source, f'record {index + 1} is not an object')
            tags = record.get('tags', [])
            metadata = record.get('metadata', {})
            if not isinstance(tags, list):
                raise SerializationError(source, f'record {index + 1} has tags that are not a list')
            if not isinstance(metadata, dict):
                raise SerializationError(source, f'record {index + 1} has metadata that is not an object')
            is_archived = record.get('is_archived', False)
            if not isinstance(is_archived, bool):
                raise SerializationError(source, f'record {index + 1} has is_archived that is not a boolean')
            try:
                notes.append(Note.create(record.get('title', ''), record.get('content', ''), tags,
                                         is_archived=is_archived,
                                         metadata=metadata))
            except ValidationError as e:
                raise record_error(e, index, source) from e
        return notes
