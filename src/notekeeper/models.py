"""Defines classes for representing notes, queries, commands, and command results.

The most important classes are :class:`Note` and the ``*Cmd`` classes, one per command-line verb.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
import os.path
from typing import Dict, Iterable, Iterator, List, Optional

import shortuuid

from notekeeper.errors import InvalidInputError, ValidationError

MAX_TITLE_LENGTH = 100
MAX_CONTENT_LENGTH = 10_000
MAX_TAG_LENGTH = 50


def validate_title(title: str) -> None:
    if not isinstance(title, str):
        raise ValidationError('title', 'must be a string')
    if not title.strip():
        raise ValidationError('title', 'must not be empty')
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError('title', f'must not exceed {MAX_TITLE_LENGTH} characters')
    if '\n' in title or '\r' in title:
        raise ValidationError('title', 'must be a single line')


def validate_content(content: str) -> None:
    if not isinstance(content, str):
        raise ValidationError('content', 'must be a string')
    if len(content) > MAX_CONTENT_LENGTH:
        raise ValidationError('content', f'must not exceed {MAX_CONTENT_LENGTH:,} characters')


def validate_tag(tag: str) -> None:
    if not isinstance(tag, str):
        raise ValidationError('tag', 'must be a string')
    if not tag.strip():
        raise ValidationError('tag', 'must not be empty')
    if len(tag) > MAX_TAG_LENGTH:
        raise ValidationError('tag', f'[{tag[:20]}...] must not exceed {MAX_TAG_LENGTH} characters')
    if any(c.isspace() for c in tag):
        raise ValidationError('tag', f'[{tag}] must not contain whitespace')


def validate_tags(tags: Iterable[str]) -> None:
    for tag in tags:
        validate_tag(tag)


def validate_metadata_key(key: str) -> None:
    if not isinstance(key, str) or not key.strip():
        raise ValidationError('metadata key', 'must not be empty')


def unique_tags(tags: Iterable[str]) -> List[str]:
    """Returns the tags in their original order with repeats removed."""
    return list(dict.fromkeys(tags))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(data: dict, key: str) -> datetime:
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f'{key} must be an ISO 8601 string')
    parsed = datetime.fromisoformat(value)
    if not parsed.tzinfo:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Note:
    """A single user-authored note.

    Create new notes with :meth:`create`; constructing an instance directly is meant for
    deserialization and validates every field, raising :exc:`notekeeper.errors.ValidationError`.

    The mutating methods each validate their input first, then stamp :attr:`updated_at` only when the
    value actually changes. Instances returned by a repo are detached copies; mutating them has no
    effect until they are saved again.
    """

    id: str
    """Generated at creation time and never reassigned."""

    title: str

    content: str = ''

    tags: List[str] = field(default_factory=list)
    """Unique, case-sensitive labels in the order they were added."""

    created_at: datetime = field(default_factory=_utcnow)

    updated_at: datetime = field(default_factory=_utcnow)
    """Never earlier than :attr:`created_at`; strictly increases with each real change."""

    is_archived: bool = False

    metadata: Dict[str, str] = field(default_factory=dict)
    """Open-ended key/value annotations."""

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise ValidationError('id', 'must be a non-empty string')
        validate_title(self.title)
        validate_content(self.content)
        validate_tags(self.tags)
        self.tags = unique_tags(self.tags)
        for key, value in self.metadata.items():
            validate_metadata_key(key)
            if not isinstance(value, str):
                raise ValidationError('metadata value', f'for [{key}] must be a string')
        if self.updated_at < self.created_at:
            raise ValidationError('updated_at', 'must not precede created_at')

    @classmethod
    def create(cls, title: str, content: str = '', tags: Iterable[str] = (), *,
               is_archived: bool = False, metadata: Optional[Dict[str, str]] = None) -> Note:
        """Returns a new note with a fresh id, and with created_at equal to updated_at."""
        now = _utcnow()
        return cls(id=shortuuid.uuid(), title=title, content=content, tags=list(tags),
                   created_at=now, updated_at=now, is_archived=is_archived, metadata=dict(metadata or {}))

    def _touch(self) -> None:
        now = _utcnow()
        if now <= self.updated_at:
            # clock hasn't moved on since the last change
            now = self.updated_at + timedelta(microseconds=1)
        self.updated_at = now

    def update_title(self, title: str) -> bool:
        validate_title(title)
        if title == self.title:
            return False
        self.title = title
        self._touch()
        return True

    def update_content(self, content: str) -> bool:
        validate_content(content)
        if content == self.content:
            return False
        self.content = content
        self._touch()
        return True

    def set_tags(self, tags: Iterable[str]) -> bool:
        """Replaces all tags. Repeated tags are collapsed."""
        tags = list(tags)
        validate_tags(tags)
        tags = unique_tags(tags)
        if tags == self.tags:
            return False
        self.tags = tags
        self._touch()
        return True

    def add_tag(self, tag: str) -> bool:
        """Appends the tag unless it is already present. Returns True if it was added."""
        validate_tag(tag)
        if tag in self.tags:
            return False
        self.tags.append(tag)
        self._touch()
        return True

    def remove_tag(self, tag: str) -> bool:
        """Removes the tag. Returns False, leaving the note untouched, if the tag was not present."""
        if tag not in self.tags:
            return False
        self.tags.remove(tag)
        self._touch()
        return True

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def archive(self) -> bool:
        if self.is_archived:
            return False
        self.is_archived = True
        self._touch()
        return True

    def unarchive(self) -> bool:
        if not self.is_archived:
            return False
        self.is_archived = False
        self._touch()
        return True

    def add_metadata(self, key: str, value: str) -> bool:
        validate_metadata_key(key)
        if not isinstance(value, str):
            raise ValidationError('metadata value', 'must be a string')
        if self.metadata.get(key) == value:
            return False
        self.metadata[key] = value
        self._touch()
        return True

    def remove_metadata(self, key: str) -> Optional[str]:
        """Removes the key and returns its value, or returns None if the key was not present."""
        if key not in self.metadata:
            return None
        value = self.metadata.pop(key)
        self._touch()
        return value

    def matches_search(self, query: str, in_content: bool = False) -> bool:
        """True if the query occurs, ignoring case, in the title, content, or any tag.

        If in_content is True, only the content is checked.
        """
        query = query.lower()
        if query in self.content.lower():
            return True
        if in_content:
            return False
        return query in self.title.lower() or any(query in tag.lower() for tag in self.tags)

    def word_count(self) -> int:
        return len(self.content.split())

    def character_count(self) -> int:
        return len(self.content)

    def preview(self, max_chars: int = 80) -> str:
        if len(self.content) <= max_chars:
            return self.content
        return self.content[:max_chars].rstrip() + '...'

    def as_json(self) -> dict:
        """Returns a dict representing the instance, suitable for serializing as json."""
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'tags': list(self.tags),
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
            'is_archived': self.is_archived,
            'metadata': dict(self.metadata),
        }

    @classmethod
    def from_json(cls, data: dict) -> Note:
        """Builds an instance from the output of :meth:`as_json`.

        Raises :exc:`ValueError` if the structure is wrong, or :exc:`notekeeper.errors.ValidationError`
        if a field violates its constraints.
        """
        if not isinstance(data, dict):
            raise ValueError('note record must be a JSON object')
        missing = [k for k in ('id', 'title', 'created_at', 'updated_at') if k not in data]
        if missing:
            raise ValueError(f'missing field(s): {", ".join(missing)}')
        tags = data.get('tags', [])
        if not isinstance(tags, list):
            raise ValueError('tags must be a list')
        metadata = data.get('metadata', {})
        if not (isinstance(metadata, dict) and all(isinstance(v, str) for v in metadata.values())):
            raise ValueError('metadata must be an object of strings')
        is_archived = data.get('is_archived', False)
        if not isinstance(is_archived, bool):
            raise ValueError('is_archived must be a boolean')
        return cls(id=data['id'],
                   title=data['title'],
                   content=data.get('content', ''),
                   tags=tags,
                   created_at=_parse_timestamp(data, 'created_at'),
                   updated_at=_parse_timestamp(data, 'updated_at'),
                   is_archived=is_archived,
                   metadata=dict(metadata))


@dataclass
class NoteQuery:
    """Represents criteria for filtering notes.

    If multiple criteria are specified, only notes that satisfy *all* of them match.
    """

    text: Optional[str] = None
    """If set, notes must match it via :meth:`Note.matches_search`."""

    in_content: bool = False
    """If True, :attr:`text` is only looked for in the content."""

    tag: Optional[str] = None
    """If set, notes must have exactly this tag."""

    def matches(self, note: Note) -> bool:
        if self.tag is not None and not note.has_tag(self.tag):
            return False
        if self.text is not None and not note.matches_search(self.text, self.in_content):
            return False
        return True

    def apply_filtering(self, notes: Iterable[Note]) -> Iterator[Note]:
        """Yields the notes from the given iterable which match, preserving their order."""
        return (note for note in notes if self.matches(note))


class ExportFormat(Enum):
    JSON = 'json'
    MARKDOWN = 'markdown'
    TEXT = 'txt'

    @classmethod
    def parse(cls, val: str) -> ExportFormat:
        """Accepts ``json``, ``markdown``/``md``, or ``txt``/``text``, ignoring case."""
        lower = val.lower()
        lower = {'md': 'markdown', 'text': 'txt'}.get(lower, lower)
        try:
            return cls(lower)
        except ValueError:
            raise InvalidInputError('--format', val, 'expected one of json, markdown, txt') from None


class ImportFormat(Enum):
    JSON = 'json'
    MARKDOWN = 'markdown'

    @classmethod
    def parse(cls, val: str) -> ImportFormat:
        """Accepts ``json`` or ``markdown``/``md``, ignoring case."""
        lower = val.lower()
        lower = {'md': 'markdown'}.get(lower, lower)
        try:
            return cls(lower)
        except ValueError:
            raise InvalidInputError('--format', val, 'expected one of json, markdown') from None

    @classmethod
    def for_path(cls, path: str) -> ImportFormat:
        """Guesses the format from the file extension."""
        suffix = os.path.splitext(path)[1].lower()
        if suffix == '.json':
            return cls.JSON
        if suffix in ('.md', '.markdown'):
            return cls.MARKDOWN
        raise InvalidInputError('file', path, 'cannot infer format from extension; pass --format')


@dataclass
class Cmd:
    """Base class for the commands the command-line interface can request."""


@dataclass
class CreateCmd(Cmd):
    title: str
    content: str = ''
    tags: List[str] = field(default_factory=list)


@dataclass
class ListCmd(Cmd):
    tag: Optional[str] = None
    limit: Optional[int] = None
    """Applied after tag filtering."""


@dataclass
class ShowCmd(Cmd):
    note_id: str


@dataclass
class EditCmd(Cmd):
    """Represents a request to change a note. Fields left as None are not changed."""

    note_id: str
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    """Replaces all the note's tags."""
    archived: Optional[bool] = None
    set_metadata: Dict[str, str] = field(default_factory=dict)
    del_metadata: List[str] = field(default_factory=list)


@dataclass
class DeleteCmd(Cmd):
    note_id: str
    force: bool = False
    """If True, the user should not be asked for confirmation."""


@dataclass
class SearchCmd(Cmd):
    query: str
    in_content: bool = False
    limit: Optional[int] = None


@dataclass
class TagCmd(Cmd):
    note_id: str
    tags: List[str]
    remove: bool = False


@dataclass
class TagCountsCmd(Cmd):
    pass


@dataclass
class ExportCmd(Cmd):
    format: ExportFormat = ExportFormat.JSON
    output: Optional[str] = None
    """Path to write to; if None, the caller is expected to display the exported text."""
    tag: Optional[str] = None


@dataclass
class ImportCmd(Cmd):
    path: str
    format: Optional[ImportFormat] = None
    """If None, guessed from the file extension."""


@dataclass
class UpdateResult:
    note: Note
    changed: bool


@dataclass
class TagResult:
    note: Note
    changed_tags: List[str]
    """The tags that were actually added (or removed, if :attr:`removed` is True)."""
    removed: bool = False


@dataclass
class ExportResult:
    notes: List[Note]
    text: str
    output: Optional[str] = None
