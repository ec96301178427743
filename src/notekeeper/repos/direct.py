"""Provides the :class:`DirectRepo` class."""

import json
import logging
import os
import os.path
from operator import attrgetter
from tempfile import mkstemp
from typing import Iterator, List, Optional

from notekeeper.conf import NotekeeperConf
from notekeeper.errors import FilesystemError, NotFoundError, SerializationError, ValidationError
from notekeeper.models import Note
from notekeeper.repos.base import Repo

logger = logging.getLogger(__name__)

SUFFIX = '.json'


def parse_note_file(path: str, note_id: Optional[str] = None) -> Note:
    """Reads and parses a single note file.

    Raises :exc:`SerializationError` if the contents are not a valid note record (or, when note_id is given,
    are a record for some other note), or :exc:`FilesystemError` if the file cannot be read.
    """
    try:
        with open(path, 'r', encoding='utf-8') as file:
            text = file.read()
    except OSError as e:
        raise FilesystemError(path, e) from e
    except UnicodeDecodeError as e:
        raise SerializationError(path, str(e), e) from e
    try:
        note = Note.from_json(json.loads(text))
    except ValidationError as e:
        raise SerializationError(path, e.message, e) from e
    except (ValueError, TypeError) as e:
        raise SerializationError(path, str(e), e) from e
    if note_id is not None and note.id != note_id:
        raise SerializationError(path, f'file contains note {note.id}')
    return note


class DirectRepo(Repo):
    """Stores each note as ``<id>.json`` in :attr:`NotekeeperConf.storage_dir`, without any caching.

    Every read goes to the filesystem, so each call to :meth:`list` re-reads the whole folder. That is fine
    for a personal collection of notes, but there is no index to make it faster for large ones.

    There is no locking: if two processes write the same note at once, the last write wins.

    .. attribute:: conf
       :type: NotekeeperConf
    """
    def __init__(self, conf: NotekeeperConf):
        self.conf = conf
        if not conf.storage_dir:
            raise ValueError('`storage_dir` must be non-empty in NotekeeperConf.')

    def _path(self, note_id: str) -> str:
        if not note_id or os.path.basename(note_id) != note_id or self.conf.ignore(self.conf.storage_dir, note_id):
            raise NotFoundError(note_id)
        return os.path.join(self.conf.storage_dir, note_id + SUFFIX)

    def save(self, note: Note) -> None:
        path = self._path(note.id)
        text = json.dumps(note.as_json(), indent=2, ensure_ascii=False)
        tmp = None
        try:
            os.makedirs(self.conf.storage_dir, exist_ok=True)
            fd, tmp = mkstemp(prefix=f'.{note.id}', suffix='.tmp', dir=self.conf.storage_dir)
            with os.fdopen(fd, 'w', encoding='utf-8') as file:
                file.write(text)
            os.replace(tmp, path)
        except OSError as e:
            if tmp and os.path.exists(tmp):
                os.remove(tmp)
            raise FilesystemError(path, e) from e
        logger.debug('Saved note %s to %s', note.id, path)

    def load(self, note_id: str) -> Note:
        path = self._path(note_id)
        if not os.path.isfile(path):
            raise NotFoundError(note_id)
        return parse_note_file(path, note_id)

    def exists(self, note_id: str) -> bool:
        try:
            return os.path.isfile(self._path(note_id))
        except NotFoundError:
            return False

    def delete(self, note_id: str) -> None:
        path = self._path(note_id)
        if not os.path.isfile(path):
            raise NotFoundError(note_id)
        try:
            os.remove(path)
        except OSError as e:
            raise FilesystemError(path, e) from e
        logger.debug('Deleted note %s', note_id)

    def _paths(self) -> Iterator[str]:
        storage_dir = self.conf.storage_dir
        if not os.path.isdir(storage_dir):
            return
        try:
            entries = sorted(os.scandir(storage_dir), key=attrgetter('name'))
        except OSError as e:
            raise FilesystemError(storage_dir, e) from e
        for entry in entries:
            if not entry.name.endswith(SUFFIX) or self.conf.ignore(storage_dir, entry.name):
                continue
            if entry.is_file():
                yield entry.path

    def list(self) -> List[Note]:
        notes = []
        for path in self._paths():
            try:
                notes.append(parse_note_file(path, os.path.basename(path)[:-len(SUFFIX)]))
            except (SerializationError, FilesystemError) as e:
                logger.warning('Skipping unreadable note file: %s', e.message)
        notes.sort(key=attrgetter('created_at', 'id'), reverse=True)
        return notes
