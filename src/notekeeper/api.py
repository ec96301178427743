"""Provides the main entry point for using the library, :class:`Notekeeper`"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional

from notekeeper.conf import NotekeeperConf
from notekeeper.errors import FilesystemError, InvalidInputError, NotFoundError
from notekeeper.formats.delegating import exporter_for, importer_for
from notekeeper.models import Cmd, CreateCmd, DeleteCmd, EditCmd, ExportCmd, ExportFormat, ExportResult,\
    ImportCmd, ImportFormat, ListCmd, Note, NoteQuery, SearchCmd, ShowCmd, TagCmd, TagCountsCmd, TagResult,\
    UpdateResult, unique_tags, validate_content, validate_metadata_key, validate_tags, validate_title
from notekeeper.repos.direct import DirectRepo
from notekeeper.search import search as search_notes

logger = logging.getLogger(__name__)


def _check_limit(limit: Optional[int]) -> None:
    if limit is not None and limit < 0:
        raise InvalidInputError('--limit', str(limit), 'must not be negative')


class Notekeeper:
    """Main entry point for working programmatically with your collection of notes.

    Generally, you should get an instance using the :meth:`Notekeeper.for_user` method. Call :meth:`close` when
    you're done with it, or else use it as a context manager.

    Each method performs one command and returns its result; nothing is printed. Wherever a method takes a
    note id, any prefix of the id that matches exactly one note is also accepted.

    .. attribute:: conf
       :type: notekeeper.conf.NotekeeperConf

    .. attribute:: repo
       :type: notekeeper.repos.base.Repo

    Here's an example of how to use this class. This would archive every note tagged with "done".

    .. code-block:: python

       from notekeeper.api import Notekeeper
       with Notekeeper.for_user() as nk:
           for note in nk.list_notes(tag='done'):
               nk.update(note.id, archived=True)
    """

    @staticmethod
    def for_user() -> Notekeeper:
        """Creates an instance using the user's ``~/.notekeeper.conf.py`` file, or defaults if there is none."""
        return NotekeeperConf.for_user().instantiate()

    def __init__(self, conf: NotekeeperConf):
        self.conf = conf
        self.repo = DirectRepo(conf)

    def execute(self, cmd: Cmd):
        """Performs the given command and returns the result of the corresponding method.

        A :class:`notekeeper.models.DeleteCmd` deletes without asking; confirmation is up to the caller.
        """
        if isinstance(cmd, CreateCmd):
            return self.create(cmd.title, cmd.content, cmd.tags)
        elif isinstance(cmd, ListCmd):
            return self.list_notes(cmd.tag, cmd.limit)
        elif isinstance(cmd, ShowCmd):
            return self.show(cmd.note_id)
        elif isinstance(cmd, EditCmd):
            return self.update(cmd.note_id, title=cmd.title, content=cmd.content, tags=cmd.tags,
                               archived=cmd.archived, set_metadata=cmd.set_metadata,
                               del_metadata=cmd.del_metadata)
        elif isinstance(cmd, DeleteCmd):
            return self.delete(cmd.note_id)
        elif isinstance(cmd, SearchCmd):
            return self.search(cmd.query, cmd.in_content, cmd.limit)
        elif isinstance(cmd, TagCmd):
            return self.tag(cmd.note_id, cmd.tags, cmd.remove)
        elif isinstance(cmd, TagCountsCmd):
            return self.tag_counts()
        elif isinstance(cmd, ExportCmd):
            return self.export(cmd.format, cmd.tag, cmd.output)
        elif isinstance(cmd, ImportCmd):
            return self.import_notes(cmd.path, cmd.format)
        raise ValueError(f'Unsupported command: {cmd}')

    def resolve_id(self, note_id: str) -> str:
        """Returns the full id of the note whose id is, or begins with, the given string.

        Raises :exc:`NotFoundError` if there is no such note, or :exc:`InvalidInputError` if more than one
        note matches.
        """
        if self.repo.exists(note_id):
            return note_id
        matches = [note.id for note in self.repo.list() if note_id and note.id.startswith(note_id)]
        if len(matches) > 1:
            raise InvalidInputError('id', note_id, f'matches {len(matches)} notes')
        if not matches:
            raise NotFoundError(note_id)
        return matches[0]

    def create(self, title: str, content: str = '', tags: Iterable[str] = ()) -> Note:
        """Validates and saves a new note. Nothing is written if validation fails."""
        note = Note.create(title, content, tags)
        self.repo.save(note)
        logger.info('Created note %s', note.id)
        return note

    def list_notes(self, tag: Optional[str] = None, limit: Optional[int] = None) -> List[Note]:
        """Returns notes newest-created first, keeping only those with the tag (if given), then truncating."""
        _check_limit(limit)
        notes = list(NoteQuery(tag=tag).apply_filtering(self.repo.list()))
        return notes if limit is None else notes[:limit]

    def show(self, note_id: str) -> Note:
        return self.repo.load(self.resolve_id(note_id))

    def update(self, note_id: str, title: Optional[str] = None, content: Optional[str] = None,
               tags: Optional[List[str]] = None, archived: Optional[bool] = None,
               set_metadata: Optional[Dict[str, str]] = None,
               del_metadata: Optional[List[str]] = None) -> UpdateResult:
        """Applies every supplied change, or none of them if any value is invalid.

        Arguments left as None are not changed; ``tags`` replaces the note's tags entirely. The note is
        only saved, and its updated_at only advances, if something actually differs.
        """
        set_metadata = set_metadata or {}
        del_metadata = del_metadata or []
        note = self.show(note_id)
        if title is not None:
            validate_title(title)
        if content is not None:
            validate_content(content)
        if tags is not None:
            validate_tags(tags)
        for key in set_metadata:
            validate_metadata_key(key)

        changed = False
        if title is not None:
            changed |= note.update_title(title)
        if content is not None:
            changed |= note.update_content(content)
        if tags is not None:
            changed |= note.set_tags(tags)
        if archived is True:
            changed |= note.archive()
        elif archived is False:
            changed |= note.unarchive()
        for key, value in set_metadata.items():
            changed |= note.add_metadata(key, value)
        for key in del_metadata:
            changed |= note.remove_metadata(key) is not None

        if changed:
            self.repo.save(note)
            logger.info('Updated note %s', note.id)
        return UpdateResult(note, changed)

    def delete(self, note_id: str) -> Note:
        """Deletes the note and returns it as it was just before deletion."""
        note = self.show(note_id)
        self.repo.delete(note.id)
        logger.info('Deleted note %s', note.id)
        return note

    def tag(self, note_id: str, tags: List[str], remove: bool = False) -> TagResult:
        """Adds (or removes) the given tags, saving the note if any were actually added (or removed)."""
        if not tags:
            raise InvalidInputError('tags', '', 'at least one tag is required')
        note = self.show(note_id)
        if remove:
            changed = [t for t in unique_tags(tags) if note.remove_tag(t)]
        else:
            validate_tags(tags)
            changed = [t for t in unique_tags(tags) if note.add_tag(t)]
        if changed:
            self.repo.save(note)
        return TagResult(note, changed, removed=remove)

    def search(self, query: str, in_content: bool = False, limit: Optional[int] = None) -> List[Note]:
        """See :func:`notekeeper.search.search`."""
        _check_limit(limit)
        notes = search_notes(self.repo, query, in_content)
        return notes if limit is None else notes[:limit]

    def tag_counts(self) -> Dict[str, int]:
        return self.repo.tag_counts()

    def export(self, fmt: ExportFormat, tag: Optional[str] = None, output: Optional[str] = None) -> ExportResult:
        """Renders the notes (only those with the tag, if given) newest first.

        If output is given, the rendered text is also written to that path.
        """
        notes = list(NoteQuery(tag=tag).apply_filtering(self.repo.list()))
        text = exporter_for(fmt).render(notes)
        if output:
            try:
                with open(output, 'w', encoding='utf-8') as file:
                    file.write(text)
            except OSError as e:
                raise FilesystemError(output, e) from e
            logger.info('Exported %d note(s) to %s', len(notes), output)
        return ExportResult(notes, text, output)

    def import_notes(self, path: str, fmt: Optional[ImportFormat] = None) -> List[Note]:
        """Creates a note for every record in the file.

        Every record is parsed and validated before any note is saved. If fmt is None, it is guessed from
        the file extension.
        """
        fmt = fmt or ImportFormat.for_path(path)
        notes = importer_for(fmt).load(path)
        for note in notes:
            self.repo.save(note)
        logger.info('Imported %d note(s) from %s', len(notes), path)
        return notes

    def close(self):
        """Closes the associated repo and releases any other resources."""
        self.repo.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.repo.close()
