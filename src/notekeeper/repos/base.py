"""Defines the API for storing a user's collection of notes.

The most important class is :class:`Repo`.
"""

from collections import defaultdict
from typing import Dict, List

from notekeeper.models import Note


class Repo:
    """Base class for repos, which are responsible for reading, writing, and enumerating notes.

    Notes returned by a repo are detached copies: changing them does nothing until they are passed to
    :meth:`save`.
    """
    def save(self, note: Note) -> None:
        """Writes the full note, replacing any previously saved version with the same id.

        May raise :exc:`notekeeper.errors.FilesystemError`.
        """
        raise NotImplementedError()

    def load(self, note_id: str) -> Note:
        """Reads the note with the given id.

        Raises :exc:`notekeeper.errors.NotFoundError` if there is none, or
        :exc:`notekeeper.errors.SerializationError` if the stored record cannot be parsed.
        """
        raise NotImplementedError()

    def delete(self, note_id: str) -> None:
        """Removes the note with the given id.

        Raises :exc:`notekeeper.errors.NotFoundError` if there is none.
        """
        raise NotImplementedError()

    def exists(self, note_id: str) -> bool:
        raise NotImplementedError()

    def list(self) -> List[Note]:
        """Returns every readable note, newest-created first.

        Records that cannot be parsed are skipped (and logged) rather than failing the whole listing.
        """
        raise NotImplementedError()

    def tag_counts(self) -> Dict[str, int]:
        """Returns a map of tag names to the number of notes which possess that tag."""
        result = defaultdict(int)
        for note in self.list():
            for tag in note.tags:
                result[tag] += 1
        return dict(result)

    def close(self) -> None:
        """Release any resources associated with the repo. Should be called when you're done with an instance."""
        pass
