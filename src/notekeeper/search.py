"""Finds notes by case-insensitive substring match.

There is no index: each search reads every note via :meth:`notekeeper.repos.base.Repo.list` and filters
the result, so the cost grows linearly with the number and size of notes.
"""

from typing import List

from notekeeper.models import Note, NoteQuery
from notekeeper.repos.base import Repo


def search(repo: Repo, query: str, in_content: bool = False) -> List[Note]:
    """Returns the notes matching the query, in the same order as :meth:`Repo.list` (newest first).

    See :meth:`notekeeper.models.Note.matches_search` for what counts as a match.
    """
    return list(NoteQuery(text=query, in_content=in_content).apply_filtering(repo.list()))
