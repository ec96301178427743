"""Handles persistence of a collection of notes.

:class:`notekeeper.repos.base.Repo` defines an API.
:class:`notekeeper.repos.direct.DirectRepo` stores each note as a JSON file in a single folder.
"""
