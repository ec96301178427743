"""Converts notes to and from the files used by the ``export`` and ``import`` commands.

:mod:`notekeeper.formats.base` defines the :class:`Exporter` and :class:`Importer` APIs, and
:mod:`notekeeper.formats.delegating` picks the implementation for a given format.
"""
