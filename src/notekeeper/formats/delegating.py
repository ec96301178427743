"""Chooses the :class:`notekeeper.formats.base.Exporter` or :class:`notekeeper.formats.base.Importer` for a format.

Currently, the mapping is hardcoded:

* ``json`` -> :class:`JSONExporter` / :class:`JSONImporter`
* ``markdown`` -> :class:`MarkdownExporter` / :class:`MarkdownImporter`
* ``txt`` -> :class:`TextExporter` (export only)
"""

from notekeeper.formats.base import Exporter, Importer
from notekeeper.formats.json_format import JSONExporter, JSONImporter
from notekeeper.formats.markdown import MarkdownExporter, MarkdownImporter
from notekeeper.formats.text import TextExporter
from notekeeper.models import ExportFormat, ImportFormat


def exporter_for(fmt: ExportFormat) -> Exporter:
    if fmt == ExportFormat.JSON:
        return JSONExporter()
    elif fmt == ExportFormat.MARKDOWN:
        return MarkdownExporter()
    elif fmt == ExportFormat.TEXT:
        return TextExporter()
    raise ValueError(f'Unsupported export format: {fmt}')


def importer_for(fmt: ImportFormat) -> Importer:
    if fmt == ImportFormat.JSON:
        return JSONImporter()
    elif fmt == ImportFormat.MARKDOWN:
        return MarkdownImporter()
    raise ValueError(f'Unsupported import format: {fmt}')
