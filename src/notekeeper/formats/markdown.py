import re
from typing import List, Optional, Tuple

from mako.template import Template
import yaml

from notekeeper.errors import SerializationError, ValidationError
from notekeeper.formats.base import Exporter, Importer, format_timestamp, record_error
from notekeeper.models import Note

YAML_META_RE = re.compile(r'(?ms)(\A---\n(.*?)\n(---|\.\.\.)\s*\r?\n)?(.*)')
HEADING_RE = re.compile(r'^# (.+?)\s*$')
META_LINE_RE = re.compile(r'^\*(?:Tags: (?P<tags>.*?) \| )?Created: (?P<created>[^*]+)\*\s*$')
SEPARATOR = '---'

MARKDOWN_TEMPLATE = Template("""\
% for note in notes:
# ${note.title}

*${meta_line(note)}*

${note.content}

${separator}

% endfor
""")


def _meta_line(note: Note) -> str:
    created = f'Created: {format_timestamp(note.created_at)}'
    if note.tags:
        return f'Tags: {", ".join(note.tags)} | {created}'
    return created


def _extract_meta(doc: str, source: str) -> Tuple[dict, str]:
    meta = {}
    match = YAML_META_RE.match(doc)
    if match.groups()[1]:
        try:
            meta = yaml.safe_load(match.groups()[1])
        except yaml.YAMLError as e:
            raise SerializationError(source, 'invalid YAML metadata header', e) from e
        if not isinstance(meta, dict):
            raise SerializationError(source, 'YAML metadata header is not a mapping')
    body = match.groups()[3]
    return meta, body


def _split_tags(val: str) -> List[str]:
    return [t.strip() for t in val.split(',') if t.strip()]


def _section_starts(lines: List[str]) -> Tuple[List[int], bool]:
    """Returns the line indices at which notes begin, and whether they have metadata lines.

    When any heading is followed by a metadata line, only such headings start notes, so that content
    containing its own ``#`` headings survives a round trip.
    """
    with_meta = [i for i, line in enumerate(lines)
                 if HEADING_RE.match(line) and i + 2 < len(lines)
                 and not lines[i + 1].strip() and META_LINE_RE.match(lines[i + 2])]
    if with_meta:
        return with_meta, True
    return [i for i, line in enumerate(lines) if HEADING_RE.match(line)], False


def _trim_body(lines: List[str]) -> str:
    while lines and not lines[-1].strip():
        lines.pop()
    if lines and lines[-1].strip() == SEPARATOR:
        lines.pop()
    while lines and not lines[-1].strip():
        lines.pop()
    while lines and not lines[0].strip():
        lines.pop(0)
    return '\n'.join(lines)


class MarkdownExporter(Exporter):
    """Renders one section per note: the title as a heading, then a line with tags and creation time, then
    the content, followed by a ``---`` separator. For example:

    .. code-block:: markdown

       # Groceries

       *Tags: home, errand | Created: 2024-01-02 03:04:05 UTC*

       milk, eggs

       ---
    """
    def render(self, notes: List[Note]) -> str:
        return MARKDOWN_TEMPLATE.render(notes=notes, meta_line=_meta_line, separator=SEPARATOR)


class MarkdownImporter(Importer):
    """Parses the layout written by :class:`MarkdownExporter` back into notes.

    Two other layouts are accepted:

    * A document beginning with a YAML metadata header becomes a single note. The header must have a
      ``title``, and may list tags under ``tags`` or ``keywords``. The rest of the document is the content.
    * A document without metadata lines becomes one note per ``# heading``, with no tags.

    Here's an example of a document with a metadata header:

    .. code-block:: markdown

       ---
       title: My Boring Note
       keywords:
       - boring
       - unnecessary
       ...
       The three dots indicate the end of the metadata. Now we're in **Markdown**!
    """
    def parse(self, text: str, source: str) -> List[Note]:
        text = text.replace('\r\n', '\n')
        meta, body = _extract_meta(text, source)
        if meta:
            return [self._note_from_meta(meta, body, source)]

        lines = body.split('\n')
        starts, has_meta = _section_starts(lines)
        if not starts:
            if body.strip():
                raise SerializationError(source, 'no "# " headings found')
            return []

        notes = []
        for index, start in enumerate(starts):
            end = starts[index + 1] if index + 1 < len(starts) else len(lines)
            title = HEADING_RE.match(lines[start]).group(1)
            tags = []
            content_start = start + 1
            if has_meta:
                tags = _split_tags(META_LINE_RE.match(lines[start + 2]).group('tags') or '')
                content_start = start + 3
            try:
                notes.append(Note.create(title, _trim_body(lines[content_start:end]), tags))
            except ValidationError as e:
                raise record_error(e, index, source) from e
        return notes

    def _note_from_meta(self, meta: dict, body: str, source: str) -> Note:
        title: Optional[str] = meta.get('title')
        if title is None:
            raise SerializationError(source, 'YAML metadata header has no title')
        tags = meta.get('tags', meta.get('keywords', [])) or []
        if isinstance(tags, str):
            tags = _split_tags(tags)
        if not isinstance(tags, list):
            raise SerializationError(source, 'tags in YAML metadata header must be a list')
        try:
            return Note.create(str(title), body.strip('\n'), [str(t) for t in tags])
        except ValidationError as e:
            raise record_error(e, 0, source) from e
