from typing import List

from mako.template import Template

from notekeeper.formats.base import Exporter
from notekeeper.models import Note

SEPARATOR = '-' * 50

TEXT_TEMPLATE = Template("""\
% for note in notes:
${note.title}

${note.content}
${separator}
% endfor
""")


class TextExporter(Exporter):
    """Renders each note as its title, a blank line, its content, and a line of dashes."""
    def render(self, notes: List[Note]) -> str:
        return TEXT_TEMPLATE.render(notes=notes, separator=SEPARATOR)
