"""Command-line interface for notekeeper."""


import argparse
from dataclasses import replace
import json
import logging
import sys
from typing import Dict, List, Optional

from terminaltables import AsciiTable

from notekeeper.conf import NotekeeperConf
from notekeeper.errors import InvalidInputError, NoteError
from notekeeper.formats.base import format_timestamp
from notekeeper.models import Cmd, CreateCmd, DeleteCmd, EditCmd, ExportCmd, ExportFormat, ExportResult,\
    ImportCmd, ImportFormat, ListCmd, Note, SearchCmd, ShowCmd, TagCmd, TagCountsCmd, TagResult, UpdateResult

SHORT_ID_LENGTH = 8


def _split_tags(values: Optional[List[str]]) -> List[str]:
    return [t.strip() for v in (values or []) for t in v.split(',') if t.strip()]


def _parse_limit(values: Optional[List[str]]) -> Optional[int]:
    if not values:
        return None
    try:
        limit = int(values[0])
    except ValueError:
        raise InvalidInputError('--limit', values[0], 'must be a non-negative integer') from None
    if limit < 0:
        raise InvalidInputError('--limit', values[0], 'must be a non-negative integer')
    return limit


def _parse_metadata(values: Optional[List[str]]) -> Dict[str, str]:
    result = {}
    for val in values or []:
        key, sep, value = val.partition('=')
        if not sep or not key.strip():
            raise InvalidInputError('--meta', val, 'expected KEY=VALUE')
        result[key.strip()] = value
    return result


def _build_create(args) -> CreateCmd:
    return CreateCmd(title=args.title[0],
                     content=args.content[0] if args.content else '',
                     tags=_split_tags(args.tags))


def _build_list(args) -> ListCmd:
    return ListCmd(tag=args.tag[0] if args.tag else None, limit=_parse_limit(args.limit))


def _build_show(args) -> ShowCmd:
    return ShowCmd(args.id[0])


def _build_edit(args) -> EditCmd:
    archived = None
    if args.archive:
        archived = True
    elif args.unarchive:
        archived = False
    return EditCmd(args.id[0],
                   title=args.title[0] if args.title else None,
                   content=args.content[0] if args.content else None,
                   tags=_split_tags(args.tags) if args.tags else None,
                   archived=archived,
                   set_metadata=_parse_metadata(args.meta),
                   del_metadata=list(args.del_meta or []))


def _build_delete(args) -> DeleteCmd:
    return DeleteCmd(args.id[0], force=args.force)


def _build_search(args) -> SearchCmd:
    return SearchCmd(args.query[0], in_content=args.in_content, limit=_parse_limit(args.limit))


def _build_tag(args) -> TagCmd:
    return TagCmd(args.id[0], _split_tags(args.tags), remove=args.remove)


def _build_tags(args) -> TagCountsCmd:
    return TagCountsCmd()


def _build_export(args) -> ExportCmd:
    return ExportCmd(format=ExportFormat.parse(args.format[0]) if args.format else ExportFormat.JSON,
                     output=args.output[0] if args.output else None,
                     tag=args.tag[0] if args.tag else None)


def _build_import(args) -> ImportCmd:
    return ImportCmd(args.file[0], format=ImportFormat.parse(args.format[0]) if args.format else None)


def _short_id(note: Note) -> str:
    return note.id[:SHORT_ID_LENGTH]


def _print_note_list(notes: List[Note], args) -> None:
    if args.json:
        print(json.dumps([n.as_json() for n in notes], indent=2, ensure_ascii=False))
        return
    if getattr(args, 'table', False):
        data = [('ID', 'Title', 'Created', 'Tags')]
        data += [(_short_id(n), n.title, n.created_at.strftime('%Y-%m-%d %H:%M'), '\n'.join(n.tags))
                 for n in notes]
        print(AsciiTable(data).table)
        return
    print(f'Found {len(notes)} note(s):')
    for index, note in enumerate(notes, 1):
        archived = ' [archived]' if note.is_archived else ''
        print(f'{index}. [{_short_id(note)}] {note.title} ({note.created_at.strftime("%Y-%m-%d %H:%M")}){archived}')
        if note.tags:
            print(f'   Tags: {", ".join(note.tags)}')


def _present_create(note: Note, args) -> None:
    print(f'Created note {note.id}')


def _present_list(notes: List[Note], args) -> None:
    if not notes and not args.json:
        print('No notes found.')
        return
    _print_note_list(notes, args)


def _present_show(note: Note, args) -> None:
    if args.json:
        print(json.dumps(note.as_json(), indent=2, ensure_ascii=False))
        return
    print(f'Title: {note.title}')
    print(f'ID: {note.id}')
    print(f'Created: {format_timestamp(note.created_at)}')
    print(f'Updated: {format_timestamp(note.updated_at)}')
    if note.tags:
        print(f'Tags: {", ".join(note.tags)}')
    if note.is_archived:
        print('Archived: yes')
    for key in sorted(note.metadata):
        print(f'{key}: {note.metadata[key]}')
    print('\nContent:')
    print('-' * 50)
    print(note.content)
    print('-' * 50)


def _present_edit(result: UpdateResult, args) -> None:
    if result.changed:
        print(f'Updated note {_short_id(result.note)}')
    else:
        print('No changes detected.')


def _present_delete(note: Note, args) -> None:
    print(f'Deleted note {_short_id(note)} "{note.title}"')


def _present_search(notes: List[Note], args) -> None:
    if not notes and not args.json:
        print(f'No notes match "{args.query[0]}".')
        return
    _print_note_list(notes, args)


def _present_tag(result: TagResult, args) -> None:
    if not result.changed_tags:
        print('No tags changed.')
        return
    verb = 'Removed' if result.removed else 'Added'
    print(f'{verb} tags on {_short_id(result.note)}: {", ".join(result.changed_tags)}')


def _present_tags(counts: Dict[str, int], args) -> None:
    if args.json:
        print(json.dumps(counts))
        return
    if not counts:
        print('No tags found.')
        return
    tags = sorted(counts.keys())
    data = [('Tag', 'Count')] + [(t, str(counts[t])) for t in tags]
    table = AsciiTable(data)
    table.justify_columns[1] = 'right'
    print(table.table)


def _present_export(result: ExportResult, args) -> None:
    if result.output:
        print(f'Exported {len(result.notes)} note(s) to {result.output}')
    else:
        sys.stdout.write(result.text)


def _present_import(notes: List[Note], args) -> None:
    print(f'Imported {len(notes)} note(s)')
    for note in notes:
        print(f'  [{_short_id(note)}] {note.title}')


def _confirm(prompt: str) -> bool:
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in ('y', 'yes')


def argparser() -> argparse.ArgumentParser:
    tags_help = 'Comma-separated list of tags. Tags are case-sensitive and may not contain whitespace.'

    parser = argparse.ArgumentParser(prog='notekeeper', description='Create, organize, and search short text notes.')
    parser.set_defaults(build=None, present=None, json=False)
    parser.add_argument('-d', '--dir', nargs=1,
                        help='Folder where notes are stored. Overrides the NOTEKEEPER_DIR environment variable '
                             'and the storage_dir in ~/.notekeeper.conf.py')
    parser.add_argument('-v', '--verbose', action='store_true', help='Print debug logging to stderr.')

    subs = parser.add_subparsers(title='Commands')

    p_create = subs.add_parser('create', aliases=['new', 'add'],
                               help='Create a new note. Prints the id of the new note.')
    p_create.add_argument('title', nargs=1)
    p_create.add_argument('-c', '--content', nargs=1, help='Body text of the note.')
    p_create.add_argument('-t', '--tags', action='append', help=f'{tags_help} May be repeated.')
    p_create.set_defaults(build=_build_create, present=_present_create)

    p_list = subs.add_parser('list', aliases=['ls'], help='List notes, newest first.')
    p_list.add_argument('-t', '--tag', nargs=1, help='Only list notes with this tag.')
    p_list.add_argument('-l', '--limit', nargs=1, help='Show at most this many notes (after tag filtering).')
    p_list_formats = p_list.add_mutually_exclusive_group()
    p_list_formats.add_argument('-j', '--json', action='store_true', help='Output as JSON.')
    p_list_formats.add_argument('--table', action='store_true', help='Format output as a table.')
    p_list.set_defaults(build=_build_list, present=_present_list)

    id_help = 'Note id. Any prefix that matches exactly one note is accepted.'

    p_show = subs.add_parser('show', aliases=['view'], help='Show a note in full.')
    p_show.add_argument('id', nargs=1, help=id_help)
    p_show.add_argument('-j', '--json', action='store_true', help='Output as JSON.')
    p_show.set_defaults(build=_build_show, present=_present_show)

    p_edit = subs.add_parser(
        'edit',
        help='Change a note. Only the given fields are changed; if none of them differ from the current values, '
             'the note is left untouched.')
    p_edit.add_argument('id', nargs=1, help=id_help)
    p_edit.add_argument('--title', nargs=1, help='New title.')
    p_edit.add_argument('-c', '--content', nargs=1, help='New body text.')
    p_edit.add_argument('--tags', nargs=1, help=f'Replaces all tags. {tags_help}')
    p_edit_archive = p_edit.add_mutually_exclusive_group()
    p_edit_archive.add_argument('--archive', action='store_true', help='Mark the note as archived.')
    p_edit_archive.add_argument('--unarchive', action='store_true', help='Mark the note as not archived.')
    p_edit.add_argument('-m', '--meta', action='append', metavar='KEY=VALUE',
                        help='Set a metadata value. May be repeated.')
    p_edit.add_argument('--del-meta', action='append', metavar='KEY',
                        help='Remove a metadata value. May be repeated.')
    p_edit.set_defaults(build=_build_edit, present=_present_edit)

    p_delete = subs.add_parser('delete', aliases=['rm'], help='Delete a note.')
    p_delete.add_argument('id', nargs=1, help=id_help)
    p_delete.add_argument('-f', '--force', action='store_true', help='Do not ask for confirmation.')
    p_delete.set_defaults(build=_build_delete, present=_present_delete)

    p_search = subs.add_parser(
        'search',
        help='List notes whose title, content, or tags contain the query, ignoring case. Newest first.')
    p_search.add_argument('query', nargs=1)
    p_search.add_argument('--in-content', action='store_true', help='Only search note content.')
    p_search.add_argument('-l', '--limit', nargs=1, help='Show at most this many notes.')
    p_search.add_argument('-j', '--json', action='store_true', help='Output as JSON.')
    p_search.set_defaults(build=_build_search, present=_present_search)

    p_tag = subs.add_parser('tag', help='Add tags to a note (if not already present), or remove them.')
    p_tag.add_argument('id', nargs=1, help=id_help)
    p_tag.add_argument('tags', nargs='+', help=tags_help)
    p_tag.add_argument('-r', '--remove', action='store_true', help='Remove the tags instead of adding them.')
    p_tag.set_defaults(build=_build_tag, present=_present_tag)

    p_tags = subs.add_parser('tags', help='Show a list of tags and the number of notes that have each tag.')
    p_tags.add_argument('-j', '--json', action='store_true',
                        help='Output as JSON. The output is an object whose keys are tags and whose values '
                             'are the number of notes that possess that tag.')
    p_tags.set_defaults(build=_build_tags, present=_present_tags)

    p_export = subs.add_parser('export', help='Export notes, newest first.')
    p_export.add_argument('-f', '--format', nargs=1, help='json (default), markdown (or md), or txt (or text).')
    p_export.add_argument('-o', '--output', nargs=1, help='File to write to. If omitted, prints to stdout.')
    p_export.add_argument('-t', '--tag', nargs=1, help='Only export notes with this tag.')
    p_export.set_defaults(build=_build_export, present=_present_export)

    p_import = subs.add_parser(
        'import',
        help='Create notes from a JSON or Markdown file, in the layouts written by the export command. '
             'Every record is validated before any note is created.')
    p_import.add_argument('file', nargs=1)
    p_import.add_argument('-f', '--format', nargs=1,
                          help='json or markdown (or md). If omitted, guessed from the file extension.')
    p_import.set_defaults(build=_build_import, present=_present_import)

    return parser


def parse_command(args=None) -> Cmd:
    """Converts command-line arguments to the command they request.

    Raises :exc:`notekeeper.errors.InvalidInputError` for malformed values, or :exc:`SystemExit` (via argparse)
    for usage errors.
    """
    parser = argparser()
    parsed = parser.parse_args(args)
    if not parsed.build:
        parser.error('a command is required')
    return parsed.build(parsed)


def main(args=None) -> int:
    """Runs the tool and returns its exit code.

    args may be an array of string command-line arguments; if absent,
    the process's arguments are used.
    """
    parser = argparser()
    args = parser.parse_args(args)
    if not args.build:
        parser.print_help()
        return 1
    conf = NotekeeperConf.for_user()
    if args.dir:
        conf = replace(conf, storage_dir=args.dir[0])
    logging.basicConfig(level=logging.DEBUG if args.verbose else conf.log_level.upper(),
                        format='%(levelname)s: %(message)s')
    try:
        cmd = args.build(args)
        with conf.instantiate() as nk:
            if isinstance(cmd, DeleteCmd) and not cmd.force and conf.confirm_delete:
                note = nk.show(cmd.note_id)
                if not _confirm(f'Delete note {_short_id(note)} "{note.title}"? [y/N] '):
                    print('Deletion cancelled.')
                    return 0
                cmd = replace(cmd, note_id=note.id)
            result = nk.execute(cmd)
        args.present(result, args)
    except NoteError as e:
        print(f'error: {e.message}', file=sys.stderr)
        return 1
    return 0
