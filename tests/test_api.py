import json
import os
import os.path
from pathlib import Path

from freezegun import freeze_time
import pytest

from notekeeper.api import Notekeeper
from notekeeper.conf import NotekeeperConf
from notekeeper.errors import FilesystemError, InvalidInputError, NotFoundError, SerializationError,\
    ValidationError
from notekeeper.models import CreateCmd, DeleteCmd, ExportCmd, ExportFormat, ImportFormat, ListCmd, ShowCmd,\
    TagCountsCmd


def test_for_user(fs, monkeypatch):
    monkeypatch.delenv('NOTEKEEPER_DIR', raising=False)
    fs.create_file(os.path.expanduser('~/.notekeeper.conf.py'),
                   contents="from notekeeper.conf import *\nconf = NotekeeperConf(storage_dir='/elsewhere')")
    with Notekeeper.for_user() as nk:
        assert nk.conf == NotekeeperConf(storage_dir='/elsewhere')


def test_create_and_show(nk, fixed_ids):
    note = nk.create('Groceries', 'milk, eggs', ['home', 'errand', 'home'])
    assert note.id == 'note0001abcd'
    assert note.tags == ['home', 'errand']
    assert nk.show('note0001abcd') == note
    assert json.loads(Path('/notes/note0001abcd.json').read_text())['title'] == 'Groceries'


def test_create_invalid_writes_nothing(nk):
    with pytest.raises(ValidationError) as exc:
        nk.create('x' * 101)
    assert exc.value.field == 'title'
    with pytest.raises(ValidationError):
        nk.create('T', tags=['has space'])
    assert not os.path.exists('/notes')


def test_list_notes(nk, fixed_ids):
    with freeze_time('2012-05-02T03:04:05Z') as frozen:
        one = nk.create('One', tags=['work'])
        frozen.tick()
        two = nk.create('Two')
        frozen.tick()
        three = nk.create('Three', tags=['work'])
    assert nk.list_notes() == [three, two, one]
    assert nk.list_notes(tag='work') == [three, one]
    assert nk.list_notes(tag='work', limit=1) == [three]
    assert nk.list_notes(limit=0) == []
    assert nk.list_notes(tag='Work') == []
    with pytest.raises(InvalidInputError):
        nk.list_notes(limit=-1)


def test_resolve_id(nk, fixed_ids):
    nk.create('One')
    nk.create('Two')
    assert nk.show('note0002').title == 'Two'
    assert nk.resolve_id('note0001abcd') == 'note0001abcd'
    with pytest.raises(InvalidInputError, match='matches 2 notes'):
        nk.show('note')
    with pytest.raises(NotFoundError):
        nk.show('zzz')
    with pytest.raises(NotFoundError):
        nk.show('')


def test_update(nk):
    with freeze_time('2012-05-02T03:04:05Z') as frozen:
        note = nk.create('Groceries', 'milk', ['home'])
        frozen.tick()
        result = nk.update(note.id, title='Shopping', content='milk, eggs', tags=['errand'], archived=True,
                           set_metadata={'source': 'phone'})
    assert result.changed
    saved = nk.show(note.id)
    assert saved == result.note
    assert (saved.title, saved.content, saved.tags, saved.is_archived, saved.metadata) == \
        ('Shopping', 'milk, eggs', ['errand'], True, {'source': 'phone'})
    assert saved.created_at == note.created_at
    assert saved.updated_at > note.updated_at

    result = nk.update(note.id, archived=False, del_metadata=['source', 'missing'])
    assert result.changed
    assert not nk.show(note.id).is_archived
    assert nk.show(note.id).metadata == {}


def test_update_without_changes(nk):
    note = nk.create('Groceries', 'milk', ['home'])
    path = Path(f'/notes/{note.id}.json')
    before = path.read_bytes()
    result = nk.update(note.id, title='Groceries', content='milk', tags=['home'], archived=False,
                       del_metadata=['missing'])
    assert not result.changed
    assert result.note == note
    assert path.read_bytes() == before


def test_update_is_all_or_nothing(nk):
    note = nk.create('Groceries', 'milk')
    with pytest.raises(ValidationError):
        nk.update(note.id, title='Shopping', tags=['bad tag'])
    with pytest.raises(ValidationError):
        nk.update(note.id, content='x' * 10_001, set_metadata={'source': 'phone'})
    assert nk.show(note.id) == note


def test_delete(nk, fixed_ids):
    nk.create('One')
    deleted = nk.delete('note0001')
    assert deleted.title == 'One'
    assert os.listdir('/notes') == []
    with pytest.raises(NotFoundError):
        nk.delete('note0001abcd')


def test_tag(nk):
    note = nk.create('Groceries', tags=['home'])
    result = nk.tag(note.id, ['errand', 'home', 'errand'])
    assert result.changed_tags == ['errand']
    assert not result.removed
    assert nk.show(note.id).tags == ['home', 'errand']

    before = nk.show(note.id)
    assert nk.tag(note.id, ['home']).changed_tags == []
    assert nk.show(note.id).updated_at == before.updated_at

    result = nk.tag(note.id, ['home', 'missing'], remove=True)
    assert result.changed_tags == ['home']
    assert result.removed
    assert nk.show(note.id).tags == ['errand']


def test_tag_invalid(nk):
    note = nk.create('Groceries', tags=['home'])
    with pytest.raises(InvalidInputError):
        nk.tag(note.id, [])
    with pytest.raises(ValidationError):
        nk.tag(note.id, ['fine', 'not fine'])
    assert nk.show(note.id) == note


def test_search(nk):
    with freeze_time('2012-05-02T03:04:05Z') as frozen:
        groceries = nk.create('Groceries', 'milk, eggs', ['home', 'errand'])
        frozen.tick()
        recipes = nk.create('Egg recipes')
        frozen.tick()
        nk.create('Taxes')
    assert nk.search('egg') == [recipes, groceries]
    assert nk.search('egg', limit=1) == [recipes]
    assert nk.search('egg', in_content=True) == [groceries]
    assert nk.search('work') == []


def test_tag_counts(nk):
    nk.create('One', tags=['a', 'b'])
    nk.create('Two', tags=['a'])
    assert nk.tag_counts() == {'a': 2, 'b': 1}


def test_export(nk):
    with freeze_time('2012-05-02T03:04:05Z') as frozen:
        nk.create('Groceries', 'milk, eggs', ['home'])
        frozen.tick()
        nk.create('Chores', 'laundry')
        frozen.tick()
        nk.create('Garden', 'weeding', ['home'])
    result = nk.export(ExportFormat.MARKDOWN, tag='home')
    assert [n.title for n in result.notes] == ['Garden', 'Groceries']
    assert result.text.startswith('# Garden\n')
    assert '# Groceries\n' in result.text
    assert 'Chores' not in result.text
    assert result.output is None

    result = nk.export(ExportFormat.JSON)
    assert [r['title'] for r in json.loads(result.text)] == ['Garden', 'Chores', 'Groceries']


def test_export_to_file(fs, nk):
    nk.create('Groceries', 'milk, eggs')
    fs.create_dir('/out')
    result = nk.export(ExportFormat.TEXT, output='/out/notes.txt')
    assert result.output == '/out/notes.txt'
    assert Path('/out/notes.txt').read_text() == result.text
    assert result.text.startswith('Groceries\n\nmilk, eggs\n')


def test_export_to_missing_dir(nk):
    nk.create('Groceries')
    with pytest.raises(FilesystemError) as exc:
        nk.export(ExportFormat.JSON, output='/missing/notes.json')
    assert exc.value.path == '/missing/notes.json'


def test_import_json(fs, nk):
    fs.create_file('/in/notes.json', contents=json.dumps([
        {'id': 'ignored', 'title': 'Groceries', 'content': 'milk', 'tags': ['home']},
        {'title': 'Chores', 'is_archived': True, 'metadata': {'source': 'phone'}},
    ]))
    imported = nk.import_notes('/in/notes.json')
    assert [n.title for n in imported] == ['Groceries', 'Chores']
    assert not nk.repo.exists('ignored')
    assert sorted(n.title for n in nk.list_notes()) == ['Chores', 'Groceries']
    chores = nk.show(imported[1].id)
    assert chores.is_archived
    assert chores.metadata == {'source': 'phone'}


def test_import_exported_markdown(fs, nk):
    nk.create('Groceries', 'milk, eggs', ['home'])
    nk.export(ExportFormat.MARKDOWN, output='/notes.md')
    imported = nk.import_notes('/notes.md')
    assert [(n.title, n.content, n.tags) for n in imported] == [('Groceries', 'milk, eggs', ['home'])]
    assert len(nk.list_notes()) == 2


def test_import_with_explicit_format(fs, nk):
    fs.create_file('/in/notes.txt', contents='# Groceries\n\nmilk\n')
    imported = nk.import_notes('/in/notes.txt', ImportFormat.MARKDOWN)
    assert [(n.title, n.content) for n in imported] == [('Groceries', 'milk')]


def test_import_invalid_saves_nothing(fs, nk):
    fs.create_file('/in/notes.json', contents=json.dumps([{'title': 'Fine'}, {'title': ''}]))
    with pytest.raises(ValidationError, match='record 2'):
        nk.import_notes('/in/notes.json')
    fs.create_file('/in/broken.json', contents='[{"title": ')
    with pytest.raises(SerializationError):
        nk.import_notes('/in/broken.json')
    assert nk.list_notes() == []


def test_import_errors(nk):
    with pytest.raises(InvalidInputError, match='cannot infer format'):
        nk.import_notes('/in/notes.csv')
    with pytest.raises(FilesystemError):
        nk.import_notes('/in/missing.json')


def test_execute(nk, fixed_ids):
    note = nk.execute(CreateCmd('Groceries', tags=['home']))
    assert note.id == 'note0001abcd'
    assert nk.execute(ListCmd(tag='home')) == [note]
    assert nk.execute(ShowCmd('note0001')) == note
    assert nk.execute(TagCountsCmd()) == {'home': 1}
    assert json.loads(nk.execute(ExportCmd()).text)[0]['id'] == note.id
    assert nk.execute(DeleteCmd('note0001abcd')) == note
    assert nk.list_notes() == []
    with pytest.raises(ValueError):
        nk.execute('bogus')
