import json
import os
from pathlib import Path

from freezegun import freeze_time
import pytest

from notekeeper.conf import NotekeeperConf
from notekeeper.errors import FilesystemError, NotFoundError, SerializationError
from notekeeper.models import Note
from notekeeper.repos.direct import DirectRepo


def test_save_and_load(repo):
    note = Note.create('Groceries', 'milk, eggs', ['home', 'errand'])
    note.add_metadata('source', 'phone')
    repo.save(note)
    assert repo.load(note.id) == note
    assert repo.exists(note.id)


def test_load_returns_detached_copies(repo):
    note = Note.create('T')
    repo.save(note)
    loaded = repo.load(note.id)
    loaded.update_title('Changed')
    assert repo.load(note.id).title == 'T'


def test_save_layout(repo):
    note = Note.create('Groceries', tags=['home'])
    repo.save(note)
    assert os.listdir('/notes') == [f'{note.id}.json']
    data = json.loads(Path(f'/notes/{note.id}.json').read_text())
    assert data == note.as_json()
    assert set(data.keys()) == {'id', 'title', 'content', 'tags', 'created_at', 'updated_at', 'is_archived',
                                'metadata'}


def test_save_overwrites(repo):
    note = Note.create('T')
    repo.save(note)
    note.update_content('New content')
    repo.save(note)
    assert repo.load(note.id).content == 'New content'
    assert len(os.listdir('/notes')) == 1


def test_save_filesystem_error(fs):
    fs.create_file('/notes')
    repo = DirectRepo(NotekeeperConf(storage_dir='/notes'))
    with pytest.raises(FilesystemError) as exc:
        repo.save(Note.create('T'))
    assert exc.value.path.startswith('/notes/')


def test_load_missing(repo):
    with pytest.raises(NotFoundError) as exc:
        repo.load('nope')
    assert exc.value.note_id == 'nope'
    assert not repo.exists('nope')


@pytest.mark.parametrize('note_id', ['', '../etc/passwd', 'a/b', '.hidden'])
def test_load_rejects_non_id_paths(repo, note_id):
    with pytest.raises(NotFoundError):
        repo.load(note_id)


def test_load_corrupt(fs, repo):
    fs.create_file('/notes/broken.json', contents='{"id": "broken", "title": ')
    with pytest.raises(SerializationError) as exc:
        repo.load('broken')
    assert exc.value.path == '/notes/broken.json'


def test_load_invalid_record(fs, repo):
    record = Note.create('T').as_json()
    record['id'] = 'bad'
    record['title'] = 'x' * 101
    fs.create_file('/notes/bad.json', contents=json.dumps(record))
    with pytest.raises(SerializationError, match='title'):
        repo.load('bad')


def test_load_mismatched_id(fs, repo):
    note = Note.create('T')
    fs.create_file('/notes/other.json', contents=json.dumps(note.as_json()))
    with pytest.raises(SerializationError, match=note.id):
        repo.load('other')


def test_load_undecodable(fs, repo):
    fs.create_file('/notes/binary.json', contents=b'\xff\xfe\x00garbage')
    with pytest.raises(SerializationError) as exc:
        repo.load('binary')
    assert exc.value.path == '/notes/binary.json'


def test_list_skips_mismatched_id(fs, repo, caplog):
    note = Note.create('T')
    repo.save(note)
    os.rename(f'/notes/{note.id}.json', '/notes/other.json')
    assert repo.list() == []
    assert 'file contains note' in caplog.text

    repo.save(note)
    fs.create_file('/notes/copy.json', contents=json.dumps(note.as_json()))
    assert repo.list() == [note]


def test_delete(repo):
    note = Note.create('T')
    repo.save(note)
    repo.delete(note.id)
    assert not os.listdir('/notes')
    with pytest.raises(NotFoundError):
        repo.load(note.id)
    with pytest.raises(NotFoundError):
        repo.delete(note.id)


def test_list_newest_first(repo):
    with freeze_time('2012-05-02T03:04:05Z') as frozen:
        a = Note.create('A')
        frozen.tick()
        b = Note.create('B')
        frozen.tick()
        c = Note.create('C')
    for note in [b, c, a]:
        repo.save(note)
    assert repo.list() == [c, b, a]


def test_list_missing_dir(repo):
    assert repo.list() == []


def test_list_skips_unparseable(fs, repo, caplog):
    good = Note.create('Good')
    repo.save(good)
    fs.create_file('/notes/bad.json', contents='not json')
    fs.create_file('/notes/empty.json', contents='[]')
    assert repo.list() == [good]
    assert 'Skipping unreadable note file' in caplog.text
    assert '/notes/bad.json' in caplog.text
    assert '/notes/empty.json' in caplog.text


def test_list_skips_undecodable(fs, repo, caplog):
    good = Note.create('Good')
    repo.save(good)
    fs.create_file('/notes/bad.json', contents=b'\xff\xfe\x00garbage')
    assert repo.list() == [good]
    assert '/notes/bad.json' in caplog.text


def test_list_ignores_other_files(fs, repo):
    note = Note.create('T')
    repo.save(note)
    fs.create_file('/notes/readme.txt', contents='hi')
    fs.create_file('/notes/.draft.json', contents=json.dumps(Note.create('Hidden').as_json()))
    fs.create_dir('/notes/sub.json')
    assert repo.list() == [note]


def test_list_rereads_directory(fs, repo):
    note = Note.create('T')
    repo.save(note)
    assert len(repo.list()) == 1
    other = Note.create('Written elsewhere')
    fs.create_file(f'/notes/{other.id}.json', contents=json.dumps(other.as_json()))
    assert len(repo.list()) == 2


def test_tag_counts(repo):
    repo.save(Note.create('One', tags=['tag1', 'tag2']))
    repo.save(Note.create('Two', tags=['tag1', 'tag3']))
    repo.save(Note.create('Three', tags=['tag1', 'tag3', 'tag4']))
    repo.save(Note.create('Four'))
    assert repo.tag_counts() == {'tag1': 3, 'tag2': 1, 'tag3': 2, 'tag4': 1}
