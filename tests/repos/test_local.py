import json
from pathlib import Path
import re
import shutil

import pytest

from notestash.conf import SETTINGS_NAME, Settings, StoreConf, init_settings
from notestash.errors import AlreadyExistsError, EditorError, EmptyWorkingDirectoryError, InvalidSettingsDataError,\
    MigrationError, NotExistsError, SameTitlesError, UnsupportedOperationError
from notestash.models import EditNode, Folder, Node, Note


class FakeEditor:
    def __init__(self, status=0):
        self.status = status
        self.calls = []

    def __call__(self, editor, path):
        self.calls.append((editor, path))
        return self.status


def local_repo(fs, root='/notes', run_editor=None):
    fs.create_dir(root)
    conf = StoreConf(root_path=root)
    if run_editor:
        conf.run_editor = run_editor
    return conf.instantiate()


def test_generate_path(fs):
    repo = local_repo(fs)
    assert repo.generate_path(Node('new-note.txt')) == '/notes/new-note.txt'
    assert repo.generate_path(Node('new-note.txt', '/tmp/new-note.txt')) == '/tmp/new-note.txt'


def test_init(fs):
    repo = StoreConf(root_path='/notes').instantiate()
    repo.init()
    assert Path('/notes').is_dir()
    assert json.loads(Path('/notes', SETTINGS_NAME).read_text())['local_path'] == '/notes'
    with pytest.raises(AlreadyExistsError):
        repo.init()


def test_create_and_view(fs):
    repo = local_repo(fs)
    created = repo.create(Note('draft.md', body='# hello'))
    assert created == Note('draft.md', '/notes/draft.md', '# hello')
    assert repo.view(Note('draft.md')).body == '# hello'
    assert Path('/notes/draft.md').read_text() == '# hello'


def test_create_empty(fs):
    repo = local_repo(fs)
    repo.create(Note('empty.txt'))
    assert Path('/notes/empty.txt').read_text() == ''


def test_create_existing(fs):
    repo = local_repo(fs)
    repo.create(Note('draft.md', body='original'))
    with pytest.raises(AlreadyExistsError) as exc_info:
        repo.create(Note('draft.md', body='replacement'))
    assert exc_info.value.name == 'draft.md'
    assert exc_info.value.kind == 'file'
    assert Path('/notes/draft.md').read_text() == 'original'


def test_create_over_folder(fs):
    repo = local_repo(fs)
    fs.create_dir('/notes/sub')
    with pytest.raises(AlreadyExistsError):
        repo.create(Note('sub'))


def test_create_explicit_path(fs):
    repo = local_repo(fs)
    fs.create_dir('/elsewhere')
    repo.create(Note('x.md', '/elsewhere/x.md', 'body'))
    assert Path('/elsewhere/x.md').read_text() == 'body'
    assert not Path('/notes/x.md').exists()


def test_view_nonexistent(fs):
    repo = local_repo(fs)
    with pytest.raises(NotExistsError) as exc_info:
        repo.view(Note('somerandomnotethatnotexists'))
    assert exc_info.value.name == 'somerandomnotethatnotexists'
    assert exc_info.value.kind == 'file'


def test_edit(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/draft.md', contents='old')
    assert repo.edit(Note('draft.md', body='new')) == Note('draft.md', '/notes/draft.md', 'new')
    assert Path('/notes/draft.md').read_text() == 'new'


def test_edit_nonexistent(fs):
    repo = local_repo(fs)
    with pytest.raises(NotExistsError):
        repo.edit(Note('draft.md', body='new'))
    assert not Path('/notes/draft.md').exists()


def test_remove_file(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/draft.md')
    repo.remove(Node('draft.md'))
    assert not Path('/notes/draft.md').exists()


def test_remove_folder(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/sub/a.md')
    fs.create_file('/notes/sub/deeper/b.md')
    repo.remove(Node('sub'))
    assert not Path('/notes/sub').exists()
    assert Path('/notes').is_dir()


def test_remove_nonexistent(fs):
    repo = local_repo(fs)
    with pytest.raises(NotExistsError) as exc_info:
        repo.remove(Node('newfile'))
    assert exc_info.value.kind == 'file or directory'


def test_rename(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/current.md', contents='content')
    repo.rename(EditNode(Node('current.md'), Node('new.md')))
    assert not Path('/notes/current.md').exists()
    assert repo.view(Note('new.md')).body == 'content'


def test_rename_folder(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/old/a.md', contents='a')
    repo.rename(EditNode(Node('old'), Node('new')))
    assert Path('/notes/new/a.md').read_text() == 'a'


def test_rename_same_titles(fs):
    repo = local_repo(fs)
    with pytest.raises(SameTitlesError):
        repo.rename(EditNode(Node('.same-name-note'), Node('.same-name-note')))
    fs.create_file('/notes/.same-name-note')
    with pytest.raises(SameTitlesError):
        repo.rename(EditNode(Node('.same-name-note'), Node('.same-name-note')))


def test_rename_nonexistent(fs):
    repo = local_repo(fs)
    with pytest.raises(NotExistsError) as exc_info:
        repo.rename(EditNode(Node('.current-note'), Node('.new-note')))
    assert exc_info.value.name == '.current-note'


def test_rename_onto_existing(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/.current-note', contents='current')
    fs.create_file('/notes/.new-note', contents='occupant')
    with pytest.raises(AlreadyExistsError) as exc_info:
        repo.rename(EditNode(Node('.current-note'), Node('.new-note')))
    assert exc_info.value.name == '.new-note'
    assert Path('/notes/.current-note').read_text() == 'current'
    assert Path('/notes/.new-note').read_text() == 'occupant'


def test_mkdir(fs):
    repo = local_repo(fs)
    assert repo.mkdir(Folder('a/b/c')) == Folder('a/b/c', '/notes/a/b/c')
    assert Path('/notes/a/b/c').is_dir()


def test_mkdir_existing(fs):
    repo = local_repo(fs)
    fs.create_dir('/notes/somerandomdirthatexists')
    with pytest.raises(AlreadyExistsError) as exc_info:
        repo.mkdir(Folder('somerandomdirthatexists'))
    assert exc_info.value.name == '/notes/somerandomdirthatexists'
    assert exc_info.value.kind == 'directory'


def test_get_all(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/.new-note.txt')
    fs.create_file('/notes/.new-note-1.txt')
    fs.create_file('/notes/sub/inner.md')
    fs.create_file(f'/notes/{SETTINGS_NAME}')
    notes, folders = repo.get_all()
    assert notes == [Note('.new-note-1.txt', '/notes/.new-note-1.txt'), Note('.new-note.txt', '/notes/.new-note.txt')]
    assert folders == [Folder('sub', '/notes/sub')]


def test_get_all_subpath(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/sub/inner.md')
    notes, folders = repo.get_all('sub')
    assert notes == [Note('inner.md', '/notes/sub/inner.md')]
    assert folders == []
    with pytest.raises(NotExistsError):
        repo.get_all('bogus')


def test_get_all_empty(fs):
    repo = local_repo(fs)
    with pytest.raises(EmptyWorkingDirectoryError):
        repo.get_all()
    fs.create_file(f'/notes/{SETTINGS_NAME}')
    with pytest.raises(EmptyWorkingDirectoryError):
        repo.get_all()


def test_get_all_custom_ignore(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/a.md')
    fs.create_file('/notes/b.md')
    notes, _ = repo.get_all(ignore={'a.md'})
    assert [n.title for n in notes] == ['b.md']


def test_copy(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/draft.md', contents='text')
    copied = repo.copy(Note('draft.md'))
    assert copied == Note('draft-copy.md', '/notes/draft-copy.md', 'text')
    assert Path('/notes/draft-copy.md').read_text() == 'text'
    assert Path('/notes/draft.md').read_text() == 'text'


def test_copy_does_not_overwrite(fs):
    repo = local_repo(fs)
    fs.create_file('/notes/draft.md', contents='text')
    fs.create_file('/notes/draft-copy.md', contents='older copy')
    copied = repo.copy(Note('draft.md'))
    assert re.fullmatch(r'draft-copy-[A-Za-z0-9]{8}\.md', copied.title)
    assert Path(copied.path).read_text() == 'text'
    assert Path('/notes/draft-copy.md').read_text() == 'older copy'


def test_copy_nonexistent(fs):
    repo = local_repo(fs)
    with pytest.raises(NotExistsError) as exc_info:
        repo.copy(Note('mocknote.txt'))
    assert exc_info.value.name == 'mocknote.txt'


def test_copy_nested(fs):
    repo = local_repo(fs)
    repo.mkdir(Folder('sub'))
    repo.create(Note('sub/a.md', body='nested'))
    copied = repo.copy(Note('sub/a.md'))
    assert copied == Note('sub/a-copy.md', '/notes/sub/a-copy.md', 'nested')
    assert Path('/notes/sub/a-copy.md').read_text() == 'nested'
    assert not Path('/notes/sub/sub').exists()


def test_open(fs):
    editor = FakeEditor()
    repo = local_repo(fs, run_editor=editor)
    fs.create_file('/notes/draft.md')
    repo.open(Node('draft.md'))
    assert editor.calls == [('vi', '/notes/draft.md')]


def test_open_editor_failure(fs):
    repo = local_repo(fs, run_editor=FakeEditor(status=2))
    fs.create_file('/notes/draft.md')
    with pytest.raises(EditorError) as exc_info:
        repo.open(Node('draft.md'))
    assert exc_info.value.status == 2


def test_open_nonexistent(fs):
    editor = FakeEditor()
    repo = local_repo(fs, run_editor=editor)
    with pytest.raises(NotExistsError):
        repo.open(Node('somerandomnotethatnotexists'))
    assert editor.calls == []


def test_open_settings(fs):
    editor = FakeEditor()
    repo = local_repo(fs, run_editor=editor)
    with pytest.raises(NotExistsError) as exc_info:
        repo.open_settings()
    assert exc_info.value.name == SETTINGS_NAME
    repo.write_settings(init_settings('/notes'))
    repo.open_settings(Settings(editor='nano', local_path='/notes'))
    assert editor.calls == [('nano', f'/notes/{SETTINGS_NAME}')]


def test_settings_default(fs):
    repo = local_repo(fs)
    assert repo.settings() == init_settings('/notes')


def test_write_settings(fs):
    repo = local_repo(fs)
    repo.write_settings(Settings(editor='code', local_path='/notes'))
    assert not Path(f'/notes/{SETTINGS_NAME}.tmp').exists()
    reloaded = StoreConf(root_path='/notes').instantiate()
    assert reloaded.settings().editor == 'code'
    assert reloaded.config.editor == 'code'


def test_write_settings_invalid(fs):
    repo = local_repo(fs)
    with pytest.raises(InvalidSettingsDataError):
        repo.write_settings(Settings(editor='', local_path='/notes'))
    with pytest.raises(InvalidSettingsDataError):
        repo.write_settings(Settings(editor='vi', local_path=''))
    assert not Path(f'/notes/{SETTINGS_NAME}').exists()


def test_settings_file_with_separate_local_path(fs):
    fs.create_file(f'/app/{SETTINGS_NAME}', contents='{"local_path": "/data/notes"}')
    fs.create_dir('/data/notes')
    repo = StoreConf(root_path='/app').instantiate()
    repo.create(Note('a.md', body='a'))
    assert Path('/data/notes/a.md').read_text() == 'a'


def test_move_notes(fs):
    repo = local_repo(fs, root='/A')
    repo.write_settings(init_settings('/A'))
    repo.create(Note('draft.md', body='# hello'))
    fs.create_file('/A/sub/inner.md', contents='inner')

    moves = repo.move_notes(Settings(local_path='/B'))

    assert moves == {'/A/draft.md': '/B/draft.md', '/A/sub': '/B/sub'}
    assert Path('/B/draft.md').read_text() == '# hello'
    assert Path('/B/sub/inner.md').read_text() == 'inner'
    assert Path(f'/A/{SETTINGS_NAME}').exists()
    with pytest.raises(EmptyWorkingDirectoryError):
        repo.get_all()


def test_move_notes_keeps_existing_destination_entries(fs):
    repo = local_repo(fs, root='/A')
    fs.create_file('/A/.note.txt', contents='from A')
    fs.create_file('/B/.note.txt', contents='from B')
    fs.create_file('/B/other.md', contents='other')

    moves = repo.move_notes(Settings(local_path='/B'))

    assert Path('/B/.note.txt').read_text() == 'from B'
    assert Path('/B/other.md').read_text() == 'other'
    assert Path(moves['/A/.note.txt']).read_text() == 'from A'
    assert moves['/A/.note.txt'].startswith('/B/.note-')


def test_move_notes_empty_source(fs):
    repo = local_repo(fs, root='/A')
    with pytest.raises(EmptyWorkingDirectoryError):
        repo.move_notes(Settings(local_path='/B'))
    assert not Path('/B').exists()


def test_move_notes_empty_source_without_local_path(fs):
    repo = local_repo(fs, root='/A')
    with pytest.raises(EmptyWorkingDirectoryError):
        repo.move_notes(Settings(local_path=''))


def test_move_notes_missing_source(fs):
    repo = StoreConf(root_path='/A').instantiate()
    with pytest.raises(EmptyWorkingDirectoryError):
        repo.move_notes(Settings(local_path='/B'))
    assert not Path('/B').exists()


def test_move_notes_same_path(fs):
    repo = local_repo(fs, root='/A')
    fs.create_file('/A/a.md')
    assert repo.move_notes(Settings(local_path='/A')) == {}
    assert Path('/A/a.md').exists()


def test_move_notes_into_subfolder(fs):
    repo = local_repo(fs, root='/A')
    fs.create_file('/A/a.md', contents='a')
    fs.create_file('/A/archive/old.md', contents='old')
    moves = repo.move_notes(Settings(local_path='/A/archive'))
    assert moves == {'/A/a.md': '/A/archive/a.md'}
    assert Path('/A/archive/a.md').read_text() == 'a'
    assert Path('/A/archive/old.md').read_text() == 'old'


def test_move_notes_requires_local_path(fs):
    repo = local_repo(fs, root='/A')
    fs.create_file('/A/a.md')
    with pytest.raises(InvalidSettingsDataError):
        repo.move_notes(Settings(local_path=''))


def test_move_notes_failure_reverts(fs, monkeypatch):
    repo = local_repo(fs, root='/A')
    fs.create_file('/A/a.md', contents='a')
    fs.create_file('/A/b.md', contents='b')
    real_move = shutil.move

    def failing_move(src, dest):
        if src == '/A/b.md':
            raise OSError('disk full')
        return real_move(src, dest)

    monkeypatch.setattr(shutil, 'move', failing_move)
    with pytest.raises(MigrationError):
        repo.move_notes(Settings(local_path='/B'))
    assert Path('/A/a.md').read_text() == 'a'
    assert Path('/A/b.md').read_text() == 'b'
    assert not list(Path('/B').iterdir())


def test_sync_unsupported(fs):
    repo = local_repo(fs)
    with pytest.raises(UnsupportedOperationError):
        repo.fetch()
    with pytest.raises(UnsupportedOperationError):
        repo.push()
    with pytest.raises(UnsupportedOperationError):
        repo.migrate()
