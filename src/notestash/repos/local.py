"""Provides the :class:`LocalRepo` class."""

import logging
import os
import os.path
import shutil
from threading import Event
from typing import AbstractSet, Callable, Dict, List, Optional, Tuple

from notestash.conf import IGNORE_FILES, SETTINGS_NAME, RepoKind, Settings, decode_settings, init_settings
from notestash.editor import run_editor
from notestash.errors import AlreadyExistsError, EditorError, EmptyWorkingDirectoryError, InvalidSettingsDataError,\
    NotExistsError, SameTitlesError, UnsupportedOperationError
from notestash.models import EditNode, Folder, Node, Note
from notestash.rearrange import apply_moves, copy_name, edits_for_relocation, find_available_name
from notestash.repos.base import Repo


logger = logging.getLogger(__name__)


def _is_within(parent: str, child: str) -> bool:
    parent = os.path.realpath(parent)
    child = os.path.realpath(child)
    return os.path.commonpath([parent, child]) == parent


class LocalRepo(Repo):
    """Stores notes as files in a directory.

    The settings file lives in :attr:`root_path`. Notes live in the ``local_path`` named by those settings,
    which is normally the same directory.

    .. attribute:: root_path
       :type: str

    .. attribute:: config
       :type: notestash.conf.Settings

       The settings loaded when the instance was created, or most recently written through it.
    """

    kind = RepoKind.LOCAL

    def __init__(self, root_path: str, run_editor: Callable[[str, str], int] = run_editor):
        self.root_path = root_path
        self.run_editor = run_editor
        self.config = self.settings()

    @property
    def path(self) -> str:
        return self.config.local_path

    @property
    def settings_path(self) -> str:
        return os.path.join(self.root_path, SETTINGS_NAME)

    def init(self) -> None:
        if os.path.exists(self.path):
            raise AlreadyExistsError(self.path, 'directory')
        os.makedirs(self.path)
        if not os.path.exists(self.settings_path):
            self.write_settings(self.config)
        logger.info('Initialized note store at %s', self.path)

    def create(self, note: Note) -> Note:
        path = self.generate_path(note.to_node())
        if os.path.lexists(path):
            raise AlreadyExistsError(note.title, 'file')
        try:
            with open(path, 'x', encoding='utf-8') as file:
                file.write(note.body)
        except FileExistsError:
            raise AlreadyExistsError(note.title, 'file') from None
        logger.debug('Created %s', path)
        return Note(note.title, path, note.body)

    def view(self, note: Note) -> Note:
        path = self.generate_path(note.to_node())
        if not os.path.isfile(path):
            raise NotExistsError(note.title, 'file')
        with open(path, 'r', encoding='utf-8') as file:
            body = file.read()
        return Note(note.title, path, body)

    def edit(self, note: Note) -> Note:
        path = self.generate_path(note.to_node())
        if not os.path.isfile(path):
            raise NotExistsError(note.title, 'file')
        with open(path, 'w', encoding='utf-8') as file:
            file.write(note.body)
        logger.debug('Edited %s', path)
        return Note(note.title, path, note.body)

    def remove(self, node: Node) -> None:
        path = self.generate_path(node)
        if not os.path.lexists(path):
            raise NotExistsError(node.title, 'file or directory')
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
        logger.debug('Removed %s', path)

    def rename(self, edit: EditNode) -> None:
        if edit.current.title == edit.new.title:
            raise SameTitlesError()
        src = self.generate_path(edit.current)
        dest = self.generate_path(edit.new)
        if not os.path.lexists(src):
            raise NotExistsError(edit.current.title, 'file or directory')
        if os.path.lexists(dest):
            raise AlreadyExistsError(edit.new.title, 'file or directory')
        os.rename(src, dest)
        logger.debug('Renamed %s to %s', src, dest)

    def mkdir(self, folder: Folder) -> Folder:
        path = self.generate_path(folder.to_node())
        if os.path.lexists(path):
            raise AlreadyExistsError(path, 'directory')
        os.makedirs(path)
        return Folder(folder.title, path)

    def get_all(self, subpath: str = '', ignore: AbstractSet[str] = IGNORE_FILES) -> Tuple[List[Note], List[Folder]]:
        dirpath = os.path.join(self.path, subpath) if subpath else self.path
        if not os.path.isdir(dirpath):
            raise NotExistsError(subpath or dirpath, 'directory')
        notes = []
        folders = []
        with os.scandir(dirpath) as entries:
            for entry in sorted(entries, key=lambda e: e.name):
                if entry.name in ignore:
                    continue
                if entry.is_dir(follow_symlinks=False):
                    folders.append(Folder(entry.name, entry.path))
                else:
                    notes.append(Note(entry.name, entry.path))
        if not (notes or folders):
            raise EmptyWorkingDirectoryError(dirpath)
        return notes, folders

    def copy(self, note: Note) -> Note:
        src = self.generate_path(note.to_node())
        if not os.path.isfile(src):
            raise NotExistsError(note.title, 'file')
        with open(src, 'r', encoding='utf-8') as file:
            body = file.read()
        dest = find_available_name(os.path.join(os.path.dirname(src), copy_name(os.path.basename(src))))
        with open(dest, 'x', encoding='utf-8') as file:
            file.write(body)
        logger.debug('Copied %s to %s', src, dest)
        return Note(os.path.join(os.path.dirname(note.title), os.path.basename(dest)), dest, body)

    def _run_editor(self, editor: str, path: str) -> None:
        status = self.run_editor(editor, path)
        if status != 0:
            raise EditorError(editor, status)

    def open(self, node: Node) -> None:
        path = self.generate_path(node)
        if not os.path.lexists(path):
            raise NotExistsError(node.title, 'file or directory')
        self._run_editor(self.config.editor, path)

    def open_settings(self, settings: Optional[Settings] = None) -> None:
        if not os.path.isfile(self.settings_path):
            raise NotExistsError(SETTINGS_NAME, 'file')
        self._run_editor((settings or self.config).editor, self.settings_path)

    def settings(self) -> Settings:
        """Reads the settings file, or returns the defaults for :attr:`root_path` if there is none."""
        if not os.path.isfile(self.settings_path):
            return init_settings(self.root_path)
        with open(self.settings_path, 'rb') as file:
            return decode_settings(file.read(), self.root_path)

    def write_settings(self, settings: Settings) -> None:
        if not settings.is_valid():
            raise InvalidSettingsDataError()
        os.makedirs(self.root_path, exist_ok=True)
        tmp = f'{self.settings_path}.tmp'
        with open(tmp, 'wb') as file:
            file.write(settings.to_bytes())
        os.replace(tmp, self.settings_path)
        self.config = settings
        logger.debug('Wrote settings to %s', self.settings_path)

    def move_notes(self, new_settings: Settings) -> Dict[str, str]:
        """Moves every entry in the current note directory into ``new_settings.local_path``.

        Folders are moved whole. Ignored files, such as the settings file, stay where they are. An entry whose
        name is already taken in the new directory is given an available variant of that name, so nothing there
        is overwritten.

        If a move fails, completed moves are reverted and :exc:`notestash.errors.MigrationError` is raised.
        """
        old_root = self.path
        new_root = new_settings.local_path
        if not os.path.isdir(old_root):
            raise EmptyWorkingDirectoryError(old_root)
        if new_root and os.path.realpath(old_root) == os.path.realpath(new_root):
            return {}
        notes, folders = self.get_all()
        if not new_root:
            raise InvalidSettingsDataError()
        # an entry containing the new root or the settings file can't be moved out from under them
        sources = [n.path for n in notes] + [f.path for f in folders
                                             if not (_is_within(f.path, new_root) or _is_within(f.path, self.root_path))]
        if not sources:
            raise EmptyWorkingDirectoryError(old_root)

        os.makedirs(new_root, exist_ok=True)
        logger.info('Moving %d entries from %s to %s', len(sources), old_root, new_root)
        return apply_moves(edits_for_relocation(sources, new_root))

    def fetch(self, cancel: Optional[Event] = None) -> List[Note]:
        raise UnsupportedOperationError('Fetching requires the remote backend')

    def push(self, cancel: Optional[Event] = None) -> List[Note]:
        raise UnsupportedOperationError('Pushing requires the remote backend')

    def migrate(self, cancel: Optional[Event] = None) -> RepoKind:
        raise UnsupportedOperationError('Migrating requires the remote backend')
