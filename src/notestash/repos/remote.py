"""Provides the :class:`RemoteRepo` class, and the :class:`DocumentStore` API it uses for transport.

The transport itself (network protocol, authentication) is supplied by the caller as a :class:`DocumentStore`.
Each remote call is retried with exponential backoff when the store raises
:exc:`notestash.errors.TransientError`.
"""

import logging
import os
import os.path
from threading import Event
import time
from typing import AbstractSet, Callable, Dict, List, Optional, Tuple

from notestash.conf import IGNORE_FILES, RepoKind, Settings
from notestash.errors import AlreadyExistsError, EditorError, EmptyWorkingDirectoryError, InvalidSettingsDataError,\
    MigrationError, NotExistsError, SameTitlesError, SyncCancelledError, SyncConflictError, SyncError,\
    TransientError, UnsupportedOperationError
from notestash.models import EditNode, Folder, Node, Note
from notestash.rearrange import copy_name, find_available_name
from notestash.repos.base import Repo
from notestash.repos.local import LocalRepo


logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 1.0  # seconds


def _never_exists(name: str) -> bool:
    return False


def _read_local(path: str) -> Optional[str]:
    if not os.path.isfile(path):
        return None
    with open(path, 'r', encoding='utf-8') as file:
        return file.read()


class DocumentStore:
    """Base class for transports to a remote store of text documents, grouped into named collections.

    Within a collection, documents are identified by note title. Implementations should raise
    :exc:`notestash.errors.TransientError` for failures that may succeed if retried (timeouts, throttling,
    dropped connections); any other exception is treated as final.
    """

    def collection_exists(self, collection: str) -> bool:
        raise NotImplementedError()

    def create_collection(self, collection: str) -> None:
        raise NotImplementedError()

    def list(self, collection: str) -> Dict[str, str]:
        """Returns a dict mapping the title of every document in the collection to its body."""
        raise NotImplementedError()

    def get(self, collection: str, title: str) -> Optional[str]:
        """Returns the body of the document, or None if there is no such document."""
        raise NotImplementedError()

    def put(self, collection: str, title: str, body: str) -> None:
        """Creates or overwrites the document."""
        raise NotImplementedError()

    def delete(self, collection: str, title: str) -> None:
        raise NotImplementedError()


class RemoteRepo(Repo):
    """Stores notes as documents in a remote collection.

    The settings file stays with the wrapped :class:`notestash.repos.local.LocalRepo`, whose note directory is
    also where :meth:`fetch` downloads to and :meth:`push` uploads from. Sync never deletes local files.

    .. attribute:: local
       :type: notestash.repos.local.LocalRepo

    .. attribute:: store
       :type: DocumentStore
    """

    kind = RepoKind.REMOTE

    def __init__(self, local: LocalRepo, store: DocumentStore,
                 max_retries: int = MAX_RETRIES, backoff_base: float = RETRY_BACKOFF_BASE):
        self.local = local
        self.store = store
        self.max_retries = max_retries
        self.backoff_base = backoff_base

    @property
    def config(self) -> Settings:
        return self.local.config

    @property
    def path(self) -> str:
        return self.config.remote_path()

    def _call(self, description: str, fn: Callable, *args, cancel: Optional[Event] = None):
        last_error = None
        for attempt in range(self.max_retries):
            try:
                return fn(*args)
            except TransientError as e:
                last_error = e

            if attempt < self.max_retries - 1:
                delay = self.backoff_base * (2 ** attempt)
                logger.warning('%s attempt %d failed, retrying in %.1fs: %s', description, attempt + 1, delay,
                               last_error)
                if cancel is not None:
                    if cancel.wait(delay):
                        raise SyncCancelledError(f'{description} cancelled')
                else:
                    time.sleep(delay)

        raise SyncError(f'{description} failed after {self.max_retries} attempts: {last_error}',
                        last_error) from last_error

    @staticmethod
    def _check_cancel(cancel: Optional[Event], description: str) -> None:
        if cancel is not None and cancel.is_set():
            raise SyncCancelledError(f'{description} cancelled')

    def _get(self, title: str) -> Optional[str]:
        return self._call(f'Reading {title}', self.store.get, self.path, title)

    def _put(self, title: str, body: str, collection: str = None, cancel: Optional[Event] = None) -> None:
        self._call(f'Writing {title}', self.store.put, collection or self.path, title, body, cancel=cancel)

    def _list(self, collection: str = None, cancel: Optional[Event] = None) -> Dict[str, str]:
        collection = collection or self.path
        return self._call(f'Listing {collection}', self.store.list, collection, cancel=cancel)

    def init(self) -> None:
        if self._call('Checking collection', self.store.collection_exists, self.path):
            raise AlreadyExistsError(self.path, 'collection')
        self._call('Creating collection', self.store.create_collection, self.path)
        logger.info('Initialized remote collection %s', self.path)

    def create(self, note: Note) -> Note:
        if self._get(note.title) is not None:
            raise AlreadyExistsError(note.title, 'file')
        self._put(note.title, note.body)
        return Note(note.title, self.generate_path(Node(note.title)), note.body)

    def view(self, note: Note) -> Note:
        body = self._get(note.title)
        if body is None:
            raise NotExistsError(note.title, 'file')
        return Note(note.title, self.generate_path(Node(note.title)), body)

    def edit(self, note: Note) -> Note:
        if self._get(note.title) is None:
            raise NotExistsError(note.title, 'file')
        self._put(note.title, note.body)
        return Note(note.title, self.generate_path(Node(note.title)), note.body)

    def remove(self, node: Node) -> None:
        if self._get(node.title) is None:
            raise NotExistsError(node.title, 'file or directory')
        self._call(f'Deleting {node.title}', self.store.delete, self.path, node.title)

    def rename(self, edit: EditNode) -> None:
        if edit.current.title == edit.new.title:
            raise SameTitlesError()
        body = self._get(edit.current.title)
        if body is None:
            raise NotExistsError(edit.current.title, 'file or directory')
        if self._get(edit.new.title) is not None:
            raise AlreadyExistsError(edit.new.title, 'file or directory')
        self._put(edit.new.title, body)
        self._call(f'Deleting {edit.current.title}', self.store.delete, self.path, edit.current.title)

    def mkdir(self, folder: Folder) -> Folder:
        raise UnsupportedOperationError('Folders are not supported by the remote backend')

    def get_all(self, subpath: str = '', ignore: AbstractSet[str] = IGNORE_FILES) -> Tuple[List[Note], List[Folder]]:
        if subpath:
            raise NotExistsError(subpath, 'directory')
        docs = self._list()
        notes = [Note(title, self.generate_path(Node(title))) for title in sorted(docs) if title not in ignore]
        if not notes:
            raise EmptyWorkingDirectoryError(self.path)
        return notes, []

    def copy(self, note: Note) -> Note:
        body = self._get(note.title)
        if body is None:
            raise NotExistsError(note.title, 'file')
        title = find_available_name(copy_name(note.title), set(self._list()), exists=_never_exists)
        self._put(title, body)
        return Note(title, self.generate_path(Node(title)), body)

    def open(self, node: Node) -> None:
        """Downloads the document into the local note directory, opens it, and uploads any changes.

        Raises :exc:`notestash.errors.SyncConflictError` if a different local copy is already there.
        """
        body = self._get(node.title)
        if body is None:
            raise NotExistsError(node.title, 'file or directory')
        path = self.local.generate_path(Node(node.title))
        if _read_local(path) not in (None, body):
            raise SyncConflictError([node.title])
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as file:
            file.write(body)
        status = self.local.run_editor(self.config.editor, path)
        if status != 0:
            raise EditorError(self.config.editor, status)
        with open(path, 'r', encoding='utf-8') as file:
            edited = file.read()
        if edited != body:
            self._put(node.title, edited)

    def open_settings(self, settings: Optional[Settings] = None) -> None:
        self.local.open_settings(settings)

    def settings(self) -> Settings:
        return self.local.settings()

    def write_settings(self, settings: Settings) -> None:
        self.local.write_settings(settings)

    def move_notes(self, new_settings: Settings) -> Dict[str, str]:
        """Copies every document into the collection named by ``new_settings``, then deletes the originals.

        Nothing is deleted until every copy has been written. If a copy fails, the copies already written are
        deleted again and :exc:`notestash.errors.MigrationError` is raised.
        """
        old = self.path
        new = new_settings.remote_path()
        if old == new:
            return {}
        docs = self._list(old)
        if not docs:
            raise EmptyWorkingDirectoryError(old)

        taken = set(self._list(new))
        placed = {}
        logger.info('Moving %d documents from %s to %s', len(docs), old, new)
        try:
            for title in sorted(docs):
                dest = find_available_name(title, taken, exists=_never_exists)
                self._put(dest, docs[title], collection=new)
                taken.add(dest)
                placed[title] = dest
        except Exception as ex:
            stranded = {}
            for title, dest in placed.items():
                try:
                    self._call(f'Deleting {dest}', self.store.delete, new, dest)
                except Exception:
                    logger.exception('Could not delete %s from %s', dest, new)
                    stranded[title] = dest
            raise MigrationError(f'Could not move documents from {old} to {new}: {ex}', stranded, ex) from ex

        undeleted = {}
        for title, dest in placed.items():
            try:
                self._call(f'Deleting {title}', self.store.delete, old, title)
            except Exception:
                logger.exception('Could not delete %s from %s', title, old)
                undeleted[title] = dest
        if undeleted:
            raise MigrationError(f'Documents were copied to {new} but could not be deleted from {old}: '
                                 f'{", ".join(undeleted)}', undeleted)
        return {os.path.join(old, title): os.path.join(new, dest) for title, dest in placed.items()}

    def fetch(self, cancel: Optional[Event] = None) -> List[Note]:
        """Writes every remote document into the local note directory.

        Files whose content already matches are left untouched, so repeated fetches converge. A local file whose
        content differs is never overwritten: the other documents are still written, and then
        :exc:`notestash.errors.SyncConflictError` is raised naming the conflicting notes.
        """
        docs = self._list(cancel=cancel)
        os.makedirs(self.local.path, exist_ok=True)
        fetched = []
        conflicts = []
        for title in sorted(docs):
            self._check_cancel(cancel, 'Fetch')
            if title in IGNORE_FILES:
                continue
            body = docs[title]
            path = self.local.generate_path(Node(title))
            existing = _read_local(path)
            if existing is None and not os.path.lexists(path):
                with open(path, 'x', encoding='utf-8') as file:
                    file.write(body)
            elif existing != body:
                logger.warning('Not fetching %s; the local copy at %s differs', title, path)
                conflicts.append(title)
                continue
            fetched.append(Note(title, path, body))
        logger.info('Fetched %d documents from %s', len(fetched), self.path)
        if conflicts:
            raise SyncConflictError(conflicts)
        return fetched

    def push(self, cancel: Optional[Event] = None) -> List[Note]:
        """Uploads local notes whose remote copy is missing or different, and returns those notes.

        Only notes directly inside the local note directory are pushed; folders are skipped.
        """
        try:
            notes, folders = self.local.get_all()
        except EmptyWorkingDirectoryError:
            return []
        for folder in folders:
            logger.debug('Skipping folder %s; folders are not supported by the remote backend', folder.path)

        remote = self._list(cancel=cancel)
        pushed = []
        for note in notes:
            self._check_cancel(cancel, 'Push')
            note = self.local.view(note)
            if remote.get(note.title) == note.body:
                continue
            self._put(note.title, note.body, cancel=cancel)
            pushed.append(note)
        logger.info('Pushed %d of %d notes to %s', len(pushed), len(notes), self.path)
        return pushed

    def migrate(self, cancel: Optional[Event] = None) -> RepoKind:
        """Pushes the local store into the remote collection and persists the remote settings.

        Raises :exc:`notestash.errors.InvalidSettingsDataError` if the settings do not enable the remote backend.
        """
        if not self.config.is_remote_enabled():
            raise InvalidSettingsDataError('Remote settings are required to migrate')
        if not self._call('Checking collection', self.store.collection_exists, self.path, cancel=cancel):
            self._call('Creating collection', self.store.create_collection, self.path, cancel=cancel)
        self.push(cancel)
        self.local.write_settings(self.config)
        return RepoKind.REMOTE
