"""Provides the main entry point for using the library, :class:`Notestash`"""

from __future__ import annotations
from dataclasses import replace
import logging
from threading import Event
from typing import Dict, Optional

from notestash.conf import StoreConf, Settings, RepoKind, is_path_updated, is_updated
from notestash.errors import AlreadyExistsError, EmptyWorkingDirectoryError, InvalidSettingsDataError,\
    UnsupportedOperationError


logger = logging.getLogger(__name__)


class Notestash:
    """Main entry point for working programmatically with your collection of notes.

    An instance is the single handle that command handlers receive; they perform note operations through its
    :attr:`repo` attribute, which is an instance of :class:`notestash.repos.base.Repo`. Create one per process,
    and call :meth:`close` when you're done with it, or else use it as a context manager.

    .. attribute:: conf
       :type: notestash.conf.StoreConf

    .. attribute:: repo
       :type: notestash.repos.base.Repo

    Here's an example of how to use this class:

    .. code-block:: python

       from notestash.api import Notestash
       from notestash.models import Note
       with Notestash.for_user() as ns:
           ns.repo.create(Note('draft.md', body='# hello'))
           print(ns.repo.view(Note('draft.md')).body)
    """

    @staticmethod
    def for_user() -> Notestash:
        """Creates an instance for the store at ``$NOTESTASH_PATH`` or ``~/notestash``."""
        return Notestash(StoreConf.for_user())

    def __init__(self, conf: StoreConf):
        self.conf = conf.standardize()
        self.repo = self.conf.instantiate()

    def initialize(self) -> bool:
        """Creates the note store if it doesn't exist yet. Returns True if it was created."""
        try:
            self.repo.init()
        except AlreadyExistsError:
            return False
        return True

    def update_settings(self, new: Settings) -> Dict[str, str]:
        """Replaces the settings, first relocating all notes if the new settings put them somewhere else.

        This is how edited configuration should be saved. If the note location for the active backend changed,
        :meth:`notestash.repos.base.Repo.move_notes` runs before anything is persisted, so a failed relocation
        leaves the old settings in effect. An old location with no notes in it is not an error here; the
        settings are simply saved. Afterward, :attr:`repo` is rebuilt from the new settings.

        Raises :exc:`notestash.errors.InvalidSettingsDataError` if the new settings are not valid.
        Returns the moves that were made, which is empty if none were needed.
        """
        if not new.is_valid():
            raise InvalidSettingsDataError()
        old = self.repo.settings()
        moves = {}
        if is_path_updated(old, new, self.repo.kind):
            logger.info('Note location changed, relocating notes to %s', self._location(new))
            try:
                moves = self.repo.move_notes(new)
            except EmptyWorkingDirectoryError:
                logger.info('No notes to relocate from %s', self.repo.path)
        elif is_updated(old, new):
            logger.debug('Editor changed from %s to %s', old.editor, new.editor)
        self.repo.write_settings(new)
        self._reload()
        return moves

    def _location(self, settings: Settings) -> str:
        if self.repo.kind == RepoKind.REMOTE:
            return settings.remote_path()
        return settings.local_path

    def migrate(self, remote_settings: Optional[Settings] = None, cancel: Optional[Event] = None) -> RepoKind:
        """Moves a local store onto the remote backend, and switches this instance to use it.

        ``remote_settings`` may supply the remote fields; otherwise the current settings must already
        enable the remote backend. Requires :attr:`notestash.conf.StoreConf.document_store`.
        """
        if self.conf.document_store is None:
            raise UnsupportedOperationError('Migrating requires a document store for the remote backend')
        from notestash.repos.remote import RemoteRepo
        repo = self.repo
        local = repo.local if isinstance(repo, RemoteRepo) else repo
        previous = local.config
        if remote_settings is not None:
            if not remote_settings.is_valid():
                raise InvalidSettingsDataError()
            local.config = remote_settings
        try:
            kind = RemoteRepo(local, self.conf.document_store).migrate(cancel)
        except Exception:
            local.config = previous
            raise
        self.conf = replace(self.conf, kind=kind)
        self._reload()
        return kind

    def _reload(self) -> None:
        self.repo.close()
        self.repo = self.conf.instantiate()

    def close(self):
        """Closes the associated repo and releases any other resources."""
        self.repo.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.repo.close()
