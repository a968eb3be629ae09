"""Defines the API that every storage backend provides.

The most important class is :class:`Repo`.
"""

from threading import Event
from typing import AbstractSet, Dict, List, Optional, Tuple

from notestash.conf import IGNORE_FILES, RepoKind, Settings
from notestash.models import EditNode, Folder, Node, Note


class Repo:
    """Base class for repos, which are responsible for storing and changing a user's collection of notes.

    Command handlers should work with notes only through these methods, so that they behave the same regardless
    of whether notes are stored in a local directory or a remote document store.

    Expected failures are raised as subclasses of :exc:`notestash.errors.StoreError`. Any other I/O errors
    propagate unchanged. Repos never retry filesystem operations.

    .. attribute:: kind
       :type: notestash.conf.RepoKind
    """

    kind: RepoKind = None

    @property
    def path(self) -> str:
        """The active note root: a directory for local repos, a collection name for remote ones."""
        raise NotImplementedError()

    def generate_path(self, node: Node) -> str:
        """Returns the location of the node, deriving it from the title and :attr:`path` if needed."""
        return node.resolve(self.path)

    def init(self) -> None:
        """Creates the root storage location.

        Raises :exc:`notestash.errors.AlreadyExistsError` if it already exists.
        """
        raise NotImplementedError()

    def create(self, note: Note) -> Note:
        """Stores a new note and returns it with its path resolved.

        Raises :exc:`notestash.errors.AlreadyExistsError` if anything already occupies the path.
        """
        raise NotImplementedError()

    def view(self, note: Note) -> Note:
        """Returns the note with :attr:`notestash.models.Note.body` read from storage."""
        raise NotImplementedError()

    def edit(self, note: Note) -> Note:
        """Overwrites the body of an existing note."""
        raise NotImplementedError()

    def remove(self, node: Node) -> None:
        """Deletes a note, or a folder and everything inside it.

        Folder removal is not atomic; if it fails partway, the remainder is left in place.
        """
        raise NotImplementedError()

    def rename(self, edit: EditNode) -> None:
        """Moves ``edit.current`` to ``edit.new``.

        Raises :exc:`notestash.errors.SameTitlesError` if the titles are equal (checked first),
        :exc:`notestash.errors.NotExistsError` if the current node is missing, or
        :exc:`notestash.errors.AlreadyExistsError` if the new location is occupied.
        """
        raise NotImplementedError()

    def mkdir(self, folder: Folder) -> Folder:
        """Creates a folder, including missing parents, and returns it with its path resolved."""
        raise NotImplementedError()

    def get_all(self, subpath: str = '', ignore: AbstractSet[str] = IGNORE_FILES) -> Tuple[List[Note], List[Folder]]:
        """Lists the direct children of ``subpath`` within the root, excluding names in ``ignore``.

        Returns notes and folders separately. Bodies are not loaded.
        Raises :exc:`notestash.errors.EmptyWorkingDirectoryError` if no entries qualify.
        """
        raise NotImplementedError()

    def copy(self, note: Note) -> Note:
        """Duplicates a note under a new name derived from its title and returns the copy.

        Never overwrites an existing note.
        """
        raise NotImplementedError()

    def open(self, node: Node) -> None:
        """Opens the node in the configured editor.

        Raises :exc:`notestash.errors.EditorError` if the editor exits with a non-zero status.
        """
        raise NotImplementedError()

    def open_settings(self, settings: Optional[Settings] = None) -> None:
        """Opens the settings file in the editor named by ``settings``, or by the current settings."""
        raise NotImplementedError()

    def settings(self) -> Settings:
        """Reads the current settings from storage."""
        raise NotImplementedError()

    def write_settings(self, settings: Settings) -> None:
        """Persists the settings.

        Raises :exc:`notestash.errors.InvalidSettingsDataError` if they are not valid.
        """
        raise NotImplementedError()

    def move_notes(self, new_settings: Settings) -> Dict[str, str]:
        """Relocates every note from the current root to the root named by ``new_settings``.

        The new settings are not persisted; call :meth:`write_settings` afterward.
        Returns a dict mapping old locations to new ones.
        Raises :exc:`notestash.errors.EmptyWorkingDirectoryError` if there is nothing to move.
        """
        raise NotImplementedError()

    def fetch(self, cancel: Optional[Event] = None) -> List[Note]:
        """Downloads all remote notes into the local root. Safe to repeat."""
        raise NotImplementedError()

    def push(self, cancel: Optional[Event] = None) -> List[Note]:
        """Uploads all local notes to the remote store. Safe to repeat."""
        raise NotImplementedError()

    def migrate(self, cancel: Optional[Event] = None) -> RepoKind:
        """Moves a local-only store onto the remote backend and returns the newly active kind."""
        raise NotImplementedError()

    def close(self) -> None:
        """Release any resources associated with the repo. Should be called when you're done with an instance."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
