"""Defines the exceptions raised by repos and the settings layer.

Expected conditions (a missing note, an occupied name, bad settings) are reported with a subclass of
:class:`StoreError`. Errors from the operating system, such as permission problems or a full disk, are not
wrapped; they propagate as the usual :exc:`OSError` subclasses.
"""

from typing import Dict, List


class StoreError(Exception):
    """Base class for expected failures of note storage operations."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotExistsError(StoreError):
    """Raised when the file, folder, or document an operation targets does not exist."""
    def __init__(self, name: str, kind: str):
        super().__init__(f'{kind.capitalize()} does not exist: {name}')
        self.name = name
        self.kind = kind


class AlreadyExistsError(StoreError):
    """Raised when creating or renaming would replace something that already exists."""
    def __init__(self, name: str, kind: str):
        super().__init__(f'A {kind} with the name `{name}` already exists')
        self.name = name
        self.kind = kind


class SameTitlesError(StoreError):
    """Raised when a rename is requested with identical current and new titles."""
    def __init__(self):
        super().__init__('Current and new name are the same')


class InvalidSettingsDataError(StoreError):
    """Raised when settings fail validation (see :meth:`notestash.conf.Settings.is_valid`)."""
    def __init__(self, message: str = 'Invalid settings data: editor and local_path are required'):
        super().__init__(message)


class EmptyWorkingDirectoryError(StoreError):
    """Raised when a directory or collection has no entries to list or move."""
    def __init__(self, path: str = None):
        super().__init__(f'Empty working directory: {path}' if path else 'Empty working directory')
        self.path = path


class UnsupportedOperationError(StoreError):
    """Raised when a repo does not implement an operation of the contract at all."""


class EditorError(StoreError):
    """Raised when the external editor exits with a non-zero status."""
    def __init__(self, editor: str, status: int):
        super().__init__(f'Editor `{editor}` exited with status {status}')
        self.editor = editor
        self.status = status


class MigrationError(StoreError):
    """Raised when relocating notes fails partway through.

    Moves that had already completed were reverted where possible; :attr:`stranded` maps any paths that could
    not be moved back to where they ended up.
    """
    def __init__(self, message: str, stranded: Dict[str, str] = None, cause: BaseException = None):
        super().__init__(message)
        self.stranded = stranded or {}
        self.cause = cause


class TransientError(StoreError):
    """Raised by a :class:`notestash.repos.remote.DocumentStore` for failures that are worth retrying."""


class SyncError(StoreError):
    """Raised when a remote call keeps failing after all retries."""
    def __init__(self, message: str, cause: BaseException = None):
        super().__init__(message)
        self.cause = cause


class SyncCancelledError(StoreError):
    """Raised when a fetch, push, or migration is cancelled by the caller."""


class SyncConflictError(StoreError):
    """Raised when remote documents differ from local notes that would have to be overwritten to fetch them.

    The local files are left as they are. :attr:`titles` lists the conflicting notes.
    """
    def __init__(self, titles: List[str]):
        super().__init__(f'Local notes differ from the remote copies: {", ".join(titles)}')
        self.titles = titles
