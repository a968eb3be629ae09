"""Configuration: the persisted :class:`Settings`, and :class:`StoreConf` for choosing a backend.

Settings are stored as JSON in a file named :data:`SETTINGS_NAME` inside the store's root directory. Decoding is
lenient: any field that is missing or unusable falls back to its default instead of failing the whole load.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace, asdict
from enum import Enum
import json
import os
import os.path
from typing import Callable, FrozenSet, Optional, Union

from notestash.editor import run_editor


DEFAULT_APP_NAME = 'notestash'
DEFAULT_EDITOR = 'vi'

SETTINGS_NAME = '.settings.json'
"""Filename of the settings file within the store root."""

IGNORE_FILES: FrozenSet[str] = frozenset({SETTINGS_NAME, '.DS_Store'})
"""Names that are never listed as notes."""

_PERSISTED_KEYS = ('name', 'editor', 'local_path', 'remote_project_id', 'remote_account_key', 'remote_collection')


def default_local_path() -> str:
    return os.path.join(os.path.expanduser('~'), DEFAULT_APP_NAME)


class RepoKind(Enum):
    LOCAL = 'LOCAL'
    REMOTE = 'REMOTE'


@dataclass
class Settings:
    name: str = DEFAULT_APP_NAME
    """Identifies the store; also used as the remote collection name if :attr:`remote_collection` is empty."""

    editor: str = DEFAULT_EDITOR
    """Command used to open notes, e.g. ``vi`` or ``code -w``."""

    local_path: str = ''
    """Directory containing the notes of the local backend."""

    remote_project_id: str = ''
    """Remote document store project. The remote backend is enabled only when this is set."""

    remote_account_key: str = ''
    remote_collection: str = ''

    id: Optional[str] = None
    """Optional identifier override for operations scoped to the settings themselves. Never persisted."""

    def is_valid(self) -> bool:
        return bool(self.editor) and bool(self.local_path)

    def is_remote_enabled(self) -> bool:
        return bool(self.remote_project_id)

    def remote_path(self) -> str:
        """Returns the name of the remote collection that holds the notes."""
        return self.remote_collection or self.name or DEFAULT_APP_NAME

    def as_json(self) -> dict:
        """Returns a dict of the persisted fields, suitable for serializing as json."""
        d = asdict(self)
        return {k: d[k] for k in _PERSISTED_KEYS}

    def to_bytes(self) -> bytes:
        return json.dumps(self.as_json(), indent=2).encode('utf-8')


def init_settings(local_path: str) -> Settings:
    """Returns the default settings for a store whose notes live in ``local_path``."""
    return Settings(name=DEFAULT_APP_NAME, editor=DEFAULT_EDITOR, local_path=local_path)


def decode_settings(raw: Union[str, bytes], local_path: str = None) -> Settings:
    """Parses settings from JSON, substituting defaults for anything absent or invalid.

    A field is invalid if it is not a non-empty string. If ``raw`` is not a JSON object at all, the result is
    entirely defaults. ``local_path`` is the default for the ``local_path`` field; if omitted,
    :func:`default_local_path` is used. Unknown keys are ignored.
    """
    defaults = init_settings(local_path or default_local_path())
    try:
        data = json.loads(raw)
    except ValueError:
        return defaults
    if not isinstance(data, dict):
        return defaults

    values = {}
    for key in _PERSISTED_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            values[key] = value
    return replace(defaults, **values)


def is_updated(old: Settings, new: Settings) -> bool:
    """True if the editor changed. Changing the editor never requires moving any files."""
    return old.editor != new.editor


def is_path_updated(old: Settings, new: Settings, kind: Union[RepoKind, str]) -> bool:
    """True if the location of the notes for the given backend kind changed.

    Unknown kinds always return False, so that no migration is attempted for them.
    """
    try:
        kind = RepoKind(kind.value if isinstance(kind, RepoKind) else kind)
    except ValueError:
        return False
    if kind == RepoKind.LOCAL:
        return old.local_path != new.local_path
    return old.remote_path() != new.remote_path()


@dataclass
class StoreConf:
    """Configures where the store lives and which backend serves it."""

    root_path: str = field(default_factory=default_local_path)
    """Directory containing the settings file. Notes live here too unless the settings name another local_path."""

    kind: Optional[RepoKind] = None
    """Which backend to use. If None, the remote backend is used when the saved settings enable it and a
    :attr:`document_store` is given, and the local backend otherwise.
    """

    document_store: object = None
    """Transport for the remote backend; an instance of :class:`notestash.repos.remote.DocumentStore`.

    Required when :attr:`kind` is REMOTE.
    """

    run_editor: Callable[[str, str], int] = run_editor
    """Called with the editor command and a path; returns the editor's exit status."""

    @classmethod
    def for_user(cls, kind: Optional[RepoKind] = None, document_store=None) -> StoreConf:
        """Uses ``$NOTESTASH_PATH`` as the root if set, or else ``~/notestash``."""
        root = os.environ.get('NOTESTASH_PATH') or default_local_path()
        return cls(root_path=root, kind=kind, document_store=document_store)

    def standardize(self) -> StoreConf:
        return replace(self, root_path=os.path.abspath(os.path.expanduser(self.root_path)))

    def instantiate(self):
        """Builds the repo for :attr:`kind`. Settings are loaded from disk each time."""
        from notestash.repos.local import LocalRepo
        conf = self.standardize()
        local = LocalRepo(conf.root_path, run_editor=conf.run_editor)
        kind = conf.kind
        if kind is None:
            remote = conf.document_store is not None and local.config.is_remote_enabled()
            kind = RepoKind.REMOTE if remote else RepoKind.LOCAL
        if kind == RepoKind.LOCAL:
            return local
        if conf.document_store is None:
            raise ValueError('`document_store` must be set in StoreConf to use the remote backend.')
        from notestash.repos.remote import RemoteRepo
        return RemoteRepo(local, conf.document_store)
