"""Defines classes for representing notes, folders, and requests to move them.

The most important classes are :class:`Note`, :class:`Folder`, and :class:`EditNode`.
"""

from __future__ import annotations
from dataclasses import dataclass
import os.path
from typing import Optional


@dataclass
class Node:
    """A named location in a note store, which may be a file or a folder."""

    title: str
    """The display name, which is also the filename.

    May only be empty for the virtual root of a store.
    """

    path: Optional[str] = None
    """Where the node lives.

    If set, it is treated as already resolved and used as-is. If not set, it is derived from the title and the
    root of whichever repo handles the node; see :meth:`resolve`.
    """

    def resolve(self, root: str) -> str:
        """Returns :attr:`path` if it is set, or otherwise the title joined onto the given root."""
        if self.path:
            return self.path
        return os.path.join(root, self.title)

    def as_json(self) -> dict:
        return {'title': self.title, 'path': self.path}


@dataclass
class Note:
    """A file with text content."""

    title: str
    path: Optional[str] = None
    body: str = ''
    """The raw text of the note."""

    def to_node(self) -> Node:
        return Node(self.title, self.path)

    def as_json(self) -> dict:
        """Returns a dict representing the instance, suitable for serializing as json."""
        return {'title': self.title, 'path': self.path, 'body': self.body}


@dataclass
class Folder:
    """A directory that may contain notes and other folders."""

    title: str
    path: Optional[str] = None

    def to_node(self) -> Node:
        return Node(self.title, self.path)

    def as_json(self) -> dict:
        return {'title': self.title, 'path': self.path}


@dataclass
class EditNode:
    """Represents a request to rename a note or folder.

    :attr:`current` must exist, :attr:`new` must not, and their titles must differ.
    """

    current: Node
    new: Node


@dataclass
class MoveCmd:
    """Represents a request to move a file or folder from one location to another."""

    path: str
    """Current location."""

    dest: str
    """The new path and filename."""
