"""Helper functions for relocating notes and choosing names that don't collide.

Generally, you should use :meth:`notestash.repos.base.Repo.move_notes` or :meth:`notestash.repos.base.Repo.copy`
instead of using anything in this module directly.
"""

import logging
import os.path
import shutil
from typing import AbstractSet, Callable, Dict, Iterable, List

import shortuuid

from notestash.errors import MigrationError
from notestash.models import MoveCmd


logger = logging.getLogger(__name__)


def copy_name(title: str) -> str:
    """Returns the title to use for a copy of a note, e.g. ``draft-copy.md`` for ``draft.md``."""
    name, suffix = os.path.splitext(title)
    return f'{name}-copy{suffix}'


def find_available_name(dest: str, unavailable: AbstractSet[str] = frozenset(),
                        exists: Callable[[str], bool] = None) -> str:
    """Returns dest, or if it is taken, a variant of it with a short random string before the extension.

    A name is taken if it is in ``unavailable`` or ``exists`` returns True for it. For example, if
    ``/notes/foo.md`` exists, this might return ``/notes/foo-Xb3kP9aQ.md``.
    """
    exists = exists or os.path.lexists
    if not (dest in unavailable or exists(dest)):
        return dest
    parent, filename = os.path.split(dest)
    name, suffix = os.path.splitext(filename)
    while True:
        candidate = os.path.join(parent, f'{name}-{shortuuid.uuid()[:8]}{suffix}')
        if not (candidate in unavailable or exists(candidate)):
            return candidate


def edits_for_relocation(sources: Iterable[str], dest_root: str) -> List[MoveCmd]:
    """Builds the commands that move each source path into dest_root, keeping its filename.

    If a filename is already taken in dest_root, the command uses an available variant of it instead, so nothing
    at the destination is overwritten.
    """
    moves = []
    unavailable = set()
    for src in sources:
        dest = find_available_name(os.path.join(dest_root, os.path.basename(src)), unavailable)
        unavailable.add(dest)
        moves.append(MoveCmd(src, dest))
    return moves


def apply_moves(moves: List[MoveCmd]) -> Dict[str, str]:
    """Performs the moves in order and returns a dict mapping each source to its destination.

    If any move fails, the moves already made are reverted in reverse order, and a
    :exc:`notestash.errors.MigrationError` is raised. Anything that could not be moved back is listed in the
    exception's ``stranded`` attribute.
    """
    done = []
    for cmd in moves:
        try:
            shutil.move(cmd.path, cmd.dest)
        except OSError as ex:
            logger.warning('Moving %s to %s failed, reverting %d completed moves', cmd.path, cmd.dest, len(done))
            stranded = {}
            for prev in reversed(done):
                try:
                    shutil.move(prev.dest, prev.path)
                except OSError:
                    logger.exception('Could not move %s back to %s', prev.dest, prev.path)
                    stranded[prev.path] = prev.dest
            raise MigrationError(f'Could not move {cmd.path} to {cmd.dest}: {ex}', stranded, ex) from ex
        logger.debug('Moved %s to %s', cmd.path, cmd.dest)
        done.append(cmd)
    return {cmd.path: cmd.dest for cmd in moves}
