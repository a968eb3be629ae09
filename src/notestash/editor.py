"""Default way of handing a path to the user's text editor."""

import shlex
import subprocess


def run_editor(editor: str, path: str) -> int:
    """Runs ``editor`` on ``path``, waits for it to exit, and returns its exit status.

    ``editor`` may include arguments, e.g. ``code -w``.
    """
    return subprocess.call(shlex.split(editor) + [path])
