"""Handing files to the user's editor."""

from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def open_in_editor(path: Path, editor: str | None) -> bool:
    """Open ``path`` in ``editor`` and wait for it to exit.

    Returns False, after telling the user how to proceed by hand, when no
    editor is configured.
    """
    if not editor:
        print("EDITOR environment variable not set, can't open project tags file.", file=sys.stderr)
        print(f"Please edit {path} manually and then run tagweave weave.", file=sys.stderr)
        return False

    cmd = [*shlex.split(editor), str(path)]
    logger.debug("Running editor: %s", cmd)
    result = subprocess.run(cmd)
    if result.returncode != 0:
        logger.warning("Editor %r exited with status %d", editor, result.returncode)
    return True
