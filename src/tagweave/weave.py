"""Tree reconciler: tear the view tree down and weave it again from scratch.

The pipeline has three stages, always run to completion one after another:

1. ``remove_symlinks`` deletes every managed symlink, i.e. every symlink
   whose canonical target lies inside raw storage. Foreign symlinks, files
   and directories stay.
2. ``remove_empty_directories`` prunes the directories stage 1 emptied,
   children before parents, and warns about anything left behind.
3. ``construct_view_tree`` links every project at every path its tags
   resolve to under every schema.

There is no incremental update and no locking: two runs against the same
base directory at once will trip over each other. The first ``OSError``
aborts the run and nothing already done is undone.
"""

from __future__ import annotations

import errno
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from tagweave.environment import Environment
from tagweave.errors import WeaveError
from tagweave.paths import next_free_path, view_paths
from tagweave.project import Project, list_projects

logger = logging.getLogger(__name__)

STAGE_REMOVE_SYMLINKS = "remove-symlinks"
STAGE_REMOVE_EMPTY_DIRECTORIES = "remove-empty-directories"
STAGE_CONSTRUCT_VIEW_TREE = "construct-view-tree"


@dataclass
class WeaveSummary:
    """What one full weave did."""

    removed_symlinks: int = 0
    removed_directories: int = 0
    created_symlinks: int = 0
    collisions: int = 0
    skipped: int = 0


def _top_level_entries(env: Environment) -> list[os.DirEntry]:
    with os.scandir(env.base_path) as entries:
        return [e for e in entries if Path(e.path) != env.management_dir]


def _is_real_dir(entry: os.DirEntry) -> bool:
    return entry.is_dir(follow_symlinks=False)


def _canonical(path: Path) -> Path:
    """Resolve every symlink in ``path``.

    A dangling link resolves as far as it can. A symlink loop is an
    ``OSError`` (ELOOP) on every Python version.
    """
    try:
        try:
            return path.resolve(strict=True)
        except FileNotFoundError:
            return path.resolve()
    except RuntimeError as e:
        raise OSError(errno.ELOOP, str(e), str(path)) from e


def _symlinked_ancestor(env: Environment, path: Path) -> Path | None:
    """First directory between the base directory and ``path`` that is a symlink."""
    current = env.base_path
    for part in path.parent.relative_to(env.base_path).parts:
        current = current / part
        if current.is_symlink():
            return current
    return None


# ── Stage 1 ──────────────────────────────────────────────────


def remove_symlinks(env: Environment) -> int:
    """Delete every managed symlink in the view tree. Returns how many."""
    raw_root = env.raw_storage_dir.resolve(strict=True)
    removed = 0

    pending = _top_level_entries(env)
    while pending:
        entry = pending.pop()
        if entry.is_symlink():
            target = _canonical(Path(entry.path))
            if target.is_relative_to(raw_root):
                os.unlink(entry.path)
                removed += 1
                logger.debug("Removed symlink %s -> %s", entry.path, target)
        elif _is_real_dir(entry):
            with os.scandir(entry.path) as children:
                pending.extend(children)

    logger.info("Removed %d managed symlinks", removed)
    return removed


# ── Stage 2 ──────────────────────────────────────────────────


def remove_empty_directories(env: Environment) -> int:
    """Delete directories left empty by :func:`remove_symlinks`. Returns how many.

    Non-empty directories and stray entries are reported, not touched.
    Non-directories directly in the base directory are left alone silently.
    """
    # Pre-order collection; walking it backwards visits children first.
    directories: list[Path] = []
    pending = [Path(e.path) for e in _top_level_entries(env) if _is_real_dir(e)]
    while pending:
        directory = pending.pop()
        directories.append(directory)
        with os.scandir(directory) as children:
            for child in children:
                if _is_real_dir(child):
                    pending.append(Path(child.path))
                else:
                    logger.warning(
                        "%s is not a directory or managed symlink and should not be here!",
                        child.path,
                    )

    removed = 0
    for directory in reversed(directories):
        with os.scandir(directory) as children:
            empty = next(children, None) is None
        if empty:
            directory.rmdir()
            removed += 1
        else:
            logger.warning(
                "Directory %s is not empty after removing all the symlinks!", directory
            )

    logger.info("Removed %d empty directories", removed)
    return removed


# ── Stage 3 ──────────────────────────────────────────────────


def construct_view_tree(
    env: Environment,
    projects: Iterable[Project] | None = None,
    summary: WeaveSummary | None = None,
) -> int:
    """Link every project into the view tree. Returns the number of symlinks.

    Projects are placed in enumeration order, which alone decides who gets
    the plain name when two view paths collide; later ones get ``.1``,
    ``.2``, ... appended. A view path that leads through a symlink, such as
    another project's link, is skipped with a warning.
    """
    if projects is None:
        projects = list_projects(env)
    summary = summary or WeaveSummary()

    created = 0
    for project in projects:
        target = project.raw_data_path(env)
        for view_path in view_paths(env.schemas, project, env.base_path, target):
            if not view_path.path.is_relative_to(env.base_path):
                summary.skipped += 1
                logger.warning(
                    "Not linking project %s (%s) at %s, which is outside %s",
                    project.name,
                    project.id,
                    view_path.path,
                    env.base_path,
                )
                continue
            # Never create anything through a link, e.g. inside another project.
            through = _symlinked_ancestor(env, view_path.path)
            if through is not None:
                summary.skipped += 1
                logger.warning(
                    "Not linking project %s (%s) at %s, as %s is a symlink",
                    project.name,
                    project.id,
                    view_path.path,
                    through,
                )
                continue

            view_path.path.parent.mkdir(parents=True, exist_ok=True)
            link = next_free_path(view_path.path)
            if link != view_path.path:
                summary.collisions += 1
                logger.warning(
                    "Could not link project %s (%s) to %s, as that target already exists. "
                    "Linked to %s instead.",
                    project.name,
                    project.id,
                    view_path.path,
                    link,
                )
            link.symlink_to(view_path.target, target_is_directory=True)
            created += 1

    summary.created_symlinks += created
    logger.info("Created %d symlinks", created)
    return created


# ── Pipeline ─────────────────────────────────────────────────


def weave(env: Environment) -> WeaveSummary:
    """Tear down and rebuild the whole view tree.

    Raises :class:`WeaveError` naming the stage where a filesystem
    operation failed; earlier stages have completed at that point.
    """
    summary = WeaveSummary()
    stage = STAGE_REMOVE_SYMLINKS
    try:
        summary.removed_symlinks = remove_symlinks(env)
        stage = STAGE_REMOVE_EMPTY_DIRECTORIES
        summary.removed_directories = remove_empty_directories(env)
        stage = STAGE_CONSTRUCT_VIEW_TREE
        construct_view_tree(env, summary=summary)
    except OSError as e:
        raise WeaveError(stage, e) from e
    return summary
