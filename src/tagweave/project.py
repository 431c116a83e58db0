"""Project store: UUID-addressed project directories under raw storage.

Layout of one project::

    .tagweave/raw/<uuid>/
    ├── tagweave.tags        # tag:value[:value...] per line
    └── <project name>/      # the project's actual content

The directory name is the project's identity; the single data directory's
name is the project's name and becomes the last segment of every view path.
"""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from tagweave.errors import ProjectError

if TYPE_CHECKING:
    from tagweave.environment import Environment

logger = logging.getLogger(__name__)

TAGS_FILE_NAME = "tagweave.tags"


@dataclass
class Project:
    """A project as read from raw storage. Treated as read-only by the weaver."""

    id: uuid.UUID
    name: str
    tags: dict[str, list[str]] = field(default_factory=dict)

    # ── Paths ────────────────────────────────────────────────

    def storage_dir(self, env: Environment) -> Path:
        return env.raw_storage_dir / str(self.id)

    def raw_data_path(self, env: Environment) -> Path:
        """The directory every view symlink of this project points at."""
        return self.storage_dir(env) / self.name

    def tags_file_path(self, env: Environment) -> Path:
        path = self.storage_dir(env) / TAGS_FILE_NAME
        if not path.is_file():
            raise ProjectError(
                f"Malformed project directory, no tag description file in {path.parent}"
            )
        return path

    def reload_tags(self, env: Environment) -> None:
        self.tags = read_tags(self.tags_file_path(env))

    # ── Loading ──────────────────────────────────────────────

    @classmethod
    def open(cls, path: Path) -> Project:
        """Load the project stored in ``path`` (a ``raw/<uuid>`` directory)."""
        try:
            project_id = uuid.UUID(path.name)
        except ValueError:
            raise ProjectError(f"{path.name!r} is not a project UUID") from None

        tags_file = path / TAGS_FILE_NAME
        if not tags_file.is_file():
            raise ProjectError(f"No {TAGS_FILE_NAME} file in project directory {path}")
        tags = read_tags(tags_file)

        contents = [e for e in path.iterdir() if e.name != TAGS_FILE_NAME]
        if len(contents) != 1:
            raise ProjectError(
                f"Expected exactly one data directory in {path}, found {len(contents)} entries"
            )
        data_dir = contents[0]
        if not data_dir.is_dir():
            raise ProjectError(f"Project data {data_dir} is not a directory")
        return cls(id=project_id, name=data_dir.name, tags=tags)

    @classmethod
    def create(
        cls,
        env: Environment,
        name: str,
        cwd: Path | None = None,
        source: Path | None = None,
    ) -> Project:
        """Allocate a new project in raw storage.

        The data directory is created empty, or ``source`` is moved into its
        place. When ``cwd`` sits inside the view tree the tags file is seeded
        with the tag values read off the first schema that matches it.
        """
        if not name or name in (".", "..") or "/" in name or os.sep in name:
            raise ProjectError(f"Invalid project name: {name!r}")

        project = cls(id=uuid.uuid4(), name=name)
        storage_dir = project.storage_dir(env)
        storage_dir.mkdir()

        data_dir = project.raw_data_path(env)
        try:
            if source is None:
                data_dir.mkdir()
            else:
                shutil.move(str(source), str(data_dir))
                logger.info("Moved %s to %s", source, data_dir)
        except OSError:
            storage_dir.rmdir()
            raise

        seed: dict[str, list[str]] = {}
        if cwd is not None:
            for schema in env.schemas.schemas:
                matched = schema.match_path(cwd, env.base_path)
                if matched is not None:
                    seed = {tag: [value] for tag, value in matched.items()}
                    break
        write_tags(storage_dir / TAGS_FILE_NAME, seed)
        project.tags = seed
        logger.info("Created project %s (%s)", name, project.id)
        return project

    @classmethod
    def current(cls, env: Environment, cwd: Path) -> Project | None:
        """Find the project whose view symlink ``cwd`` was entered through.

        ``cwd`` should be the logical working directory with symlinks
        preserved. The outermost managed symlink among its ancestors wins.
        """
        raw_root = env.raw_storage_dir.resolve(strict=True)
        found: Path | None = None
        for candidate in [cwd, *cwd.parents]:
            if candidate.is_symlink():
                target = candidate.resolve()
                if target.is_relative_to(raw_root):
                    found = target
        if found is None:
            return None
        return cls.open(found.parent)


def list_projects(env: Environment) -> Iterator[Project]:
    """Yield every readable project in directory-listing order.

    Entries that are not well-formed projects are skipped with a warning.
    """
    with os.scandir(env.raw_storage_dir) as entries:
        paths = [Path(entry.path) for entry in entries]
    for path in paths:
        try:
            yield Project.open(path)
        except (ProjectError, OSError) as e:
            logger.warning("Ignoring project at %s: %s", path, e)


# ── Tags file codec ──────────────────────────────────────────


def parse_tags(text: str) -> dict[str, list[str]]:
    """Parse ``tag:value[:value...]`` lines.

    Lines with an empty tag name or without any value are ignored. A tag
    may span several lines; its values accumulate without duplicates.
    """
    tags: dict[str, list[str]] = {}
    for line in text.splitlines():
        tag, *values = (part.strip() for part in line.split(":"))
        if not tag:
            continue
        values = [v for v in values if v]
        if not values:
            continue
        existing = tags.setdefault(tag, [])
        for value in values:
            if value not in existing:
                existing.append(value)
    return tags


def format_tags(tags: dict[str, list[str]]) -> str:
    return "".join(f"{tag}:{':'.join(values)}\n" for tag, values in tags.items() if values)


def read_tags(path: Path) -> dict[str, list[str]]:
    return parse_tags(path.read_text(encoding="utf-8"))


def write_tags(path: Path, tags: dict[str, list[str]]) -> None:
    path.write_text(format_tags(tags), encoding="utf-8")
