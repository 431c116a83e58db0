"""The base directory a run operates on.

An :class:`Environment` is built once per invocation and handed to every
operation; nothing here is global. Layout of a base directory::

    <base>/
    ├── .tagweave/
    │   ├── raw/             # one <uuid>/ directory per project
    │   └── schema.toml      # schemas + default tag values
    └── ...                  # the woven view tree
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from tagweave.errors import WorkspaceError
from tagweave.schema import SchemaSet

if TYPE_CHECKING:
    from tagweave.config import TagweaveConfig

logger = logging.getLogger(__name__)

MANAGEMENT_DIR_NAME = ".tagweave"
RAW_STORAGE_DIR_NAME = "raw"
SCHEMA_FILE_NAME = "schema.toml"


@dataclass(frozen=True)
class Environment:
    """Paths and schemas shared, read-only, by all pipeline stages."""

    base_path: Path
    management_dir: Path
    raw_storage_dir: Path
    schemas: SchemaSet = field(default_factory=SchemaSet)

    @classmethod
    def for_base(cls, base_path: Path, schemas: SchemaSet | None = None) -> Environment:
        base_path = Path(base_path).resolve()
        management_dir = base_path / MANAGEMENT_DIR_NAME
        return cls(
            base_path=base_path,
            management_dir=management_dir,
            raw_storage_dir=management_dir / RAW_STORAGE_DIR_NAME,
            schemas=schemas if schemas is not None else SchemaSet(),
        )

    @classmethod
    def load(cls, base_path: Path) -> Environment:
        """Open an existing base directory and read its schema file."""
        if not cls.is_valid_base_dir(base_path):
            raise WorkspaceError(f"{base_path} is not a tagweave base directory")
        schemas = SchemaSet.load(Path(base_path) / MANAGEMENT_DIR_NAME / SCHEMA_FILE_NAME)
        return cls.for_base(base_path, schemas)

    @classmethod
    def discover(cls, config: TagweaveConfig, cwd: Path | None = None) -> Environment:
        """Use the nearest base directory above ``cwd``, else the configured default.

        A missing default directory is created and initialized; an existing
        one that is neither a base directory nor empty is refused.
        """
        cwd = Path(cwd) if cwd is not None else Path.cwd()
        for candidate in [cwd, *cwd.parents]:
            if cls.is_valid_base_dir(candidate):
                logger.debug("Using base directory %s", candidate)
                return cls.load(candidate)

        base_path = config.default_project_dir
        if not cls.is_valid_base_dir(base_path):
            if not base_path.exists():
                base_path.mkdir(parents=True)
            elif not is_empty_dir(base_path):
                raise WorkspaceError(f"Chosen base path {base_path} is not empty!")
            cls.create_management_dir(base_path)
        return cls.load(base_path)

    @staticmethod
    def is_valid_base_dir(path: Path) -> bool:
        management_dir = Path(path) / MANAGEMENT_DIR_NAME
        return (
            management_dir.is_dir()
            and (management_dir / RAW_STORAGE_DIR_NAME).is_dir()
            and (management_dir / SCHEMA_FILE_NAME).is_file()
        )

    @staticmethod
    def create_management_dir(path: Path, schemas: SchemaSet | None = None) -> None:
        """Lay out ``.tagweave/`` with empty raw storage and a schema file."""
        management_dir = Path(path) / MANAGEMENT_DIR_NAME
        management_dir.mkdir()
        (management_dir / RAW_STORAGE_DIR_NAME).mkdir()
        (schemas or SchemaSet()).dump(management_dir / SCHEMA_FILE_NAME)
        logger.info("Initialized tagweave base directory at %s", path)


def is_empty_dir(path: Path) -> bool:
    try:
        with os.scandir(path) as entries:
            return next(entries, None) is None
    except OSError:
        return False


def logical_cwd() -> Path:
    """The working directory as the shell sees it, symlinks not resolved."""
    pwd = os.environ.get("PWD")
    cwd = Path.cwd()
    if pwd:
        try:
            if os.path.samefile(pwd, cwd):
                return Path(pwd)
        except OSError:
            pass
    return cwd
