"""Shared fixtures: a fresh base directory and a helper to store projects in it."""

from __future__ import annotations

import os
import uuid
from pathlib import Path

import pytest

from tagweave.environment import Environment
from tagweave.project import TAGS_FILE_NAME, Project, format_tags
from tagweave.schema import Schema, SchemaSet


def make_env(base: Path, schemas: list[str], defaults: dict[str, str] | None = None) -> Environment:
    schema_set = SchemaSet(
        schemas=tuple(Schema.parse(s) for s in schemas),
        default_tag_values=defaults or {},
    )
    base.mkdir(parents=True, exist_ok=True)
    Environment.create_management_dir(base, schema_set)
    return Environment.for_base(base, schema_set)


def add_project(env: Environment, name: str, tags: dict[str, list[str]]) -> Project:
    project = Project(id=uuid.uuid4(), name=name, tags=tags)
    project.raw_data_path(env).mkdir(parents=True)
    (project.storage_dir(env) / TAGS_FILE_NAME).write_text(format_tags(tags), encoding="utf-8")
    return project


def snapshot(base: Path) -> dict[str, str]:
    """Relative path -> 'dir' | 'file' | 'link:<target>' for the whole tree."""
    result = {}
    for root, dirs, files in os.walk(base):
        for name in dirs + files:
            path = Path(root) / name
            rel = str(path.relative_to(base))
            if path.is_symlink():
                result[rel] = f"link:{os.readlink(path)}"
            elif path.is_dir():
                result[rel] = "dir"
            else:
                result[rel] = "file"
    return result


@pytest.fixture
def base(tmp_path: Path) -> Path:
    return tmp_path / "projects"
