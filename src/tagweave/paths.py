"""Turning schemas and resolved tags into concrete view paths."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from tagweave.expand import expand_tags, resolve_tag
from tagweave.project import Project
from tagweave.schema import Schema, SchemaSet, TagPlaceholder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewPath:
    """Where a symlink goes (``path``) and what it points at (``target``)."""

    path: Path
    target: Path


def build_view_path(
    schema: Schema,
    resolved: Mapping[str, str],
    defaults: Mapping[str, str],
    project: Project,
    base_path: Path,
) -> Path:
    # a placeholder repeated within one schema is resolved, and reported, once
    values: dict[str, str] = {}
    path = base_path
    for component in schema.components:
        if isinstance(component, TagPlaceholder):
            if component.tag not in values:
                values[component.tag] = resolve_tag(component.tag, resolved, defaults, project, schema)
            path = path / values[component.tag]
        else:
            path = path / component.text
    return path / project.name


def view_paths(schema_set: SchemaSet, project: Project, base_path: Path, target: Path) -> list[ViewPath]:
    """All view paths of one project, schema by schema.

    A project without tags cannot be placed anywhere and gets none.
    """
    environments = expand_tags(project.tags)
    if not environments:
        logger.warning(
            "The project %s (%s) has no tags and could not be linked anywhere.",
            project.name,
            project.id,
        )
        return []

    result = []
    for schema in schema_set.schemas:
        for resolved in environments:
            path = build_view_path(schema, resolved, schema_set.default_tag_values, project, base_path)
            result.append(ViewPath(path=path, target=target))
    return result


def next_free_path(path: Path) -> Path:
    """First of ``path``, ``path.1``, ``path.2``, ... that does not exist yet.

    Dangling symlinks count as existing.
    """
    candidate = path
    counter = 1
    while candidate.exists() or candidate.is_symlink():
        candidate = path.with_name(f"{path.name}.{counter}")
        counter += 1
    return candidate
