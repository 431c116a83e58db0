"""Tag combination expansion and placeholder resolution."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tagweave.project import Project
    from tagweave.schema import Schema

logger = logging.getLogger(__name__)

UNKNOWN_TAG_VALUE = "unknown"

# One concrete value per tag, used to fill one schema instance.
ResolvedEnvironment = dict[str, str]


def expand_tags(tags: Mapping[str, Sequence[str]]) -> list[ResolvedEnvironment]:
    """Every single-valued assignment drawn from a multi-valued tag map.

    The cartesian product runs over the tags in the map's order, so
    ``{"a": ["1", "2"], "b": ["x"]}`` gives ``{"a": "1", "b": "x"}`` then
    ``{"a": "2", "b": "x"}``. An empty map gives no assignment at all.
    """
    if not tags:
        return []
    names = list(tags)
    return [dict(zip(names, values)) for values in itertools.product(*(tags[n] for n in names))]


def resolve_tag(
    tag: str,
    resolved: Mapping[str, str],
    defaults: Mapping[str, str],
    project: Project,
    schema: Schema,
) -> str:
    """Value for a placeholder: the project's, else the default, else ``unknown``."""
    if tag in resolved:
        return resolved[tag]
    if tag in defaults:
        return defaults[tag]
    logger.warning(
        "Could not evaluate tag %r of schema %r for project %s (%s) with default tags %r",
        tag,
        str(schema),
        project.name,
        project.id,
        dict(defaults),
    )
    return UNKNOWN_TAG_VALUE
