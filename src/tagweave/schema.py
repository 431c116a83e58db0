"""Schema templates: the path layouts the view tree is woven from.

A schema is a ``/``-separated template such as ``type/{status}``. Plain
segments are copied into the view path verbatim; segments wrapped in braces
are tag placeholders and get replaced by the project's value for that tag.

schema.toml layout::

    schemas = ["type/{status}", "by-year/{year}"]

    [default_tag_values]
    status = "open"
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomlkit

from tagweave.errors import SchemaFileError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiteralSegment:
    """A schema segment used verbatim."""

    text: str


@dataclass(frozen=True)
class TagPlaceholder:
    """A schema segment filled with a tag value."""

    tag: str


SchemaComponent = Union[LiteralSegment, TagPlaceholder]


@dataclass(frozen=True)
class Schema:
    """An ordered sequence of literal and placeholder segments."""

    components: tuple[SchemaComponent, ...]

    @classmethod
    def parse(cls, text: str) -> Schema:
        """Parse a schema string.

        One leading and one trailing ``/`` are dropped. Empty segments and
        repeated placeholders are kept as they are, and a segment with
        unbalanced braces is just a literal.
        """
        if text.startswith("/"):
            text = text[1:]
        if text.endswith("/"):
            text = text[:-1]

        components: list[SchemaComponent] = []
        for segment in text.split("/"):
            if len(segment) > 2 and segment.startswith("{") and segment.endswith("}"):
                components.append(TagPlaceholder(segment[1:-1]))
            else:
                components.append(LiteralSegment(segment))
        return cls(tuple(components))

    def serialize(self) -> str:
        if not self.components:
            raise ValueError("empty schema has no valid string representation")
        return "/".join(
            f"{{{c.tag}}}" if isinstance(c, TagPlaceholder) else c.text for c in self.components
        )

    def __str__(self) -> str:
        return self.serialize()

    @property
    def tags(self) -> list[str]:
        """Placeholder names in template order."""
        return [c.tag for c in self.components if isinstance(c, TagPlaceholder)]

    def match_path(self, path: Path, base_path: Path) -> dict[str, str] | None:
        """Read tag values off a directory laid out by this schema.

        Returns None when ``path`` is outside ``base_path`` or a literal
        segment disagrees with the path. Only the leading segments both share
        are compared, so a directory part way down the layout still matches.
        """
        try:
            relative = Path(path).resolve().relative_to(Path(base_path).resolve())
        except ValueError:
            return None

        tags: dict[str, str] = {}
        for part, component in zip(relative.parts, self.components):
            if isinstance(component, TagPlaceholder):
                tags[component.tag] = part
            elif component.text != part:
                return None
        return tags


@dataclass(frozen=True)
class SchemaSet:
    """All schemas of a base directory plus their default tag values."""

    schemas: tuple[Schema, ...] = ()
    default_tag_values: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_toml(cls, text: str) -> SchemaSet:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise SchemaFileError(f"invalid TOML: {e}") from e

        raw_schemas = data.get("schemas", [])
        if not isinstance(raw_schemas, list) or not all(isinstance(s, str) for s in raw_schemas):
            raise SchemaFileError("'schemas' must be a list of strings")

        defaults = data.get("default_tag_values", {})
        if not isinstance(defaults, dict) or not all(isinstance(v, str) for v in defaults.values()):
            raise SchemaFileError("'default_tag_values' must map tag names to strings")

        return cls(
            schemas=tuple(Schema.parse(s) for s in raw_schemas),
            default_tag_values=dict(defaults),
        )

    @classmethod
    def load(cls, path: Path) -> SchemaSet:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SchemaFileError(f"cannot read {path}: {e}") from e
        try:
            schema_set = cls.from_toml(text)
        except SchemaFileError as e:
            raise SchemaFileError(f"{path}: {e}") from e
        logger.debug("Loaded %d schemas from %s", len(schema_set.schemas), path)
        return schema_set

    def to_toml(self) -> str:
        doc = tomlkit.document()
        doc.add(tomlkit.comment("Each schema is a /-separated path; {name} segments are filled"))
        doc.add(tomlkit.comment("with the project's value for the tag 'name'."))
        schemas = tomlkit.array()
        for schema in self.schemas:
            schemas.append(schema.serialize())
        doc.add("schemas", schemas)
        doc.add(tomlkit.nl())
        doc.add(tomlkit.comment("Values used when a project lacks a tag a schema refers to."))
        defaults = tomlkit.table()
        for tag, value in self.default_tag_values.items():
            defaults.add(tag, value)
        doc.add("default_tag_values", defaults)
        return tomlkit.dumps(doc)

    def dump(self, path: Path) -> None:
        path.write_text(self.to_toml(), encoding="utf-8")
