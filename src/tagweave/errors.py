"""Exception types raised by tagweave."""

from __future__ import annotations


class TagweaveError(Exception):
    """Base class for every error tagweave reports to the user."""


class ConfigError(TagweaveError):
    """config.toml is unreadable."""


class WorkspaceError(TagweaveError):
    """The base directory cannot be used or bootstrapped."""


class SchemaFileError(TagweaveError):
    """schema.toml is unreadable or has the wrong shape."""


class ProjectError(TagweaveError):
    """A raw-storage entry is not a well-formed project."""


class WeaveError(TagweaveError):
    """A filesystem failure aborted the weave pipeline.

    ``stage`` names the pipeline stage that failed; stages before it ran to
    completion and nothing is rolled back.
    """

    def __init__(self, stage: str, cause: OSError) -> None:
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause
