"""Configuration loading from environment variables and config.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

import tomlkit

from tagweave.errors import ConfigError

_CONFIG_FILENAME = "config.toml"
_DEFAULT_PROJECT_DIR_NAME = "tagweave_projects"


def default_config_path() -> Path:
    return Path.home() / ".config" / "tagweave" / _CONFIG_FILENAME


def _default_project_dir() -> Path:
    return Path.home() / _DEFAULT_PROJECT_DIR_NAME


@dataclass
class TagweaveConfig:
    """Top-level tagweave configuration."""

    default_project_dir: Path = field(default_factory=_default_project_dir)
    log_level: str = "INFO"
    editor: str | None = None


def write_default_config(path: Path) -> None:
    """Create ``path`` (and its parents) holding the default settings."""
    doc = tomlkit.document()
    doc.add(tomlkit.comment("Base directory used when not inside one."))
    doc.add("default_project_dir", str(_default_project_dir()))
    doc.add("log_level", "INFO")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomlkit.dumps(doc), encoding="utf-8")


def load_config(config_path: Path | None = None) -> TagweaveConfig:
    """Load configuration from environment variables and config.toml.

    Priority: environment variables > config.toml > defaults. Without an
    explicit path the user config file is used, and written with defaults
    if it does not exist yet.
    """
    if config_path is None:
        config_path = default_config_path()
        if not config_path.exists():
            write_default_config(config_path)

    file_data: dict = {}
    if config_path.exists():
        try:
            file_data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"{config_path}: invalid TOML: {e}") from e

    project_dir = os.getenv("TAGWEAVE_PROJECT_DIR", file_data.get("default_project_dir"))
    return TagweaveConfig(
        default_project_dir=(
            Path(os.path.expanduser(project_dir)) if project_dir else _default_project_dir()
        ),
        log_level=os.getenv("TAGWEAVE_LOG_LEVEL", file_data.get("log_level", "INFO")),
        editor=os.getenv("EDITOR", file_data.get("editor")) or None,
    )
