"""Entry point: tagweave <command>

- weave:        Re-create the view tree
- init [DIR]:   Initialize a new base directory (default: current directory)
- new NAME:     Create a new project and edit its tags
- move SOURCE:  Move an existing directory in as a new project
- tags:         Edit the tags of the project the shell is currently in
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from tagweave.config import TagweaveConfig, load_config
from tagweave.editor import open_in_editor
from tagweave.environment import Environment, is_empty_dir, logical_cwd
from tagweave.errors import ProjectError, TagweaveError, WorkspaceError
from tagweave.project import Project
from tagweave.weave import weave

logger = logging.getLogger("tagweave")

DESCRIPTION = """\
The weaving project manager.

Every project lives under .tagweave/raw/ of a base directory and carries a set
of tags. The view tree next to it is generated from the schemas in
.tagweave/schema.toml: each schema is a /-separated path whose {tag} segments
are replaced by the project's tag values, ending in a symlink to the project.
"""


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(levelname)s] %(name)s: %(message)s",
    )


def _weave(env: Environment) -> None:
    summary = weave(env)
    logger.info(
        "Woven: %d symlinks (%d renamed on collision, %d skipped), "
        "%d stale symlinks and %d directories removed",
        summary.created_symlinks,
        summary.collisions,
        summary.skipped,
        summary.removed_symlinks,
        summary.removed_directories,
    )


def _cmd_weave(args: argparse.Namespace, config: TagweaveConfig) -> None:
    _weave(Environment.discover(config, logical_cwd()))


def _cmd_init(args: argparse.Namespace, config: TagweaveConfig) -> None:
    path = Path(args.dir) if args.dir else Path.cwd()
    if not path.exists():
        path.mkdir(parents=True)
    elif not is_empty_dir(path):
        raise WorkspaceError(f"Chosen base path {path} is not empty!")
    Environment.create_management_dir(path)


def _edit_tags(env: Environment, project: Project, config: TagweaveConfig) -> bool:
    if not open_in_editor(project.tags_file_path(env), config.editor):
        return False
    project.reload_tags(env)
    return True


def _cmd_new(args: argparse.Namespace, config: TagweaveConfig) -> None:
    cwd = logical_cwd()
    env = Environment.discover(config, cwd)
    project = Project.create(env, args.name, cwd=cwd)
    _edit_tags(env, project, config)
    _weave(env)


def _cmd_move(args: argparse.Namespace, config: TagweaveConfig) -> None:
    source = Path(args.source)
    if not source.is_dir():
        raise ProjectError(f"{source} does not exist or is not a directory")
    name = source.absolute().name
    if not name:
        raise ProjectError("Source directory has no name")

    cwd = logical_cwd()
    env = Environment.discover(config, cwd)
    project = Project.create(env, name, cwd=cwd, source=source)
    _edit_tags(env, project, config)
    _weave(env)


def _cmd_tags(args: argparse.Namespace, config: TagweaveConfig) -> None:
    cwd = logical_cwd()
    env = Environment.discover(config, cwd)
    project = Project.current(env, cwd)
    if project is None:
        raise ProjectError("Not in a project directory (or subdirectory thereof)!")
    if _edit_tags(env, project, config):
        _weave(env)


COMMANDS = {
    "weave": (_cmd_weave, "weave"),
    "init": (_cmd_init, "initialize"),
    "new": (_cmd_new, "create project"),
    "move": (_cmd_move, "move project"),
    "tags": (_cmd_tags, "edit tags"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tagweave",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("weave", help="Re-create the view tree")

    init = sub.add_parser("init", help="Initialize a new base directory")
    init.add_argument("dir", nargs="?", help="Directory to use instead of the current directory")

    new = sub.add_parser("new", help="Create a new project")
    new.add_argument("name", help="Name of the project to be created")

    move = sub.add_parser("move", help="Move an existing directory into the base directory")
    move.add_argument("source", help="Path to the project to be moved, must be a directory")

    sub.add_parser("tags", help="Edit tags of the current project")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
    except (TagweaveError, OSError) as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        return 1
    _setup_logging(config.log_level)

    handler, action = COMMANDS[args.command]
    try:
        handler(args, config)
    except (TagweaveError, OSError) as e:
        print(f"Failed to {action}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
