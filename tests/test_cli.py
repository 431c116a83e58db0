"""Tests for the command line entry point."""

from __future__ import annotations

from pathlib import Path

import pytest

from tagweave.__main__ import main
from tagweave.environment import Environment
from tagweave.project import list_projects


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("TAGWEAVE_PROJECT_DIR", str(tmp_path / "default"))
    for key in ["TAGWEAVE_LOG_LEVEL", "EDITOR"]:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def root(tmp_path: Path, monkeypatch) -> Path:
    root = tmp_path / "root"
    assert main(["init", str(root)]) == 0
    (root / ".tagweave" / "schema.toml").write_text(
        'schemas = ["{type}"]\n\n[default_tag_values]\ntype = "misc"\n'
    )
    monkeypatch.chdir(root)
    monkeypatch.setenv("PWD", str(root))
    return root


class TestInit:
    def test_init_dir(self, tmp_path: Path):
        assert main(["init", str(tmp_path / "fresh")]) == 0
        assert Environment.is_valid_base_dir(tmp_path / "fresh")

    def test_init_refuses_non_empty(self, tmp_path: Path, capsys):
        target = tmp_path / "busy"
        target.mkdir()
        (target / "file").write_text("x")
        assert main(["init", str(target)]) == 1
        assert "Failed to initialize" in capsys.readouterr().err


class TestNew:
    def test_new_without_editor(self, root: Path, capsys):
        assert main(["new", "demo"]) == 0
        assert "edit" in capsys.readouterr().err
        # no tags yet, so nothing is linked
        assert sorted(p.name for p in root.iterdir()) == [".tagweave"]

    def test_new_with_editor(self, root: Path, tmp_path: Path, monkeypatch):
        script = tmp_path / "fake-editor"
        script.write_text('#!/bin/sh\necho "type:app" > "$1"\n')
        script.chmod(0o755)
        monkeypatch.setenv("EDITOR", str(script))

        assert main(["new", "demo"]) == 0
        assert (root / "app" / "demo").is_symlink()


class TestMove:
    def test_move_directory(self, root: Path, tmp_path: Path):
        source = tmp_path / "oldproj"
        source.mkdir()
        (source / "data.txt").write_text("payload")

        assert main(["move", str(source)]) == 0
        assert not source.exists()
        env = Environment.load(root)
        (project,) = list(list_projects(env))
        assert project.name == "oldproj"
        assert (project.raw_data_path(env) / "data.txt").read_text() == "payload"

    def test_move_missing_source(self, root: Path, tmp_path: Path, capsys):
        assert main(["move", str(tmp_path / "nothing")]) == 1
        assert "Failed to move project" in capsys.readouterr().err


class TestConfigFile:
    def test_malformed_config_fails_cleanly(self, root: Path, tmp_path: Path, capsys):
        bad = tmp_path / "bad.toml"
        bad.write_text("log_level = [\n")
        assert main(["--config", str(bad), "weave"]) == 1
        assert "Failed to load configuration" in capsys.readouterr().err


class TestWeaveAndTags:
    def test_weave(self, root: Path):
        env = Environment.load(root)
        main(["new", "demo"])
        (project,) = list(list_projects(env))
        project.tags_file_path(env).write_text("type:tool\n")
        assert main(["weave"]) == 0
        assert (root / "tool" / "demo").is_symlink()

    def test_tags_outside_project(self, root: Path, capsys):
        assert main(["tags"]) == 1
        assert "Not in a project directory" in capsys.readouterr().err

    def test_tags_inside_project(self, root: Path, tmp_path: Path, monkeypatch):
        env = Environment.load(root)
        main(["new", "demo"])
        (project,) = list(list_projects(env))
        project.tags_file_path(env).write_text("type:tool\n")
        main(["weave"])

        script = tmp_path / "fake-editor"
        script.write_text('#!/bin/sh\necho "type:lib" > "$1"\n')
        script.chmod(0o755)
        monkeypatch.setenv("EDITOR", str(script))
        inside = root / "tool" / "demo"
        monkeypatch.chdir(inside)
        monkeypatch.setenv("PWD", str(inside))

        assert main(["tags"]) == 0
        assert (root / "lib" / "demo").is_symlink()
        assert not (root / "tool").exists()
