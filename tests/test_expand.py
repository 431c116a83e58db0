"""Tests for tag combination expansion and placeholder resolution."""

from __future__ import annotations

import logging
import uuid

import pytest

from tagweave.expand import UNKNOWN_TAG_VALUE, expand_tags, resolve_tag
from tagweave.project import Project
from tagweave.schema import Schema


@pytest.fixture
def project() -> Project:
    return Project(id=uuid.uuid4(), name="proj1", tags={"type": ["app"]})


class TestExpandTags:
    def test_cartesian_product(self):
        envs = expand_tags({"a": ["1", "2"], "b": ["x"]})
        assert envs == [{"a": "1", "b": "x"}, {"a": "2", "b": "x"}]

    def test_full_product_size(self):
        envs = expand_tags({"a": ["1", "2", "3"], "b": ["x", "y"], "c": ["z"]})
        assert len(envs) == 6
        assert len({tuple(sorted(e.items())) for e in envs}) == 6

    def test_follows_tag_order(self):
        envs = expand_tags({"b": ["x", "y"], "a": ["1"]})
        assert envs == [{"b": "x", "a": "1"}, {"b": "y", "a": "1"}]

    def test_no_tags(self):
        assert expand_tags({}) == []

    def test_tag_without_values(self):
        assert expand_tags({"a": ["1"], "b": []}) == []


class TestResolveTag:
    def test_project_value_first(self, project: Project, caplog):
        schema = Schema.parse("{type}")
        with caplog.at_level(logging.WARNING):
            value = resolve_tag("type", {"type": "app"}, {"type": "lib"}, project, schema)
        assert value == "app"
        assert not caplog.records

    def test_default_is_silent(self, project: Project, caplog):
        schema = Schema.parse("{status}")
        with caplog.at_level(logging.WARNING):
            value = resolve_tag("status", {"type": "app"}, {"status": "open"}, project, schema)
        assert value == "open"
        assert not caplog.records

    def test_unknown_warns_once(self, project: Project, caplog):
        schema = Schema.parse("{status}")
        with caplog.at_level(logging.WARNING):
            value = resolve_tag("status", {"type": "app"}, {}, project, schema)
        assert value == UNKNOWN_TAG_VALUE
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "status" in warnings[0].getMessage()
        assert str(project.id) in warnings[0].getMessage()
