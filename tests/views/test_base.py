#!/usr/bin/env python3
"""Tests for the view data model."""

from datetime import datetime, timezone

import pytest

from tagviewfs.views.base import (
    ConflictResult,
    FileQuery,
    SaveResult,
    TagSelector,
    ViewDefinition,
    Workspace,
    chain_keys,
    chain_values,
)


class TestTagSelector:
    """Tests for TagSelector."""

    def test_key_ignores_name_and_level(self):
        a = TagSelector("genre", "Genre", "Doc", level=0)
        b = TagSelector("genre", "Kind of document", "Doc", level=3)
        assert a.key == b.key == ("genre", "Doc")

    def test_dict_round_trip(self):
        selector = TagSelector("genre", "Genre", "Doc", level=1)
        assert TagSelector.from_dict(selector.to_dict()) == selector

    def test_from_dict_defaults(self):
        selector = TagSelector.from_dict({"dimension_id": "genre", "tag_value": "Doc"})
        assert selector.dimension_name == "genre"
        assert selector.level == 0

    def test_immutable(self):
        selector = TagSelector("genre", "Genre", "Doc")
        with pytest.raises(AttributeError):
            selector.tag_value = "Other"


class TestViewDefinition:
    """Tests for ViewDefinition."""

    def test_chain_stored_as_tuple(self, tag):
        view = ViewDefinition(id="v1", name="V", workspace_id="ws", chain=[tag("genre", "Doc")])
        assert isinstance(view.chain, tuple)
        assert view.depth == 1

    def test_prefix_and_values(self, view, tag):
        v = view("v1", tag("genre", "Doc"), tag("format", "PDF"), tag("year", "2023"))
        assert v.tag_values == ("Doc", "PDF", "2023")
        assert chain_values(v.prefix(2)) == ("Doc", "PDF")
        assert chain_keys(v.prefix(1)) == (("genre", "Doc"),)

    def test_renamed_keeps_chain(self, view, tag):
        v = view("v1", tag("genre", "Doc"), name="Old")
        renamed = v.renamed("New")
        assert renamed.name == "New"
        assert renamed.chain == v.chain
        assert renamed.created_at == v.created_at
        assert renamed.updated_at >= v.updated_at
        assert renamed.saved_at == v.saved_at

    def test_dict_round_trip(self, tag):
        stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        v = ViewDefinition(
            id="v1",
            name="Invoices",
            workspace_id="ws",
            chain=(tag("topic", "Finance"), tag("kind", "Invoice")),
            parent_id="p1",
            description="All invoices",
            created_at=stamp,
            updated_at=stamp,
        )
        data = v.to_dict()
        assert data["created_at"] == "2024-05-01T12:00:00+00:00"
        assert ViewDefinition.from_dict(data) == v


class TestWorkspace:
    def test_virtual_root(self):
        assert Workspace("ws", "/data/docs").virtual_root(".VirtualDirectory") == "/data/docs/.VirtualDirectory"


class TestResults:
    """Tests for result types."""

    def test_conflict_describe(self):
        conflict = ConflictResult(view_id="v2", view_name="PDF docs")
        assert conflict.kind == "longer"
        assert "PDF docs" in conflict.describe()

    def test_save_result_ok(self):
        assert SaveResult(view_id="v1").ok
        assert not SaveResult(view_id="v1", conflict=ConflictResult("v2", "Other")).ok


class TestFileQueryDefaults:
    """Tests for FileQuery's optional methods."""

    class StaticQuery(FileQuery):
        def __init__(self, files):
            self.files = files
            self.prefixes = []

        def list_qualifying_files(self, workspace_id, prefix):
            self.prefixes.append(tuple(prefix))
            return list(self.files)

        def get_file(self, file_id):
            return None

    def test_eligible_files_use_empty_prefix(self):
        query = self.StaticQuery(["f"])
        assert query.list_eligible_files("ws") == ["f"]
        assert query.prefixes == [()]

    def test_optional_methods(self):
        query = self.StaticQuery([])
        assert query.workspace_of("f") is None
        assert query.update_file_path("f", "/new") is None
