#!/usr/bin/env python3
"""Tests for cross-view exclusivity."""

import os

import pytest

from tagviewfs.views.exclusivity import ExclusivityEnforcer
from tagviewfs.views.paths import VirtualPathBuilder


@pytest.fixture
def paths(virtual_root):
    return VirtualPathBuilder(str(virtual_root))


@pytest.fixture
def enforcer(fs, paths, quiet_logger):
    return ExclusivityEnforcer(fs, paths, quiet_logger)


def link(source, *parts):
    target = os.path.join(*parts)
    os.makedirs(os.path.dirname(target), exist_ok=True)
    os.link(source, target)


class TestEnforce:
    """Tests for ExclusivityEnforcer."""

    def test_removes_links_from_other_view(self, enforcer, catalog, view, tag, virtual_root, workspace_root, tree):
        doc = view("v1", tag("genre", "Doc"))
        pdf = view("v2", tag("format", "PDF"))
        link(workspace_root / "a.txt", str(virtual_root), "Doc", "a.txt")
        link(workspace_root / "b.txt", str(virtual_root), "Doc", "b.txt")
        link(workspace_root / "b.txt", str(virtual_root), "PDF", "b.txt")
        link(workspace_root / "c.pdf", str(virtual_root), "PDF", "c.pdf")

        captured = catalog.list_qualifying_files("ws", pdf.chain)
        removed = enforcer.enforce(pdf, captured, [doc, pdf])

        assert removed == 1
        assert tree(virtual_root) == {"Doc", "Doc/a.txt", "PDF", "PDF/b.txt", "PDF/c.pdf"}

    def test_checks_every_level_of_other_views(self, enforcer, catalog, view, tag, virtual_root, workspace_root):
        other = view("v1", tag("genre", "Doc"), tag("year", "2023"))
        pdf = view("v2", tag("format", "PDF"))
        link(workspace_root / "b.txt", str(virtual_root), "Doc", "b.txt")
        link(workspace_root / "b.txt", str(virtual_root), "Doc", "2023", "b.txt")
        link(workspace_root / "b.txt", str(virtual_root), "PDF", "b.txt")

        captured = catalog.list_qualifying_files("ws", pdf.chain)
        assert enforcer.enforce(pdf, captured, [other]) == 2
        assert (virtual_root / "PDF" / "b.txt").exists()

    def test_unrelated_file_with_same_name_kept(self, enforcer, catalog, view, tag, virtual_root, workspace_root):
        doc = view("v1", tag("genre", "Doc"))
        pdf = view("v2", tag("format", "PDF"))
        (virtual_root / "Doc").mkdir(parents=True)
        (virtual_root / "Doc" / "b.txt").write_text("not the same file")

        captured = catalog.list_qualifying_files("ws", pdf.chain)
        assert enforcer.enforce(pdf, captured, [doc]) == 0
        assert (virtual_root / "Doc" / "b.txt").exists()

    def test_own_links_protected(self, enforcer, catalog, view, tag, virtual_root, workspace_root):
        """Test another view sharing the deepest directory doesn't cost the saved view its links."""
        pdf = view("v2", tag("format", "PDF"))
        twin = view("v3", tag("kind", "PDF"))
        link(workspace_root / "b.txt", str(virtual_root), "PDF", "b.txt")

        captured = catalog.list_qualifying_files("ws", pdf.chain)
        assert enforcer.enforce(pdf, captured, [twin]) == 0
        assert (virtual_root / "PDF" / "b.txt").exists()

    def test_nothing_captured(self, enforcer, view, tag):
        assert enforcer.enforce(view("v1", tag("genre", "Doc")), [], [view("v2", tag("format", "PDF"))]) == 0

    def test_missing_captured_source_ignored(self, enforcer, catalog, view, tag, workspace_root):
        pdf = view("v2", tag("format", "PDF"))
        captured = catalog.list_qualifying_files("ws", pdf.chain)
        (workspace_root / "b.txt").unlink()
        (workspace_root / "c.pdf").unlink()
        assert enforcer.enforce(pdf, captured, [view("v1", tag("genre", "Doc"))]) == 0
