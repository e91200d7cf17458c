#!/usr/bin/env python3
"""Tests for bottom-up deduplication."""

import pytest

from tagviewfs.views.dedup import BottomUpDeduplicator
from tagviewfs.views.paths import VirtualPathBuilder
from tagviewfs.views.projector import HardlinkProjector


@pytest.fixture
def paths(virtual_root):
    return VirtualPathBuilder(str(virtual_root))


@pytest.fixture
def dedup(fs, paths, quiet_logger):
    return BottomUpDeduplicator(fs, paths, quiet_logger)


class TestDeduplicate:
    """Tests for BottomUpDeduplicator."""

    def test_deepest_level_wins(self, fs, catalog, paths, dedup, view, tag, virtual_root, tree, quiet_logger):
        v = view("v1", tag("genre", "Doc"), tag("format", "PDF"))
        HardlinkProjector(fs, catalog, paths, quiet_logger).project(v)

        removed = dedup.deduplicate(v)

        assert removed == 1
        assert tree(virtual_root) == {"Doc", "Doc/a.txt", "Doc/PDF", "Doc/PDF/b.txt"}

    def test_three_levels(self, fs, catalog, paths, dedup, view, tag, virtual_root, tree, quiet_logger):
        catalog.assign_tag("b", "year", "2023")
        v = view("v1", tag("genre", "Doc"), tag("format", "PDF"), tag("year", "2023"))
        HardlinkProjector(fs, catalog, paths, quiet_logger).project(v)

        assert dedup.deduplicate(v) == 2
        assert tree(virtual_root) == {
            "Doc",
            "Doc/a.txt",
            "Doc/PDF",
            "Doc/PDF/2023",
            "Doc/PDF/2023/b.txt",
        }

    def test_same_name_different_file_kept(self, dedup, view, tag, virtual_root, workspace_root):
        """Test only entries with the deep entry's identity are removed."""
        v = view("v1", tag("genre", "Doc"), tag("format", "PDF"))
        (virtual_root / "Doc" / "PDF").mkdir(parents=True)
        (virtual_root / "Doc" / "PDF" / "x.txt").write_text("deep")
        (virtual_root / "Doc" / "x.txt").write_text("shallow")

        assert dedup.deduplicate(v) == 0
        assert (virtual_root / "Doc" / "x.txt").read_text() == "shallow"

    def test_single_level_untouched(self, fs, catalog, paths, dedup, view, tag, virtual_root, tree, quiet_logger):
        v = view("v1", tag("genre", "Doc"))
        HardlinkProjector(fs, catalog, paths, quiet_logger).project(v)

        assert dedup.deduplicate(v) == 0
        assert tree(virtual_root) == {"Doc", "Doc/a.txt", "Doc/b.txt"}

    def test_missing_tree(self, dedup, view, tag):
        assert dedup.deduplicate(view("v1", tag("genre", "Doc"), tag("format", "PDF"))) == 0
