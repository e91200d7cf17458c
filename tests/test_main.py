"""Tests for TagViewFS command execution.

This module tests the main controller including:
- Component initialization from configuration
- Command dispatch and output
- Exit codes for conflicts and failures
- Plan file loading
"""

import argparse
import logging
from pathlib import Path

import pytest
import yaml

from tagviewfs.cli import CLIError
from tagviewfs.core.logging import Logger
from tagviewfs.main import TagViewMain, load_plan, run_tagviewfs
from tagviewfs.views.catalog import TagCatalog
from tagviewfs.views.store import YamlViewStore


@pytest.fixture
def env(tmp_path):
    """A workspace with a persisted store and catalog."""
    root = tmp_path / "docs"
    root.mkdir()
    (root / "a.txt").write_text("alpha")
    (root / "b.pdf").write_text("bravo")

    store_file = tmp_path / "views.yaml"
    catalog_file = tmp_path / "tags.yaml"

    catalog = TagCatalog(str(catalog_file))
    catalog.add_file("a", "docs", str(root / "a.txt"), tags=[("genre", "Doc")])
    catalog.add_file("b", "docs", str(root / "b.pdf"), tags=[("genre", "Doc"), ("format", "PDF")])

    return {"root": root, "store": store_file, "catalog": catalog_file}


@pytest.fixture
def config(env):
    """Create the tagviewfs configuration section."""
    return {
        "virtual_root_name": ".VirtualDirectory",
        "thumbnail_folder": ".thumbnail",
        "language": "en-US",
        "store_file": str(env["store"]),
        "catalog_file": str(env["catalog"]),
        "logging": {"level": "DEBUG"},
    }


@pytest.fixture
def logger():
    """Create test logger."""
    return Logger("tagviewfs.main.test", level="DEBUG", handlers=[logging.NullHandler()])


def make_args(command, **kwargs):
    args = argparse.Namespace(command=command)
    for key, value in kwargs.items():
        setattr(args, key, value)
    return args


def save_args(workspace, name, *tags, view_id=None):
    from tagviewfs.cli import tag_selector

    return make_args(
        "save",
        workspace=workspace,
        name=name,
        tags=[tag_selector(t) for t in tags],
        view_id=view_id,
        parent_id=None,
        description=None,
    )


def run(args, config, logger):
    return TagViewMain(args, config, logger).run()


@pytest.fixture
def workspace(env, config, logger):
    """Register the workspace through the add-workspace command."""
    assert run(make_args("add-workspace", workspace="docs", root=str(env["root"])), config, logger) == 0
    return env["root"]


class TestInitialization:
    """Test component initialization."""

    def test_init_stores_arguments(self, config, logger):
        args = make_args("list", workspace="docs")
        main = TagViewMain(args, config, logger)

        assert main.args is args
        assert main.config is config
        assert main.service is None

    def test_initialize_components(self, env, config, logger):
        main = TagViewMain(make_args("list", workspace="docs"), config, logger)
        main.initialize_components()

        assert main.store.path == str(env["store"])
        assert main.catalog.path == str(env["catalog"])
        assert main.service.virtual_root_name == ".VirtualDirectory"

    def test_catalog_optional(self, config, logger):
        config["catalog_file"] = None
        main = TagViewMain(make_args("list", workspace="docs"), config, logger)
        main.initialize_components()
        assert main.catalog.path is None


class TestCommands:
    """Test command execution."""

    def test_add_workspace(self, env, workspace):
        assert YamlViewStore(str(env["store"])).get_workspace("docs").root == str(workspace)

    def test_save_and_list(self, workspace, config, logger, capsys):
        assert run(save_args("docs", "PDF docs", "genre=Doc", "format=PDF", view_id="v1"), config, logger) == 0

        assert (workspace / ".VirtualDirectory" / "Doc" / "PDF" / "b.pdf").exists()
        assert (workspace / ".VirtualDirectory" / "Doc" / "a.txt").exists()

        assert run(make_args("list", workspace="docs"), config, logger) == 0
        out = capsys.readouterr().out
        assert "Saved view v1" in out
        assert "v1\tPDF docs\tgenre=Doc / format=PDF" in out

    def test_save_conflict_exit_code(self, workspace, config, logger, capsys):
        run(save_args("docs", "PDF docs", "genre=Doc", "format=PDF", view_id="v1"), config, logger)

        assert run(save_args("docs", "Docs", "genre=Doc", view_id="v2"), config, logger) == 4
        assert "Conflict" in capsys.readouterr().err

    def test_save_reports_superseded(self, workspace, config, logger, capsys):
        run(save_args("docs", "Docs", "genre=Doc", view_id="v1"), config, logger)
        run(save_args("docs", "PDF docs", "genre=Doc", "format=PDF", view_id="v2"), config, logger)
        assert "Removed superseded view v1" in capsys.readouterr().out

    def test_check(self, workspace, config, logger, capsys):
        from tagviewfs.cli import tag_selector

        run(save_args("docs", "PDF docs", "genre=Doc", "format=PDF", view_id="v1"), config, logger)

        args = make_args("check", workspace="docs", tags=[tag_selector("genre=Doc")], exclude_view_id=None)
        assert run(args, config, logger) == 4

        args.exclude_view_id = "v1"
        assert run(args, config, logger) == 0
        assert "No conflict" in capsys.readouterr().out

    def test_rename_and_delete(self, env, workspace, config, logger):
        run(save_args("docs", "Docs", "genre=Doc", view_id="v1"), config, logger)

        assert run(make_args("rename", view_id="v1", new_name="Documents"), config, logger) == 0
        assert YamlViewStore(str(env["store"])).get_view("v1").name == "Documents"

        assert run(make_args("delete", view_id="v1"), config, logger) == 0
        assert not (workspace / ".VirtualDirectory" / "Doc").exists()

    def test_delete_unknown_view(self, workspace, config, logger, capsys):
        assert run(make_args("delete", view_id="nope"), config, logger) == 1
        assert "View not found" in capsys.readouterr().err

    def test_unknown_workspace(self, config, logger):
        assert run(save_args("nowhere", "Docs", "genre=Doc"), config, logger) == 1

    def test_reconcile_and_refresh(self, workspace, config, logger, capsys):
        run(save_args("docs", "Docs", "genre=Doc", view_id="v1"), config, logger)
        (workspace / "a.txt").unlink()

        assert run(make_args("reconcile", workspace="docs"), config, logger) == 0
        assert "removed 1 links" in capsys.readouterr().out
        assert not (workspace / ".VirtualDirectory" / "Doc" / "a.txt").exists()

        assert run(make_args("refresh", workspace="docs"), config, logger) == 0
        assert "Refreshed 1 views" in capsys.readouterr().out

    def test_move_and_relink(self, env, workspace, config, logger):
        run(save_args("docs", "Docs", "genre=Doc", view_id="v1"), config, logger)
        new_path = workspace / "archive" / "a.txt"

        assert run(make_args("move", file_id="a", new_path=str(new_path)), config, logger) == 0
        assert TagCatalog(str(env["catalog"])).get_file("a").path == str(new_path)
        assert (workspace / ".VirtualDirectory" / "Doc" / "a.txt").samefile(new_path)

        assert run(make_args("relink", file_id="a", new_path=str(new_path)), config, logger) == 0

    def test_generate(self, env, workspace, config, logger, tmp_path):
        plan = tmp_path / "plan.yaml"
        plan.write_text(
            yaml.safe_dump(
                {
                    "tree": [{"name": "Reading"}],
                    "assignments": {"Reading": [{"name": "a.txt", "path": str(workspace / "a.txt")}]},
                }
            )
        )
        args = make_args("generate", workspace="docs", plan=str(plan), flatten=False, keep_empty=False, no_save_views=False)

        assert run(args, config, logger) == 0
        assert (workspace / ".VirtualDirectory" / "Reading" / "a.txt").exists()

    def test_run_tagviewfs(self, workspace, config, logger):
        assert run_tagviewfs(make_args("list", workspace="docs"), config, logger) == 0


class TestLoadPlan:
    """Test plan file loading."""

    def test_load(self, tmp_path):
        plan = tmp_path / "plan.yaml"
        plan.write_text(
            "tree:\n"
            "  - name: Finance\n"
            "    dimension_id: topic\n"
            "    dimension_name: Topic\n"
            "    tag_value: Finance\n"
            "  - {name: Invoices, parent: Finance}\n"
            "assignments:\n"
            "  Invoices:\n"
            "    - {name: march.pdf, path: /data/march.pdf}\n"
        )

        nodes, assignments = load_plan(str(plan))

        assert [n.name for n in nodes] == ["Finance", "Invoices"]
        assert nodes[0].has_tag
        assert nodes[1].parent == "Finance"
        assert assignments["Invoices"][0].path == "/data/march.pdf"

    def test_empty_sections(self, tmp_path):
        plan = tmp_path / "plan.yaml"
        plan.write_text("tree:\nassignments:\n")
        assert load_plan(str(plan)) == ([], {})

    @pytest.mark.parametrize(
        "content,message",
        [
            ("tree: [\n", "Failed to parse"),
            ("- a\n", "YAML dictionary"),
            ("tree:\n  - {parent: x}\n", "Malformed"),
        ],
    )
    def test_invalid(self, tmp_path, content, message):
        plan = tmp_path / "plan.yaml"
        plan.write_text(content)
        with pytest.raises(CLIError, match=message):
            load_plan(str(plan))

    def test_missing(self, tmp_path):
        with pytest.raises(CLIError, match="Failed to read"):
            load_plan(str(Path(tmp_path) / "missing.yaml"))
