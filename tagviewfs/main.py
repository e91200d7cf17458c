#!/usr/bin/env python3
"""Main entry point for TagViewFS commands.

This module handles:
- Component initialization (view store, tag catalog, view service)
- Dispatching a parsed command to the view service
- Reporting results and mapping errors to exit codes

Example:
    >>> from tagviewfs.main import run_tagviewfs
    >>> run_tagviewfs(args, config, logger)
"""

import argparse
import os
import sys
import uuid
from typing import Any, Dict, List, Optional, Tuple

import yaml

from tagviewfs.cli import CLIError
from tagviewfs.core.constants import ConfigKey, ErrorCode
from tagviewfs.core.file_ops import FileOperationError, LocalFileSystem
from tagviewfs.core.logging import Logger
from tagviewfs.core.validators import ValidationError
from tagviewfs.views.base import ViewDefinition, Workspace
from tagviewfs.views.catalog import CatalogError, TagCatalog
from tagviewfs.views.manager import ViewNotFoundError, VirtualViewService, WorkspaceError
from tagviewfs.views.plan import PlanFile, PlanNode, PlanOptions
from tagviewfs.views.store import StoreError, YamlViewStore

# Errors reported as a failed command rather than a crash
COMMAND_ERRORS = (
    CatalogError,
    FileOperationError,
    StoreError,
    ValidationError,
    ViewNotFoundError,
    WorkspaceError,
)


def _expand(path: Optional[str]) -> Optional[str]:
    return os.path.expanduser(path) if path else None


def load_plan(plan_path: str) -> Tuple[List[PlanNode], Dict[str, List[PlanFile]]]:
    """
    Load a directory plan from YAML.

    The file holds a ``tree`` list of nodes (parents first) and an
    ``assignments`` mapping of node name to a list of files.

    Raises:
        CLIError: If the file cannot be read or is malformed
    """
    try:
        with open(plan_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CLIError(f"Failed to parse plan file: {plan_path}\n{e}")
    except IOError as e:
        raise CLIError(f"Failed to read plan file: {plan_path}\n{e}")

    if not isinstance(data, dict):
        raise CLIError(f"Plan file must contain a YAML dictionary: {plan_path}")

    try:
        nodes = [PlanNode.from_dict(item) for item in data.get("tree") or []]
        assignments = {
            str(name): [PlanFile.from_dict(item) for item in files or []]
            for name, files in (data.get("assignments") or {}).items()
        }
    except (KeyError, TypeError, AttributeError) as e:
        raise CLIError(f"Malformed plan file: {plan_path}\n{e}")

    return nodes, assignments


class TagViewMain:
    """
    Main class for TagViewFS command execution.

    Builds the components from configuration and runs one command.
    """

    def __init__(self, args: argparse.Namespace, config: Dict[str, Any], logger: Logger):
        """
        Initialize the main controller.

        Args:
            args: Parsed command-line arguments
            config: The ``tagviewfs`` configuration section
            logger: Logger instance
        """
        self.args = args
        self.config = config
        self.logger = logger

        # Components
        self.store: Optional[YamlViewStore] = None
        self.catalog: Optional[TagCatalog] = None
        self.service: Optional[VirtualViewService] = None

    def initialize_components(self) -> None:
        """
        Create the view store, tag catalog and view service.

        Raises:
            StoreError: If the view store cannot be loaded
            CatalogError: If the tag catalog cannot be loaded
        """
        self.logger.debug("Initializing components")

        self.store = YamlViewStore(_expand(self.config.get(ConfigKey.STORE_FILE)))
        self.catalog = TagCatalog(_expand(self.config.get(ConfigKey.CATALOG_FILE)))
        self.service = VirtualViewService(
            LocalFileSystem(),
            self.catalog,
            self.store,
            config=self.config,
            logger=self.logger,
        )

        self.logger.debug(
            "Components initialized",
            store=self.store.path,
            catalog=self.catalog.path,
        )

    # Command handlers

    def cmd_add_workspace(self) -> int:
        root = os.path.abspath(os.path.expanduser(self.args.root))
        self.store.add_workspace(Workspace(id=self.args.workspace, root=root))
        print(f"Workspace {self.args.workspace}: {root}")
        return 0

    def cmd_save(self) -> int:
        view = ViewDefinition(
            id=self.args.view_id or uuid.uuid4().hex,
            name=self.args.name,
            workspace_id=self.args.workspace,
            chain=tuple(self.args.tags),
            parent_id=self.args.parent_id,
            description=self.args.description,
        )
        result = self.service.save_view(view)

        if not result.ok:
            print(f"Conflict: {result.conflict.describe()} ({result.conflict.view_id})", file=sys.stderr)
            return int(ErrorCode.CONFLICT)

        for removed in result.removed_view_ids:
            print(f"Removed superseded view {removed}")
        print(f"Saved view {result.view_id}: {result.virtual_path} ({result.linked} links)")
        return 0

    def cmd_delete(self) -> int:
        self.service.delete_view(self.args.view_id)
        print(f"Deleted view {self.args.view_id}")
        return 0

    def cmd_rename(self) -> int:
        self.service.rename_view(self.args.view_id, self.args.new_name)
        print(f"Renamed view {self.args.view_id} to {self.args.new_name}")
        return 0

    def cmd_list(self) -> int:
        for view in self.service.list_views(self.args.workspace):
            chain = " / ".join(f"{s.dimension_id}={s.tag_value}" for s in view.chain)
            print(f"{view.id}\t{view.name}\t{chain}")
        return 0

    def cmd_check(self) -> int:
        conflict = self.service.check_conflict(
            self.args.workspace,
            tuple(self.args.tags),
            self.args.exclude_view_id,
        )
        if conflict is not None:
            print(f"Conflict: {conflict.describe()} ({conflict.view_id})")
            return int(ErrorCode.CONFLICT)
        print("No conflict")
        return 0

    def cmd_reconcile(self) -> int:
        result = self.service.reconcile_workspace(self.args.workspace)
        print(
            f"Scanned {result.scanned} links, removed {result.removed_links} links "
            f"and {result.removed_directories} directories ({result.failures} failures)"
        )
        return 1 if result.failures else 0

    def cmd_refresh(self) -> int:
        count = self.service.refresh_workspace(self.args.workspace)
        print(f"Refreshed {count} views")
        return 0

    def cmd_relink(self) -> int:
        count = self.service.relink_after_move(self.args.file_id, os.path.abspath(self.args.new_path))
        print(f"Relinked {count} links")
        return 0

    def cmd_move(self) -> int:
        count = self.service.move_file(self.args.file_id, self.args.new_path)
        print(f"Moved {self.args.file_id}, relinked {count} links")
        return 0

    def cmd_generate(self) -> int:
        nodes, assignments = load_plan(self.args.plan)
        options = PlanOptions(
            flatten_to_root=self.args.flatten,
            skip_empty_directories=not self.args.keep_empty,
            save_views=not self.args.no_save_views,
        )
        result = self.service.generate_from_plan(self.args.workspace, nodes, assignments, options)
        print(f"Linked {result.linked_count} files ({result.skipped} skipped)")
        for view_id in result.saved_view_ids:
            print(f"Saved view {view_id}")
        return 0

    def run(self) -> int:
        """
        Run the parsed command.

        Returns:
            Exit code (0 for success, 4 for a rejected save, 1 for failure)
        """
        handler = getattr(self, "cmd_" + self.args.command.replace("-", "_"), None)
        if handler is None:
            self.logger.error("Unknown command", command=self.args.command)
            return 1

        try:
            self.initialize_components()
            return handler()

        except COMMAND_ERRORS as e:
            code = getattr(e, "error_code", ErrorCode.INTERNAL_ERROR)
            self.logger.error(str(e), command=self.args.command, code=code.name)
            print(f"Error: {e}", file=sys.stderr)
            return 1


def run_tagviewfs(args: argparse.Namespace, config: Dict[str, Any], logger: Logger) -> int:
    """
    Main entry point for running a TagViewFS command.

    Args:
        args: Parsed command-line arguments
        config: The ``tagviewfs`` configuration section
        logger: Logger instance

    Returns:
        Exit code
    """
    main = TagViewMain(args, config, logger)
    return main.run()


def main():
    """
    Entry point when run as standalone script.

    Typically called via cli.py, but can be run directly for testing.
    """
    from tagviewfs.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
