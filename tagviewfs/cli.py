#!/usr/bin/env python3
"""Command-line interface for TagViewFS.

This module provides the CLI for managing tag-chain views of a workspace:
- Argument parsing and validation
- Configuration loading (file, environment, arguments)
- Logging setup
- Help and version information

Example:
    >>> from tagviewfs.cli import parse_arguments
    >>> args = parse_arguments(['--store', 'views.yaml', 'list', 'docs'])
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from tagviewfs.core.config import ConfigError, ConfigManager, ConfigSource
from tagviewfs.core.constants import TAGVIEWFS_VERSION, ConfigKey
from tagviewfs.core.logging import Logger, get_logger, set_global_logger
from tagviewfs.core.validators import ValidationError, validate_config
from tagviewfs.views.base import TagSelector

# Version information
VERSION = TAGVIEWFS_VERSION
DESCRIPTION = "TagViewFS - Tag-chain views materialized as hardlinks"

# Commands that read file tags from the catalog
CATALOG_COMMANDS = ("save", "refresh", "reconcile", "relink", "move")


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def tag_selector(value: str) -> TagSelector:
    """
    Parse a tag argument.

    Accepted forms are ``dimension=value`` and ``dimension:Name=value``.

    Raises:
        argparse.ArgumentTypeError: If the argument is malformed
    """
    dimension, sep, tag_value = value.partition("=")
    if not sep or not dimension or not tag_value:
        raise argparse.ArgumentTypeError(f"Tag must look like dimension=value: {value!r}")

    dimension_id, _, dimension_name = dimension.partition(":")
    return TagSelector(
        dimension_id=dimension_id,
        dimension_name=dimension_name or dimension_id,
        tag_value=tag_value,
    )


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
        CLIError: If a referenced file doesn't exist
    """
    parser = argparse.ArgumentParser(
        prog="tagviewfs",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Register a workspace
  tagviewfs --store views.yaml add-workspace docs ~/Documents

  # Save a view [Genre=Doc, Format=PDF]
  tagviewfs -c tagviewfs.yaml save docs "PDF documents" genre:Genre=Doc format:Format=PDF

  # Check a chain before saving
  tagviewfs -c tagviewfs.yaml check docs genre=Doc

  # Remove stale links after files were deleted or retagged
  tagviewfs -c tagviewfs.yaml reconcile docs

  # Move a file and repair its links
  tagviewfs -c tagviewfs.yaml move f42 ~/Documents/archive/report.pdf

  # Materialize a classification plan
  tagviewfs -c tagviewfs.yaml generate docs plan.yaml --flatten
        """,
    )

    # Version
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )

    # Configuration file
    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help="Configuration file path (YAML format)",
    )

    # Data files
    data_group = parser.add_argument_group("data options")

    data_group.add_argument(
        "--store",
        metavar="FILE",
        type=str,
        help="View store file (overrides store_file)",
    )

    data_group.add_argument(
        "--catalog",
        metavar="FILE",
        type=str,
        help="Tag catalog file (overrides catalog_file)",
    )

    # Logging options
    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write logs to this file",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    cmd = commands.add_parser("add-workspace", help="Register a workspace root")
    cmd.add_argument("workspace", help="Workspace id")
    cmd.add_argument("root", help="Workspace root directory")

    cmd = commands.add_parser("save", help="Save and materialize a view")
    cmd.add_argument("workspace", help="Workspace id")
    cmd.add_argument("name", help="View name")
    cmd.add_argument("tags", nargs="+", type=tag_selector, metavar="TAG", help="dimension[:Name]=value, shallow to deep")
    cmd.add_argument("--id", dest="view_id", help="View id (default: generated)")
    cmd.add_argument("--parent", dest="parent_id", help="Parent view id for grouping")
    cmd.add_argument("--description", help="View description")

    cmd = commands.add_parser("delete", help="Delete a view and its directories")
    cmd.add_argument("view_id", help="View id")

    cmd = commands.add_parser("rename", help="Rename a view")
    cmd.add_argument("view_id", help="View id")
    cmd.add_argument("new_name", help="New view name")

    cmd = commands.add_parser("list", help="List the views of a workspace")
    cmd.add_argument("workspace", help="Workspace id")

    cmd = commands.add_parser("check", help="Check a tag chain for conflicts")
    cmd.add_argument("workspace", help="Workspace id")
    cmd.add_argument("tags", nargs="+", type=tag_selector, metavar="TAG", help="dimension[:Name]=value")
    cmd.add_argument("--exclude", dest="exclude_view_id", help="View id to ignore")

    cmd = commands.add_parser("reconcile", help="Remove stale links and empty directories")
    cmd.add_argument("workspace", help="Workspace id")

    cmd = commands.add_parser("refresh", help="Re-materialize every view of a workspace")
    cmd.add_argument("workspace", help="Workspace id")

    cmd = commands.add_parser("relink", help="Repair links of a file that was moved")
    cmd.add_argument("file_id", help="File id")
    cmd.add_argument("new_path", help="Current path of the file")

    cmd = commands.add_parser("move", help="Move a file and repair its links")
    cmd.add_argument("file_id", help="File id")
    cmd.add_argument("new_path", help="Destination path")

    cmd = commands.add_parser("generate", help="Materialize a directory plan")
    cmd.add_argument("workspace", help="Workspace id")
    cmd.add_argument("plan", help="Plan file (YAML with 'tree' and 'assignments')")
    cmd.add_argument("--flatten", action="store_true", help="Link every file directly into the virtual root")
    cmd.add_argument("--keep-empty", action="store_true", help="Keep empty plan directories")
    cmd.add_argument("--no-save-views", action="store_true", help="Don't persist tagged plan nodes as views")

    # Parse arguments
    parsed = parser.parse_args(args)

    # Validate arguments
    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments namespace

    Raises:
        CLIError: If validation fails
    """
    # Validate config file (if specified)
    if args.config:
        config_path = Path(args.config)

        if not config_path.exists():
            raise CLIError(f"Configuration file does not exist: {args.config}")

        if not config_path.is_file():
            raise CLIError(f"Configuration path is not a file: {args.config}")

    if args.command == "add-workspace" and not Path(args.root).is_dir():
        raise CLIError(f"Workspace root is not a directory: {args.root}")

    if args.command == "generate" and not Path(args.plan).is_file():
        raise CLIError(f"Plan file does not exist: {args.plan}")


def build_config_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Build the ``tagviewfs`` configuration overrides from command-line arguments.

    Args:
        args: Parsed arguments namespace

    Returns:
        Configuration dictionary holding only the values given on the command line
    """
    config: Dict[str, Any] = {}

    if args.store:
        config[ConfigKey.STORE_FILE] = os.path.abspath(args.store)
    if args.catalog:
        config[ConfigKey.CATALOG_FILE] = os.path.abspath(args.catalog)

    logging_config: Dict[str, Any] = {}
    if args.debug:
        logging_config[ConfigKey.LOG_LEVEL] = "DEBUG"
    if args.log_file:
        logging_config[ConfigKey.LOG_FILE] = args.log_file
    if logging_config:
        config[ConfigKey.LOGGING] = logging_config

    return config


def load_configuration(args: argparse.Namespace) -> ConfigManager:
    """
    Load configuration from defaults, file, environment and arguments.

    Raises:
        CLIError: If the configuration can't be loaded or is invalid
    """
    try:
        manager = ConfigManager(args.config)
    except ConfigError as e:
        raise CLIError(f"Failed to load configuration: {e}")

    manager.load_dict({"tagviewfs": build_config_from_args(args)}, ConfigSource.CLI_ARGS)

    section = manager.section()
    try:
        validate_config(section)
    except ValidationError as e:
        raise CLIError(f"Invalid configuration: {e}")

    if not section.get(ConfigKey.STORE_FILE):
        raise CLIError("No view store configured\n" "Use --store or set store_file in the configuration file")

    if args.command in CATALOG_COMMANDS and not section.get(ConfigKey.CATALOG_FILE):
        raise CLIError(
            f"The {args.command} command needs a tag catalog\n"
            "Use --catalog or set catalog_file in the configuration file"
        )

    return manager


def setup_logging(args: argparse.Namespace, config: Dict[str, Any]) -> Logger:
    """
    Setup logging based on arguments and configuration.

    Args:
        args: Parsed arguments namespace
        config: The ``tagviewfs`` configuration section

    Returns:
        Configured logger instance, also installed as the global logger
    """
    logging_config = config.get(ConfigKey.LOGGING) or {}
    log_level = "DEBUG" if args.debug else logging_config.get(ConfigKey.LOG_LEVEL, "INFO")
    log_file = args.log_file or logging_config.get(ConfigKey.LOG_FILE)

    logger = Logger("tagviewfs", level=log_level)

    if log_file:
        logger.add_handler(logger.create_file_handler(log_file))
        logger.debug("Logging to file", path=log_file)

    set_global_logger(logger)
    return logger


def main():
    """
    Main CLI entry point.

    Handles argument parsing, configuration and logging, then passes
    control to tagviewfs.main for the command itself.
    """
    try:
        # Parse arguments
        args = parse_arguments()

        # Load configuration
        config = load_configuration(args).section()

        # Setup logging
        logger = setup_logging(args, config)

        # Import and run main
        from tagviewfs.main import run_tagviewfs

        return run_tagviewfs(args, config, logger)

    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        get_logger().exception("Unexpected error", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
