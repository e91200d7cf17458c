"""
TagViewFS Core: Constants

This module provides system-wide constants, error codes and reserved names
shared by the view engine, the CLI and the reference stores.
"""
import re
from enum import IntEnum

# Version information
TAGVIEWFS_VERSION = "1.0.0"


# Error codes (0-8 range)
class ErrorCode(IntEnum):
    """Standardized error codes for TagViewFS operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad path, invalid chain or configuration
    NOT_FOUND = 2  # File, view or workspace doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    CONFLICT = 4  # Tag chain conflict, entry already exists
    CROSS_DEVICE = 5  # Hardlink attempted across filesystems
    INTERNAL_ERROR = 6  # Bug in TagViewFS
    NO_SPACE = 7  # Disk full or quota exceeded
    IO_ERROR = 8  # Any other filesystem failure


# Reserved names inside a workspace
VIRTUAL_ROOT_NAME = ".VirtualDirectory"
THUMBNAIL_FOLDER = ".thumbnail"

# Marker read-me: ReadMe_<lang>.txt where <lang> is e.g. "en-US" or "zh-CN"
MARKER_PREFIX = "ReadMe_"
MARKER_PATTERN = re.compile(r"^ReadMe_[a-zA-Z\-]{5}\.txt$")
DEFAULT_LANGUAGE = "en-US"


def marker_file_name(language: str) -> str:
    """Return the marker read-me file name for a language code."""
    return f"{MARKER_PREFIX}{language}.txt"


def is_marker_name(name: str) -> bool:
    """Check whether an entry name is a protected marker read-me."""
    return MARKER_PATTERN.match(name) is not None


# Resource limits and defaults
class Limits:
    """System resource limits and default values."""

    # Path limits
    MAX_FILENAME_LENGTH = 255

    # Tag chains are short in practice (typically <= 5)
    MAX_CHAIN_LENGTH = 32

    # Directory walks below the virtual root
    MAX_WALK_DEPTH = 64


# Configuration keys
class ConfigKey:
    """Configuration key constants."""

    # Top-level keys
    VERSION = "version"
    VIRTUAL_ROOT_NAME = "virtual_root_name"
    THUMBNAIL_FOLDER = "thumbnail_folder"
    LANGUAGE = "language"
    STORE_FILE = "store_file"
    CATALOG_FILE = "catalog_file"
    LOGGING = "logging"

    # Logging configuration
    LOG_LEVEL = "level"
    LOG_FILE = "file"


# Default configuration values
DEFAULT_CONFIG = {
    ConfigKey.VERSION: "1.0",
    ConfigKey.VIRTUAL_ROOT_NAME: VIRTUAL_ROOT_NAME,
    ConfigKey.THUMBNAIL_FOLDER: THUMBNAIL_FOLDER,
    ConfigKey.LANGUAGE: DEFAULT_LANGUAGE,
    ConfigKey.STORE_FILE: None,
    ConfigKey.CATALOG_FILE: None,
    ConfigKey.LOGGING: {
        ConfigKey.LOG_LEVEL: "INFO",
        ConfigKey.LOG_FILE: None,
    },
}
