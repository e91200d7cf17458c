"""TagViewFS Core - Shared utilities and infrastructure.

Import specific functions from submodules:
    from tagviewfs.core.config import ConfigManager
    from tagviewfs.core.file_ops import LocalFileSystem
    from tagviewfs.core.logging import Logger
    from tagviewfs.core import constants
    from tagviewfs.core import validators
"""

from tagviewfs.core import config, constants, file_ops, logging, validators

__all__ = [
    "config",
    "constants",
    "file_ops",
    "logging",
    "validators",
]
