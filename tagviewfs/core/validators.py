"""
TagViewFS Core: Input Validators.

Validation for configuration, tag chains, view definitions and link names.
Tag values become directory names and display names become file names, so
both are checked before anything touches the filesystem.
"""
import re
from typing import Any, Dict, Sequence

from tagviewfs.core.constants import ConfigKey, ErrorCode, Limits, is_marker_name


class ValidationError(Exception):
    """Base exception for validation errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        """Initialize ValidationError.

        Args:
            message: Error message
            error_code: Associated error code
        """
        super().__init__(message)
        self.error_code = error_code


LANGUAGE_RE = re.compile(r"^[a-zA-Z\-]{5}$")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_path_component(name: str, what: str = "name") -> bool:
    """Validate a single path component (directory or file name).

    Raises:
        ValidationError: If the name is empty, reserved or contains a separator
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{what} must be a non-empty string")

    if name in (".", ".."):
        raise ValidationError(f"{what} cannot be '{name}'")

    if "/" in name or "\\" in name:
        raise ValidationError(f"{what} cannot contain a path separator: {name!r}")

    if "\x00" in name:
        raise ValidationError(f"{what} cannot contain null bytes")

    if len(name.encode("utf-8")) > Limits.MAX_FILENAME_LENGTH:
        raise ValidationError(f"{what} too long: {len(name)} > {Limits.MAX_FILENAME_LENGTH}")

    return True


def validate_tag_chain(chain: Sequence[Any]) -> bool:
    """Validate an ordered tag chain.

    Each element must expose ``dimension_id`` and ``tag_value``. Tag values
    are used verbatim as directory names.

    Raises:
        ValidationError: If the chain is empty, too long or has bad elements
    """
    if not chain:
        raise ValidationError("Tag chain cannot be empty")

    if len(chain) > Limits.MAX_CHAIN_LENGTH:
        raise ValidationError(
            f"Tag chain too long: {len(chain)} > {Limits.MAX_CHAIN_LENGTH}"
        )

    seen = set()
    for i, selector in enumerate(chain):
        tag_value = getattr(selector, "tag_value", None)
        dimension_id = getattr(selector, "dimension_id", None)

        if dimension_id is None:
            raise ValidationError(f"Tag at position {i + 1} has no dimension id")

        try:
            validate_path_component(tag_value, "tag value")
        except ValidationError as e:
            raise ValidationError(f"Invalid tag at position {i + 1}: {e}")

        if is_marker_name(tag_value):
            raise ValidationError(f"Tag value collides with the marker file name: {tag_value}")

        key = (dimension_id, tag_value)
        if key in seen:
            raise ValidationError(f"Duplicate tag in chain: {tag_value}")
        seen.add(key)

    return True


def validate_view_definition(view: Any) -> bool:
    """Validate a view definition (id, name, workspace and chain).

    Raises:
        ValidationError: If any field is invalid
    """
    for field_name in ("id", "name", "workspace_id"):
        value = getattr(view, field_name, None)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"View {field_name} must be a non-empty string")

    validate_tag_chain(view.chain)
    return True


def validate_link_name(name: str) -> bool:
    """Validate a link file name derived from a file's display name.

    Raises:
        ValidationError: If the name cannot be used as a link entry
    """
    validate_path_component(name, "link name")
    if is_marker_name(name):
        raise ValidationError(f"Link name collides with the marker file name: {name}")
    return True


def validate_language(language: str) -> bool:
    """Validate a marker language code such as 'en-US'.

    Raises:
        ValidationError: If the code doesn't fit the marker file pattern
    """
    if not isinstance(language, str) or not LANGUAGE_RE.match(language):
        raise ValidationError(f"Invalid language code: {language!r}")
    return True


def validate_config(config: Dict[str, Any]) -> bool:
    """Validate the merged ``tagviewfs`` configuration section.

    Args:
        config: Configuration dictionary

    Returns:
        True if valid

    Raises:
        ValidationError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ValidationError("Configuration must be a dictionary")

    if ConfigKey.VIRTUAL_ROOT_NAME in config:
        validate_path_component(config[ConfigKey.VIRTUAL_ROOT_NAME], "virtual root name")

    if ConfigKey.THUMBNAIL_FOLDER in config:
        validate_path_component(config[ConfigKey.THUMBNAIL_FOLDER], "thumbnail folder")

    if ConfigKey.LANGUAGE in config:
        validate_language(config[ConfigKey.LANGUAGE])

    for key in (ConfigKey.STORE_FILE, ConfigKey.CATALOG_FILE):
        value = config.get(key)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{key} must be a path string")

    logging_config = config.get(ConfigKey.LOGGING)
    if logging_config is not None:
        if not isinstance(logging_config, dict):
            raise ValidationError("Logging configuration must be a dictionary")

        level = logging_config.get(ConfigKey.LOG_LEVEL)
        if level is not None and str(level).upper() not in VALID_LOG_LEVELS:
            raise ValidationError(f"Invalid log level: {level}. Must be one of {list(VALID_LOG_LEVELS)}")

    return True
