#!/usr/bin/env python3
"""Tests for TagViewFS constants and reserved names."""

import pytest

from tagviewfs.core.constants import (
    DEFAULT_CONFIG,
    DEFAULT_LANGUAGE,
    MARKER_PREFIX,
    THUMBNAIL_FOLDER,
    VIRTUAL_ROOT_NAME,
    ConfigKey,
    ErrorCode,
    Limits,
    is_marker_name,
    marker_file_name,
)


class TestErrorCode:
    """Tests for ErrorCode enum."""

    def test_codes_are_stable(self):
        """Test error code values used as exit codes."""
        assert ErrorCode.SUCCESS == 0
        assert ErrorCode.INVALID_INPUT == 1
        assert ErrorCode.NOT_FOUND == 2
        assert ErrorCode.CONFLICT == 4
        assert ErrorCode.CROSS_DEVICE == 5

    def test_codes_unique(self):
        """Test no two codes share a value."""
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))


class TestReservedNames:
    """Tests for virtual root, thumbnail and marker names."""

    def test_defaults(self):
        assert VIRTUAL_ROOT_NAME == ".VirtualDirectory"
        assert THUMBNAIL_FOLDER == ".thumbnail"
        assert DEFAULT_LANGUAGE == "en-US"

    def test_marker_file_name(self):
        """Test marker name is built from the language code."""
        assert marker_file_name("en-US") == "ReadMe_en-US.txt"
        assert marker_file_name("zh-CN").startswith(MARKER_PREFIX)

    @pytest.mark.parametrize("name", ["ReadMe_en-US.txt", "ReadMe_zh-CN.txt", "ReadMe_abcde.txt"])
    def test_marker_names_match(self, name):
        assert is_marker_name(name)

    @pytest.mark.parametrize(
        "name",
        ["ReadMe.txt", "ReadMe_en.txt", "ReadMe_en-US.md", "readme_en-US.txt", "ReadMe_en_US.txt", "a.txt"],
    )
    def test_other_names_do_not_match(self, name):
        assert not is_marker_name(name)


class TestDefaults:
    """Tests for limits and default configuration."""

    def test_limits(self):
        assert Limits.MAX_FILENAME_LENGTH == 255
        assert Limits.MAX_WALK_DEPTH > Limits.MAX_CHAIN_LENGTH

    def test_default_config_keys(self):
        """Test every configurable key has a default."""
        assert DEFAULT_CONFIG[ConfigKey.VIRTUAL_ROOT_NAME] == VIRTUAL_ROOT_NAME
        assert DEFAULT_CONFIG[ConfigKey.THUMBNAIL_FOLDER] == THUMBNAIL_FOLDER
        assert DEFAULT_CONFIG[ConfigKey.LANGUAGE] == DEFAULT_LANGUAGE
        assert DEFAULT_CONFIG[ConfigKey.STORE_FILE] is None
        assert DEFAULT_CONFIG[ConfigKey.LOGGING][ConfigKey.LOG_LEVEL] == "INFO"
