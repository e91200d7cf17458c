#!/usr/bin/env python3
"""Tests for input validation."""

import pytest

from tagviewfs.core.constants import ErrorCode, Limits
from tagviewfs.core.validators import (
    ValidationError,
    validate_config,
    validate_language,
    validate_link_name,
    validate_path_component,
    validate_tag_chain,
    validate_view_definition,
)
from tagviewfs.views.base import TagSelector, ViewDefinition


class TestValidatePathComponent:
    """Tests for single path component validation."""

    def test_valid(self):
        assert validate_path_component("Doc") is True
        assert validate_path_component("Tax return 2023.pdf") is True

    @pytest.mark.parametrize("name", ["", "   ", ".", "..", "a/b", "a\\b", "a\x00b"])
    def test_invalid(self, name):
        with pytest.raises(ValidationError) as exc_info:
            validate_path_component(name)
        assert exc_info.value.error_code == ErrorCode.INVALID_INPUT

    def test_too_long(self):
        with pytest.raises(ValidationError, match="too long"):
            validate_path_component("x" * (Limits.MAX_FILENAME_LENGTH + 1))

    def test_not_a_string(self):
        with pytest.raises(ValidationError):
            validate_path_component(None)


class TestValidateTagChain:
    """Tests for tag chain validation."""

    def test_valid_chain(self, tag):
        assert validate_tag_chain([tag("genre", "Doc"), tag("format", "PDF")]) is True

    def test_empty_chain(self):
        with pytest.raises(ValidationError, match="empty"):
            validate_tag_chain([])

    def test_chain_too_long(self, tag):
        chain = [tag("d%d" % i, "v%d" % i) for i in range(Limits.MAX_CHAIN_LENGTH + 1)]
        with pytest.raises(ValidationError, match="too long"):
            validate_tag_chain(chain)

    def test_tag_value_with_separator(self, tag):
        with pytest.raises(ValidationError, match="position 2"):
            validate_tag_chain([tag("genre", "Doc"), tag("format", "a/b")])

    def test_tag_value_colliding_with_marker(self, tag):
        with pytest.raises(ValidationError, match="marker"):
            validate_tag_chain([tag("genre", "ReadMe_en-US.txt")])

    def test_duplicate_tag(self, tag):
        with pytest.raises(ValidationError, match="Duplicate"):
            validate_tag_chain([tag("genre", "Doc"), tag("genre", "Doc")])

    def test_same_value_in_different_dimensions(self, tag):
        """Test equal values are distinct when dimensions differ."""
        assert validate_tag_chain([tag("genre", "Doc"), tag("kind", "Doc")]) is True

    def test_missing_dimension(self):
        with pytest.raises(ValidationError, match="dimension"):
            validate_tag_chain([TagSelector(None, "Genre", "Doc")])


class TestValidateViewDefinition:
    """Tests for view definition validation."""

    def test_valid(self, view, tag):
        assert validate_view_definition(view("v1", tag("genre", "Doc"))) is True

    @pytest.mark.parametrize("field_name", ["id", "name", "workspace_id"])
    def test_blank_fields(self, field_name, tag):
        values = {"id": "v1", "name": "View", "workspace_id": "ws"}
        values[field_name] = " "
        definition = ViewDefinition(chain=(tag("genre", "Doc"),), **values)
        with pytest.raises(ValidationError, match=field_name):
            validate_view_definition(definition)

    def test_empty_chain(self, view):
        with pytest.raises(ValidationError):
            validate_view_definition(view("v1"))


class TestValidateLinkName:
    def test_valid(self):
        assert validate_link_name("report.pdf") is True

    def test_marker_name_rejected(self):
        with pytest.raises(ValidationError, match="marker"):
            validate_link_name("ReadMe_en-US.txt")


class TestValidateLanguage:
    @pytest.mark.parametrize("code", ["en-US", "zh-CN", "pt-BR"])
    def test_valid(self, code):
        assert validate_language(code) is True

    @pytest.mark.parametrize("code", ["en", "en_US", "english", "", None])
    def test_invalid(self, code):
        with pytest.raises(ValidationError):
            validate_language(code)


class TestValidateConfig:
    """Tests for configuration section validation."""

    def test_valid(self, sample_config):
        assert validate_config(sample_config["tagviewfs"]) is True

    def test_empty_is_valid(self):
        assert validate_config({}) is True

    def test_not_a_dict(self):
        with pytest.raises(ValidationError):
            validate_config(["virtual_root_name"])

    def test_bad_virtual_root_name(self):
        with pytest.raises(ValidationError, match="virtual root"):
            validate_config({"virtual_root_name": "a/b"})

    def test_bad_language(self):
        with pytest.raises(ValidationError):
            validate_config({"language": "english"})

    def test_bad_store_file(self):
        with pytest.raises(ValidationError, match="store_file"):
            validate_config({"store_file": 42})

    def test_bad_log_level(self):
        with pytest.raises(ValidationError, match="log level"):
            validate_config({"logging": {"level": "LOUD"}})

    def test_logging_not_a_dict(self):
        with pytest.raises(ValidationError):
            validate_config({"logging": "DEBUG"})
