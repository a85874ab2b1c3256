"""
Tests for log formatters.

Tests JSONFormatter, TextFormatter, ColoredFormatter, and get_formatter.
"""

import json
import logging

import pytest

from vkclient.core.logging.formatters import (
    ColoredFormatter,
    JSONFormatter,
    TextFormatter,
    extra_fields,
    get_formatter,
)


def _record(msg="Request completed", level=logging.INFO, **fields):
    record = logging.LogRecord("vkclient", level, "test.py", 10, msg, (), None)
    for key, value in fields.items():
        setattr(record, key, value)
    return record


class TestExtraFields:
    """Tests for extra_fields()."""

    def test_only_custom_fields(self):
        record = _record(api_method="users.get", status_code=200)
        assert extra_fields(record) == {"api_method": "users.get", "status_code": 200}


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_format(self):
        """JSONFormatter outputs valid JSON."""
        data = json.loads(JSONFormatter().format(_record("Test message")))
        assert data["level"] == "INFO"
        assert data["logger"] == "vkclient"
        assert data["message"] == "Test message"
        assert data["timestamp"].endswith("+00:00")

    def test_format_with_extra_fields(self):
        data = json.loads(JSONFormatter().format(_record(api_method="users.get", duration_ms=12.5)))
        assert data["api_method"] == "users.get"
        assert data["duration_ms"] == 12.5

    def test_non_ascii_kept(self):
        output = JSONFormatter().format(_record("Павел"))
        assert "Павел" in output

    def test_non_serializable_values(self):
        """Unknown objects fall back to str()."""
        data = json.loads(JSONFormatter().format(_record(obj=object)))
        assert "object" in data["obj"]

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys
            record = logging.LogRecord("vkclient", logging.ERROR, "t.py", 1, "failed", (), sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


class TestTextFormatter:
    """Tests for TextFormatter."""

    def test_format(self):
        output = TextFormatter().format(_record(api_method="users.get"))
        assert "[INFO] [vkclient] Request completed" in output
        assert output.endswith("api_method=users.get")

    def test_no_fields(self):
        assert TextFormatter().format(_record("plain")).endswith("plain")


class TestColoredFormatter:
    """Tests for ColoredFormatter."""

    def test_colors_level(self):
        output = ColoredFormatter().format(_record(level=logging.ERROR))
        assert "\033[31mERROR\033[0m" in output

    def test_record_not_modified(self):
        record = _record(level=logging.WARNING)
        ColoredFormatter().format(record)
        assert record.levelname == "WARNING"


class TestGetFormatter:
    """Tests for get_formatter()."""

    @pytest.mark.parametrize("name,cls", [
        ("json", JSONFormatter),
        ("TEXT", TextFormatter),
        ("colored", ColoredFormatter),
    ])
    def test_known(self, name, cls):
        assert isinstance(get_formatter(name), cls)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown format type"):
            get_formatter("xml")
