"""
Tests for LoggingConfig.
"""

import pytest

from vkclient.core.logging.config import LogFormat, LoggingConfig, LogLevel


class TestLoggingConfig:
    """Tests for LoggingConfig dataclass."""

    def test_defaults(self):
        """Default values."""
        config = LoggingConfig()
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.TEXT
        assert config.enable_console is True
        assert config.enable_file is False
        assert config.enable_correlation_id is True
        assert config.max_bytes == 10 * 1024 * 1024

    def test_string_values_coerced(self):
        """Plain strings become enums, case-insensitively."""
        config = LoggingConfig(level="debug", format="JSON")
        assert config.level == LogLevel.DEBUG
        assert config.format == LogFormat.JSON

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            LoggingConfig(level="VERBOSE")

    def test_file_requires_path(self):
        with pytest.raises(ValueError, match="file_path is required"):
            LoggingConfig(enable_file=True)

    def test_max_bytes_positive(self):
        with pytest.raises(ValueError, match="max_bytes"):
            LoggingConfig(max_bytes=0)

    def test_backup_count_non_negative(self):
        with pytest.raises(ValueError, match="backup_count"):
            LoggingConfig(backup_count=-1)

    def test_frozen(self):
        config = LoggingConfig()
        with pytest.raises(Exception):
            config.level = LogLevel.DEBUG


class TestLoggingConfigCreate:
    """Tests for LoggingConfig.create()."""

    def test_create(self, tmp_path):
        config = LoggingConfig.create(
            level="warning",
            format="colored",
            enable_console=False,
            enable_file=True,
            file_path=str(tmp_path / "bot.log"),
            backup_count=2,
            extra_fields={"service": "bot"},
        )
        assert config.level == LogLevel.WARNING
        assert config.format == LogFormat.COLORED
        assert config.backup_count == 2
        assert config.extra_fields == {"service": "bot"}

    def test_create_extra_fields_default(self):
        assert LoggingConfig.create().extra_fields == {}
