"""
Tests for VkClientLogger.
"""

import json
import logging

from vkclient.core.logging import LoggingConfig, VkClientLogger, get_logger
from vkclient.core.logging.filters import clear_correlation_id, set_correlation_id


def _read_lines(path):
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


class TestVkClientLogger:
    """Tests for VkClientLogger."""

    def test_default_config(self):
        logger = VkClientLogger(name="vkclient.test.default")
        assert logger.config.level.value == "INFO"
        assert logger.logger.level == logging.INFO
        assert logger.logger.propagate is False
        logger.close()

    def test_no_handlers_when_outputs_disabled(self, logging_config):
        logger = VkClientLogger(logging_config, name="vkclient.test.quiet")
        assert logger.logger.handlers == []
        logger.close()

    def test_reinit_replaces_handlers(self, logging_config_with_file):
        first = VkClientLogger(logging_config_with_file, name="vkclient.test.reinit")
        second = VkClientLogger(logging_config_with_file, name="vkclient.test.reinit")
        assert len(second.logger.handlers) == 1
        first.close()
        second.close()

    def test_structured_fields_in_file(self, logging_config_with_file):
        logger = VkClientLogger(logging_config_with_file, name="vkclient.test.fields")
        logger.info("Request completed", api_method="users.get", status_code=200)
        logger.close()

        (line,) = _read_lines(logging_config_with_file.file_path)
        assert line["message"] == "Request completed"
        assert line["api_method"] == "users.get"
        assert line["status_code"] == 200

    def test_sensitive_fields_masked(self, logging_config_with_file):
        logger = VkClientLogger(logging_config_with_file, name="vkclient.test.mask")
        logger.warning(
            "Request failed",
            access_token="vk1.a.secret",
            url="https://lp.vk.com/wh1?act=a_check&key=lpkey&ts=1",
        )
        logger.close()

        (line,) = _read_lines(logging_config_with_file.file_path)
        assert line["access_token"] == "***REDACTED***"
        assert "lpkey" not in line["url"]
        assert "ts=1" in line["url"]

    def test_correlation_id_added(self, logging_config_with_file):
        logger = VkClientLogger(logging_config_with_file, name="vkclient.test.corr")
        set_correlation_id("req-1")
        try:
            logger.debug("Long poll cursor replaced", ts="5")
        finally:
            clear_correlation_id()
        logger.close()

        (line,) = _read_lines(logging_config_with_file.file_path)
        assert line["correlation_id"] == "req-1"
        assert line["level"] == "DEBUG"

    def test_level_filtering(self, tmp_path):
        config = LoggingConfig.create(
            level="WARNING", format="json", enable_console=False,
            enable_file=True, file_path=str(tmp_path / "w.log"),
        )
        logger = VkClientLogger(config, name="vkclient.test.level")
        logger.info("skipped")
        logger.error("kept")
        logger.close()

        assert [line["message"] for line in _read_lines(config.file_path)] == ["kept"]

    def test_exception_logged_with_traceback(self, logging_config_with_file):
        logger = VkClientLogger(logging_config_with_file, name="vkclient.test.exc")
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.exception("Unexpected")
        logger.close()

        (line,) = _read_lines(logging_config_with_file.file_path)
        assert "RuntimeError: boom" in line["exception"]

    def test_close_idempotent_and_silences(self, logging_config_with_file):
        logger = VkClientLogger(logging_config_with_file, name="vkclient.test.close")
        logger.close()
        logger.close()
        logger.info("after close")
        assert logger.logger.handlers == []

    def test_context_manager(self, logging_config):
        with VkClientLogger(logging_config, name="vkclient.test.ctx") as logger:
            logger.info("inside")
        assert logger._closed


def test_get_logger(logging_config):
    """get_logger создаёт VkClientLogger."""
    logger = get_logger(logging_config, name="vkclient.test.get")
    assert isinstance(logger, VkClientLogger)
    assert logger.name == "vkclient.test.get"
    logger.close()
