"""
Tests for log filters and correlation ID management.
"""

import asyncio
import logging
import threading

import pytest

from vkclient.core.logging.filters import (
    CorrelationIdFilter,
    ExtraFieldsFilter,
    clear_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)


def _record(msg="Test"):
    return logging.LogRecord("test", logging.INFO, "test.py", 1, msg, (), None)


@pytest.fixture(autouse=True)
def _clean_correlation_id():
    clear_correlation_id()
    yield
    clear_correlation_id()


class TestCorrelationIdFunctions:
    """Tests for correlation ID management functions."""

    def test_set_and_get(self):
        set_correlation_id("req-123")
        assert get_correlation_id() == "req-123"

    def test_not_set(self):
        assert get_correlation_id() is None

    def test_reset_restores_previous(self):
        """reset returns the value active before set."""
        set_correlation_id("outer")
        token = set_correlation_id("inner")
        assert get_correlation_id() == "inner"
        reset_correlation_id(token)
        assert get_correlation_id() == "outer"

    def test_thread_isolation(self):
        """Other threads do not see our correlation ID."""
        set_correlation_id("main")
        seen = []
        thread = threading.Thread(target=lambda: seen.append(get_correlation_id()))
        thread.start()
        thread.join()
        assert seen == [None]

    def test_task_isolation(self):
        """Concurrent tasks keep their own IDs."""
        async def worker(name):
            set_correlation_id(name)
            await asyncio.sleep(0)
            return get_correlation_id()

        async def main():
            return await asyncio.gather(worker("a"), worker("b"))

        assert asyncio.run(main()) == ["a", "b"]


class TestCorrelationIdFilter:
    """Tests for CorrelationIdFilter."""

    def test_adds_correlation_id(self):
        set_correlation_id("abc")
        record = _record()
        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "abc"

    def test_no_correlation_id(self):
        record = _record()
        CorrelationIdFilter().filter(record)
        assert not hasattr(record, "correlation_id")


class TestExtraFieldsFilter:
    """Tests for ExtraFieldsFilter."""

    def test_adds_fields(self):
        record = _record()
        ExtraFieldsFilter({"service": "bot", "env": "prod"}).filter(record)
        assert record.service == "bot"
        assert record.env == "prod"

    def test_explicit_field_wins(self):
        record = _record()
        record.service = "explicit"
        ExtraFieldsFilter({"service": "bot"}).filter(record)
        assert record.service == "explicit"
