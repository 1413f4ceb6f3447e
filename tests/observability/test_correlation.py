"""
Test suite for correlation ID propagation and log formatting.

System role: Verification of request tracing helpers
"""

import asyncio
import logging

import pytest

from jobcore.observability.correlation import (
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from jobcore.observability.logger import CorrelationIdFilter


class TestCorrelationId:
    def test_set_should_generate_id_when_none_given(self) -> None:
        correlation_id = set_correlation_id()

        assert get_correlation_id() == correlation_id
        assert len(correlation_id) == 36
        clear_correlation_id()
        assert get_correlation_id() == ""

    @pytest.mark.asyncio
    async def test_ids_should_not_leak_between_tasks(self) -> None:
        async def worker(name: str) -> str:
            set_correlation_id(name)
            await asyncio.sleep(0)
            return get_correlation_id()

        assert await asyncio.gather(worker("a"), worker("b")) == ["a", "b"]


class TestCorrelationIdFilter:
    def test_filter_should_stamp_record(self) -> None:
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        set_correlation_id("req-1")

        try:
            CorrelationIdFilter().filter(record)
        finally:
            clear_correlation_id()

        assert record.correlation_id == "req-1"

    def test_filter_should_use_dash_without_id(self) -> None:
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

        CorrelationIdFilter().filter(record)

        assert record.correlation_id == "-"
