"""Tests for the structured logging system (hr_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from hr_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Each test configures its own handler; the suite-wide setup is restored after."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        [record] = _parse_all_logs(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "hr_kernel.test"
        assert "ts" in record

    def test_extra_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        payslip_id = uuid4()
        get_logger("test").info(
            "month_closed", extra={"payslip_id": payslip_id, "net_pay": Decimal("107.85")}
        )

        [record] = _parse_all_logs(stream)
        assert record["payslip_id"] == str(payslip_id)
        assert record["net_pay"] == "107.85"

    def test_hr_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        from hr_kernel.exceptions import PendingItemsExistError

        try:
            raise PendingItemsExistError("03/2025", 2, 0)
        except PendingItemsExistError:
            get_logger("test").error("close_failed", exc_info=True)

        [record] = _parse_all_logs(stream)
        assert record["exc_code"] == "PENDING_ITEMS_EXIST"
        assert record["exc_month_year"] == "03/2025"
        assert record["exc_pending_count"] == 2
        assert "traceback" in record

    def test_below_level_suppressed(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.WARNING, handler=handler)
        get_logger("test").info("quiet")

        assert _parse_all_logs(stream) == []


class TestLogContext:
    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="req-1", month_year="03/2025")
        get_logger("test").info("msg")

        [record] = _parse_all_logs(stream)
        assert record["correlation_id"] == "req-1"
        assert record["month_year"] == "03/2025"

    def test_unknown_field_rejected(self):
        with pytest.raises(KeyError):
            LogContext.set(event_id="evt-1")

    def test_bind_restores_previous_values(self):
        LogContext.set(actor_id="outer")
        with LogContext.bind(actor_id="inner", contract_id="c-1"):
            assert LogContext.get_all()["actor_id"] == "inner"
        assert LogContext.get_all() == {"actor_id": "outer"}

    def test_configure_is_idempotent(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        get_logger("test").info("once")

        assert len(_parse_all_logs(stream)) == 1
