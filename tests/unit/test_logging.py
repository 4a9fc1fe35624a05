"""Tests for the structured logging system (backoffice_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from backoffice_kernel.exceptions import NegativeStockError
from backoffice_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's setup."""
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


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "backoffice_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("stock_adjusted", extra={"delta": 5, "stock": 15})

        record = _parse_log(stream)
        assert record["delta"] == 5
        assert record["stock"] == 15

    def test_uuid_and_decimal_serialized_as_strings(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        pid = uuid4()
        get_logger("test").info("x", extra={"product_id": pid, "total": Decimal("1.50")})

        record = _parse_log(stream)
        assert record["product_id"] == str(pid)
        assert record["total"] == "1.50"

    def test_exception_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise NegativeStockError("p-1", -3)
        except NegativeStockError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "NegativeStockError"
        assert record["exc_code"] == "NEGATIVE_STOCK"
        assert record["exc_stock"] == -3
        assert "traceback" in record


class TestLogContext:

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(actor_id="user-1")
        get_logger("test").info("with context")

        assert _parse_log(stream)["actor_id"] == "user-1"

    def test_bind_restores_previous_values(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        with LogContext.bind(purchase_id="outer"):
            with LogContext.bind(purchase_id="inner"):
                logger.info("first")
            logger.info("second")
        logger.info("third")

        records = _parse_all_logs(stream)
        assert records[0]["purchase_id"] == "inner"
        assert records[1]["purchase_id"] == "outer"
        assert "purchase_id" not in records[2]

    def test_bind_ignores_none(self):
        with LogContext.bind(actor_id=None, purchase_id="p"):
            assert LogContext.get_all() == {"purchase_id": "p"}


class TestConfigureLogging:

    def test_idempotent(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=handler)
        # pytest's capture handlers may sit on the same logger; count ours only.
        handlers = logging.getLogger("backoffice_kernel").handlers
        assert handlers.count(handler) == 1

    def test_second_call_keeps_first_handler(self):
        first, _ = _make_handler()
        second, _ = _make_handler()
        configure_logging(handler=first)
        configure_logging(handler=second)

        handlers = logging.getLogger("backoffice_kernel").handlers
        assert handlers.count(first) == 1
        assert second not in handlers

    def test_reset_leaves_foreign_handlers(self):
        ours, _ = _make_handler()
        foreign = logging.NullHandler()
        kernel_logger = logging.getLogger("backoffice_kernel")
        kernel_logger.addHandler(foreign)
        try:
            configure_logging(handler=ours)
            reset_logging()
            assert ours not in kernel_logger.handlers
            assert foreign in kernel_logger.handlers
        finally:
            kernel_logger.removeHandler(foreign)

    def test_does_not_propagate_to_root(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        assert logging.getLogger("backoffice_kernel").propagate is False

    def test_level_filters_debug(self):
        handler, stream = _make_handler()
        configure_logging(level=logging.INFO, handler=handler)
        get_logger("test").debug("hidden")
        assert stream.getvalue() == ""
