"""Tests for the structured logging system (billing_kernel/logging_config.py)."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from billing_engines.proration import prorate
from billing_kernel.domain.values import ChargeMode, validate_due_day
from billing_kernel.exceptions import InvalidConfigurationError, InvalidIntervalError
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
)
from billing_services.first_invoice import FirstInvoiceService


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
        assert record["logger"] == "billing_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("quoted", extra={"days_until_due": 25, "mode": "full"})

        record = _parse_log(stream)
        assert record["days_until_due"] == 25
        assert record["mode"] == "full"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(enrollment_id=42):
            get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["enrollment_id"] == "42"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["error_type"] == "ValueError"
        assert record["error_message"] == "boom"
        assert "traceback" in record

    def test_configuration_error_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InvalidConfigurationError("due_day_of_month", 29, "must be between 1 and 28")
        except InvalidConfigurationError:
            get_logger("test").error("validation_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["error_code"] == "INVALID_CONFIGURATION"
        assert record["field"] == "due_day_of_month"
        assert record["value"] == "29"
        assert record["reason"] == "must be between 1 and 28"
        assert "error_type" not in record

    def test_interval_error_dates_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InvalidIntervalError(date(2025, 3, 10), date(2025, 3, 9), -1)
        except InvalidIntervalError:
            get_logger("test").error("interval_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["error_code"] == "INVALID_INTERVAL"
        assert record["reference_date"] == "2025-03-10"
        assert record["due_date"] == "2025-03-09"
        assert record["days"] == -1

    def test_error_extra_rendered_without_traceback(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        error = InvalidConfigurationError("mode", "monthly", "must be 'full' or 'prorated'")
        get_logger("test").warning("billing_input_rejected", extra={"error": error})

        record = _parse_log(stream)
        assert record["error_code"] == "INVALID_CONFIGURATION"
        assert record["field"] == "mode"
        assert record["value"] == "'monthly'"
        assert "traceback" not in record
        assert "error" not in record

    def test_rejected_input_logged_with_enrollment(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(enrollment_id=7), pytest.raises(InvalidConfigurationError):
            validate_due_day(31)

        record = _parse_log(stream)
        assert record["message"] == "billing_input_rejected"
        assert record["level"] == "WARNING"
        assert record["enrollment_id"] == "7"
        assert record["field"] == "due_day_of_month"
        assert record["value"] == "31"

    def test_negative_days_logged_without_dates(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with pytest.raises(InvalidIntervalError):
            prorate(30000, -2)

        record = _parse_log(stream)
        assert record["message"] == "negative_days_until_due"
        assert record["error_code"] == "INVALID_INTERVAL"
        assert record["days"] == -2
        assert "reference_date" not in record

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "enrollment_id" not in record

    def test_date_decimal_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("typed", extra={
            "due_date": date(2025, 12, 10),
            "percentage": Decimal("12.5"),
            "mode": ChargeMode.PRORATED,
        })

        record = _parse_log(stream)
        assert record["due_date"] == "2025-12-10"
        assert record["percentage"] == "12.5"
        assert record["mode"] == "prorated"

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO, so the debug line is dropped
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= record.keys()


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for enrollment context propagation."""

    def test_empty_by_default(self):
        assert LogContext.get_all() == {}

    def test_bind_sets_and_restores(self):
        with LogContext.bind(enrollment_id="7"):
            assert LogContext.get_all() == {"enrollment_id": "7"}
        assert LogContext.get_all() == {}

    def test_bind_nests(self):
        with LogContext.bind(enrollment_id=1):
            with LogContext.bind(enrollment_id=2):
                assert LogContext.get_all()["enrollment_id"] == "2"
            assert LogContext.get_all()["enrollment_id"] == "1"

    def test_bind_restores_after_error(self):
        with pytest.raises(InvalidIntervalError):
            with LogContext.bind(enrollment_id=9):
                raise InvalidIntervalError(None, None, -1)
        assert LogContext.get_all() == {}

    def test_clear(self):
        with LogContext.bind(enrollment_id=3):
            LogContext.clear()
            assert LogContext.get_all() == {}

    def test_service_binds_enrollment(self, clock, settings, log_capture):
        service = FirstInvoiceService(clock, settings)
        terms = service.terms_from_record({"id": 11, "plan_price_cents": 30000, "due_day": 10})
        service.upfront_payment_amount(terms)

        completed = log_capture.find("charge_calculation_completed")
        assert completed[0]["enrollment_id"] == "11"
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        assert len(logging.getLogger("billing_kernel").handlers) == 1

    def test_accepts_level_name(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler, level="WARNING")
        assert logging.getLogger("billing_kernel").level == logging.WARNING

    def test_get_logger_returns_child(self):
        assert get_logger("engines.proration").name == "billing_kernel.engines.proration"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "billing_kernel.deep.nested.module"
