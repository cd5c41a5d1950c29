"""
Tests for clinic_kernel/logging_config.py.

Each test installs its own handler on a clean namespace logger and reads
back the JSON lines it wrote.
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from io import StringIO

import pytest

from clinic_kernel.exceptions import IncompleteDateRangeError, MalformedRecordError
from clinic_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _isolated_logging():
    reset_logging()
    yield
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def json_lines():
    """Configure logging into a buffer; calling the fixture value parses it."""
    stream = StringIO()
    configure_logging(stream=stream, level=logging.DEBUG)

    def read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    return read


class _Status(Enum):
    PAID = "PAID"


class TestEnvelope:
    def test_mandatory_keys(self, json_lines):
        get_logger("engines.aggregation").info("financial_summary_calculated")

        (record,) = json_lines()
        assert record["message"] == "financial_summary_calculated"
        assert record["level"] == "INFO"
        assert record["logger"] == "clinic_kernel.engines.aggregation"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_extra_payload(self, json_lines):
        get_logger("engines.aggregation").info("financial_summary_calculated", extra={
            "payment_count": 3,
            "record_counts": {"payments": 3, "expenses": 1},
        })

        (record,) = json_lines()
        assert record["payment_count"] == 3
        assert record["record_counts"] == {"payments": 3, "expenses": 1}

    def test_non_json_values(self, json_lines):
        get_logger("reporting").info("report_generated", extra={
            "net_profit": Decimal("600.00"),
            "period_start": date(2024, 3, 1),
            "generated_at": datetime(2024, 3, 15, 12, tzinfo=timezone.utc),
            "status": _Status.PAID,
        })

        (record,) = json_lines()
        assert record["net_profit"] == "600.00"
        assert record["period_start"] == "2024-03-01"
        assert record["generated_at"] == "2024-03-15T12:00:00+00:00"
        assert record["status"] == "_Status.PAID"

    def test_extra_cannot_override_envelope(self, json_lines):
        get_logger("reporting").info("report_generated", extra={"level": "fake"})
        assert json_lines()[0]["level"] == "INFO"

    def test_below_level_not_written(self):
        stream = StringIO()
        configure_logging(stream=stream, level=logging.WARNING)
        get_logger("engines").info("skipped")
        get_logger("engines").warning("kept")
        assert [json.loads(line)["message"] for line in stream.getvalue().splitlines()] == ["kept"]


class TestExceptionFields:
    def test_plain_exception(self, json_lines):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("cli").error("report_failed", exc_info=True)

        (record,) = json_lines()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_kernel_error_attributes(self, json_lines):
        try:
            raise IncompleteDateRangeError("previous_period", date(2024, 3, 1), None)
        except IncompleteDateRangeError:
            get_logger("engines.comparison").error("comparison_failed", exc_info=True)

        (record,) = json_lines()
        assert record["exc_code"] == "INCOMPLETE_DATE_RANGE"
        assert record["exc_operation"] == "previous_period"
        assert record["exc_start_date"] == "2024-03-01"
        assert record["exc_end_date"] is None

    def test_record_error_attributes(self, json_lines):
        try:
            raise MalformedRecordError("payment", "amount", "is required")
        except MalformedRecordError:
            get_logger("domain.records").warning("record_rejected", exc_info=True)

        (record,) = json_lines()
        assert record["exc_code"] == "MALFORMED_RECORD"
        assert record["exc_record_kind"] == "payment"
        assert record["exc_field_name"] == "amount"


class TestLogContext:
    def test_bound_fields_reach_every_record(self, json_lines):
        logger = get_logger("reporting.service")
        with LogContext.bind(report_id="monthly-2024-03", clinic_id="cairo"):
            logger.info("first")
            logger.info("second")
        logger.info("after")

        first, second, after = json_lines()
        assert first["report_id"] == second["report_id"] == "monthly-2024-03"
        assert first["clinic_id"] == "cairo"
        assert "report_id" not in after

    def test_set_ignores_none(self):
        LogContext.set(correlation_id="req-1")
        LogContext.set(correlation_id=None, actor_id="reception")
        assert LogContext.get_all() == {"correlation_id": "req-1", "actor_id": "reception"}

    def test_nested_bind_restores_outer_value(self):
        with LogContext.bind(report_id="annual-2024"):
            with LogContext.bind(report_id="quarterly-2024-Q1"):
                assert LogContext.get_all()["report_id"] == "quarterly-2024-Q1"
            assert LogContext.get_all()["report_id"] == "annual-2024"
        assert LogContext.get_all() == {}

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(actor_id="reception"):
                raise RuntimeError("report failed")
        assert "actor_id" not in LogContext.get_all()

    def test_clear(self):
        LogContext.set(correlation_id="c", report_id="r", actor_id="a", clinic_id="k")
        assert len(LogContext.get_all()) == 4
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="patient_id"):
            LogContext.set(patient_id="pat-1")


def _structured_handlers() -> list[logging.Handler]:
    # pytest's logging plugin adds its own capture handlers to the namespace logger
    return [
        h for h in logging.getLogger("clinic_kernel").handlers
        if isinstance(h.formatter, StructuredFormatter)
    ]


class TestConfigureLogging:
    def test_first_call_wins(self):
        first = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        configure_logging(handler=logging.StreamHandler(StringIO()))

        assert _structured_handlers() == [first]
        assert logging.getLogger("clinic_kernel").propagate is False

    def test_reset_allows_reconfiguring(self):
        first = logging.StreamHandler(StringIO())
        configure_logging(handler=first)
        reset_logging()
        assert first not in logging.getLogger("clinic_kernel").handlers

        second = logging.StreamHandler(StringIO())
        configure_logging(handler=second)
        assert _structured_handlers() == [second]

    def test_children_use_namespace_handler(self, json_lines):
        get_logger("selectors.record").debug("record_snapshot_selected")
        assert json_lines()[0]["logger"] == "clinic_kernel.selectors.record"
