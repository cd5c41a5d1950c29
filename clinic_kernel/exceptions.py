"""
Typed exception hierarchy for the clinic kernel.

The reporting core itself has almost no failure surface: malformed dates
fail open, missing lookups become placeholders and zero denominators
produce zero.  The exceptions below cover the edges around it -- parsing
records handed over by the record store, building date ranges from user
input, and loading configuration.

Every exception carries a ``code`` class attribute (machine-readable) and
keeps its context as attributes rather than inside the message.

    ClinicKernelError (base)
    |
    +-- DateRangeError
    |   +-- IncompleteDateRangeError
    |   +-- InvalidDateError
    |
    +-- RecordError
    |   +-- MalformedRecordError
    |
    +-- ConfigurationError
"""

from typing import Any


class ClinicKernelError(Exception):
    """Base exception for all clinic kernel errors."""

    code: str = "CLINIC_KERNEL_ERROR"


# Date range exceptions


class DateRangeError(ClinicKernelError):
    """Base exception for date range errors."""

    code: str = "DATE_RANGE_ERROR"


class IncompleteDateRangeError(DateRangeError):
    """An operation needs both bounds of a date range."""

    code: str = "INCOMPLETE_DATE_RANGE"

    def __init__(self, operation: str, start_date: Any, end_date: Any):
        self.operation = operation
        self.start_date = str(start_date) if start_date is not None else None
        self.end_date = str(end_date) if end_date is not None else None
        super().__init__(
            f"{operation} requires both start_date and end_date "
            f"(got start={self.start_date}, end={self.end_date})"
        )


class InvalidDateError(DateRangeError):
    """A date bound could not be parsed."""

    code: str = "INVALID_DATE"

    def __init__(self, field_name: str, value: Any):
        self.field_name = field_name
        self.value = str(value)
        super().__init__(f"Invalid date for {field_name}: {value!r}")


# Record exceptions


class RecordError(ClinicKernelError):
    """Base exception for record store data problems."""

    code: str = "RECORD_ERROR"


class MalformedRecordError(RecordError):
    """A record from the record store is missing data or has a bad value."""

    code: str = "MALFORMED_RECORD"

    def __init__(self, record_kind: str, field_name: str, reason: str):
        self.record_kind = record_kind
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Malformed {record_kind}: {field_name} {reason}")


# Configuration exceptions


class ConfigurationError(ClinicKernelError):
    """Reporting configuration is invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid setting {setting}: {reason}")
