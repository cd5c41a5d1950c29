"""
Module: clinic_engines.date_filter
Responsibility:
    Select the records of one kind whose date falls inside an inclusive
    ``DateRange``.  The caller supplies a date accessor for the record
    kind, so the filter stays generic over a single ``get_date(record)``
    function.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - ``start_date`` compares from 00:00:00, ``end_date`` up to
      23:59:59.999 (inclusive end-of-day).
    - Records whose date cannot be resolved are KEPT.
    - No bounds: the input sequence itself is returned.
    - The input is never mutated and relative order is preserved, so the
      filter is idempotent.
    - An inverted range selects nothing, undated records included.

Usage:
    from clinic_engines.date_filter import filter_by_date, payment_date

    march = filter_by_date(payments, DateRange.from_strings("2024-03-01", "2024-03-31"), payment_date)
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date, datetime
from typing import Any, TypeVar

from clinic_kernel.domain.records import (
    Appointment,
    DoctorPayment,
    Expense,
    Payment,
    SupplierInvoice,
    TreatmentRecord,
)
from clinic_kernel.domain.values import DateRange, as_naive_datetime, parse_calendar_value
from clinic_kernel.logging_config import get_logger

logger = get_logger("engines.date_filter")

T = TypeVar("T")

DateAccessor = Callable[[Any], Any]


# =========================================================================
# Per-kind date accessors
# =========================================================================


def payment_date(record: Payment) -> date | datetime | None:
    return record.date


def expense_date(record: Expense) -> date | datetime | None:
    return record.date


def treatment_date(record: TreatmentRecord) -> date | datetime | None:
    return record.treatment_date


def doctor_payment_date(record: DoctorPayment) -> date | datetime | None:
    return record.date


def invoice_date(record: SupplierInvoice) -> date | datetime | None:
    return record.invoice_date


def appointment_time(record: Appointment) -> date | datetime | None:
    return record.start_time


DATE_ACCESSORS: dict[type, DateAccessor] = {
    Payment: payment_date,
    Expense: expense_date,
    TreatmentRecord: treatment_date,
    DoctorPayment: doctor_payment_date,
    SupplierInvoice: invoice_date,
    Appointment: appointment_time,
}


def date_accessor_for(kind: type) -> DateAccessor:
    """
    Return the date accessor registered for a record kind.

    Raises:
        KeyError: If the kind has no registered accessor.
    """
    return DATE_ACCESSORS[kind]


# =========================================================================
# Filter
# =========================================================================


def resolve_record_datetime(record: Any, get_date: DateAccessor) -> datetime | None:
    """Resolve a record's comparison instant, or None when it has no usable date."""
    parsed = parse_calendar_value(get_date(record))
    if parsed is None:
        return None
    return as_naive_datetime(parsed)


def filter_by_date(
    records: Sequence[T],
    date_range: DateRange,
    get_date: DateAccessor,
) -> Sequence[T]:
    """
    Records whose resolved date lies within ``date_range``.

    Preconditions:
        ``get_date`` returns a date, datetime, ISO string or None.
    Postconditions:
        - Unbounded range: returns ``records`` unchanged (same object).
        - Inverted range: returns an empty list.
        - Otherwise a new list in the original order.
    """
    if date_range.is_unbounded:
        return records
    if date_range.is_inverted:
        return []

    lower = date_range.lower_bound()
    upper = date_range.upper_bound()
    selected: list[T] = []
    undated = 0

    for record in records:
        when = resolve_record_datetime(record, get_date)
        if when is None:
            undated += 1
            selected.append(record)
            continue
        if lower is not None and when < lower:
            continue
        if upper is not None and when > upper:
            continue
        selected.append(record)

    if undated:
        logger.debug("date_filter_kept_undated_records", extra={
            "undated_count": undated,
            **date_range.as_dict(),
        })

    return selected
