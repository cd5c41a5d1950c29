"""
Module: clinic_engines.comparison
Responsibility:
    Compare a period's figures with an earlier window: the immediately
    preceding window of the same length, or any window the caller names
    (year-over-year views).  Produces percentage deltas with a
    good/bad polarity per metric.

Architecture position:
    Engines -- runs the aggregator twice over the same snapshot.

Invariants enforced:
    - previous window length == current window length (inclusive days),
      and the two windows never overlap.
    - A metric whose previous value is zero has NO trend (absent), never
      100% or infinity.

Failure modes:
    - IncompleteDateRangeError when the current range lacks a bound;
      "previous" is undefined without both.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from clinic_engines.aggregation import FinancialAggregator, FinancialSummary
from clinic_engines.date_filter import (
    appointment_time,
    expense_date,
    filter_by_date,
    payment_date,
)
from clinic_kernel.domain.records import Appointment, Expense, Payment, RecordSnapshot
from clinic_kernel.domain.values import HUNDRED, DateRange
from clinic_kernel.exceptions import IncompleteDateRangeError
from clinic_kernel.logging_config import get_logger

logger = get_logger("engines.comparison")


class Polarity(str, Enum):
    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"


METRIC_POLARITY: dict[str, Polarity] = {
    "total_revenue": Polarity.HIGHER_IS_BETTER,
    "net_profit": Polarity.HIGHER_IS_BETTER,
    "doctor_revenue": Polarity.HIGHER_IS_BETTER,
    "cash_flow": Polarity.HIGHER_IS_BETTER,
    "payment_count": Polarity.HIGHER_IS_BETTER,
    "appointment_count": Polarity.HIGHER_IS_BETTER,
    "unique_patient_count": Polarity.HIGHER_IS_BETTER,
    "operating_expenses": Polarity.LOWER_IS_BETTER,
    "doctor_payments_total": Polarity.LOWER_IS_BETTER,
    "total_supplier_invoices": Polarity.LOWER_IS_BETTER,
    "unpaid_invoices": Polarity.LOWER_IS_BETTER,
    "accounts_payable": Polarity.LOWER_IS_BETTER,
    "total_liabilities": Polarity.LOWER_IS_BETTER,
    "expense_count": Polarity.LOWER_IS_BETTER,
}

_ACTIVITY_METRICS = frozenset(
    {"payment_count", "expense_count", "appointment_count", "unique_patient_count"}
)


def previous_period(date_range: DateRange) -> DateRange:
    """
    The equal-length window ending the day before ``date_range`` starts.

    ``L = (end - start).days + 1``; the result is ``[start - L, end - L]``.
    An inverted range clamps ``L`` to zero, so its (empty) previous window
    is itself.

    Raises:
        IncompleteDateRangeError: If either bound is missing.
    """
    return date_range.shifted(window_length_days(date_range, "previous_period"))


def same_period_previous_year(date_range: DateRange) -> DateRange:
    """The same calendar window one year earlier (29 Feb maps to 28 Feb)."""
    if not date_range.is_complete:
        raise IncompleteDateRangeError(
            "same_period_previous_year", date_range.start_date, date_range.end_date,
        )

    def back_one_year(day):
        try:
            return day.replace(year=day.year - 1)
        except ValueError:
            return day.replace(year=day.year - 1, day=28)

    return DateRange(
        start_date=back_one_year(date_range.start_date),
        end_date=back_one_year(date_range.end_date),
    )


def percent_change(current: Decimal, previous: Decimal) -> Decimal | None:
    """``|current - previous| / |previous| * 100``; None when previous is zero."""
    if previous == 0:
        return None
    return abs(Decimal(current) - Decimal(previous)) / abs(Decimal(previous)) * HUNDRED


# =========================================================================
# Value objects
# =========================================================================


@dataclass(frozen=True)
class ActivityCounts:
    payment_count: int = 0
    expense_count: int = 0
    appointment_count: int = 0
    unique_patient_count: int = 0


def activity_counts(
    payments: Iterable[Payment],
    expenses: Iterable[Expense],
    appointments: Iterable[Appointment],
) -> ActivityCounts:
    """Counts over already-filtered records; unique patients come from payments."""
    payments = list(payments)
    return ActivityCounts(
        payment_count=len(payments),
        expense_count=len(list(expenses)),
        appointment_count=len(list(appointments)),
        unique_patient_count=len({p.patient_id for p in payments}),
    )


@dataclass(frozen=True)
class Trend:
    """
    Direction of one metric between two windows.

    ``percent_change`` is a magnitude; ``is_positive`` says whether the
    move is good for the clinic given the metric's polarity.
    """

    metric: str
    current: Decimal
    previous: Decimal
    percent_change: Decimal
    is_positive: bool


@dataclass(frozen=True)
class PeriodComparison:
    current_range: DateRange | None
    previous_range: DateRange | None
    current: FinancialSummary
    previous: FinancialSummary
    current_activity: ActivityCounts
    previous_activity: ActivityCounts
    trends: Mapping[str, Trend]

    @property
    def deltas(self) -> dict[str, Decimal]:
        """Metric -> percent change, only for metrics that have a trend."""
        return {name: trend.percent_change for name, trend in self.trends.items()}

    def trend(self, metric: str) -> Trend | None:
        return self.trends.get(metric)


def _metric_value(
    metric: str,
    summary: FinancialSummary,
    activity: ActivityCounts,
) -> Decimal:
    if metric in _ACTIVITY_METRICS:
        return Decimal(getattr(activity, metric))
    return getattr(summary, metric)


def _is_positive(metric: str, current: Decimal, previous: Decimal) -> bool:
    if METRIC_POLARITY[metric] is Polarity.LOWER_IS_BETTER:
        return current <= previous
    return current >= previous


def compare_periods(
    current: FinancialSummary,
    previous: FinancialSummary,
    current_activity: ActivityCounts | None = None,
    previous_activity: ActivityCounts | None = None,
    current_range: DateRange | None = None,
    previous_range: DateRange | None = None,
) -> PeriodComparison:
    """Build trends for every metric in ``METRIC_POLARITY`` with a non-zero previous value."""
    current_activity = current_activity or ActivityCounts()
    previous_activity = previous_activity or ActivityCounts()

    trends: dict[str, Trend] = {}
    for metric in METRIC_POLARITY:
        now = _metric_value(metric, current, current_activity)
        before = _metric_value(metric, previous, previous_activity)
        change = percent_change(now, before)
        if change is None:
            continue
        trends[metric] = Trend(
            metric=metric,
            current=now,
            previous=before,
            percent_change=change,
            is_positive=_is_positive(metric, now, before),
        )

    return PeriodComparison(
        current_range=current_range,
        previous_range=previous_range,
        current=current,
        previous=previous,
        current_activity=current_activity,
        previous_activity=previous_activity,
        trends=trends,
    )


class PeriodComparator:
    """
    Runs the aggregator over a current and an earlier window of one snapshot.

    Contract:
        Both aggregations are audited through the aggregator's audit log.
    """

    def __init__(self, aggregator: FinancialAggregator | None = None):
        self._aggregator = aggregator if aggregator is not None else FinancialAggregator()

    def compare_to_previous_period(
        self,
        snapshot: RecordSnapshot,
        date_range: DateRange,
    ) -> PeriodComparison:
        """
        Compare ``date_range`` with the equal-length window before it.

        Raises:
            IncompleteDateRangeError: If either bound is missing.
        """
        return self.compare(snapshot, date_range, previous_period(date_range))

    def compare_year_over_year(
        self,
        snapshot: RecordSnapshot,
        date_range: DateRange,
    ) -> PeriodComparison:
        return self.compare(snapshot, date_range, same_period_previous_year(date_range))

    def compare(
        self,
        snapshot: RecordSnapshot,
        current_range: DateRange,
        previous_range: DateRange,
    ) -> PeriodComparison:
        current = self._aggregator.summarize(snapshot, current_range)
        previous = self._aggregator.summarize(snapshot, previous_range)
        comparison = compare_periods(
            current,
            previous,
            current_activity=snapshot_activity(snapshot, current_range),
            previous_activity=snapshot_activity(snapshot, previous_range),
            current_range=current_range,
            previous_range=previous_range,
        )
        logger.info("period_comparison_calculated", extra={
            "current_start": current_range.as_dict()["start_date"],
            "current_end": current_range.as_dict()["end_date"],
            "previous_start": previous_range.as_dict()["start_date"],
            "previous_end": previous_range.as_dict()["end_date"],
            "trend_count": len(comparison.trends),
        })
        return comparison


def snapshot_activity(snapshot: RecordSnapshot, date_range: DateRange) -> ActivityCounts:
    """Activity counts for the snapshot's records inside ``date_range``."""
    return activity_counts(
        filter_by_date(snapshot.payments, date_range, payment_date),
        filter_by_date(snapshot.expenses, date_range, expense_date),
        filter_by_date(snapshot.appointments, date_range, appointment_time),
    )


def window_length_days(date_range: DateRange, operation: str = "window_length_days") -> int:
    """Inclusive length in days of a complete range; zero when inverted."""
    if not date_range.is_complete:
        raise IncompleteDateRangeError(
            operation, date_range.start_date, date_range.end_date,
        )
    return max((date_range.end_date - date_range.start_date).days + 1, 0)
