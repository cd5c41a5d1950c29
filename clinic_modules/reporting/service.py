"""
Reporting Module Service (``clinic_modules.reporting.service``).

Responsibility
--------------
Orchestrates the clinic's report views (financial summary, balance
sheet, period comparisons, daily/monthly/quarterly/annual summaries, the
accounting report and the overview) by bridging a ``RecordSnapshot`` to
the pure engines in ``clinic_engines``.  This is a **read-only** service.

Architecture position
---------------------
**Modules layer** -- thin glue.  Constructor: ``snapshot`` + ``clock`` +
``config`` (+ optional ``audit_log``).  No financial formula lives in this
class; every figure comes from ``FinancialAggregator`` or a rollup.

Invariants enforced
-------------------
* Read-only -- the snapshot is never modified.
* All monetary amounts use ``Decimal`` -- NEVER ``float``.
* Report metadata carries the generation timestamp from the injected
  clock, so reports are reproducible under a deterministic clock.

Failure modes
-------------
* ``IncompleteDateRangeError`` from comparisons without both bounds.
* ``ValueError`` for an invalid month, quarter or year argument.
"""

from __future__ import annotations

import calendar
import dataclasses
from datetime import date, timedelta

from clinic_engines.aggregation import (
    BalanceSheet,
    FinancialAggregator,
    FinancialSummary,
    build_balance_sheet,
    sum_amounts,
)
from clinic_engines.comparison import PeriodComparator, PeriodComparison
from clinic_engines.date_filter import (
    doctor_payment_date,
    expense_date,
    filter_by_date,
    invoice_date,
    payment_date,
    treatment_date,
)
from clinic_engines.rollups import (
    doctor_accounts,
    doctor_earnings,
    expense_categories,
    inventory_value_by_supplier,
    overall_share_percentages,
    patient_balances,
    payment_methods,
    sorted_by,
    supplier_balances,
    treatment_types,
)
from clinic_kernel.domain.clock import Clock, SystemClock
from clinic_kernel.domain.records import RecordSnapshot, TreatmentRecord
from clinic_kernel.domain.values import DateRange
from clinic_kernel.logging_config import LogContext, get_logger
from clinic_kernel.services.audit_log import CalculationAuditLog

from clinic_modules.reporting.config import ReportingConfig
from clinic_modules.reporting.models import (
    AccountingReport,
    ClinicOverview,
    PeriodReport,
    ReportMetadata,
    ReportType,
    SeasonalQuarter,
)
from clinic_modules.reporting.rendering import format_amount, render_to_dict

logger = get_logger("modules.reporting.service")

RECENT_ACTIVITY_DAYS = 30

__all__ = ["ReportingService", "format_amount", "render_to_dict"]


def month_range(year: int, month: int) -> DateRange:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1-12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(date(year, month, 1), date(year, month, last_day))


def quarter_range(year: int, quarter: int) -> DateRange:
    if not 1 <= quarter <= 4:
        raise ValueError(f"quarter must be 1-4, got {quarter}")
    first_month = 3 * (quarter - 1) + 1
    return DateRange(
        month_range(year, first_month).start_date,
        month_range(year, first_month + 2).end_date,
    )


def year_range(year: int) -> DateRange:
    if year <= date.min.year:
        raise ValueError(f"year must be after {date.min.year}, got {year}")
    return DateRange(date(year, 1, 1), date(year, 12, 31))


class ReportingService:
    """
    Clinic report generation service.

    Contract
    --------
    * Every public method returns a typed value object (``FinancialSummary``,
      ``PeriodReport``, ``AccountingReport``, ...).
    * All methods are **read-only**.

    Guarantees
    ----------
    * Figures are recomputed from the snapshot on every call.
    * Clock is injectable for deterministic testing.
    * Each aggregation lands in the audit log; when none is injected the
      service owns one sized by ``config.audit_log_capacity``.

    Non-goals
    ---------
    * Does NOT cache results or persist reports.
    * Does NOT round figures; see ``format_amount`` for display.
    """

    def __init__(
        self,
        snapshot: RecordSnapshot,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
        audit_log: CalculationAuditLog | None = None,
    ):
        self._snapshot = snapshot
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        if audit_log is None:
            audit_log = CalculationAuditLog(
                capacity=self._config.audit_log_capacity,
                clock=self._clock,
                enabled=self._config.audit_enabled,
            )
        self._audit_log = audit_log
        self._aggregator = FinancialAggregator(audit_log=self._audit_log)
        self._comparator = PeriodComparator(self._aggregator)

        logger.info(
            "reporting_service_initialized",
            extra={
                "entity_name": self._config.entity_name,
                "default_currency": self._config.default_currency,
                "record_counts": snapshot.record_counts(),
            },
        )

    @property
    def audit_log(self) -> CalculationAuditLog:
        return self._audit_log

    @property
    def config(self) -> ReportingConfig:
        return self._config

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _build_metadata(
        self,
        report_type: ReportType,
        period: DateRange | None = None,
        comparative: DateRange | None = None,
    ) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.default_currency,
            generated_at=self._clock.now().isoformat(),
            period_start=period.start_date if period else None,
            period_end=period.end_date if period else None,
            comparative_start=comparative.start_date if comparative else None,
            comparative_end=comparative.end_date if comparative else None,
        )

    def _report_scope(self, report_type: ReportType, period: DateRange | None = None):
        """Bind ``report_id`` (type plus period) to every log record of one report."""
        report_id = report_type.value
        if period is not None and not period.is_unbounded:
            report_id += f":{period.start_date or ''}..{period.end_date or ''}"
        return LogContext.bind(report_id=report_id)

    def _period_report(
        self,
        report_type: ReportType,
        comparison: PeriodComparison,
    ) -> PeriodReport:
        current_range = comparison.current_range
        snapshot = self._snapshot
        payments = filter_by_date(snapshot.payments, current_range, payment_date)
        expenses = filter_by_date(snapshot.expenses, current_range, expense_date)
        labels = self._config.unknown_labels

        earnings = doctor_earnings(
            payments, snapshot.treatment_records, snapshot.dentists, labels.dentist,
        )
        return PeriodReport(
            metadata=self._build_metadata(
                report_type, current_range, comparison.previous_range,
            ),
            comparison=comparison,
            doctor_earnings=tuple(sorted_by(earnings.values(), lambda e: e.earnings)),
            expense_categories=tuple(
                sorted_by(expense_categories(expenses).values(), lambda c: c.total_amount)
            ),
            payment_methods=tuple(
                sorted_by(payment_methods(payments).values(), lambda c: c.total_amount)
            ),
        )

    def _log_period_report(self, event: str, report: PeriodReport) -> None:
        logger.info(event, extra={
            "period_start": report.metadata.period_start,
            "period_end": report.metadata.period_end,
            "comparative_start": report.metadata.comparative_start,
            "comparative_end": report.metadata.comparative_end,
            "total_revenue": str(report.summary.total_revenue),
            "net_profit": str(report.summary.net_profit),
            "trend_count": len(report.comparison.trends),
        })

    # =========================================================================
    # Public API
    # =========================================================================

    def financial_summary(self, date_range: DateRange | None = None) -> FinancialSummary:
        """Aggregate the snapshot over ``date_range`` (all time when omitted)."""
        return self._aggregator.summarize(self._snapshot, date_range)

    def balance_sheet(self, date_range: DateRange | None = None) -> BalanceSheet:
        return build_balance_sheet(self.financial_summary(date_range))

    def compare_to_previous_period(self, date_range: DateRange) -> PeriodComparison:
        """
        Compare ``date_range`` with the equal-length window just before it.

        Raises:
            IncompleteDateRangeError: If either bound is missing.
        """
        return self._comparator.compare_to_previous_period(self._snapshot, date_range)

    def daily_summary(self, day: date | None = None) -> PeriodReport:
        """One day compared with the day before; defaults to today."""
        period = DateRange.single_day(day or self._clock.today())
        with self._report_scope(ReportType.DAILY_SUMMARY, period):
            comparison = self._comparator.compare_to_previous_period(self._snapshot, period)
            report = self._period_report(ReportType.DAILY_SUMMARY, comparison)
            self._log_period_report("daily_summary_generated", report)
        return report

    def monthly_summary(self, year: int, month: int) -> PeriodReport:
        """
        A calendar month compared with the previous calendar month.

        Raises:
            ValueError: If ``month`` is not 1-12.
        """
        current = month_range(year, month)
        previous = month_range(*((year - 1, 12) if month == 1 else (year, month - 1)))
        with self._report_scope(ReportType.MONTHLY_SUMMARY, current):
            comparison = self._comparator.compare(self._snapshot, current, previous)
            report = self._period_report(ReportType.MONTHLY_SUMMARY, comparison)
            self._log_period_report("monthly_summary_generated", report)
        return report

    def quarterly_summary(self, year: int, quarter: int) -> PeriodReport:
        """
        A calendar quarter compared with the same quarter a year earlier.

        Raises:
            ValueError: If ``quarter`` is not 1-4.
        """
        current = quarter_range(year, quarter)
        with self._report_scope(ReportType.QUARTERLY_SUMMARY, current):
            comparison = self._comparator.compare_year_over_year(self._snapshot, current)
            report = self._period_report(ReportType.QUARTERLY_SUMMARY, comparison)
            self._log_period_report("quarterly_summary_generated", report)
        return report

    def annual_summary(self, year: int) -> PeriodReport:
        """
        A calendar year compared with the previous year, with a quarterly
        seasonal breakdown.
        """
        current = year_range(year)
        with self._report_scope(ReportType.ANNUAL_SUMMARY, current):
            comparison = self._comparator.compare_year_over_year(self._snapshot, current)
            report = self._period_report(ReportType.ANNUAL_SUMMARY, comparison)

            breakdown = []
            for quarter in range(1, 5):
                period = quarter_range(year, quarter)
                summary = self.financial_summary(period)
                breakdown.append(SeasonalQuarter(
                    quarter=quarter,
                    period_start=period.start_date,
                    period_end=period.end_date,
                    total_revenue=summary.total_revenue,
                    operating_expenses=summary.operating_expenses,
                    net_profit=summary.net_profit,
                ))

            report = dataclasses.replace(report, seasonal_breakdown=tuple(breakdown))
            self._log_period_report("annual_summary_generated", report)
        return report

    def accounting_report(self, date_range: DateRange | None = None) -> AccountingReport:
        """
        Every rollup over the records in ``date_range``.

        Dimension tables (patients, dentists, suppliers) and inventory are
        not date-filtered.
        """
        date_range = date_range or DateRange()
        with self._report_scope(ReportType.ACCOUNTING, date_range):
            return self._accounting_report(date_range)

    def _accounting_report(self, date_range: DateRange) -> AccountingReport:
        snapshot = self._snapshot
        labels = self._config.unknown_labels

        payments = filter_by_date(snapshot.payments, date_range, payment_date)
        expenses = filter_by_date(snapshot.expenses, date_range, expense_date)
        treatments = filter_by_date(snapshot.treatment_records, date_range, treatment_date)
        doctor_payments = filter_by_date(snapshot.doctor_payments, date_range, doctor_payment_date)
        invoices = filter_by_date(snapshot.supplier_invoices, date_range, invoice_date)

        summary = self.financial_summary(date_range)
        report = AccountingReport(
            metadata=self._build_metadata(ReportType.ACCOUNTING, date_range),
            summary=summary,
            balance_sheet=build_balance_sheet(summary),
            share_percentages=overall_share_percentages(treatments),
            patient_balances=tuple(sorted_by(
                patient_balances(snapshot.patients, treatments, payments, labels.patient).values(),
                lambda p: p.outstanding_balance,
            )),
            doctor_accounts=tuple(sorted_by(
                doctor_accounts(snapshot.dentists, treatments, doctor_payments, labels.dentist).values(),
                lambda d: d.total_revenue,
            )),
            treatment_types=tuple(sorted_by(
                treatment_types(treatments, snapshot.treatment_definitions, labels.treatment).values(),
                lambda t: t.total_revenue,
            )),
            expense_categories=tuple(sorted_by(
                expense_categories(expenses).values(), lambda c: c.total_amount,
            )),
            payment_methods=tuple(sorted_by(
                payment_methods(payments).values(), lambda c: c.total_amount,
            )),
            supplier_balances=tuple(sorted_by(
                supplier_balances(snapshot.suppliers, invoices, labels.supplier).values(),
                lambda s: s.outstanding_balance,
            )),
            inventory_values=tuple(sorted_by(
                inventory_value_by_supplier(
                    snapshot.inventory_items, snapshot.suppliers, labels.supplier,
                ).values(),
                lambda i: i.total_value,
            )),
        )

        logger.info(
            "accounting_report_generated",
            extra={
                **date_range.as_dict(),
                "patient_count": len(report.patient_balances),
                "doctor_count": len(report.doctor_accounts),
                "supplier_count": len(report.supplier_balances),
                "net_profit": str(summary.net_profit),
            },
        )
        return report

    def overview(self) -> ClinicOverview:
        """All-time headline figures plus the last 30 days of activity."""
        with self._report_scope(ReportType.OVERVIEW):
            return self._overview()

    def _overview(self) -> ClinicOverview:
        snapshot = self._snapshot
        summary = self.financial_summary()

        today = self._clock.today()
        recent = DateRange(today - timedelta(days=RECENT_ACTIVITY_DAYS), today)
        treated = {t.patient_id for t in snapshot.treatment_records}

        overview = ClinicOverview(
            metadata=self._build_metadata(ReportType.OVERVIEW),
            patient_count=len(snapshot.patients),
            active_patient_count=sum(1 for p in snapshot.patients if p.id in treated),
            doctor_count=len(snapshot.dentists),
            treatment_count=len(snapshot.treatment_records),
            supplier_count=len(snapshot.suppliers),
            inventory_value=sum_amounts(snapshot.inventory_items, lambda i: i.stock_value),
            total_revenue=summary.total_revenue,
            total_expenses=summary.total_expenses,
            total_doctor_shares=summary.doctor_revenue,
            net_profit=summary.net_profit,
            recent_payments=sum_amounts(
                filter_by_date(snapshot.payments, recent, payment_date), lambda p: p.amount,
            ),
            recent_expenses=sum_amounts(
                filter_by_date(snapshot.expenses, recent, expense_date), lambda e: e.amount,
            ),
        )
        logger.info("overview_generated", extra={
            "patient_count": overview.patient_count,
            "active_patient_count": overview.active_patient_count,
            "inventory_value": str(overview.inventory_value),
        })
        return overview

    def share_integrity_violations(
        self,
        date_range: DateRange | None = None,
    ) -> tuple[TreatmentRecord, ...]:
        """Treatment records whose doctor + clinic shares miss the total cost."""
        treatments = filter_by_date(
            self._snapshot.treatment_records, date_range or DateRange(), treatment_date,
        )
        tolerance = self._config.share_tolerance
        violations = tuple(t for t in treatments if not t.shares_balance(tolerance))
        if violations:
            logger.warning("treatment_share_mismatch", extra={
                "violation_count": len(violations),
                "treatment_record_ids": [t.id for t in violations],
                "tolerance": str(tolerance),
            })
        return violations

    def format_amount(self, amount) -> str:
        return format_amount(amount, self._config)
