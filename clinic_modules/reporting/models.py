"""
Clinic Reporting Domain Models (``clinic_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for the report views built on top of the
engines: period reports (daily, monthly, quarterly, annual), the full
accounting report, and the clinic overview.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by
``ReportingService`` and returned to callers.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Collections are tuples already sorted for presentation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from clinic_engines.aggregation import BalanceSheet, FinancialSummary
from clinic_engines.comparison import PeriodComparison
from clinic_engines.rollups import (
    CategoryTotal,
    DoctorAccount,
    DoctorEarning,
    InventoryValue,
    PatientBalance,
    SharePercentages,
    SupplierBalance,
    TreatmentTypeSummary,
)


class ReportType(str, Enum):
    """Report views produced by the reporting service."""

    DAILY_SUMMARY = "daily_summary"
    MONTHLY_SUMMARY = "monthly_summary"
    QUARTERLY_SUMMARY = "quarterly_summary"
    ANNUAL_SUMMARY = "annual_summary"
    ACCOUNTING = "accounting"
    OVERVIEW = "overview"


# =========================================================================
# Report Metadata (common to all reports)
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every report."""

    report_type: ReportType
    entity_name: str
    currency: str
    generated_at: str  # ISO format timestamp from injected clock
    period_start: date | None = None
    period_end: date | None = None
    comparative_start: date | None = None
    comparative_end: date | None = None


# =========================================================================
# Period reports
# =========================================================================


@dataclass(frozen=True)
class SeasonalQuarter:
    """One quarter of an annual report's seasonal breakdown."""

    quarter: int
    period_start: date
    period_end: date
    total_revenue: Decimal
    operating_expenses: Decimal
    net_profit: Decimal


@dataclass(frozen=True)
class PeriodReport:
    """
    Summary of one calendar period compared with an earlier one.

    ``comparison.current`` is the period's own ``FinancialSummary``.
    """

    metadata: ReportMetadata
    comparison: PeriodComparison
    doctor_earnings: tuple[DoctorEarning, ...]
    expense_categories: tuple[CategoryTotal, ...]
    payment_methods: tuple[CategoryTotal, ...]
    seasonal_breakdown: tuple[SeasonalQuarter, ...] = ()

    @property
    def summary(self) -> FinancialSummary:
        return self.comparison.current


# =========================================================================
# Accounting report
# =========================================================================


@dataclass(frozen=True)
class AccountingReport:
    """Every rollup for one date range, as shown on the accounts pages."""

    metadata: ReportMetadata
    summary: FinancialSummary
    balance_sheet: BalanceSheet
    share_percentages: SharePercentages
    patient_balances: tuple[PatientBalance, ...]
    doctor_accounts: tuple[DoctorAccount, ...]
    treatment_types: tuple[TreatmentTypeSummary, ...]
    expense_categories: tuple[CategoryTotal, ...]
    payment_methods: tuple[CategoryTotal, ...]
    supplier_balances: tuple[SupplierBalance, ...]
    inventory_values: tuple[InventoryValue, ...]


# =========================================================================
# Overview
# =========================================================================


@dataclass(frozen=True)
class ClinicOverview:
    """
    All-time headline figures.

    ``active_patient_count`` counts patients with at least one treatment
    record.  ``recent_*`` cover the last 30 days ending today.
    """

    metadata: ReportMetadata
    patient_count: int
    active_patient_count: int
    doctor_count: int
    treatment_count: int
    supplier_count: int
    inventory_value: Decimal
    total_revenue: Decimal
    total_expenses: Decimal
    total_doctor_shares: Decimal
    net_profit: Decimal
    recent_payments: Decimal
    recent_expenses: Decimal
