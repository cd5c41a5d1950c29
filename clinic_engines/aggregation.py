"""
Module: clinic_engines.aggregation
Responsibility:
    Derive the clinic's revenue, expense, profit, cash-flow and
    balance-sheet figures from raw records under a date-range filter.
    Every report view (daily, monthly, quarterly/annual, accounting,
    overview) reads the same ``FinancialSummary``.

Architecture position:
    Engines -- pure calculation layer.  The only side effect is one
    append to the injected ``CalculationAuditLog`` per calculation.

Invariants enforced:
    - clinic_revenue + doctor_revenue == total_payments.
    - net_profit == total_payments - doctor_revenue - operating_expenses,
      exactly.  Doctor payments and supplier invoices are NOT deducted;
      they are reported as separate cash-flow and liability lines.
    - Decimal-only arithmetic, no rounding; no formula divides, so there
      is no failure mode.
    - Auditing never changes the returned value.

Usage:
    from clinic_engines.aggregation import FinancialAggregator

    aggregator = FinancialAggregator(audit_log=audit_log)
    summary = aggregator.aggregate(
        payments, expenses, treatment_records, doctor_payments,
        supplier_invoices, DateRange.from_strings("2024-03-01", "2024-03-31"),
    )
    summary.net_profit
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, TypeVar

from clinic_engines.date_filter import (
    doctor_payment_date,
    expense_date,
    filter_by_date,
    invoice_date,
    payment_date,
    treatment_date,
)
from clinic_engines.tracer import traced_engine
from clinic_kernel.domain.records import (
    DoctorPayment,
    Expense,
    Payment,
    RecordSnapshot,
    SupplierInvoice,
    SupplierInvoiceStatus,
    TreatmentRecord,
)
from clinic_kernel.domain.values import ZERO, DateRange
from clinic_kernel.logging_config import get_logger
from clinic_kernel.services.audit_log import CalculationAuditLog, default_audit_log

logger = get_logger("engines.aggregation")

T = TypeVar("T")


def sum_amounts(records: Iterable[T], amount: Callable[[T], Decimal]) -> Decimal:
    """Decimal sum of ``amount(record)``; zero for no records."""
    return sum((amount(r) for r in records), ZERO)


# =========================================================================
# Value objects
# =========================================================================


@dataclass(frozen=True)
class FinancialSummary:
    """
    Derived figures for one date range.  Recomputed on every call.

    Guarantees:
        - Every field is a ``Decimal``.
        - The balance-sheet fields follow directly from the others
          (see ``compute_financial_summary``).
    """

    total_payments: Decimal
    clinic_revenue: Decimal
    doctor_revenue: Decimal
    operating_expenses: Decimal
    doctor_payments_total: Decimal
    total_supplier_invoices: Decimal
    unpaid_invoices: Decimal
    paid_invoices: Decimal
    net_profit: Decimal
    cash_flow: Decimal
    cash_and_equivalents: Decimal
    accounts_receivable: Decimal
    total_assets: Decimal
    accounts_payable: Decimal
    total_liabilities: Decimal
    equity: Decimal

    @property
    def total_revenue(self) -> Decimal:
        """Alias used by the report views: all payments received."""
        return self.total_payments

    @property
    def total_expenses(self) -> Decimal:
        """Alias used by the report views: operating expenses only."""
        return self.operating_expenses

    def as_dict(self) -> dict[str, Decimal]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def zero(cls) -> FinancialSummary:
        return cls(**{f.name: ZERO for f in fields(cls)})


@dataclass(frozen=True)
class BalanceSheetSection:
    label: str
    lines: tuple[tuple[str, Decimal], ...]
    total: Decimal


@dataclass(frozen=True)
class BalanceSheet:
    """Assets, liabilities and equity drawn from a ``FinancialSummary``."""

    assets: BalanceSheetSection
    liabilities: BalanceSheetSection
    equity: Decimal


# =========================================================================
# Pure formulas
# =========================================================================


def compute_financial_summary(
    payments: Sequence[Payment],
    expenses: Sequence[Expense],
    treatment_records: Sequence[TreatmentRecord],
    doctor_payments: Sequence[DoctorPayment],
    supplier_invoices: Sequence[SupplierInvoice],
) -> FinancialSummary:
    """Apply the summary formulas to already-filtered records."""
    total_payments = sum_amounts(payments, lambda p: p.amount)
    doctor_revenue = sum_amounts(payments, lambda p: p.doctor_share)
    clinic_revenue = total_payments - doctor_revenue

    operating_expenses = sum_amounts(expenses, lambda e: e.amount)
    doctor_payments_total = sum_amounts(doctor_payments, lambda d: d.amount)
    total_supplier_invoices = sum_amounts(supplier_invoices, lambda i: i.amount)

    unpaid_invoices = sum_amounts(
        (i for i in supplier_invoices if i.status == SupplierInvoiceStatus.UNPAID),
        lambda i: i.amount,
    )
    paid_invoices = sum_amounts(
        (i for i in supplier_invoices if i.status == SupplierInvoiceStatus.PAID),
        lambda i: i.amount,
    )

    billed = sum_amounts(treatment_records, lambda t: t.total_treatment_cost)
    accounts_receivable = billed - total_payments
    net_profit = total_payments - doctor_revenue - operating_expenses
    cash_flow = total_payments - operating_expenses

    cash_and_equivalents = cash_flow
    total_assets = cash_and_equivalents + accounts_receivable
    accounts_payable = unpaid_invoices
    total_liabilities = accounts_payable
    equity = net_profit

    return FinancialSummary(
        total_payments=total_payments,
        clinic_revenue=clinic_revenue,
        doctor_revenue=doctor_revenue,
        operating_expenses=operating_expenses,
        doctor_payments_total=doctor_payments_total,
        total_supplier_invoices=total_supplier_invoices,
        unpaid_invoices=unpaid_invoices,
        paid_invoices=paid_invoices,
        net_profit=net_profit,
        cash_flow=cash_flow,
        cash_and_equivalents=cash_and_equivalents,
        accounts_receivable=accounts_receivable,
        total_assets=total_assets,
        accounts_payable=accounts_payable,
        total_liabilities=total_liabilities,
        equity=equity,
    )


def build_balance_sheet(summary: FinancialSummary) -> BalanceSheet:
    """Group the balance-sheet fields of a summary into sections."""
    return BalanceSheet(
        assets=BalanceSheetSection(
            label="Assets",
            lines=(
                ("cash_and_equivalents", summary.cash_and_equivalents),
                ("accounts_receivable", summary.accounts_receivable),
            ),
            total=summary.total_assets,
        ),
        liabilities=BalanceSheetSection(
            label="Liabilities",
            lines=(("accounts_payable", summary.accounts_payable),),
            total=summary.total_liabilities,
        ),
        equity=summary.equity,
    )


# =========================================================================
# Aggregator
# =========================================================================


class FinancialAggregator:
    """
    Filters record sets by date and computes financial figures.

    Contract:
        Reads its inputs, never mutates them.  Each public calculation
        appends one entry to the audit log.
    Guarantees:
        - Safe to call concurrently with different inputs; the audit log
          is the only shared state and it is lock-protected.
    Non-goals:
        - No caching: every call recomputes from the records given.
    """

    def __init__(self, audit_log: CalculationAuditLog | None = None):
        self._audit_log = audit_log if audit_log is not None else default_audit_log()

    @property
    def audit_log(self) -> CalculationAuditLog:
        return self._audit_log

    @traced_engine("financial_aggregator", "1.0", fingerprint_fields=("date_range",))
    def aggregate(
        self,
        payments: Sequence[Payment],
        expenses: Sequence[Expense],
        treatment_records: Sequence[TreatmentRecord],
        doctor_payments: Sequence[DoctorPayment],
        supplier_invoices: Sequence[SupplierInvoice],
        date_range: DateRange | None = None,
    ) -> FinancialSummary:
        """
        Filter each record set by its own date field and summarise.

        Postconditions:
            - Empty inputs give an all-zero summary.
            - Exactly one ``financial_summary`` audit entry is appended.
        """
        date_range = date_range or DateRange()
        t0 = time.monotonic()

        filtered_payments = filter_by_date(payments, date_range, payment_date)
        filtered_expenses = filter_by_date(expenses, date_range, expense_date)
        filtered_treatments = filter_by_date(treatment_records, date_range, treatment_date)
        filtered_doctor_payments = filter_by_date(doctor_payments, date_range, doctor_payment_date)
        filtered_invoices = filter_by_date(supplier_invoices, date_range, invoice_date)

        summary = compute_financial_summary(
            filtered_payments,
            filtered_expenses,
            filtered_treatments,
            filtered_doctor_payments,
            filtered_invoices,
        )

        filtered_counts = {
            "filtered_payments": len(filtered_payments),
            "filtered_expenses": len(filtered_expenses),
            "filtered_treatment_records": len(filtered_treatments),
            "filtered_doctor_payments": len(filtered_doctor_payments),
            "filtered_supplier_invoices": len(filtered_invoices),
        }
        self._audit(
            "financial_summary",
            date_range,
            {
                "payments": len(payments),
                "expenses": len(expenses),
                "treatment_records": len(treatment_records),
                "doctor_payments": len(doctor_payments),
                "supplier_invoices": len(supplier_invoices),
            },
            summary.as_dict(),
            filtered_counts,
        )

        logger.info("financial_summary_calculated", extra={
            **date_range.as_dict(),
            **filtered_counts,
            "total_payments": str(summary.total_payments),
            "net_profit": str(summary.net_profit),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return summary

    def summarize(
        self,
        snapshot: RecordSnapshot,
        date_range: DateRange | None = None,
    ) -> FinancialSummary:
        """``aggregate`` over the transactional collections of a snapshot."""
        return self.aggregate(
            snapshot.payments,
            snapshot.expenses,
            snapshot.treatment_records,
            snapshot.doctor_payments,
            snapshot.supplier_invoices,
            date_range,
        )

    # ---------------------------------------------------------------------
    # Standalone calculations used by individual report cards
    # ---------------------------------------------------------------------

    def calculate_revenue(
        self,
        payments: Sequence[Payment],
        date_range: DateRange | None = None,
    ) -> Decimal:
        """Clinic share of the payments received in the range."""
        date_range = date_range or DateRange()
        filtered = filter_by_date(payments, date_range, payment_date)
        revenue = sum_amounts(filtered, lambda p: p.clinic_share)
        self._audit(
            "revenue",
            date_range,
            {"payments": len(payments)},
            {"revenue": revenue},
            {"filtered_payments": len(filtered)},
        )
        return revenue

    def calculate_expenses(
        self,
        expenses: Sequence[Expense],
        doctor_payments: Sequence[DoctorPayment],
        supplier_invoices: Sequence[SupplierInvoice],
        date_range: DateRange | None = None,
    ) -> Decimal:
        """
        Every outflow in the range: operating expenses, doctor payments and
        supplier invoices.  Unlike ``FinancialSummary.total_expenses``.
        """
        date_range = date_range or DateRange()
        filtered_expenses = filter_by_date(expenses, date_range, expense_date)
        filtered_doctor_payments = filter_by_date(doctor_payments, date_range, doctor_payment_date)
        filtered_invoices = filter_by_date(supplier_invoices, date_range, invoice_date)
        total = (
            sum_amounts(filtered_expenses, lambda e: e.amount)
            + sum_amounts(filtered_doctor_payments, lambda d: d.amount)
            + sum_amounts(filtered_invoices, lambda i: i.amount)
        )
        self._audit(
            "expenses",
            date_range,
            {
                "expenses": len(expenses),
                "doctor_payments": len(doctor_payments),
                "supplier_invoices": len(supplier_invoices),
            },
            {"expenses": total},
            {
                "filtered_expenses": len(filtered_expenses),
                "filtered_doctor_payments": len(filtered_doctor_payments),
                "filtered_supplier_invoices": len(filtered_invoices),
            },
        )
        return total

    def calculate_net_profit(
        self,
        revenue: Decimal,
        expenses: Decimal,
        doctor_payments: Decimal,
    ) -> Decimal:
        result = revenue - expenses - doctor_payments
        self._audit_raw(
            "net_profit",
            {"revenue": revenue, "expenses": expenses, "doctor_payments": doctor_payments},
            {"net_profit": result},
            {},
        )
        return result

    def calculate_cash_flow(
        self,
        payments: Sequence[Payment],
        expenses: Sequence[Expense],
        doctor_payments: Sequence[DoctorPayment],
        date_range: DateRange | None = None,
    ) -> Decimal:
        """Payments received minus operating expenses and doctor payments."""
        date_range = date_range or DateRange()
        filtered_payments = filter_by_date(payments, date_range, payment_date)
        filtered_expenses = filter_by_date(expenses, date_range, expense_date)
        filtered_doctor_payments = filter_by_date(doctor_payments, date_range, doctor_payment_date)
        result = (
            sum_amounts(filtered_payments, lambda p: p.amount)
            - sum_amounts(filtered_expenses, lambda e: e.amount)
            - sum_amounts(filtered_doctor_payments, lambda d: d.amount)
        )
        self._audit(
            "cash_flow",
            date_range,
            {
                "payments": len(payments),
                "expenses": len(expenses),
                "doctor_payments": len(doctor_payments),
            },
            {"cash_flow": result},
            {
                "filtered_payments": len(filtered_payments),
                "filtered_expenses": len(filtered_expenses),
                "filtered_doctor_payments": len(filtered_doctor_payments),
            },
        )
        return result

    # ---------------------------------------------------------------------
    # Audit helpers
    # ---------------------------------------------------------------------

    def _audit(
        self,
        calculation_type: str,
        date_range: DateRange,
        input_counts: dict[str, int],
        results: dict[str, Any],
        filtered_counts: dict[str, int],
    ) -> None:
        self._audit_raw(
            calculation_type,
            {"date_range": date_range.as_dict(), "data_counts": input_counts},
            results,
            filtered_counts,
        )

    def _audit_raw(
        self,
        calculation_type: str,
        parameters: dict[str, Any],
        results: dict[str, Any],
        data_counts: dict[str, int],
    ) -> None:
        self._audit_log.record(calculation_type, parameters, results, data_counts)
