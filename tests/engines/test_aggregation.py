"""
Tests for the financial aggregator and balance sheet.

Covers the headline formulas, their date filtering, the audit entry each
calculation appends, and the deliberate exclusion of doctor payments and
supplier invoices from net profit.
"""

from datetime import date
from decimal import Decimal

import pytest

from clinic_engines.aggregation import (
    BalanceSheet,
    FinancialAggregator,
    FinancialSummary,
    build_balance_sheet,
    compute_financial_summary,
    sum_amounts,
)
from clinic_kernel.domain.records import Expense, Payment, SupplierInvoiceStatus
from clinic_kernel.domain.values import DateRange
from clinic_kernel.services.audit_log import CalculationAuditLog, default_audit_log
from tests.conftest import (
    make_doctor_payment,
    make_expense,
    make_invoice,
    make_payment,
    make_treatment,
)


@pytest.fixture
def aggregator(audit_log) -> FinancialAggregator:
    return FinancialAggregator(audit_log=audit_log)


def _scenario_payments():
    return [Payment.from_dict({
        "id": "p1", "amount": 1000, "doctorShare": 400, "clinicShare": 600,
        "date": "2024-03-01",
    })]


def _scenario_expenses():
    return [Expense.from_dict({"id": "e1", "amount": 200, "date": "2024-03-01"})]


class TestEndToEndScenarios:
    """Literal scenarios with known answers."""

    def test_single_day_payment_and_expense(self, aggregator):
        summary = aggregator.aggregate(
            _scenario_payments(), _scenario_expenses(), [], [], [],
            DateRange.from_strings("2024-03-01", "2024-03-01"),
        )
        assert summary.total_payments == Decimal("1000")
        assert summary.doctor_revenue == Decimal("400")
        assert summary.clinic_revenue == Decimal("600")
        assert summary.operating_expenses == Decimal("200")
        assert summary.net_profit == Decimal("400")
        assert summary.cash_flow == Decimal("800")

    def test_non_overlapping_range_gives_zeros(self, aggregator):
        summary = aggregator.aggregate(
            _scenario_payments(), _scenario_expenses(), [], [], [],
            DateRange.from_strings("2024-03-02", "2024-03-02"),
        )
        assert summary == FinancialSummary.zero()

    def test_invoice_statuses_feed_liabilities(self, aggregator):
        invoices = [
            make_invoice("i1", "500", SupplierInvoiceStatus.UNPAID),
            make_invoice("i2", "300", SupplierInvoiceStatus.PAID),
        ]
        summary = aggregator.aggregate([], [], [], [], invoices)
        assert summary.unpaid_invoices == Decimal("500")
        assert summary.paid_invoices == Decimal("300")
        assert summary.accounts_payable == Decimal("500")
        assert summary.total_liabilities == Decimal("500")
        assert summary.total_supplier_invoices == Decimal("800")

    def test_inverted_range_gives_all_zero_summary(self, aggregator, audit_log):
        summary = aggregator.aggregate(
            _scenario_payments(), _scenario_expenses(), [], [], [],
            DateRange.from_strings("2024-03-10", "2024-03-01"),
        )
        assert summary == FinancialSummary.zero()
        assert audit_log.latest().data_counts["filtered_payments"] == 0


class TestFormulas:
    """Derived fields follow from the base sums."""

    def test_sample_snapshot_march(self, aggregator, sample_snapshot):
        summary = aggregator.summarize(
            sample_snapshot, DateRange.from_strings("2024-03-01", "2024-03-31"),
        )
        assert summary.total_payments == Decimal("1500")
        assert summary.doctor_revenue == Decimal("600")
        assert summary.clinic_revenue == Decimal("900")
        assert summary.operating_expenses == Decimal("300")
        assert summary.doctor_payments_total == Decimal("200")
        assert summary.total_supplier_invoices == Decimal("500")
        assert summary.net_profit == Decimal("600")
        assert summary.cash_flow == Decimal("1200")
        assert summary.accounts_receivable == Decimal("500")
        assert summary.total_assets == Decimal("1700")
        assert summary.accounts_payable == Decimal("400")
        assert summary.equity == Decimal("600")

    def test_revenue_split_adds_up(self, aggregator, sample_snapshot):
        summary = aggregator.summarize(sample_snapshot)
        assert summary.clinic_revenue + summary.doctor_revenue == summary.total_payments

    def test_aliases(self, aggregator, sample_snapshot):
        summary = aggregator.summarize(sample_snapshot)
        assert summary.total_revenue == summary.total_payments
        assert summary.total_expenses == summary.operating_expenses

    def test_empty_inputs_give_zero(self):
        assert compute_financial_summary([], [], [], [], []) == FinancialSummary.zero()

    def test_no_float_leaks(self, aggregator, sample_snapshot):
        summary = aggregator.summarize(sample_snapshot)
        assert all(isinstance(v, Decimal) for v in summary.as_dict().values())

    def test_decimal_sum_is_exact(self):
        payments = [make_payment(str(i), amount="0.1") for i in range(3)]
        assert sum_amounts(payments, lambda p: p.amount) == Decimal("0.3")

    def test_inputs_not_mutated(self, aggregator):
        payments = [make_payment("a"), make_payment("b", day=date(2020, 1, 1))]
        before = list(payments)
        aggregator.aggregate(payments, [], [], [], [], DateRange.from_strings("2024-03-01", "2024-03-31"))
        assert payments == before


class TestNetProfitExclusions:
    """
    Net profit ignores doctor payments and supplier invoices.

    Both are real outflows but are reported as their own lines.  A change
    here changes every report's bottom line, so it is pinned explicitly.
    """

    def test_doctor_payments_and_invoices_do_not_reduce_net_profit(self, aggregator):
        payments = [make_payment("p", "1000", "400")]
        expenses = [make_expense("e", "100")]
        base = aggregator.aggregate(payments, expenses, [], [], [])
        loaded = aggregator.aggregate(
            payments, expenses, [],
            [make_doctor_payment("d", "250")],
            [make_invoice("i", "300")],
        )
        assert base.net_profit == loaded.net_profit == Decimal("500")
        assert loaded.total_expenses == Decimal("100")
        assert loaded.doctor_payments_total == Decimal("250")
        assert loaded.total_supplier_invoices == Decimal("300")

    def test_standalone_expenses_include_every_outflow(self, aggregator):
        total = aggregator.calculate_expenses(
            [make_expense("e", "100")],
            [make_doctor_payment("d", "250")],
            [make_invoice("i", "300")],
        )
        assert total == Decimal("650")

    def test_standalone_net_profit_subtracts_doctor_payments(self, aggregator):
        assert aggregator.calculate_net_profit(
            Decimal("1000"), Decimal("300"), Decimal("200"),
        ) == Decimal("500")


class TestStandaloneCalculations:
    def test_revenue_is_clinic_share(self, aggregator, sample_snapshot):
        revenue = aggregator.calculate_revenue(
            sample_snapshot.payments, DateRange.from_strings("2024-03-01", "2024-03-31"),
        )
        assert revenue == Decimal("900")

    def test_cash_flow_subtracts_doctor_payments(self, aggregator, sample_snapshot):
        cash = aggregator.calculate_cash_flow(
            sample_snapshot.payments,
            sample_snapshot.expenses,
            sample_snapshot.doctor_payments,
            DateRange.from_strings("2024-03-01", "2024-03-31"),
        )
        assert cash == Decimal("1000")


class TestAuditing:
    """Each calculation appends exactly one entry."""

    def test_aggregate_records_financial_summary(self, aggregator, audit_log, sample_snapshot):
        date_range = DateRange.from_strings("2024-03-01", "2024-03-31")
        summary = aggregator.summarize(sample_snapshot, date_range)

        assert len(audit_log) == 1
        entry = audit_log.latest()
        assert entry.calculation_type == "financial_summary"
        assert entry.parameters["date_range"] == {"start_date": "2024-03-01", "end_date": "2024-03-31"}
        assert entry.parameters["data_counts"]["payments"] == 3
        assert entry.data_counts["filtered_payments"] == 2
        assert entry.results["net_profit"] == summary.net_profit

    def test_each_standalone_calculation_type(self, aggregator, audit_log):
        aggregator.calculate_revenue([])
        aggregator.calculate_expenses([], [], [])
        aggregator.calculate_net_profit(Decimal("1"), Decimal("0"), Decimal("0"))
        aggregator.calculate_cash_flow([], [], [])
        assert [e.calculation_type for e in audit_log.entries()] == [
            "revenue", "expenses", "net_profit", "cash_flow",
        ]

    def test_auditing_does_not_change_result(self, sample_snapshot, deterministic_clock):
        enabled = FinancialAggregator(CalculationAuditLog(clock=deterministic_clock))
        disabled = FinancialAggregator(CalculationAuditLog(clock=deterministic_clock, enabled=False))
        assert enabled.summarize(sample_snapshot) == disabled.summarize(sample_snapshot)

    def test_default_audit_log_used_when_none_injected(self):
        FinancialAggregator().aggregate([], [], [], [], [])
        assert default_audit_log().latest().calculation_type == "financial_summary"

    def test_calculation_logged(self, aggregator, captured_logs):
        aggregator.aggregate([make_payment("a")], [], [], [], [])
        messages = [r["message"] for r in captured_logs()]
        assert "financial_summary_calculated" in messages
        assert "CLINIC_ENGINE_TRACE" in messages


class TestBalanceSheet:
    def test_sections_mirror_summary(self, aggregator, sample_snapshot):
        summary = aggregator.summarize(
            sample_snapshot, DateRange.from_strings("2024-03-01", "2024-03-31"),
        )
        sheet = build_balance_sheet(summary)
        assert isinstance(sheet, BalanceSheet)
        assert sheet.assets.total == summary.total_assets
        assert dict(sheet.assets.lines) == {
            "cash_and_equivalents": Decimal("1200"),
            "accounts_receivable": Decimal("500"),
        }
        assert sheet.liabilities.total == Decimal("400")
        assert sheet.equity == summary.net_profit

    def test_treatments_without_payments_are_receivable(self, aggregator):
        summary = aggregator.aggregate([], [], [make_treatment("t", "750")], [], [])
        assert summary.accounts_receivable == Decimal("750")
        assert summary.total_assets == Decimal("750")
