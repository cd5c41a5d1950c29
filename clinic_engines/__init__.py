"""
Module: clinic_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for the
    reporting module and the CLI.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import clinic_kernel (domain, logging, audit log) and sibling
    engine modules.  MUST NOT import clinic_modules.

Invariants enforced:
    - Engines never read the wall clock; audit timestamps come from the
      audit log's injected clock.
    - Decimal-only arithmetic for every monetary amount.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from clinic_engines import FinancialAggregator, PeriodComparator
    from clinic_engines import doctor_accounts, patient_balances
"""

from clinic_kernel.logging_config import get_logger

logger = get_logger("engines")

from clinic_engines.aggregation import (
    BalanceSheet,
    BalanceSheetSection,
    FinancialAggregator,
    FinancialSummary,
    build_balance_sheet,
    compute_financial_summary,
    sum_amounts,
)
from clinic_engines.comparison import (
    METRIC_POLARITY,
    ActivityCounts,
    PeriodComparator,
    PeriodComparison,
    Polarity,
    Trend,
    activity_counts,
    compare_periods,
    percent_change,
    previous_period,
    same_period_previous_year,
    snapshot_activity,
    window_length_days,
)
from clinic_engines.date_filter import (
    DATE_ACCESSORS,
    appointment_time,
    date_accessor_for,
    doctor_payment_date,
    expense_date,
    filter_by_date,
    invoice_date,
    payment_date,
    treatment_date,
)
from clinic_engines.rollups import (
    CategoryTotal,
    DoctorAccount,
    DoctorEarning,
    InventoryValue,
    PatientBalance,
    RollupGroup,
    SharePercentages,
    SupplierBalance,
    TreatmentTypeSummary,
    doctor_accounts,
    doctor_earnings,
    expense_categories,
    inventory_value_by_supplier,
    overall_share_percentages,
    patient_balances,
    payment_methods,
    rollup,
    safe_percentage,
    safe_ratio,
    sorted_by,
    supplier_balances,
    treatment_types,
)
from clinic_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Aggregation
    "BalanceSheet",
    "BalanceSheetSection",
    "FinancialAggregator",
    "FinancialSummary",
    "build_balance_sheet",
    "compute_financial_summary",
    "sum_amounts",
    # Comparison
    "METRIC_POLARITY",
    "ActivityCounts",
    "PeriodComparator",
    "PeriodComparison",
    "Polarity",
    "Trend",
    "activity_counts",
    "compare_periods",
    "percent_change",
    "previous_period",
    "same_period_previous_year",
    "snapshot_activity",
    "window_length_days",
    # Date filter
    "DATE_ACCESSORS",
    "appointment_time",
    "date_accessor_for",
    "doctor_payment_date",
    "expense_date",
    "filter_by_date",
    "invoice_date",
    "payment_date",
    "treatment_date",
    # Rollups
    "CategoryTotal",
    "DoctorAccount",
    "DoctorEarning",
    "InventoryValue",
    "PatientBalance",
    "RollupGroup",
    "SharePercentages",
    "SupplierBalance",
    "TreatmentTypeSummary",
    "doctor_accounts",
    "doctor_earnings",
    "expense_categories",
    "inventory_value_by_supplier",
    "overall_share_percentages",
    "patient_balances",
    "payment_methods",
    "rollup",
    "safe_percentage",
    "safe_ratio",
    "sorted_by",
    "supplier_balances",
    "treatment_types",
    # Tracer
    "compute_input_fingerprint",
    "traced_engine",
]
