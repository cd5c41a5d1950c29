"""
Module: clinic_engines.rollups
Responsibility:
    Group already-filtered records by a dimension (patient, dentist,
    supplier, treatment type, expense category, payment method) and
    produce per-group counts, sums and guarded ratios.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Every ratio goes through ``safe_ratio``: a zero denominator yields
      ``Decimal(0)``, checked before dividing.
    - A missing foreign key resolves to a placeholder label, never raises.
    - Rollups return mappings with unspecified order; ``sorted_by`` is the
      presentation-side ordering helper.
    - Sign convention for balances: positive means money is owed to the
      clinic (patients) or to the doctor (doctor accounts).

Usage:
    from clinic_engines.rollups import doctor_accounts, sorted_by

    accounts = doctor_accounts(dentists, treatments, doctor_payments)
    ranked = sorted_by(accounts.values(), lambda a: a.total_revenue)
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Generic, TypeVar

from clinic_kernel.domain.records import (
    Dentist,
    DoctorPayment,
    Expense,
    InventoryItem,
    Patient,
    Payment,
    Supplier,
    SupplierInvoice,
    SupplierInvoiceStatus,
    TreatmentDefinition,
    TreatmentRecord,
)
from clinic_kernel.domain.values import HUNDRED, ZERO

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

UNKNOWN_PATIENT = "Unknown patient"
UNKNOWN_DENTIST = "Unknown dentist"
UNKNOWN_SUPPLIER = "Unknown supplier"
UNKNOWN_TREATMENT = "Unknown"


# =========================================================================
# Guarded ratios
# =========================================================================


def safe_ratio(numerator: Decimal, denominator: Decimal | int) -> Decimal:
    """``numerator / denominator``, or zero when the denominator is zero."""
    if denominator == 0:
        return ZERO
    return Decimal(numerator) / Decimal(denominator)


def safe_percentage(part: Decimal, whole: Decimal | int) -> Decimal:
    return safe_ratio(part, whole) * HUNDRED


# =========================================================================
# Generic rollup
# =========================================================================


@dataclass(frozen=True)
class RollupGroup(Generic[K]):
    """Members counted and metrics summed for one group key."""

    key: K
    count: int
    totals: Mapping[str, Decimal]

    def total(self, metric: str) -> Decimal:
        return self.totals.get(metric, ZERO)

    def average(self, metric: str) -> Decimal:
        return safe_ratio(self.total(metric), self.count)


def rollup(
    records: Iterable[T],
    key_fn: Callable[[T], K],
    metrics: Mapping[str, Callable[[T], Decimal]],
) -> dict[K, RollupGroup[K]]:
    """
    Group ``records`` by ``key_fn`` and sum each metric per group.

    Postconditions:
        - One ``RollupGroup`` per distinct key, with ``count >= 1``.
        - ``totals`` has one entry per metric name, zero when unused.
    """
    counts: dict[K, int] = {}
    sums: dict[K, dict[str, Decimal]] = {}
    for record in records:
        key = key_fn(record)
        if key not in counts:
            counts[key] = 0
            sums[key] = {name: ZERO for name in metrics}
        counts[key] += 1
        group_sums = sums[key]
        for name, metric in metrics.items():
            group_sums[name] += metric(record)

    return {
        key: RollupGroup(key=key, count=counts[key], totals=sums[key])
        for key in counts
    }


def sorted_by(
    items: Iterable[T],
    key: Callable[[T], Any],
    descending: bool = True,
) -> list[T]:
    """Presentation ordering for rollup values; descending by default."""
    return sorted(items, key=key, reverse=descending)


def _names(entities: Iterable[Any]) -> dict[str, str]:
    return {entity.id: entity.name for entity in entities}


# =========================================================================
# Patients
# =========================================================================


@dataclass(frozen=True)
class PatientBalance:
    patient_id: str
    patient_name: str
    treatment_count: int
    total_revenue: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal


def patient_balances(
    patients: Sequence[Patient],
    treatment_records: Iterable[TreatmentRecord],
    payments: Iterable[Payment],
    unknown_label: str = UNKNOWN_PATIENT,
) -> dict[str, PatientBalance]:
    """
    Billed, paid and outstanding amounts per patient.

    Every known patient appears; records that reference an unknown
    patient id get their own entry under ``unknown_label``.
    """
    names = _names(patients)
    billed = rollup(treatment_records, lambda t: t.patient_id,
                    {"revenue": lambda t: t.total_treatment_cost})
    paid = rollup(payments, lambda p: p.patient_id, {"paid": lambda p: p.amount})

    result: dict[str, PatientBalance] = {}
    for patient_id in [*names, *(k for k in (*billed, *paid) if k not in names)]:
        if patient_id in result:
            continue
        treatments = billed.get(patient_id)
        revenue = treatments.total("revenue") if treatments else ZERO
        total_paid = paid[patient_id].total("paid") if patient_id in paid else ZERO
        result[patient_id] = PatientBalance(
            patient_id=patient_id,
            patient_name=names.get(patient_id, unknown_label),
            treatment_count=treatments.count if treatments else 0,
            total_revenue=revenue,
            total_paid=total_paid,
            outstanding_balance=revenue - total_paid,
        )
    return result


# =========================================================================
# Doctors
# =========================================================================


@dataclass(frozen=True)
class DoctorAccount:
    """
    One dentist's treatment totals and settlement position.

    ``net_balance`` is positive when the clinic still owes the doctor.
    """

    dentist_id: str
    dentist_name: str
    treatment_count: int
    total_revenue: Decimal
    total_doctor_share: Decimal
    total_clinic_share: Decimal
    total_payments_received: Decimal
    net_balance: Decimal
    doctor_percentage: Decimal
    clinic_percentage: Decimal


def doctor_accounts(
    dentists: Sequence[Dentist],
    treatment_records: Iterable[TreatmentRecord],
    doctor_payments: Iterable[DoctorPayment],
    unknown_label: str = UNKNOWN_DENTIST,
) -> dict[str, DoctorAccount]:
    """
    Per-dentist revenue split and payment balance.

    A dentist with no treatments in the range still appears, with every
    total and percentage at zero.
    """
    names = _names(dentists)
    treatments = rollup(treatment_records, lambda t: t.dentist_id, {
        "revenue": lambda t: t.total_treatment_cost,
        "doctor_share": lambda t: t.doctor_share,
        "clinic_share": lambda t: t.clinic_share,
    })
    received = rollup(doctor_payments, lambda d: d.dentist_id, {"amount": lambda d: d.amount})

    result: dict[str, DoctorAccount] = {}
    for dentist_id in [*names, *(k for k in (*treatments, *received) if k not in names)]:
        if dentist_id in result:
            continue
        group = treatments.get(dentist_id)
        revenue = group.total("revenue") if group else ZERO
        doctor_share = group.total("doctor_share") if group else ZERO
        clinic_share = group.total("clinic_share") if group else ZERO
        payments_received = (
            received[dentist_id].total("amount") if dentist_id in received else ZERO
        )
        result[dentist_id] = DoctorAccount(
            dentist_id=dentist_id,
            dentist_name=names.get(dentist_id, unknown_label),
            treatment_count=group.count if group else 0,
            total_revenue=revenue,
            total_doctor_share=doctor_share,
            total_clinic_share=clinic_share,
            total_payments_received=payments_received,
            net_balance=doctor_share - payments_received,
            doctor_percentage=safe_percentage(doctor_share, revenue),
            clinic_percentage=safe_percentage(clinic_share, revenue),
        )
    return result


@dataclass(frozen=True)
class SharePercentages:
    doctor_percentage: Decimal
    clinic_percentage: Decimal


def overall_share_percentages(treatment_records: Iterable[TreatmentRecord]) -> SharePercentages:
    """Doctor and clinic shares as a percentage of all treatment revenue."""
    revenue = doctor_share = clinic_share = ZERO
    for record in treatment_records:
        revenue += record.total_treatment_cost
        doctor_share += record.doctor_share
        clinic_share += record.clinic_share
    return SharePercentages(
        doctor_percentage=safe_percentage(doctor_share, revenue),
        clinic_percentage=safe_percentage(clinic_share, revenue),
    )


@dataclass(frozen=True)
class DoctorEarning:
    dentist_id: str
    dentist_name: str
    earnings: Decimal
    percentage: Decimal


def doctor_earnings(
    payments: Iterable[Payment],
    treatment_records: Iterable[TreatmentRecord],
    dentists: Sequence[Dentist],
    unknown_label: str = UNKNOWN_DENTIST,
) -> dict[str, DoctorEarning]:
    """
    Doctor shares of the given payments, attributed to the dentist of the
    linked treatment record.  Payments with no resolvable treatment record
    are not attributed to anyone.
    """
    names = _names(dentists)
    dentist_of = {t.id: t.dentist_id for t in treatment_records}
    linked = (
        p for p in payments
        if p.treatment_record_id is not None and p.treatment_record_id in dentist_of
    )
    groups = rollup(linked, lambda p: dentist_of[p.treatment_record_id],
                    {"earnings": lambda p: p.doctor_share})
    total = sum((g.total("earnings") for g in groups.values()), ZERO)
    return {
        dentist_id: DoctorEarning(
            dentist_id=dentist_id,
            dentist_name=names.get(dentist_id, unknown_label),
            earnings=group.total("earnings"),
            percentage=safe_percentage(group.total("earnings"), total),
        )
        for dentist_id, group in groups.items()
    }


# =========================================================================
# Treatment types, categories, methods
# =========================================================================


@dataclass(frozen=True)
class TreatmentTypeSummary:
    name: str
    count: int
    total_revenue: Decimal
    total_doctor_share: Decimal
    total_clinic_share: Decimal
    average_price: Decimal


def treatment_types(
    treatment_records: Iterable[TreatmentRecord],
    treatment_definitions: Sequence[TreatmentDefinition] = (),
    unknown_label: str = UNKNOWN_TREATMENT,
) -> dict[str, TreatmentTypeSummary]:
    """Totals per treatment name (definition name, else record name)."""
    definition_names = _names(treatment_definitions)

    def name_of(record: TreatmentRecord) -> str:
        if record.treatment_definition_id in definition_names:
            return definition_names[record.treatment_definition_id]
        return record.treatment_name or unknown_label

    groups = rollup(treatment_records, name_of, {
        "revenue": lambda t: t.total_treatment_cost,
        "doctor_share": lambda t: t.doctor_share,
        "clinic_share": lambda t: t.clinic_share,
    })
    return {
        name: TreatmentTypeSummary(
            name=name,
            count=group.count,
            total_revenue=group.total("revenue"),
            total_doctor_share=group.total("doctor_share"),
            total_clinic_share=group.total("clinic_share"),
            average_price=group.average("revenue"),
        )
        for name, group in groups.items()
    }


@dataclass(frozen=True)
class CategoryTotal:
    """Count, total, average and share of the grand total for one key."""

    key: str
    count: int
    total_amount: Decimal
    average_amount: Decimal
    percentage: Decimal


def _category_totals(
    records: Sequence[T],
    key_fn: Callable[[T], str],
    amount: Callable[[T], Decimal],
) -> dict[str, CategoryTotal]:
    groups = rollup(records, key_fn, {"amount": amount})
    grand_total = sum((g.total("amount") for g in groups.values()), ZERO)
    return {
        key: CategoryTotal(
            key=key,
            count=group.count,
            total_amount=group.total("amount"),
            average_amount=group.average("amount"),
            percentage=safe_percentage(group.total("amount"), grand_total),
        )
        for key, group in groups.items()
    }


def expense_categories(expenses: Sequence[Expense]) -> dict[str, CategoryTotal]:
    return _category_totals(expenses, lambda e: e.category.value, lambda e: e.amount)


def payment_methods(payments: Sequence[Payment]) -> dict[str, CategoryTotal]:
    return _category_totals(payments, lambda p: p.method.value, lambda p: p.amount)


# =========================================================================
# Suppliers and inventory
# =========================================================================


@dataclass(frozen=True)
class SupplierBalance:
    supplier_id: str
    supplier_name: str
    invoice_count: int
    total_billed: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal
    unpaid_amount: Decimal


def supplier_balances(
    suppliers: Sequence[Supplier],
    supplier_invoices: Iterable[SupplierInvoice],
    unknown_label: str = UNKNOWN_SUPPLIER,
) -> dict[str, SupplierBalance]:
    """
    Supplier statement totals.  ``total_paid`` sums the payments applied
    to each invoice; ``unpaid_amount`` sums invoices still marked UNPAID.
    Suppliers with no invoices are omitted.
    """
    names = _names(suppliers)
    groups = rollup(supplier_invoices, lambda i: i.supplier_id, {
        "billed": lambda i: i.amount,
        "paid": lambda i: i.amount_paid,
        "unpaid": lambda i: i.amount if i.status == SupplierInvoiceStatus.UNPAID else ZERO,
    })
    return {
        supplier_id: SupplierBalance(
            supplier_id=supplier_id,
            supplier_name=names.get(supplier_id, unknown_label),
            invoice_count=group.count,
            total_billed=group.total("billed"),
            total_paid=group.total("paid"),
            outstanding_balance=group.total("billed") - group.total("paid"),
            unpaid_amount=group.total("unpaid"),
        )
        for supplier_id, group in groups.items()
    }


@dataclass(frozen=True)
class InventoryValue:
    supplier_id: str | None
    supplier_name: str
    item_count: int
    total_units: int
    total_value: Decimal


def inventory_value_by_supplier(
    items: Iterable[InventoryItem],
    suppliers: Sequence[Supplier],
    unknown_label: str = UNKNOWN_SUPPLIER,
) -> dict[str | None, InventoryValue]:
    """Stock units and value (unit cost x current stock) per supplier."""
    names = _names(suppliers)
    groups = rollup(items, lambda i: i.supplier_id, {
        "units": lambda i: Decimal(i.current_stock),
        "value": lambda i: i.stock_value,
    })
    return {
        supplier_id: InventoryValue(
            supplier_id=supplier_id,
            supplier_name=names.get(supplier_id, unknown_label) if supplier_id else unknown_label,
            item_count=group.count,
            total_units=int(group.total("units")),
            total_value=group.total("value"),
        )
        for supplier_id, group in groups.items()
    }
