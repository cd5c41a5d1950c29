"""
Domain records supplied by the clinic record store.

Responsibility:
    Frozen dataclass representations of every record kind the reporting
    core reads: payments, expenses, treatment records, doctor payments,
    supplier invoices, inventory items, appointments and the dimension
    tables (patients, dentists, suppliers, treatment definitions).

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  The record store (JSON export
    or the SQL adapter in ``clinic_kernel.selectors``) produces these; the
    engines only read them.

Invariants enforced:
    - All monetary fields are ``Decimal``.
    - Records are immutable; a ``RecordSnapshot`` holds tuples so no engine
      can append to or reorder the source arrays.
    - Date fields that cannot be parsed are stored as None (the date filter
      keeps such records), and a warning is logged.

Failure modes:
    - ``MalformedRecordError`` from ``from_dict`` when a required field is
      missing or an amount is not numeric.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from clinic_kernel.domain.values import ZERO, parse_calendar_value, to_decimal
from clinic_kernel.exceptions import MalformedRecordError
from clinic_kernel.logging_config import get_logger

logger = get_logger("domain.records")

_MISSING = object()


# =========================================================================
# Enums
# =========================================================================


class PaymentMethod(str, Enum):
    CASH = "Cash"
    CREDIT_CARD = "Credit Card"
    BANK_TRANSFER = "Bank Transfer"
    OTHER = "Other"
    DISCOUNT = "Discount"


class ExpenseCategory(str, Enum):
    RENT = "RENT"
    SALARIES = "SALARIES"
    UTILITIES = "UTILITIES"
    LAB_FEES = "LAB_FEES"
    SUPPLIES = "SUPPLIES"
    MARKETING = "MARKETING"
    MISC = "MISC"


class SupplierInvoiceStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"


class SupplierType(str, Enum):
    MATERIAL_SUPPLIER = "Material Supplier"
    DENTAL_LAB = "Dental Lab"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# =========================================================================
# Parsing helpers
# =========================================================================


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _get(data: Mapping[str, Any], name: str, default: Any = _MISSING) -> Any:
    """Read ``name`` from a record dict, accepting camelCase or snake_case."""
    for key in (_camel(name), name):
        if key in data and data[key] is not None:
            return data[key]
    return default


def _required(data: Mapping[str, Any], kind: str, name: str) -> Any:
    value = _get(data, name)
    if value is _MISSING:
        raise MalformedRecordError(kind, name, "is required")
    return value


def _amount(data: Mapping[str, Any], kind: str, name: str, default: Any = _MISSING) -> Decimal:
    value = _get(data, name, default)
    if value is _MISSING:
        raise MalformedRecordError(kind, name, "is required")
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise MalformedRecordError(kind, name, f"is not numeric ({value!r})") from exc


def _calendar(data: Mapping[str, Any], kind: str, name: str) -> date | datetime | None:
    raw = _get(data, name, None)
    parsed = parse_calendar_value(raw)
    if raw is not None and parsed is None:
        logger.warning("record_date_unparseable", extra={
            "record_kind": kind,
            "record_id": str(_get(data, "id", "")),
            "field": name,
            "raw_value": str(raw),
        })
    return parsed


def _enum(enum_type: type[Enum], raw: Any, fallback: Enum, kind: str, name: str) -> Any:
    try:
        return enum_type(raw)
    except ValueError:
        logger.warning("record_enum_value_unknown", extra={
            "record_kind": kind,
            "field": name,
            "raw_value": str(raw),
            "fallback": fallback.value,
        })
        return fallback


def _optional_str(data: Mapping[str, Any], name: str) -> str | None:
    value = _get(data, name, None)
    return str(value) if value is not None else None


# =========================================================================
# Transactional records
# =========================================================================


@dataclass(frozen=True)
class Payment:
    """
    Money received from a patient.

    ``clinic_share`` is stored when the record store has it, otherwise
    derived as ``amount - doctor_share``.
    """

    id: str
    patient_id: str
    amount: Decimal
    doctor_share: Decimal
    clinic_share: Decimal
    method: PaymentMethod
    date: date | datetime | None
    treatment_record_id: str | None = None
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Payment:
        amount = _amount(data, "payment", "amount")
        doctor_share = _amount(data, "payment", "doctor_share", ZERO)
        clinic_share = _amount(data, "payment", "clinic_share", amount - doctor_share)
        return cls(
            id=str(_required(data, "payment", "id")),
            patient_id=str(_get(data, "patient_id", "")),
            amount=amount,
            doctor_share=doctor_share,
            clinic_share=clinic_share,
            method=_enum(
                PaymentMethod, _get(data, "method", PaymentMethod.OTHER.value),
                PaymentMethod.OTHER, "payment", "method",
            ),
            date=_calendar(data, "payment", "date"),
            treatment_record_id=_optional_str(data, "treatment_record_id"),
            notes=_optional_str(data, "notes"),
        )


@dataclass(frozen=True)
class Expense:
    """A clinic operating cost (rent, salaries, utilities, ...)."""

    id: str
    description: str
    amount: Decimal
    category: ExpenseCategory
    date: date | datetime | None
    supplier_id: str | None = None
    supplier_invoice_id: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Expense:
        return cls(
            id=str(_required(data, "expense", "id")),
            description=str(_get(data, "description", "")),
            amount=_amount(data, "expense", "amount"),
            category=_enum(
                ExpenseCategory, _get(data, "category", ExpenseCategory.MISC.value),
                ExpenseCategory.MISC, "expense", "category",
            ),
            date=_calendar(data, "expense", "date"),
            supplier_id=_optional_str(data, "supplier_id"),
            supplier_invoice_id=_optional_str(data, "supplier_invoice_id"),
        )


@dataclass(frozen=True)
class TreatmentRecord:
    """
    A treatment performed on a patient.

    The split ``doctor_share + clinic_share == total_treatment_cost`` is
    expected but not enforced here; see ``shares_balance``.
    """

    id: str
    patient_id: str
    dentist_id: str
    treatment_definition_id: str | None
    treatment_name: str | None
    total_treatment_cost: Decimal
    doctor_share: Decimal
    clinic_share: Decimal
    treatment_date: date | datetime | None
    notes: str | None = None

    def shares_balance(self, tolerance: Decimal = Decimal("0.01")) -> bool:
        """True when doctor and clinic shares add up to the total cost."""
        return abs(self.doctor_share + self.clinic_share - self.total_treatment_cost) <= tolerance

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TreatmentRecord:
        return cls(
            id=str(_required(data, "treatment_record", "id")),
            patient_id=str(_get(data, "patient_id", "")),
            dentist_id=str(_get(data, "dentist_id", "")),
            treatment_definition_id=_optional_str(data, "treatment_definition_id"),
            treatment_name=_optional_str(data, "treatment_name"),
            total_treatment_cost=_amount(data, "treatment_record", "total_treatment_cost"),
            doctor_share=_amount(data, "treatment_record", "doctor_share", ZERO),
            clinic_share=_amount(data, "treatment_record", "clinic_share", ZERO),
            treatment_date=_calendar(data, "treatment_record", "treatment_date"),
            notes=_optional_str(data, "notes"),
        )


@dataclass(frozen=True)
class DoctorPayment:
    """Clinic-to-doctor disbursement, tracked apart from expenses."""

    id: str
    dentist_id: str
    amount: Decimal
    date: date | datetime | None
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DoctorPayment:
        return cls(
            id=str(_required(data, "doctor_payment", "id")),
            dentist_id=str(_get(data, "dentist_id", "")),
            amount=_amount(data, "doctor_payment", "amount"),
            date=_calendar(data, "doctor_payment", "date"),
            notes=_optional_str(data, "notes"),
        )


@dataclass(frozen=True)
class InvoicePayment:
    """A settlement applied to a supplier invoice (linked to an expense)."""

    expense_id: str | None
    amount: Decimal
    date: date | datetime | None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InvoicePayment:
        return cls(
            expense_id=_optional_str(data, "expense_id"),
            amount=_amount(data, "invoice_payment", "amount"),
            date=_calendar(data, "invoice_payment", "date"),
        )


@dataclass(frozen=True)
class SupplierInvoice:
    id: str
    supplier_id: str
    invoice_number: str | None
    amount: Decimal
    invoice_date: date | datetime | None
    status: SupplierInvoiceStatus
    due_date: date | datetime | None = None
    payments: tuple[InvoicePayment, ...] = ()

    @property
    def amount_paid(self) -> Decimal:
        return sum((p.amount for p in self.payments), ZERO)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SupplierInvoice:
        raw_status = _required(data, "supplier_invoice", "status")
        try:
            status = SupplierInvoiceStatus(raw_status)
        except ValueError as exc:
            raise MalformedRecordError(
                "supplier_invoice", "status", f"must be UNPAID or PAID ({raw_status!r})",
            ) from exc
        return cls(
            id=str(_required(data, "supplier_invoice", "id")),
            supplier_id=str(_get(data, "supplier_id", "")),
            invoice_number=_optional_str(data, "invoice_number"),
            amount=_amount(data, "supplier_invoice", "amount"),
            invoice_date=_calendar(data, "supplier_invoice", "invoice_date"),
            status=status,
            due_date=_calendar(data, "supplier_invoice", "due_date"),
            payments=tuple(
                InvoicePayment.from_dict(p) for p in _get(data, "payments", ())
            ),
        )


@dataclass(frozen=True)
class InventoryItem:
    id: str
    supplier_id: str | None
    name: str
    current_stock: int
    unit_cost: Decimal
    expiry_date: date | datetime | None = None
    min_stock_level: int = 0

    @property
    def stock_value(self) -> Decimal:
        return self.unit_cost * self.current_stock

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InventoryItem:
        stock = _get(data, "current_stock", 0)
        try:
            current_stock = int(stock)
        except (TypeError, ValueError) as exc:
            raise MalformedRecordError(
                "inventory_item", "current_stock", f"is not an integer ({stock!r})",
            ) from exc
        return cls(
            id=str(_required(data, "inventory_item", "id")),
            supplier_id=_optional_str(data, "supplier_id"),
            name=str(_get(data, "name", "")),
            current_stock=current_stock,
            unit_cost=_amount(data, "inventory_item", "unit_cost", ZERO),
            expiry_date=_calendar(data, "inventory_item", "expiry_date"),
            min_stock_level=int(_get(data, "min_stock_level", 0)),
        )


@dataclass(frozen=True)
class Appointment:
    id: str
    patient_id: str
    dentist_id: str
    start_time: date | datetime | None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Appointment:
        return cls(
            id=str(_required(data, "appointment", "id")),
            patient_id=str(_get(data, "patient_id", "")),
            dentist_id=str(_get(data, "dentist_id", "")),
            start_time=_calendar(data, "appointment", "start_time"),
            status=_enum(
                AppointmentStatus, _get(data, "status", AppointmentStatus.SCHEDULED.value),
                AppointmentStatus.SCHEDULED, "appointment", "status",
            ),
        )


# =========================================================================
# Dimension records
# =========================================================================


@dataclass(frozen=True)
class Patient:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Patient:
        return cls(id=str(_required(data, "patient", "id")), name=str(_get(data, "name", "")))


@dataclass(frozen=True)
class Dentist:
    id: str
    name: str
    specialty: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Dentist:
        return cls(
            id=str(_required(data, "dentist", "id")),
            name=str(_get(data, "name", "")),
            specialty=_optional_str(data, "specialty"),
        )


@dataclass(frozen=True)
class Supplier:
    id: str
    name: str
    supplier_type: SupplierType = SupplierType.MATERIAL_SUPPLIER

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Supplier:
        return cls(
            id=str(_required(data, "supplier", "id")),
            name=str(_get(data, "name", "")),
            supplier_type=_enum(
                SupplierType, _get(data, "type", SupplierType.MATERIAL_SUPPLIER.value),
                SupplierType.MATERIAL_SUPPLIER, "supplier", "type",
            ),
        )


@dataclass(frozen=True)
class TreatmentDefinition:
    """Price-list template; percentages are fractions (0.60 = 60%)."""

    id: str
    name: str
    base_price: Decimal
    doctor_percentage: Decimal
    clinic_percentage: Decimal

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TreatmentDefinition:
        return cls(
            id=str(_required(data, "treatment_definition", "id")),
            name=str(_get(data, "name", "")),
            base_price=_amount(data, "treatment_definition", "base_price", ZERO),
            doctor_percentage=_amount(data, "treatment_definition", "doctor_percentage", ZERO),
            clinic_percentage=_amount(data, "treatment_definition", "clinic_percentage", ZERO),
        )


# =========================================================================
# Snapshot
# =========================================================================


@dataclass(frozen=True)
class RecordSnapshot:
    """
    One consistent, read-only view of the record store.

    Guarantees:
        - Every collection is a tuple; engines cannot mutate it.
    """

    payments: tuple[Payment, ...] = ()
    expenses: tuple[Expense, ...] = ()
    treatment_records: tuple[TreatmentRecord, ...] = ()
    doctor_payments: tuple[DoctorPayment, ...] = ()
    supplier_invoices: tuple[SupplierInvoice, ...] = ()
    inventory_items: tuple[InventoryItem, ...] = ()
    appointments: tuple[Appointment, ...] = ()
    patients: tuple[Patient, ...] = ()
    dentists: tuple[Dentist, ...] = ()
    suppliers: tuple[Supplier, ...] = ()
    treatment_definitions: tuple[TreatmentDefinition, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RecordSnapshot:
        """Build a snapshot from a record store export (camelCase keys)."""
        snapshot = cls(**{
            name: tuple(record_type.from_dict(item) for item in _get(data, name, ()))
            for name, record_type in _SNAPSHOT_FIELDS.items()
        })
        logger.info("record_snapshot_loaded", extra={"record_counts": snapshot.record_counts()})
        return snapshot

    def record_counts(self) -> dict[str, int]:
        return {name: len(getattr(self, name)) for name in _SNAPSHOT_FIELDS}


_SNAPSHOT_FIELDS: dict[str, type] = {
    "payments": Payment,
    "expenses": Expense,
    "treatment_records": TreatmentRecord,
    "doctor_payments": DoctorPayment,
    "supplier_invoices": SupplierInvoice,
    "inventory_items": InventoryItem,
    "appointments": Appointment,
    "patients": Patient,
    "dentists": Dentist,
    "suppliers": Supplier,
    "treatment_definitions": TreatmentDefinition,
}
