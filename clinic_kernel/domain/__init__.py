"""Pure domain layer: records, value objects and the clock."""

from clinic_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from clinic_kernel.domain.records import (
    Appointment,
    AppointmentStatus,
    Dentist,
    DoctorPayment,
    Expense,
    ExpenseCategory,
    InventoryItem,
    InvoicePayment,
    Patient,
    Payment,
    PaymentMethod,
    RecordSnapshot,
    Supplier,
    SupplierInvoice,
    SupplierInvoiceStatus,
    SupplierType,
    TreatmentDefinition,
    TreatmentRecord,
)
from clinic_kernel.domain.values import DateRange, to_decimal

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "DateRange",
    "to_decimal",
    "Appointment",
    "AppointmentStatus",
    "Dentist",
    "DoctorPayment",
    "Expense",
    "ExpenseCategory",
    "InventoryItem",
    "InvoicePayment",
    "Patient",
    "Payment",
    "PaymentMethod",
    "RecordSnapshot",
    "Supplier",
    "SupplierInvoice",
    "SupplierInvoiceStatus",
    "SupplierType",
    "TreatmentDefinition",
    "TreatmentRecord",
]
