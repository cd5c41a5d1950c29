"""ORM models for the clinic record store."""

from clinic_kernel.models.directory import (
    DentistModel,
    PatientModel,
    SupplierModel,
    TreatmentDefinitionModel,
)
from clinic_kernel.models.operations import AppointmentModel, InventoryItemModel
from clinic_kernel.models.transactions import (
    DoctorPaymentModel,
    ExpenseModel,
    InvoicePaymentModel,
    PaymentModel,
    SupplierInvoiceModel,
    TreatmentRecordModel,
)

__all__ = [
    "MODEL_FOR_FIELD",
    "rows_for_snapshot",
    "AppointmentModel",
    "DentistModel",
    "DoctorPaymentModel",
    "ExpenseModel",
    "InventoryItemModel",
    "InvoicePaymentModel",
    "PatientModel",
    "PaymentModel",
    "SupplierInvoiceModel",
    "SupplierModel",
    "TreatmentDefinitionModel",
    "TreatmentRecordModel",
]

# Snapshot field -> ORM model, in RecordSnapshot field order.
MODEL_FOR_FIELD = {
    "payments": PaymentModel,
    "expenses": ExpenseModel,
    "treatment_records": TreatmentRecordModel,
    "doctor_payments": DoctorPaymentModel,
    "supplier_invoices": SupplierInvoiceModel,
    "inventory_items": InventoryItemModel,
    "appointments": AppointmentModel,
    "patients": PatientModel,
    "dentists": DentistModel,
    "suppliers": SupplierModel,
    "treatment_definitions": TreatmentDefinitionModel,
}


def rows_for_snapshot(snapshot) -> list:
    """ORM rows for every record in a ``RecordSnapshot`` (for loading a store)."""
    return [
        model.from_record(record)
        for name, model in MODEL_FOR_FIELD.items()
        for record in getattr(snapshot, name)
    ]
