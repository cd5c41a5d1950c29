"""
Tests for record parsing from record store exports.

Exports use camelCase keys; snake_case is accepted as well.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from clinic_kernel.domain.records import (
    Appointment,
    AppointmentStatus,
    Expense,
    ExpenseCategory,
    InventoryItem,
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
from clinic_kernel.exceptions import MalformedRecordError, RecordError


class TestPayment:
    def test_camel_case_export(self):
        payment = Payment.from_dict({
            "id": 7, "patientId": "pat-1", "amount": "250.75", "doctorShare": 100,
            "clinicShare": "150.75", "method": "Credit Card", "date": "2024-03-05",
            "treatmentRecordId": "tr-1",
        })
        assert payment.id == "7"
        assert payment.amount == Decimal("250.75")
        assert payment.doctor_share == Decimal("100")
        assert payment.method is PaymentMethod.CREDIT_CARD
        assert payment.date == date(2024, 3, 5)
        assert payment.treatment_record_id == "tr-1"

    def test_clinic_share_derived_when_missing(self):
        payment = Payment.from_dict({"id": "p", "amount": 100, "doctor_share": 30})
        assert payment.clinic_share == Decimal("70")

    def test_float_amounts_use_string_form(self):
        payment = Payment.from_dict({"id": "p", "amount": 0.1})
        assert payment.amount == Decimal("0.1")

    def test_timestamp_with_z_suffix(self):
        payment = Payment.from_dict({"id": "p", "amount": 1, "date": "2024-03-05T10:00:00Z"})
        assert payment.date == datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)

    def test_unparseable_date_kept_as_none(self, captured_logs):
        payment = Payment.from_dict({"id": "p", "amount": 1, "date": "yesterday"})
        assert payment.date is None
        assert any(r["message"] == "record_date_unparseable" for r in captured_logs())

    def test_unknown_method_falls_back_to_other(self):
        payment = Payment.from_dict({"id": "p", "amount": 1, "method": "Cheque"})
        assert payment.method is PaymentMethod.OTHER

    def test_missing_amount(self):
        with pytest.raises(MalformedRecordError) as exc_info:
            Payment.from_dict({"id": "p"})
        assert exc_info.value.record_kind == "payment"
        assert exc_info.value.field_name == "amount"
        assert isinstance(exc_info.value, RecordError)

    def test_non_numeric_amount(self):
        with pytest.raises(MalformedRecordError, match="not numeric"):
            Payment.from_dict({"id": "p", "amount": "ten"})

    def test_missing_id(self):
        with pytest.raises(MalformedRecordError, match="id is required"):
            Payment.from_dict({"amount": 1})


class TestOtherRecords:
    def test_expense_category(self):
        expense = Expense.from_dict({"id": "e", "amount": 10, "category": "LAB_FEES"})
        assert expense.category is ExpenseCategory.LAB_FEES

    def test_treatment_record_share_balance(self):
        record = TreatmentRecord.from_dict({
            "id": "t", "totalTreatmentCost": 1000, "doctorShare": 400, "clinicShare": 600,
        })
        assert record.shares_balance()
        off = TreatmentRecord.from_dict({
            "id": "t", "totalTreatmentCost": 1000, "doctorShare": 400, "clinicShare": 590,
        })
        assert not off.shares_balance()
        assert off.shares_balance(Decimal("10"))

    def test_supplier_invoice_with_payments(self):
        invoice = SupplierInvoice.from_dict({
            "id": "i", "supplierId": "s", "amount": 500, "status": "UNPAID",
            "invoiceDate": "2024-03-01",
            "payments": [{"amount": 100, "expenseId": "e1"}, {"amount": "50.5"}],
        })
        assert invoice.amount_paid == Decimal("150.5")
        assert invoice.payments[0].expense_id == "e1"

    def test_supplier_invoice_status_required(self):
        with pytest.raises(MalformedRecordError, match="status"):
            SupplierInvoice.from_dict({"id": "i", "amount": 1, "status": "OVERDUE"})

    def test_inventory_item_stock_value(self):
        item = InventoryItem.from_dict({
            "id": "x", "name": "Gloves", "currentStock": "12", "unitCost": "0.25",
        })
        assert item.current_stock == 12
        assert item.stock_value == Decimal("3.00")

    def test_inventory_item_bad_stock(self):
        with pytest.raises(MalformedRecordError, match="current_stock"):
            InventoryItem.from_dict({"id": "x", "currentStock": "many"})

    def test_appointment_status(self):
        appointment = Appointment.from_dict({
            "id": "a", "startTime": "2024-03-05T09:30:00", "status": "CANCELLED",
        })
        assert appointment.status is AppointmentStatus.CANCELLED
        assert appointment.start_time == datetime(2024, 3, 5, 9, 30)

    def test_supplier_type(self):
        supplier = Supplier.from_dict({"id": "s", "name": "Lab", "type": "Dental Lab"})
        assert supplier.supplier_type is SupplierType.DENTAL_LAB

    def test_treatment_definition_percentages(self):
        definition = TreatmentDefinition.from_dict({
            "id": "d", "name": "Crown", "basePrice": 3000,
            "doctorPercentage": 0.5, "clinicPercentage": 0.5,
        })
        assert definition.doctor_percentage == Decimal("0.5")


class TestRecordSnapshot:
    def test_from_export(self):
        snapshot = RecordSnapshot.from_dict({
            "payments": [{"id": "p", "amount": 1}],
            "treatmentRecords": [{"id": "t", "totalTreatmentCost": 1}],
            "patients": [{"id": "pat", "name": "A"}],
        })
        counts = snapshot.record_counts()
        assert counts["payments"] == 1
        assert counts["treatment_records"] == 1
        assert counts["patients"] == 1
        assert counts["expenses"] == 0

    def test_collections_are_tuples(self):
        snapshot = RecordSnapshot.from_dict({"payments": [{"id": "p", "amount": 1}]})
        assert isinstance(snapshot.payments, tuple)

    def test_load_logged(self, captured_logs):
        RecordSnapshot.from_dict({})
        logs = [r for r in captured_logs() if r["message"] == "record_snapshot_loaded"]
        assert logs[0]["record_counts"]["payments"] == 0
