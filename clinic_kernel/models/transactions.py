"""
Module: clinic_kernel.models.transactions
Responsibility: ORM persistence for the clinic's money movements: patient
    payments, operating expenses, treatment records, doctor payments and
    supplier invoices (with the payments applied to them).
Architecture position: Kernel > Models.  May import from db/base.py and the
    domain records it converts to.  MUST NOT import from selectors/,
    services/, or outer layers.

Invariants enforced:
    - Every model converts to exactly one frozen domain record through
      ``to_record()``; engines never see ORM instances.
    - Amounts are stored as Numeric, never float.

Failure modes:
    - ValueError from ``to_record()`` if an enum column holds a value the
      domain does not know (rows are written through ``from_record``).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic_kernel.db.base import Base, LongText, Money, RecordId
from clinic_kernel.domain.records import (
    DoctorPayment,
    Expense,
    ExpenseCategory,
    InvoicePayment,
    Payment,
    PaymentMethod,
    SupplierInvoice,
    SupplierInvoiceStatus,
    TreatmentRecord,
)
from clinic_kernel.domain.values import as_naive_datetime


def _stored(value) -> datetime | None:
    return as_naive_datetime(value) if value is not None else None


class PaymentModel(Base):
    """A payment received from a patient."""

    __tablename__ = "payments"

    __table_args__ = (
        Index("idx_payment_date", "date"),
        Index("idx_payment_patient", "patient_id"),
    )

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    patient_id: Mapped[RecordId]
    amount: Mapped[Money]
    doctor_share: Mapped[Money]
    clinic_share: Mapped[Money]
    method: Mapped[str]
    date: Mapped[datetime | None]
    treatment_record_id: Mapped[RecordId | None]
    notes: Mapped[LongText | None]

    def to_record(self) -> Payment:
        return Payment(
            id=self.id,
            patient_id=self.patient_id,
            amount=Decimal(self.amount),
            doctor_share=Decimal(self.doctor_share),
            clinic_share=Decimal(self.clinic_share),
            method=PaymentMethod(self.method),
            date=self.date,
            treatment_record_id=self.treatment_record_id,
            notes=self.notes,
        )

    @classmethod
    def from_record(cls, record: Payment) -> PaymentModel:
        return cls(
            id=record.id,
            patient_id=record.patient_id,
            amount=record.amount,
            doctor_share=record.doctor_share,
            clinic_share=record.clinic_share,
            method=record.method.value,
            date=_stored(record.date),
            treatment_record_id=record.treatment_record_id,
            notes=record.notes,
        )


class ExpenseModel(Base):
    """An operating expense."""

    __tablename__ = "expenses"

    __table_args__ = (Index("idx_expense_date", "date"),)

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    description: Mapped[LongText]
    amount: Mapped[Money]
    category: Mapped[str]
    date: Mapped[datetime | None]
    supplier_id: Mapped[RecordId | None]
    supplier_invoice_id: Mapped[RecordId | None]

    def to_record(self) -> Expense:
        return Expense(
            id=self.id,
            description=self.description,
            amount=Decimal(self.amount),
            category=ExpenseCategory(self.category),
            date=self.date,
            supplier_id=self.supplier_id,
            supplier_invoice_id=self.supplier_invoice_id,
        )

    @classmethod
    def from_record(cls, record: Expense) -> ExpenseModel:
        return cls(
            id=record.id,
            description=record.description,
            amount=record.amount,
            category=record.category.value,
            date=_stored(record.date),
            supplier_id=record.supplier_id,
            supplier_invoice_id=record.supplier_invoice_id,
        )


class TreatmentRecordModel(Base):
    """A treatment performed, with its doctor/clinic cost split."""

    __tablename__ = "treatment_records"

    __table_args__ = (
        Index("idx_treatment_date", "treatment_date"),
        Index("idx_treatment_dentist", "dentist_id"),
    )

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    patient_id: Mapped[RecordId]
    dentist_id: Mapped[RecordId]
    treatment_definition_id: Mapped[RecordId | None]
    treatment_name: Mapped[str | None]
    total_treatment_cost: Mapped[Money]
    doctor_share: Mapped[Money]
    clinic_share: Mapped[Money]
    treatment_date: Mapped[datetime | None]
    notes: Mapped[LongText | None]

    def to_record(self) -> TreatmentRecord:
        return TreatmentRecord(
            id=self.id,
            patient_id=self.patient_id,
            dentist_id=self.dentist_id,
            treatment_definition_id=self.treatment_definition_id,
            treatment_name=self.treatment_name,
            total_treatment_cost=Decimal(self.total_treatment_cost),
            doctor_share=Decimal(self.doctor_share),
            clinic_share=Decimal(self.clinic_share),
            treatment_date=self.treatment_date,
            notes=self.notes,
        )

    @classmethod
    def from_record(cls, record: TreatmentRecord) -> TreatmentRecordModel:
        return cls(
            id=record.id,
            patient_id=record.patient_id,
            dentist_id=record.dentist_id,
            treatment_definition_id=record.treatment_definition_id,
            treatment_name=record.treatment_name,
            total_treatment_cost=record.total_treatment_cost,
            doctor_share=record.doctor_share,
            clinic_share=record.clinic_share,
            treatment_date=_stored(record.treatment_date),
            notes=record.notes,
        )


class DoctorPaymentModel(Base):
    """Clinic-to-doctor disbursement."""

    __tablename__ = "doctor_payments"

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    dentist_id: Mapped[RecordId]
    amount: Mapped[Money]
    date: Mapped[datetime | None]
    notes: Mapped[LongText | None]

    def to_record(self) -> DoctorPayment:
        return DoctorPayment(
            id=self.id,
            dentist_id=self.dentist_id,
            amount=Decimal(self.amount),
            date=self.date,
            notes=self.notes,
        )

    @classmethod
    def from_record(cls, record: DoctorPayment) -> DoctorPaymentModel:
        return cls(
            id=record.id,
            dentist_id=record.dentist_id,
            amount=record.amount,
            date=_stored(record.date),
            notes=record.notes,
        )


class SupplierInvoiceModel(Base):
    """
    A bill from a material supplier or dental lab.

    Guarantees:
        - ``payments`` are loaded eagerly (selectin) and ordered by date.
    """

    __tablename__ = "supplier_invoices"

    __table_args__ = (
        Index("idx_invoice_date", "invoice_date"),
        Index("idx_invoice_supplier", "supplier_id"),
    )

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    supplier_id: Mapped[RecordId]
    invoice_number: Mapped[str | None]
    amount: Mapped[Money]
    invoice_date: Mapped[datetime | None]
    due_date: Mapped[datetime | None]
    status: Mapped[str]

    payments: Mapped[list[InvoicePaymentModel]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoicePaymentModel.date",
    )

    def to_record(self) -> SupplierInvoice:
        return SupplierInvoice(
            id=self.id,
            supplier_id=self.supplier_id,
            invoice_number=self.invoice_number,
            amount=Decimal(self.amount),
            invoice_date=self.invoice_date,
            status=SupplierInvoiceStatus(self.status),
            due_date=self.due_date,
            payments=tuple(p.to_record() for p in self.payments),
        )

    @classmethod
    def from_record(cls, record: SupplierInvoice) -> SupplierInvoiceModel:
        return cls(
            id=record.id,
            supplier_id=record.supplier_id,
            invoice_number=record.invoice_number,
            amount=record.amount,
            invoice_date=_stored(record.invoice_date),
            due_date=_stored(record.due_date),
            status=record.status.value,
            payments=[InvoicePaymentModel.from_record(p) for p in record.payments],
        )


class InvoicePaymentModel(Base):
    """A settlement applied to a supplier invoice."""

    __tablename__ = "supplier_invoice_payments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    invoice_id: Mapped[RecordId] = mapped_column(
        ForeignKey("supplier_invoices.id", ondelete="CASCADE"),
    )
    expense_id: Mapped[RecordId | None]
    amount: Mapped[Money]
    date: Mapped[datetime | None]

    invoice: Mapped[SupplierInvoiceModel] = relationship(back_populates="payments")

    def to_record(self) -> InvoicePayment:
        return InvoicePayment(
            expense_id=self.expense_id,
            amount=Decimal(self.amount),
            date=self.date,
        )

    @classmethod
    def from_record(cls, record: InvoicePayment) -> InvoicePaymentModel:
        return cls(
            expense_id=record.expense_id,
            amount=record.amount,
            date=_stored(record.date),
        )
