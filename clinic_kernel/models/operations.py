"""
Module: clinic_kernel.models.operations
Responsibility: ORM persistence for operational records the overview and
    activity counts read: inventory items and appointments.
Architecture position: Kernel > Models.  May import from db/base.py and the
    domain records it converts to.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Index
from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import Base, Money, RecordId, ShortText
from clinic_kernel.domain.records import Appointment, AppointmentStatus, InventoryItem
from clinic_kernel.domain.values import as_naive_datetime


class InventoryItemModel(Base):
    __tablename__ = "inventory_items"

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    supplier_id: Mapped[RecordId | None]
    name: Mapped[ShortText]
    current_stock: Mapped[int] = mapped_column(default=0)
    min_stock_level: Mapped[int] = mapped_column(default=0)
    unit_cost: Mapped[Money]
    expiry_date: Mapped[datetime | None]

    def to_record(self) -> InventoryItem:
        return InventoryItem(
            id=self.id,
            supplier_id=self.supplier_id,
            name=self.name,
            current_stock=self.current_stock,
            unit_cost=Decimal(self.unit_cost),
            expiry_date=self.expiry_date,
            min_stock_level=self.min_stock_level,
        )

    @classmethod
    def from_record(cls, record: InventoryItem) -> InventoryItemModel:
        return cls(
            id=record.id,
            supplier_id=record.supplier_id,
            name=record.name,
            current_stock=record.current_stock,
            min_stock_level=record.min_stock_level,
            unit_cost=record.unit_cost,
            expiry_date=as_naive_datetime(record.expiry_date) if record.expiry_date else None,
        )


class AppointmentModel(Base):
    __tablename__ = "appointments"

    __table_args__ = (Index("idx_appointment_start", "start_time"),)

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    patient_id: Mapped[RecordId]
    dentist_id: Mapped[RecordId]
    start_time: Mapped[datetime | None]
    status: Mapped[ShortText]

    def to_record(self) -> Appointment:
        return Appointment(
            id=self.id,
            patient_id=self.patient_id,
            dentist_id=self.dentist_id,
            start_time=self.start_time,
            status=AppointmentStatus(self.status),
        )

    @classmethod
    def from_record(cls, record: Appointment) -> AppointmentModel:
        return cls(
            id=record.id,
            patient_id=record.patient_id,
            dentist_id=record.dentist_id,
            start_time=as_naive_datetime(record.start_time) if record.start_time else None,
            status=record.status.value,
        )
