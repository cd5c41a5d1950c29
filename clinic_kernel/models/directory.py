"""
Module: clinic_kernel.models.directory
Responsibility: ORM persistence for the dimension tables the reports resolve
    names through: patients, dentists, suppliers and treatment definitions.
Architecture position: Kernel > Models.  May import from db/base.py and the
    domain records it converts to.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Mapped, mapped_column

from clinic_kernel.db.base import Base, Money, RecordId, ShortText
from clinic_kernel.domain.records import (
    Dentist,
    Patient,
    Supplier,
    SupplierType,
    TreatmentDefinition,
)


class PatientModel(Base):
    __tablename__ = "patients"

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    name: Mapped[ShortText]

    def to_record(self) -> Patient:
        return Patient(id=self.id, name=self.name)

    @classmethod
    def from_record(cls, record: Patient) -> PatientModel:
        return cls(id=record.id, name=record.name)


class DentistModel(Base):
    __tablename__ = "dentists"

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    name: Mapped[ShortText]
    specialty: Mapped[ShortText | None]

    def to_record(self) -> Dentist:
        return Dentist(id=self.id, name=self.name, specialty=self.specialty)

    @classmethod
    def from_record(cls, record: Dentist) -> DentistModel:
        return cls(id=record.id, name=record.name, specialty=record.specialty)


class SupplierModel(Base):
    """Material supplier or dental lab; ``supplier_type`` holds the display value."""

    __tablename__ = "suppliers"

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    name: Mapped[ShortText]
    supplier_type: Mapped[ShortText]

    def to_record(self) -> Supplier:
        return Supplier(
            id=self.id,
            name=self.name,
            supplier_type=SupplierType(self.supplier_type),
        )

    @classmethod
    def from_record(cls, record: Supplier) -> SupplierModel:
        return cls(id=record.id, name=record.name, supplier_type=record.supplier_type.value)


class TreatmentDefinitionModel(Base):
    """Price-list entry; percentages are stored as fractions."""

    __tablename__ = "treatment_definitions"

    id: Mapped[RecordId] = mapped_column(primary_key=True)
    name: Mapped[ShortText]
    base_price: Mapped[Money]
    doctor_percentage: Mapped[Money]
    clinic_percentage: Mapped[Money]

    def to_record(self) -> TreatmentDefinition:
        return TreatmentDefinition(
            id=self.id,
            name=self.name,
            base_price=Decimal(self.base_price),
            doctor_percentage=Decimal(self.doctor_percentage),
            clinic_percentage=Decimal(self.clinic_percentage),
        )

    @classmethod
    def from_record(cls, record: TreatmentDefinition) -> TreatmentDefinitionModel:
        return cls(
            id=record.id,
            name=record.name,
            base_price=record.base_price,
            doctor_percentage=record.doctor_percentage,
            clinic_percentage=record.clinic_percentage,
        )
