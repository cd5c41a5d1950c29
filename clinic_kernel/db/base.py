"""
Module: clinic_kernel.db.base
Responsibility: Declarative base for the record store's SQLAlchemy ORM models.
    Provides the type annotation map so every model stores amounts, dates
    and identifiers with the same column types.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel's SQL adapter.  ALL model files import from here.  This
    module MUST NOT import from models/, selectors/, services/ or outer layers.

Invariants enforced:
    - Decimal precision: ``Decimal`` maps to Numeric(18, 4).  NEVER use float
      for monetary amounts.
    - Record ids are the record store's own string ids, not generated here.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, ClassVar

from sqlalchemy import DateTime, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase

# Monetary amount: 18 digits total, 4 decimal places
Money = Annotated[Decimal, Numeric(18, 4)]

# Record store identifier (uuid or any opaque string)
RecordId = Annotated[str, String(64)]

# Short labels: names, enum values, invoice numbers
ShortText = Annotated[str, String(255)]

# Free-form notes
LongText = Annotated[str, String(4000)]


class Base(DeclarativeBase):
    """
    Declarative base for all record store models.

    Guarantees:
        - Decimal maps to Numeric(18, 4).
        - datetime maps to naive DateTime; record store dates carry no zone.
        - str maps to String(255) unless a model narrows it.
    """

    type_annotation_map: ClassVar[dict] = {
        Money: Numeric(18, 4),
        RecordId: String(64),
        ShortText: String(255),
        LongText: String(4000),
        Decimal: Numeric(18, 4),
        datetime: DateTime(timezone=False),
        int: Integer,
        str: String(255),
    }
