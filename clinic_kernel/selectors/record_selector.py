"""
Module: clinic_kernel.selectors.record_selector
Responsibility: Load the record store into an immutable ``RecordSnapshot``
    the reporting engines can read.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Every row is converted with ``to_record()``; no ORM instance escapes.
    - Rows are ordered by id so two snapshots of an unchanged store are
      identical.
    - Date filtering is NOT pushed into SQL: the engines' filter keeps
      undated records, which a WHERE clause would drop.
"""

from __future__ import annotations

import time
from typing import Any

from sqlalchemy import select

from clinic_kernel.domain.records import RecordSnapshot
from clinic_kernel.logging_config import get_logger
from clinic_kernel.models import MODEL_FOR_FIELD
from clinic_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.record")


class RecordSelector(BaseSelector):
    """
    Reads every record kind the reporting core uses.

    Guarantees:
        - ``snapshot()`` issues one SELECT per table (invoice payments are
          loaded with their invoices).
    """

    def records(self, field_name: str) -> tuple[Any, ...]:
        """
        All records of one snapshot field, e.g. ``"payments"``.

        Raises:
            KeyError: If ``field_name`` is not a snapshot field.
        """
        model = MODEL_FOR_FIELD[field_name]
        rows = self.session.scalars(select(model).order_by(model.id)).all()
        return tuple(row.to_record() for row in rows)

    def snapshot(self) -> RecordSnapshot:
        t0 = time.monotonic()
        snapshot = RecordSnapshot(**{
            name: self.records(name) for name in MODEL_FOR_FIELD
        })
        logger.info("record_snapshot_selected", extra={
            "record_counts": snapshot.record_counts(),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return snapshot
