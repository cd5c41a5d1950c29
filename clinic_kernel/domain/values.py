"""
Value objects shared by every layer of the reporting core.

Contains the ``DateRange`` filter parameters and the helpers that coerce
record store values (amounts, calendar dates) into the types the engines
work with.

Invariants enforced:
    - Monetary values are ``Decimal``.  Floats are converted through their
      string form so ``0.1`` becomes ``Decimal("0.1")``, not the binary
      expansion.
    - ``DateRange.upper_bound()`` is the last millisecond of ``end_date``
      (inclusive end-of-day).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from clinic_kernel.exceptions import InvalidDateError

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# 23:59:59.999 -- the record store compares at millisecond resolution
END_OF_DAY = time(23, 59, 59, 999000)


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a numeric value into ``Decimal``.

    Raises:
        ValueError: If ``value`` is None, a bool, or not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not a numeric amount: {value!r}")
    text = value.strip() if isinstance(value, str) else str(value)
    try:
        result = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return result


def parse_calendar_value(value: Any) -> date | datetime | None:
    """
    Parse a record date field.

    Accepts ``date``/``datetime`` objects and ISO-8601 strings
    (``YYYY-MM-DD`` or a full timestamp, a trailing ``Z`` is allowed).
    Returns None for missing or unparseable values; callers decide
    whether that is an error.
    """
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def as_naive_datetime(value: date | datetime) -> datetime:
    """Promote a date to midnight and drop tzinfo for comparisons."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime.combine(value, time.min)


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive ``[start_date, end_date]`` calendar window.

    Either bound may be None, meaning unbounded on that side.  An inverted
    range (start after end) is legal and selects nothing.
    """

    start_date: date | None = None
    end_date: date | None = None

    @classmethod
    def from_strings(
        cls,
        start_date: str | None = None,
        end_date: str | None = None,
    ) -> DateRange:
        """
        Build a range from ``YYYY-MM-DD`` strings (empty string = unbounded).

        Raises:
            InvalidDateError: If a non-empty bound is not a calendar date.
        """
        return cls(
            start_date=_parse_bound("start_date", start_date),
            end_date=_parse_bound("end_date", end_date),
        )

    @classmethod
    def single_day(cls, day: date) -> DateRange:
        return cls(start_date=day, end_date=day)

    @property
    def is_unbounded(self) -> bool:
        """True when neither bound is set."""
        return self.start_date is None and self.end_date is None

    @property
    def is_complete(self) -> bool:
        """True when both bounds are set."""
        return self.start_date is not None and self.end_date is not None

    @property
    def is_inverted(self) -> bool:
        return self.is_complete and self.start_date > self.end_date

    def lower_bound(self) -> datetime | None:
        """Start of ``start_date`` (00:00:00)."""
        if self.start_date is None:
            return None
        return datetime.combine(self.start_date, time.min)

    def upper_bound(self) -> datetime | None:
        """End of ``end_date`` (23:59:59.999)."""
        if self.end_date is None:
            return None
        return datetime.combine(self.end_date, END_OF_DAY)

    def shifted(self, days: int) -> DateRange:
        """Return the range moved back by ``days`` (forward if negative)."""
        delta = timedelta(days=days)
        return DateRange(
            start_date=self.start_date - delta if self.start_date else None,
            end_date=self.end_date - delta if self.end_date else None,
        )

    def as_dict(self) -> dict[str, str | None]:
        return {
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


def _parse_bound(field_name: str, value: str | date | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except (AttributeError, ValueError) as exc:
        raise InvalidDateError(field_name, value) from exc
