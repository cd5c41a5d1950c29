"""
Presentation-boundary helpers for reports.

Calculations never round; rounding and currency labels are applied here
only, when a report is shown or serialised.
"""

from __future__ import annotations

import dataclasses
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from clinic_modules.reporting.config import ReportingConfig


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to a plain dict for JSON serialization.

    Handles:
    - Decimal -> str (preserving precision)
    - date / datetime -> ISO format string
    - Enum -> .value
    - Nested frozen dataclasses -> nested dicts
    - Tuples -> lists
    - None preserved
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)


def format_amount(amount: Decimal, config: ReportingConfig | None = None) -> str:
    """
    Format an amount for display, e.g. ``"1,234.50 EGP"``.

    Rounds half-up to ``display_precision`` places.
    """
    config = config or ReportingConfig()
    exponent = Decimal(1).scaleb(-config.display_precision)
    rounded = Decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)
    return f"{rounded:,.{config.display_precision}f} {config.default_currency}"
