"""Selectors for the clinic kernel (read side)."""

from clinic_kernel.selectors.base import BaseSelector
from clinic_kernel.selectors.record_selector import RecordSelector

__all__ = [
    "BaseSelector",
    "RecordSelector",
]
