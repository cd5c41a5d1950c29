"""Kernel services."""

from clinic_kernel.services.audit_log import (
    AuditEntry,
    CalculationAuditLog,
    default_audit_log,
    reset_default_audit_log,
)

__all__ = [
    "AuditEntry",
    "CalculationAuditLog",
    "default_audit_log",
    "reset_default_audit_log",
]
