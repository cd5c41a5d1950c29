"""
Reporting Configuration Schema.

Controls report headings, currency display, the audit log and the labels
substituted for records whose patient, dentist, supplier or treatment
cannot be resolved.  Loadable from a dict or a YAML file.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Self

import yaml

from clinic_engines.rollups import (
    UNKNOWN_DENTIST,
    UNKNOWN_PATIENT,
    UNKNOWN_SUPPLIER,
    UNKNOWN_TREATMENT,
)
from clinic_kernel.exceptions import ConfigurationError
from clinic_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")


@dataclass(frozen=True)
class UnknownLabels:
    """Placeholder names for missing foreign keys."""

    patient: str = UNKNOWN_PATIENT
    dentist: str = UNKNOWN_DENTIST
    supplier: str = UNKNOWN_SUPPLIER
    treatment: str = UNKNOWN_TREATMENT


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.

    Raises ``ConfigurationError`` on construction when a value is out of
    range.
    """

    # Entity name shown on reports
    entity_name: str = "Dental Clinic"

    # Currency for display formatting (ISO 4217)
    default_currency: str = "EGP"

    # Rounding precision for display only; calculations never round
    display_precision: int = 2

    # Calculation audit log
    audit_log_capacity: int = 1000
    audit_enabled: bool = True

    # Allowed gap between doctor + clinic share and the treatment cost
    share_tolerance: Decimal = Decimal("0.01")

    unknown_labels: UnknownLabels = field(default_factory=UnknownLabels)

    def __post_init__(self):
        for name in ("display_precision", "audit_log_capacity"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(name, f"must be an integer ({value!r})")
        if self.display_precision < 0:
            raise ConfigurationError("display_precision", "cannot be negative")
        if (
            not isinstance(self.default_currency, str)
            or len(self.default_currency) != 3
            or not self.default_currency.isalpha()
        ):
            raise ConfigurationError(
                "default_currency", "must be a 3-letter ISO 4217 code",
            )
        if self.audit_log_capacity <= 0:
            raise ConfigurationError("audit_log_capacity", "must be positive")
        try:
            self.share_tolerance = Decimal(str(self.share_tolerance))
        except InvalidOperation as exc:
            raise ConfigurationError("share_tolerance", "must be numeric") from exc
        if self.share_tolerance < 0:
            raise ConfigurationError("share_tolerance", "cannot be negative")
        self.default_currency = self.default_currency.upper()

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """
        Create config from a dictionary.

        Raises:
            ConfigurationError: On unknown keys or invalid values.
        """
        data = dict(data)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(", ".join(unknown), "unknown setting")

        labels = data.get("unknown_labels")
        if isinstance(labels, dict):
            try:
                data["unknown_labels"] = UnknownLabels(**labels)
            except TypeError as exc:
                raise ConfigurationError("unknown_labels", str(exc)) from exc

        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """
        Load config from a YAML file, optionally nested under ``reporting:``.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigurationError: If the YAML is invalid or not a mapping.
        """
        path = Path(path)
        try:
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(str(path), f"invalid YAML: {exc}") from exc

        if not isinstance(raw, dict):
            raise ConfigurationError(str(path), "top level must be a mapping")
        if isinstance(raw.get("reporting"), dict):
            raw = raw["reporting"]

        logger.info("reporting_config_loading_from_yaml", extra={"path": str(path)})
        return cls.from_dict(raw)
