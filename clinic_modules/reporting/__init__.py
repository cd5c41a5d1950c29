"""
Clinic Reporting Module (``clinic_modules.reporting``).

Responsibility
--------------
Read-only module that turns a ``RecordSnapshot`` into the clinic's report
views: financial summary, balance sheet, previous-period and
year-over-year comparisons, daily/monthly/quarterly/annual summaries, the
accounting report (patient, doctor, supplier, treatment-type, expense
category and payment method rollups) and the overview.

Architecture position
---------------------
**Modules layer** -- the service composes engines; the models are pure
data; ``render_to_dict`` and ``format_amount`` are the presentation
boundary.

Invariants enforced
-------------------
* No record is created or modified by this module.
* Calculations never round; display rounding happens in ``format_amount``.
"""

from clinic_modules.reporting.config import ReportingConfig, UnknownLabels
from clinic_modules.reporting.models import (
    AccountingReport,
    ClinicOverview,
    PeriodReport,
    ReportMetadata,
    ReportType,
    SeasonalQuarter,
)
from clinic_modules.reporting.rendering import format_amount, render_to_dict
from clinic_modules.reporting.service import (
    ReportingService,
    month_range,
    quarter_range,
    year_range,
)

__all__ = [
    # Service
    "ReportingService",
    "month_range",
    "quarter_range",
    "year_range",
    # Config
    "ReportingConfig",
    "UnknownLabels",
    # Models
    "AccountingReport",
    "ClinicOverview",
    "PeriodReport",
    "ReportMetadata",
    "ReportType",
    "SeasonalQuarter",
    # Rendering
    "format_amount",
    "render_to_dict",
]
