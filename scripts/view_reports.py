#!/usr/bin/env python3
"""
View clinic financial reports as JSON.

Loads records from a JSON export of the record store (--records) or from a
database (--database-url), then prints the requested report for the given
date range.

Usage:
    python3 scripts/view_reports.py --records clinic.json summary
    python3 scripts/view_reports.py --records clinic.json --start 2024-03-01 --end 2024-03-31 comparison
    python3 scripts/view_reports.py --database-url sqlite:///clinic.db accounting
    python3 scripts/view_reports.py --records clinic.json --config reporting.yaml overview

Examples:
    # Month of March against February (equal-length previous window)
    python3 scripts/view_reports.py --records clinic.json \\
        --start 2024-03-01 --end 2024-03-31 comparison

    # Structured logs on stderr while generating
    python3 scripts/view_reports.py --records clinic.json --log-level DEBUG summary
"""

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

REPORTS = (
    "summary",
    "balance-sheet",
    "comparison",
    "accounting",
    "overview",
    "integrity",
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Print clinic financial reports as JSON.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python3 scripts/view_reports.py --records clinic.json summary\n"
            "  python3 scripts/view_reports.py --database-url sqlite:///clinic.db accounting\n"
        ),
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--records", type=Path,
        help="JSON export of the record store (camelCase keys)",
    )
    source.add_argument(
        "--database-url", type=str,
        help="SQLAlchemy database URL (sqlite:///... or postgresql://...)",
    )
    parser.add_argument("--start", type=str, help="Range start, YYYY-MM-DD")
    parser.add_argument("--end", type=str, help="Range end, YYYY-MM-DD")
    parser.add_argument(
        "--config", type=Path,
        help="YAML reporting configuration",
    )
    parser.add_argument(
        "--log-level", type=str.upper, default=None,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Emit structured logs on stderr at this level (default: off)",
    )
    parser.add_argument(
        "report", choices=REPORTS, nargs="?", default="summary",
        help="Report to print (default: summary)",
    )
    return parser


def load_snapshot(args):
    """Read the record snapshot from the chosen source."""
    from clinic_kernel.domain.records import RecordSnapshot

    if args.records is not None:
        with open(args.records) as f:
            return RecordSnapshot.from_dict(json.load(f))

    from clinic_kernel.db.engine import get_session, init_engine_from_url
    from clinic_kernel.selectors import RecordSelector

    init_engine_from_url(args.database_url, echo=False)
    session = get_session()
    try:
        return RecordSelector(session).snapshot()
    finally:
        session.close()


def generate_report(args):
    """Build the report object named by ``args.report``."""
    from clinic_kernel.domain.values import DateRange
    from clinic_modules.reporting import ReportingConfig, ReportingService

    config = (
        ReportingConfig.from_yaml(args.config) if args.config
        else ReportingConfig.with_defaults()
    )
    date_range = DateRange.from_strings(args.start, args.end)
    service = ReportingService(load_snapshot(args), config=config)

    if args.report == "summary":
        return service.financial_summary(date_range)
    if args.report == "balance-sheet":
        return service.balance_sheet(date_range)
    if args.report == "comparison":
        return service.compare_to_previous_period(date_range)
    if args.report == "accounting":
        return service.accounting_report(date_range)
    if args.report == "overview":
        return service.overview()
    return service.share_integrity_violations(date_range)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    from clinic_kernel.exceptions import ClinicKernelError
    from clinic_kernel.logging_config import configure_logging
    from clinic_modules.reporting import render_to_dict

    if args.log_level:
        configure_logging(level=getattr(logging, args.log_level), stream=sys.stderr)
    else:
        logging.disable(logging.CRITICAL)

    try:
        report = generate_report(args)
    except (ClinicKernelError, OSError, ValueError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        logging.disable(logging.NOTSET)

    print(json.dumps(render_to_dict(report), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
