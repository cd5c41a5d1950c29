"""
Pytest fixtures for the clinic reporting test suite.

Provides:
- Structured logging configured once per session, with a capture fixture
- A deterministic clock and a fresh calculation audit log per test
- A small but complete record snapshot covering every record kind
- An in-memory SQLite session for the record store adapter
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from clinic_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from clinic_kernel.domain.clock import DeterministicClock
from clinic_kernel.domain.records import (
    Appointment,
    AppointmentStatus,
    Dentist,
    DoctorPayment,
    Expense,
    ExpenseCategory,
    InventoryItem,
    InvoicePayment,
    Patient,
    Payment,
    PaymentMethod,
    RecordSnapshot,
    Supplier,
    SupplierInvoice,
    SupplierInvoiceStatus,
    SupplierType,
    TreatmentDefinition,
    TreatmentRecord,
)
from clinic_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from clinic_kernel.services.audit_log import CalculationAuditLog, reset_default_audit_log


def pytest_configure(config):
    config.addinivalue_line("markers", "slow_locks: tests that exercise lock contention")
    config.addinivalue_line("markers", "database: tests that need a SQLAlchemy session")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture(autouse=True)
def _reset_default_audit_log():
    reset_default_audit_log()
    yield
    reset_default_audit_log()


@pytest.fixture
def captured_logs():
    """
    Capture clinic_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.financial_summary()
            logs = captured_logs()
            assert any(r["message"] == "financial_summary_calculated" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("clinic_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Time and audit
# =============================================================================


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    """Clock pinned to 2024-03-15 12:00 UTC."""
    return DeterministicClock(datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def audit_log(deterministic_clock) -> CalculationAuditLog:
    return CalculationAuditLog(capacity=50, clock=deterministic_clock)


# =============================================================================
# Record fixtures
# =============================================================================


def make_payment(
    id: str = "pay-1",
    amount: str = "100",
    doctor_share: str = "0",
    day=date(2024, 3, 10),
    patient_id: str = "pat-1",
    method: PaymentMethod = PaymentMethod.CASH,
    treatment_record_id: str | None = None,
) -> Payment:
    amount_d = Decimal(amount)
    share = Decimal(doctor_share)
    return Payment(
        id=id,
        patient_id=patient_id,
        amount=amount_d,
        doctor_share=share,
        clinic_share=amount_d - share,
        method=method,
        date=day,
        treatment_record_id=treatment_record_id,
    )


def make_expense(
    id: str = "exp-1",
    amount: str = "100",
    day=date(2024, 3, 10),
    category: ExpenseCategory = ExpenseCategory.MISC,
) -> Expense:
    return Expense(
        id=id, description=f"expense {id}", amount=Decimal(amount),
        category=category, date=day,
    )


def make_treatment(
    id: str = "tr-1",
    cost: str = "1000",
    doctor_share: str = "400",
    clinic_share: str = "600",
    day=date(2024, 3, 10),
    patient_id: str = "pat-1",
    dentist_id: str = "den-1",
    definition_id: str | None = None,
    name: str | None = None,
) -> TreatmentRecord:
    return TreatmentRecord(
        id=id,
        patient_id=patient_id,
        dentist_id=dentist_id,
        treatment_definition_id=definition_id,
        treatment_name=name,
        total_treatment_cost=Decimal(cost),
        doctor_share=Decimal(doctor_share),
        clinic_share=Decimal(clinic_share),
        treatment_date=day,
    )


def make_doctor_payment(
    id: str = "dp-1", amount: str = "100", day=date(2024, 3, 10), dentist_id: str = "den-1",
) -> DoctorPayment:
    return DoctorPayment(id=id, dentist_id=dentist_id, amount=Decimal(amount), date=day)


def make_invoice(
    id: str = "inv-1",
    amount: str = "100",
    status: SupplierInvoiceStatus = SupplierInvoiceStatus.UNPAID,
    day=date(2024, 3, 10),
    supplier_id: str = "sup-1",
    payments: tuple[InvoicePayment, ...] = (),
) -> SupplierInvoice:
    return SupplierInvoice(
        id=id, supplier_id=supplier_id, invoice_number=f"N-{id}",
        amount=Decimal(amount), invoice_date=day, status=status, payments=payments,
    )


@pytest.fixture
def sample_snapshot() -> RecordSnapshot:
    """
    Two patients, two dentists, two suppliers, March and February 2024.

    March 2024 totals:
        payments 1500 (doctor shares 600), expenses 300,
        doctor payments 200, invoices 500 (400 unpaid), treatments 2000.
    """
    return RecordSnapshot(
        payments=(
            make_payment("pay-1", "1000", "400", date(2024, 3, 5), "pat-1",
                         PaymentMethod.CASH, "tr-1"),
            make_payment("pay-2", "500", "200", datetime(2024, 3, 20, 15, 30), "pat-2",
                         PaymentMethod.CREDIT_CARD, "tr-2"),
            make_payment("pay-3", "800", "300", date(2024, 2, 10), "pat-1",
                         PaymentMethod.CASH, "tr-3"),
        ),
        expenses=(
            make_expense("exp-1", "200", date(2024, 3, 1), ExpenseCategory.RENT),
            make_expense("exp-2", "100", date(2024, 3, 31), ExpenseCategory.UTILITIES),
            make_expense("exp-3", "250", date(2024, 2, 1), ExpenseCategory.RENT),
        ),
        treatment_records=(
            make_treatment("tr-1", "1200", "480", "720", date(2024, 3, 5),
                           "pat-1", "den-1", "def-1"),
            make_treatment("tr-2", "800", "320", "480", date(2024, 3, 20),
                           "pat-2", "den-2", None, "Whitening"),
            make_treatment("tr-3", "800", "300", "500", date(2024, 2, 10),
                           "pat-1", "den-1", "def-1"),
        ),
        doctor_payments=(
            make_doctor_payment("dp-1", "200", date(2024, 3, 25), "den-1"),
            make_doctor_payment("dp-2", "150", date(2024, 2, 25), "den-2"),
        ),
        supplier_invoices=(
            make_invoice("inv-1", "400", SupplierInvoiceStatus.UNPAID, date(2024, 3, 12),
                         "sup-1", (InvoicePayment("exp-9", Decimal("150"), date(2024, 3, 14)),)),
            make_invoice("inv-2", "100", SupplierInvoiceStatus.PAID, date(2024, 3, 2),
                         "sup-2", (InvoicePayment(None, Decimal("100"), date(2024, 3, 3)),)),
        ),
        inventory_items=(
            InventoryItem("item-1", "sup-1", "Composite", 10, Decimal("25.50")),
            InventoryItem("item-2", "sup-1", "Gloves", 100, Decimal("0.40")),
            InventoryItem("item-3", None, "Floss", 5, Decimal("2")),
        ),
        appointments=(
            Appointment("app-1", "pat-1", "den-1", datetime(2024, 3, 5, 9, 0),
                        AppointmentStatus.COMPLETED),
            Appointment("app-2", "pat-2", "den-2", datetime(2024, 3, 20, 14, 0),
                        AppointmentStatus.COMPLETED),
            Appointment("app-3", "pat-1", "den-1", datetime(2024, 2, 10, 10, 0),
                        AppointmentStatus.COMPLETED),
        ),
        patients=(
            Patient("pat-1", "Mona Adel"),
            Patient("pat-2", "Karim Samir"),
            Patient("pat-3", "Nour Hassan"),
        ),
        dentists=(
            Dentist("den-1", "Dr. Youssef", "Orthodontics"),
            Dentist("den-2", "Dr. Salma", "Cosmetic"),
            Dentist("den-3", "Dr. Omar"),
        ),
        suppliers=(
            Supplier("sup-1", "Cairo Dental Supply", SupplierType.MATERIAL_SUPPLIER),
            Supplier("sup-2", "Nile Lab", SupplierType.DENTAL_LAB),
        ),
        treatment_definitions=(
            TreatmentDefinition("def-1", "Filling", Decimal("1000"),
                                Decimal("0.40"), Decimal("0.60")),
        ),
    )


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session():
    """Session bound to a fresh in-memory SQLite record store."""
    init_engine_from_url("sqlite://")
    create_tables()
    db_session = get_session()
    try:
        yield db_session
    finally:
        db_session.close()
        drop_tables()
        reset_engine()
