"""Shared test fixtures for all test modules."""

import contextlib
import uuid
from datetime import time

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from payplan.core import database as db_module
from payplan.core.database import Base, get_db
from payplan.core.errors import DeliveryError
from payplan.models.agency import Agency
from payplan.services.email_service import EmailDelivery

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

# Well-known default agency ID used across all tests
DEFAULT_AGENCY_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _seed_default_agency(session: Session) -> None:
    """Insert a default Brisbane agency used by all tests."""
    agency = session.query(Agency).filter(Agency.id == DEFAULT_AGENCY_ID).first()
    if agency is None:
        agency = Agency(
            id=DEFAULT_AGENCY_ID,
            name="Default Test Agency",
            timezone="Australia/Brisbane",
            overdue_cutoff_time=time(17, 0),
            due_soon_threshold_days=4,
            contact_email="office@agency.example.com",
            contact_phone="+61 7 5555 0100",
            payment_instructions="Pay by bank transfer to BSB 000-000.",
        )
        session.add(agency)
        session.commit()


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    # Patch module-level engine and session factory
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = _TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    # Seed default agency so all tests can reference it
    session = _TestSessionLocal()
    try:
        _seed_default_agency(session)
    finally:
        session.close()

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    # Restore originals
    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def default_agency_id():
    """Return the default agency ID for tests."""
    return DEFAULT_AGENCY_ID


@pytest.fixture
def db_session():
    """Create a database session for direct repository and service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def test_session_factory():
    """Session factory bound to the in-memory test database."""
    return _TestSessionLocal


# ---------------------------------------------------------------------------
# Data builders
# ---------------------------------------------------------------------------


def create_agency(db: Session, **overrides):  # type: ignore[no-untyped-def]
    from payplan.models.agency import Agency

    defaults = {
        "name": "Agency",
        "timezone": "Australia/Brisbane",
        "overdue_cutoff_time": time(17, 0),
        "due_soon_threshold_days": 4,
        "contact_email": "agency@example.com",
    }
    defaults.update(overrides)
    agency = Agency(**defaults)
    db.add(agency)
    db.commit()
    db.refresh(agency)
    return agency


def create_user(db: Session, agency_id, email="staff@example.com", **overrides):  # type: ignore[no-untyped-def]
    from payplan.models.user import User

    defaults = {
        "agency_id": agency_id,
        "name": "Staff Member",
        "email": email,
        "email_notifications_enabled": True,
    }
    defaults.update(overrides)
    user = User(**defaults)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_student(db: Session, agency_id, email="student@example.com", **overrides):  # type: ignore[no-untyped-def]
    from payplan.models.student import Student

    defaults = {
        "agency_id": agency_id,
        "full_name": "Jane Student",
        "email": email,
        "phone": "+61 400 000 000",
    }
    defaults.update(overrides)
    student = Student(**defaults)
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


def create_partner_branch(db: Session, agency_id, contact_email="college@example.com"):  # type: ignore[no-untyped-def]
    from payplan.models.partner_organization import Branch, PartnerOrganization

    partner = PartnerOrganization(
        agency_id=agency_id, name="Sunshine College", contact_email=contact_email
    )
    db.add(partner)
    db.commit()
    branch = Branch(partner_organization_id=partner.id, name="Brisbane CBD")
    db.add(branch)
    db.commit()
    db.refresh(partner)
    db.refresh(branch)
    return partner, branch


def create_plan(db: Session, agency_id, student_id=None, status="active", branch_id=None):  # type: ignore[no-untyped-def]
    from payplan.models.payment_plan import PaymentPlan

    if student_id is None:
        student_id = create_student(db, agency_id).id
    plan = PaymentPlan(
        agency_id=agency_id,
        student_id=student_id,
        status=status,
        branch_id=branch_id,
    )
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


def create_installment(db: Session, plan_id, due_date, status="pending", amount="500.00"):  # type: ignore[no-untyped-def]
    from decimal import Decimal

    from payplan.models.installment import Installment

    installment = Installment(
        payment_plan_id=plan_id,
        due_date=due_date,
        amount=Decimal(amount),
        status=status,
    )
    db.add(installment)
    db.commit()
    db.refresh(installment)
    return installment


class FakeDelivery(EmailDelivery):
    """Records sends; fails for addresses in ``fail_for``."""

    def __init__(self, fail_for: set[str] | None = None):
        self.sent: list[tuple[str, str, str]] = []
        self.fail_for = fail_for or set()

    async def send(self, to, subject, html_body, idempotency_key=None):  # type: ignore[no-untyped-def]
        if to in self.fail_for:
            raise DeliveryError(f"mailbox unavailable: {to}")
        self.sent.append((to, subject, html_body))
        return f"msg-{len(self.sent)}"
