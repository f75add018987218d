"""Pytest configuration and shared fixtures."""

import os

# Set test database URL BEFORE any imports from roomledger
# This ensures the SessionLocal and engine use an in-memory database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from datetime import date, datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from roomledger.models import (  # noqa: E402
    Base,
    Charge,
    ChargeFrequency,
    Payment,
    PaymentStatus,
    Tenancy,
)
from roomledger.services.gateway import GatewayVerification  # noqa: E402

TENANT_ID = 7
BUILDING_ID = 1


@pytest.fixture
def db_session():
    """Provide a session on a fresh in-memory database."""
    engine = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def yearly_charge(db_session) -> Charge:
    """Service charge billed yearly at 450,000."""
    charge = Charge(
        building_id=BUILDING_ID,
        name="Service Charge",
        amount=450000,
        frequency=ChargeFrequency.YEARLY,
    )
    db_session.add(charge)
    db_session.commit()
    return charge


@pytest.fixture
def monthly_charge(db_session) -> Charge:
    """Electricity billed monthly at 5,000."""
    charge = Charge(
        building_id=BUILDING_ID,
        name="Electricity",
        amount=5000,
        frequency=ChargeFrequency.MONTHLY,
    )
    db_session.add(charge)
    db_session.commit()
    return charge


@pytest.fixture
def tenancy(db_session) -> Tenancy:
    """Active tenancy starting 2024-01-15."""
    tenancy = Tenancy(tenant_id=TENANT_ID, building_id=BUILDING_ID, start_date=date(2024, 1, 15))
    db_session.add(tenancy)
    db_session.commit()
    return tenancy


@pytest.fixture
def make_payment(db_session):
    """Factory adding a payment row for the test tenant."""
    counter = {"n": 0}

    def _make(
        charge: Charge,
        month: int | None,
        year: int | None,
        month_end: int | None = None,
        status: PaymentStatus = PaymentStatus.SUCCESS,
        amount: int | None = None,
        user_id: int = TENANT_ID,
        reference: str | None = None,
    ) -> Payment:
        counter["n"] += 1
        payment = Payment(
            user_id=user_id,
            charge_id=charge.id,
            amount=amount if amount is not None else charge.amount,
            status=status,
            reference=reference or f"TEST_{counter['n']}",
            period_month=month,
            period_month_end=month_end,
            period_year=year,
            period_label=f"{month}/{year}",
            paid_at=datetime(2024, 1, 20, tzinfo=timezone.utc) if status == PaymentStatus.SUCCESS else None,
        )
        db_session.add(payment)
        db_session.commit()
        return payment

    return _make


class FakeGateway:
    """In-memory PaymentGateway."""

    def __init__(self, verification: GatewayVerification | None = None):
        self.verification = verification or GatewayVerification(
            success=True, message="Verification successful", channel="card"
        )
        self.verified: list[str] = []
        self.issued = 0

    def generate_reference(self, prefix: str = "CHARGE") -> str:
        self.issued += 1
        return f"{prefix}_TEST_{self.issued}"

    def verify_transaction(self, reference: str) -> GatewayVerification:
        self.verified.append(reference)
        return self.verification


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
