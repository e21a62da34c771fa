# backend/tests/conftest.py
"""
Pytest configuration for the Plindo backend.

Tests run against an in-memory SQLite database that is created fresh for
every test. The clock is frozen at ``NOW`` (Monday 2 March 2026, 08:00 in
Europe/Nicosia) wherever services read it, so booking horizons and notice
periods are deterministic.
"""

import os

# Set test configuration BEFORE any app imports
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["REDIS_URL"] = ""
os.environ["BUSINESS_TIMEZONE"] = "Europe/Nicosia"

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.dependencies import get_db
from app.core.enums import ActorRole, ServiceCategory, ServiceType
from app.core.principal import Principal
from app.database import Base
from app.main import app
from app.models.partner import Customer, Partner, PartnerService

# 08:00 local on Monday 2 March 2026 (UTC+2)
NOW = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)
TUESDAY = date(2026, 3, 3)
WEDNESDAY = date(2026, 3, 4)
SUNDAY = date(2026, 3, 8)

_CLOCK_CONSUMERS = (
    "app.services.availability_service",
    "app.services.slot_booking_service",
    "app.services.admin_booking_service",
    "app.services.product_service",
    "app.services.product_order_service",
    "app.services.config_service",
)

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False
)


@pytest.fixture(scope="function")
def db():
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db: Session):
    """Create a test client sharing the test session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture(autouse=True)
def frozen_now(monkeypatch):
    """Freeze ``utc_now`` in every module that reads the clock."""
    for module in _CLOCK_CONSUMERS:
        monkeypatch.setattr(f"{module}.utc_now", lambda: NOW)
    return NOW


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def partner(db: Session) -> Partner:
    partner = Partner(
        business_name="Sparkle Car Wash",
        owner_name="Andreas Georgiou",
        email="owner@sparkle.test",
        phone="+35799000001",
        location="Limassol",
        address="1 Harbour Road, Limassol",
    )
    db.add(partner)
    db.commit()
    return partner


@pytest.fixture
def customer(db: Session) -> Customer:
    customer = Customer(name="Maria Ioannou", email="maria@example.test", phone="+35799000002")
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def other_customer(db: Session) -> Customer:
    customer = Customer(name="Nikos Petrou", email="nikos@example.test")
    db.add(customer)
    db.commit()
    return customer


def make_service(
    db: Session,
    partner: Partner,
    *,
    name: str = "Express Wash",
    price: str = "20.00",
    duration: int = 30,
    category: ServiceCategory = ServiceCategory.WASH,
    service_type: ServiceType = ServiceType.BOOK_ME,
) -> PartnerService:
    service = PartnerService(
        partner_id=partner.id,
        name=name,
        base_price=Decimal(price),
        duration_minutes=duration,
        category=category,
        service_type=service_type,
    )
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def wash_service(db: Session, partner: Partner) -> PartnerService:
    return make_service(db, partner)


@pytest.fixture
def delivery_service(db: Session, partner: Partner) -> PartnerService:
    return make_service(
        db,
        partner,
        name="Pick-up Full Valet",
        price="45.00",
        duration=60,
        service_type=ServiceType.PICK_BY_ME,
    )


@pytest.fixture
def admin() -> Principal:
    return Principal(role=ActorRole.ADMIN)


@pytest.fixture
def partner_principal(partner: Partner) -> Principal:
    return Principal(role=ActorRole.PARTNER, actor_id=partner.id)


@pytest.fixture
def customer_principal(customer: Customer) -> Principal:
    return Principal(role=ActorRole.CUSTOMER, actor_id=customer.id)


def booking_payload(
    partner: Partner,
    service: PartnerService,
    *,
    slot_date: date = TUESDAY,
    start_time: str = "10:00",
    payment_method: str = "card",
    car_type: str = "compact",
    **extra: Any,
) -> Dict[str, Any]:
    """Wire-format body for POST /bookings/slot."""
    return {
        "partnerId": partner.id,
        "serviceId": service.id,
        "date": slot_date.isoformat(),
        "startTime": start_time,
        "vehicle": {
            "make": "Toyota",
            "model": "Corolla",
            "year": 2021,
            "color": "White",
            "plateNumber": "KXA 123",
            "type": car_type,
        },
        "paymentMethod": payment_method,
        **extra,
    }


def headers_for(principal: Principal) -> Dict[str, str]:
    headers = {"X-Actor-Role": principal.role.value}
    if principal.actor_id:
        headers["X-Actor-Id"] = principal.actor_id
    return headers
