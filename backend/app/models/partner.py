# backend/app/models/partner.py
"""
Marketplace participants: partners (car-wash businesses), their services,
and customers.

Bookings snapshot the fields they display, so edits here never rewrite
booking history.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import PartnerStatus, ServiceCategory, ServiceType
from ..database import Base
from .base_enum import create_safe_enum


class Partner(Base):
    """A car-wash business operating one location."""

    __tablename__ = "partners"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    business_name = Column(String(200), nullable=False)
    owner_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(40), nullable=True)
    location = Column(String(120), nullable=True)
    address = Column(Text, nullable=True)
    rating = Column(Numeric(3, 2), nullable=True)
    status = Column(
        create_safe_enum(PartnerStatus, "partner_status"),
        nullable=False,
        default=PartnerStatus.ACTIVE,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    services = relationship("PartnerService", back_populates="partner", cascade="all, delete-orphan")

    @property
    def is_active(self) -> bool:
        return self.status == PartnerStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Partner {self.id}: {self.business_name}>"


class Customer(Base):
    """A vehicle owner booking services."""

    __tablename__ = "customers"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(40), nullable=True)
    subscription_plan = Column(String(50), nullable=True)
    subscription_discount_pct = Column(Numeric(5, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "subscription_discount_pct >= 0 AND subscription_discount_pct <= 100",
            name="ck_customers_discount_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<Customer {self.id}: {self.name}>"


class PartnerService(Base):
    """A priced service offered by a partner, booked against a capacity category."""

    __tablename__ = "partner_services"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    partner_id = Column(
        String(26), ForeignKey("partners.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    base_price = Column(Numeric(10, 2), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)
    category = Column(
        create_safe_enum(ServiceCategory, "service_category"),
        nullable=False,
        default=ServiceCategory.WASH,
    )
    service_type = Column(
        create_safe_enum(ServiceType, "service_type"),
        nullable=False,
        default=ServiceType.BOOK_ME,
    )
    is_active = Column(Boolean, nullable=False, default=True)

    partner = relationship("Partner", back_populates="services")

    __table_args__ = (
        CheckConstraint("base_price >= 0", name="ck_partner_services_price_non_negative"),
        CheckConstraint("duration_minutes > 0", name="ck_partner_services_duration_positive"),
    )

    def __repr__(self) -> str:
        return f"<PartnerService {self.id}: {self.name} ({self.category})>"
