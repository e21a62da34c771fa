"""Centralized pricing and commission calculations for slot bookings."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from sqlalchemy.orm import Session

from app.core.constants import CAR_TYPE_MULTIPLIERS
from app.core.enums import CarType
from app.core.exceptions import NotFoundException, ValidationException
from app.models.partner import Customer, PartnerService
from app.repositories.factory import RepositoryFactory
from app.services.base import BaseService
from app.services.config_service import ConfigService

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def _to_decimal(value: Number, field: str) -> Decimal:
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationException(
            f"{field} must be a number", code="INVALID_AMOUNT", details={"field": field}
        ) from exc


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CommissionBreakdown:
    """Customer charge, partner payout and platform revenue for one gross amount."""

    gross_amount: Decimal
    customer_commission_pct: Decimal
    partner_commission_pct: Decimal
    customer_charge: Decimal
    partner_payout: Decimal
    platform_revenue: Decimal


def calculate_commission(
    gross: Number, customer_pct: Number, partner_pct: Number
) -> CommissionBreakdown:
    """
    Split a gross price into what the customer pays and what the partner gets.

        customer_charge  = gross * (1 + customer_pct / 100)
        partner_payout   = gross * (1 - partner_pct / 100)
        platform_revenue = customer_charge - partner_payout

    Everything is computed exactly and rounded half-up to cents only at the
    end. Revenue is taken from the two rounded figures so that
    ``partner_payout + platform_revenue == customer_charge`` always holds.

    Raises:
        ValidationException: negative gross or a percentage outside [0, 100]
    """
    gross_d = _to_decimal(gross, "gross_amount")
    customer_d = _to_decimal(customer_pct, "customer_commission_pct")
    partner_d = _to_decimal(partner_pct, "partner_commission_pct")

    if gross_d < 0:
        raise ValidationException(
            "Gross amount cannot be negative",
            code="INVALID_AMOUNT",
            details={"gross_amount": str(gross_d)},
        )
    for name, pct in (("customer_commission_pct", customer_d), ("partner_commission_pct", partner_d)):
        if pct < 0 or pct > HUNDRED:
            raise ValidationException(
                f"{name} must be between 0 and 100",
                code="INVALID_COMMISSION",
                details={"field": name, "value": str(pct)},
            )

    charge = round_money(gross_d * (1 + customer_d / HUNDRED))
    payout = round_money(gross_d * (1 - partner_d / HUNDRED))
    return CommissionBreakdown(
        gross_amount=round_money(gross_d),
        customer_commission_pct=customer_d,
        partner_commission_pct=partner_d,
        customer_charge=charge,
        partner_payout=payout,
        platform_revenue=charge - payout,
    )


@dataclass(frozen=True)
class PriceQuote:
    """Full price build-up for a service, vehicle and customer."""

    base_price: Decimal
    car_type: str
    car_type_multiplier: Decimal
    subscription_discount: Decimal
    gross_amount: Decimal
    commission: CommissionBreakdown


def car_type_multiplier(car_type: Optional[Union[CarType, str]]) -> Decimal:
    if car_type is None:
        return Decimal("1.0")
    key = car_type.value if isinstance(car_type, CarType) else str(car_type).lower()
    if key not in CAR_TYPE_MULTIPLIERS:
        raise ValidationException(
            f"Unknown car type: {car_type}",
            code="INVALID_CAR_TYPE",
            details={"allowed": sorted(CAR_TYPE_MULTIPLIERS)},
        )
    return CAR_TYPE_MULTIPLIERS[key]


class PricingService(BaseService):
    """Compute price quotes and commission splits using platform settings."""

    def __init__(self, db: Session, config_service: Optional[ConfigService] = None) -> None:
        super().__init__(db)
        self.config_service = config_service or ConfigService(db)
        self.service_repository = RepositoryFactory.create_partner_service_repository(db)
        self.customer_repository = RepositoryFactory.create_customer_repository(db)

    def commission_for(self, gross: Number) -> CommissionBreakdown:
        """Apply the current platform commission rates."""
        rates = self.config_service.get_commission()
        return calculate_commission(
            gross, rates.customer_commission_pct, rates.partner_commission_pct
        )

    def quote(
        self,
        service: PartnerService,
        car_type: Optional[Union[CarType, str]] = None,
        customer: Optional[Customer] = None,
    ) -> PriceQuote:
        base = round_money(Decimal(str(service.base_price)))
        multiplier = car_type_multiplier(car_type)
        sized = base * multiplier
        discount = Decimal("0")
        if customer is not None and customer.subscription_discount_pct:
            discount = round_money(
                sized * Decimal(str(customer.subscription_discount_pct)) / HUNDRED
            )
        gross = round_money(sized - discount)
        return PriceQuote(
            base_price=base,
            car_type=(car_type.value if isinstance(car_type, CarType) else car_type) or "compact",
            car_type_multiplier=multiplier,
            subscription_discount=discount,
            gross_amount=gross,
            commission=self.commission_for(gross),
        )

    @BaseService.measure_operation("calculate_price")
    def calculate_price(
        self,
        service_id: str,
        car_type: Optional[Union[CarType, str]] = None,
        customer_id: Optional[str] = None,
    ) -> PriceQuote:
        service = self.service_repository.get_by_id(service_id, load_relationships=False)
        if service is None or not service.is_active:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")
        customer = None
        if customer_id:
            customer = self.customer_repository.get_by_id(customer_id, load_relationships=False)
            if customer is None:
                raise NotFoundException("Customer not found", code="CUSTOMER_NOT_FOUND")
        return self.quote(service, car_type, customer)
