# backend/app/services/slot_booking_service.py
"""
Slot Booking Service for the Plindo platform

Creates slot bookings under a per-window capacity guarantee and drives
them through the slot status state machine.

Capacity guarantee: the capacity check and the insert (or the move, for a
reschedule) run inside ``capacity_lock`` for (partner, date, category) plus
a row lock on the partner's capacity row, and the transaction commits
before the lock is released. Everything else is last-write-wins.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.booking_lock import capacity_lock
from ..core.config import settings
from ..core.constants import DAYS_OF_WEEK
from ..core.enums import PaymentMethod, PaymentStatus, ServiceCategory, SlotBookingStatus
from ..core.exceptions import (
    ConflictException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from ..core.principal import Principal
from ..core.timezone_utils import (
    business_today,
    localize_slot,
    minutes_of,
    parse_hhmm,
    time_from_minutes,
    utc_now,
)
from ..core.ulid_helper import generate_booking_number
from ..domain.booking_state_machine import validate_transition
from ..models.booking_payment import BookingPayment
from ..models.partner import Customer, Partner, PartnerService
from ..models.slot_booking import SlotBooking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.slot_booking_repository import SlotBookingFilters
from ..schemas.slot_booking import SlotBookingCreate, SlotBookingReschedule
from .availability_service import AvailabilityService
from .base import BaseService
from .config_service import ConfigService
from .pricing_service import PricingService

logger = logging.getLogger(__name__)

MAX_BOOKING_NUMBER_ATTEMPTS = 5
MINUTES_PER_DAY = 24 * 60


class SlotBookingService(BaseService):
    """
    Service layer for slot booking operations.

    Handles creation, status changes, cancellation and rescheduling. All
    public methods take the acting ``Principal`` and enforce ownership.
    """

    def __init__(
        self,
        db: Session,
        availability_service: Optional[AvailabilityService] = None,
        pricing_service: Optional[PricingService] = None,
        config_service: Optional[ConfigService] = None,
    ):
        super().__init__(db)
        self.config_service = config_service or ConfigService(db)
        self.availability_service = availability_service or AvailabilityService(
            db, config_service=self.config_service
        )
        self.pricing_service = pricing_service or PricingService(
            db, config_service=self.config_service
        )
        self.repository = RepositoryFactory.create_slot_booking_repository(db)
        self.partner_repository = RepositoryFactory.create_partner_repository(db)
        self.customer_repository = RepositoryFactory.create_customer_repository(db)
        self.service_repository = RepositoryFactory.create_partner_service_repository(db)
        self.capacity_repository = RepositoryFactory.create_capacity_repository(db)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_booking(self, booking_id: str) -> SlotBooking:
        booking = self.repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def get_booking(self, booking_id: str, principal: Principal) -> SlotBooking:
        booking = self._get_booking(booking_id)
        principal.ensure_booking_access(booking.partner_id, booking.customer_id)
        return booking

    def _load_prerequisites(
        self, data: SlotBookingCreate, customer_id: str
    ) -> Tuple[Customer, Partner, PartnerService]:
        customer = self.customer_repository.get_by_id(customer_id, load_relationships=False)
        if customer is None:
            raise NotFoundException("Customer not found", code="CUSTOMER_NOT_FOUND")

        partner = self.partner_repository.get_by_id(data.partner_id, load_relationships=False)
        if partner is None:
            raise NotFoundException("Partner not found", code="PARTNER_NOT_FOUND")
        if not partner.is_active:
            raise InvalidStateException(
                "Partner is not accepting bookings", code="PARTNER_SUSPENDED"
            )

        service = self.service_repository.get_by_id(data.service_id, load_relationships=False)
        if service is None or not service.is_active:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")
        if service.partner_id != partner.id:
            raise ValidationException(
                "Service does not belong to this partner",
                code="SERVICE_PARTNER_MISMATCH",
                details={"service_id": service.id, "partner_id": partner.id},
            )
        return customer, partner, service

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _window_end(self, start: time, duration_minutes: int) -> time:
        end = minutes_of(start) + duration_minutes
        if end >= MINUTES_PER_DAY:
            raise ValidationException(
                "Booking must end on the same day", code="INVALID_TIME_RANGE"
            )
        return time_from_minutes(end)

    def _check_booking_rules(
        self, partner_id: str, slot_date: date, start: time, now: datetime
    ) -> None:
        """Advance-notice rule from the platform settings, horizon from the partner and platform."""
        rules = self.config_service.get_booking_rules()
        horizon = self.availability_service.booking_horizon(
            self.availability_service.get_weekly_availability(partner_id)
        )
        today = business_today(now)
        if slot_date < today:
            raise ValidationException(
                "Cannot book a date in the past",
                code="DATE_IN_PAST",
                details={"date": slot_date.isoformat()},
            )
        if slot_date > today + timedelta(days=horizon):
            raise ValidationException(
                f"Bookings open at most {horizon} days in advance",
                code="BOOKING_TOO_FAR_AHEAD",
                details={"max_advance_booking_days": horizon},
            )
        if localize_slot(slot_date, start) < now + timedelta(hours=rules.min_advance_booking_hours):
            raise ValidationException(
                f"Bookings require at least {rules.min_advance_booking_hours} hours notice",
                code="INSUFFICIENT_NOTICE",
                details={"min_advance_booking_hours": rules.min_advance_booking_hours},
            )

    def _unique_booking_number(self, now: datetime) -> str:
        for _ in range(MAX_BOOKING_NUMBER_ATTEMPTS):
            candidate = generate_booking_number(now)
            if not self.repository.booking_number_exists(candidate):
                return candidate
        raise ConflictException(
            "Could not allocate a booking number, please retry", code="BOOKING_NUMBER_EXHAUSTED"
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        data: SlotBookingCreate,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> SlotBooking:
        """
        Create a slot booking for one window.

        Args:
            data: Partner, service, date, start time and vehicle
            principal: Caller; customers always book for themselves
            now: Clock override

        Returns:
            The committed booking with its initial ``booked`` timeline entry

        Raises:
            NotFoundException: Unknown customer, partner or service
            ValidationException: Outside the booking horizon or notice period
            SlotUnavailableException: Window outside working hours
            CapacityExceededException: No capacity left for the window
        """
        current = now or utc_now()
        customer_id = principal.actor_id if principal.is_customer else data.customer_id
        if not customer_id:
            raise ValidationException("customerId is required", code="CUSTOMER_REQUIRED")
        if principal.is_partner:
            principal.ensure_partner(data.partner_id)

        customer, partner, service = self._load_prerequisites(data, customer_id)
        category = ServiceCategory(service.category)
        start = parse_hhmm(data.start_time, "startTime")
        end = self._window_end(start, service.duration_minutes)
        self._check_booking_rules(partner.id, data.slot_date, start, current)

        quote = self.pricing_service.quote(service, data.vehicle.type, customer)
        commission = quote.commission

        self.log_operation(
            "create_booking",
            partner_id=partner.id,
            customer_id=customer.id,
            slot_date=data.slot_date.isoformat(),
            start_time=data.start_time,
            service_category=category.value,
        )

        with capacity_lock(partner.id, data.slot_date, category.value):
            with self.transaction():
                capacity = self.capacity_repository.lock_capacity(partner.id)
                check = self.availability_service.check_window(
                    partner.id,
                    data.slot_date,
                    start,
                    service.duration_minutes,
                    category,
                    capacity=capacity,
                )
                booking = SlotBooking(
                    booking_number=self._unique_booking_number(current),
                    customer_id=customer.id,
                    customer_name=customer.name,
                    customer_email=customer.email,
                    customer_phone=customer.phone,
                    partner_id=partner.id,
                    partner_name=partner.business_name,
                    partner_phone=partner.phone,
                    partner_address=partner.address,
                    vehicle=data.vehicle.model_dump(),
                    service_id=service.id,
                    service_name=service.name,
                    service_type=service.service_type,
                    service_category=category,
                    duration_minutes=service.duration_minutes,
                    slot_date=data.slot_date,
                    start_time=start,
                    end_time=end,
                    bay_id=check.bay_id,
                    bay_name=check.bay_name,
                    base_price=quote.base_price,
                    car_type_multiplier=quote.car_type_multiplier,
                    subscription_discount=quote.subscription_discount,
                    gross_amount=quote.gross_amount,
                    customer_commission_pct=commission.customer_commission_pct,
                    partner_commission_pct=commission.partner_commission_pct,
                    customer_charge=commission.customer_charge,
                    platform_fee=commission.platform_revenue,
                    partner_payout=commission.partner_payout,
                    status=SlotBookingStatus.BOOKED,
                    notes=data.notes,
                    created_at=current,
                    updated_at=current,
                )
                booking.payment = self._initial_payment(data.payment_method, commission, current)
                booking.append_event(SlotBookingStatus.BOOKED, at=current, actor=principal.label)
                self.db.add(booking)
                self.db.flush()

        prometheus_metrics.record_booking_transition("none", SlotBookingStatus.BOOKED.value)
        self.logger.info(
            "slot_booking_created",
            extra={
                "booking_id": booking.id,
                "booking_number": booking.booking_number,
                "partner_id": partner.id,
                "bay_id": booking.bay_id,
                "remaining_capacity": check.remaining_capacity - 1,
            },
        )
        return booking

    @staticmethod
    def _initial_payment(method, commission, now: datetime) -> BookingPayment:
        """Card and wallet payments are captured at booking; cash is collected on completion."""
        method = PaymentMethod(method)
        paid = method != PaymentMethod.CASH
        return BookingPayment(
            method=method,
            amount=commission.customer_charge,
            platform_fee=commission.platform_revenue,
            partner_payout=commission.partner_payout,
            status=PaymentStatus.PAID if paid else PaymentStatus.PENDING,
            paid_at=now if paid else None,
        )

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    @BaseService.measure_operation("update_booking_status")
    def update_status(
        self,
        booking_id: str,
        target: SlotBookingStatus,
        principal: Principal,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SlotBooking:
        """
        Move a booking one step along its state machine.

        Raises:
            InvalidTransitionException: Not an edge for the booking's service type
            InvalidStateException: Start requested before the slot start
        """
        target = SlotBookingStatus(target)
        if target == SlotBookingStatus.CANCELLED:
            return self.cancel_booking(booking_id, principal, reason=note, now=now)
        if target == SlotBookingStatus.RESCHEDULED:
            raise ValidationException(
                "Use the reschedule operation to move a booking", code="RESCHEDULE_REQUIRED"
            )

        current = now or utc_now()
        booking = self.get_booking(booking_id, principal)
        previous = SlotBookingStatus(booking.status)
        validate_transition(previous, target, booking.service_type)

        if target == SlotBookingStatus.IN_PROGRESS and settings.enforce_start_time_guard:
            starts_at = localize_slot(booking.slot_date, booking.start_time)
            if current < starts_at:
                raise InvalidStateException(
                    "Service cannot start before the booked time",
                    code="SERVICE_NOT_STARTED",
                    details={"starts_at": starts_at.isoformat()},
                )

        with self.transaction():
            booking.status = target
            booking.updated_at = current
            if target == SlotBookingStatus.IN_PROGRESS:
                booking.started_at = current
            if target in (SlotBookingStatus.COMPLETED, SlotBookingStatus.DELIVERED):
                booking.completed_at = current
                self._settle_cash_payment(booking, current)
            booking.append_event(
                target, at=current, previous_status=previous, actor=principal.label, note=note
            )
            self.db.flush()

        prometheus_metrics.record_booking_transition(previous.value, target.value)
        self.log_operation(
            "update_booking_status",
            booking_id=booking.id,
            from_status=previous.value,
            to_status=target.value,
            actor=principal.label,
        )
        return booking

    @staticmethod
    def _settle_cash_payment(booking: SlotBooking, now: datetime) -> None:
        payment = booking.payment
        if payment is not None and payment.status == PaymentStatus.PENDING:
            payment.status = PaymentStatus.PAID
            payment.paid_at = now

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self,
        booking_id: str,
        principal: Principal,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SlotBooking:
        """
        Cancel a non-terminal booking and release its capacity.

        Cancelling within ``cancellation_window_hours`` of the start sets
        ``late_cancellation``.
        """
        current = now or utc_now()
        booking = self.get_booking(booking_id, principal)
        previous = SlotBookingStatus(booking.status)
        validate_transition(previous, SlotBookingStatus.CANCELLED, booking.service_type)

        rules = self.config_service.get_booking_rules()
        starts_at = localize_slot(booking.slot_date, booking.start_time)
        late = starts_at - current < timedelta(hours=rules.cancellation_window_hours)

        with self.transaction():
            booking.status = SlotBookingStatus.CANCELLED
            booking.updated_at = current
            booking.cancelled_at = current
            booking.cancelled_by = principal.as_cancelled_by()
            booking.cancellation_reason = reason
            booking.late_cancellation = late
            booking.append_event(
                SlotBookingStatus.CANCELLED,
                at=current,
                previous_status=previous,
                actor=principal.label,
                note=reason,
            )
            self.db.flush()

        prometheus_metrics.record_booking_transition(
            previous.value, SlotBookingStatus.CANCELLED.value
        )
        self.log_operation(
            "cancel_booking",
            booking_id=booking.id,
            cancelled_by=principal.label,
            late_cancellation=late,
        )
        return booking

    @BaseService.measure_operation("reschedule_booking")
    def reschedule_booking(
        self,
        booking_id: str,
        data: SlotBookingReschedule,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> SlotBooking:
        """
        Move a booked slot to another window, keeping its id and timeline.

        The new window is checked against availability and capacity under
        the lock for the new date, ignoring the booking's own hold.
        """
        current = now or utc_now()
        booking = self.get_booking(booking_id, principal)
        rules = self.config_service.get_booking_rules()
        if not rules.allow_rescheduling:
            raise InvalidStateException(
                "Rescheduling is disabled", code="RESCHEDULING_DISABLED"
            )
        previous = SlotBookingStatus(booking.status)
        validate_transition(previous, SlotBookingStatus.RESCHEDULED, booking.service_type)
        if (booking.reschedule_count or 0) >= rules.max_reschedules:
            raise InvalidStateException(
                f"A booking can be rescheduled at most {rules.max_reschedules} times",
                code="RESCHEDULE_LIMIT_REACHED",
                details={"reschedule_count": booking.reschedule_count},
            )

        start = parse_hhmm(data.start_time, "startTime")
        end = self._window_end(start, booking.duration_minutes)
        if booking.slot_date == data.slot_date and booking.start_time == start:
            raise ValidationException(
                "Booking is already in this window", code="SAME_WINDOW"
            )
        self._check_booking_rules(booking.partner_id, data.slot_date, start, current)
        category = ServiceCategory(booking.service_category)

        with capacity_lock(booking.partner_id, data.slot_date, category.value):
            with self.transaction():
                capacity = self.capacity_repository.lock_capacity(booking.partner_id)
                check = self.availability_service.check_window(
                    booking.partner_id,
                    data.slot_date,
                    start,
                    booking.duration_minutes,
                    category,
                    capacity=capacity,
                    exclude_booking_id=booking.id,
                )
                booking.move_to(data.slot_date, start, end)
                booking.bay_id = check.bay_id
                booking.bay_name = check.bay_name
                booking.rescheduled_at = current
                booking.rescheduled_by = principal.label
                booking.updated_at = current
                booking.append_event(
                    SlotBookingStatus.BOOKED,
                    at=current,
                    previous_status=previous,
                    event=SlotBookingStatus.RESCHEDULED.value,
                    actor=principal.label,
                    note=data.reason,
                )
                self.db.flush()

        prometheus_metrics.record_booking_transition(
            previous.value, SlotBookingStatus.RESCHEDULED.value
        )
        self.log_operation(
            "reschedule_booking",
            booking_id=booking.id,
            slot_date=data.slot_date.isoformat(),
            start_time=data.start_time,
            reschedule_count=booking.reschedule_count,
        )
        return booking

    # ------------------------------------------------------------------
    # Partner views
    # ------------------------------------------------------------------

    def list_partner_bookings(
        self,
        partner_id: str,
        principal: Principal,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        statuses: Optional[List[SlotBookingStatus]] = None,
        service_category: Optional[ServiceCategory] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[SlotBooking], int]:
        principal.ensure_partner(partner_id)
        filters = SlotBookingFilters(
            partner_id=partner_id,
            statuses=statuses,
            service_category=service_category,
            date_from=start_date,
            date_to=end_date,
        )
        return self.repository.search(filters, page, limit)

    def get_week_timeline(
        self, partner_id: str, principal: Principal, week_start: Optional[date] = None
    ) -> Dict[str, object]:
        """
        Bookings for seven days from ``week_start`` grouped per day.

        ``week_start`` defaults to the Monday of the current business week.
        Cancelled bookings are left out.
        """
        principal.ensure_partner(partner_id)
        if week_start is None:
            today = business_today(utc_now())
            week_start = today - timedelta(days=today.weekday())
        week_end = week_start + timedelta(days=6)

        active = [s for s in SlotBookingStatus if s not in (
            SlotBookingStatus.CANCELLED, SlotBookingStatus.RESCHEDULED
        )]
        bookings = self.repository.list_for_partner_range(
            partner_id, week_start, week_end, statuses=active
        )
        by_day: Dict[date, List[SlotBooking]] = {
            week_start + timedelta(days=offset): [] for offset in range(7)
        }
        for booking in bookings:
            by_day.setdefault(booking.slot_date, []).append(booking)

        return {
            "partner_id": partner_id,
            "week_start": week_start,
            "week_end": week_end,
            "days": [
                {
                    "slot_date": day,
                    "day_name": DAYS_OF_WEEK[(day.weekday() + 1) % 7],
                    "bookings": items,
                }
                for day, items in sorted(by_day.items())
            ],
            "total_bookings": len(bookings),
        }
