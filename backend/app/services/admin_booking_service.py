"""Service layer for admin booking views, refunds, disputes and ratings."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.core.enums import (
    BookingStatus,
    DisputeResolution,
    DisputeStatus,
    PaymentStatus,
    ServiceCategory,
    SlotBookingStatus,
)
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from app.core.principal import Principal
from app.core.timezone_utils import ensure_utc, format_hhmm, localize_slot, utc_now
from app.domain.booking_state_machine import project_admin_status
from app.models.booking_dispute import BookingDispute
from app.models.slot_booking import SlotBooking
from app.repositories.factory import RepositoryFactory
from app.repositories.slot_booking_repository import SlotBookingFilters
from app.schemas.admin_booking import (
    AdminBookingCustomer,
    AdminBookingPartner,
    AdminBookingResponse,
    AdminBookingService as AdminBookingServiceInfo,
    AdminPayment,
    AdminTimelineEntry,
    DisputeCreate,
    DisputeInfo,
    DisputeResolveRequest,
    RatingCreate,
    RefundRequest,
)
from app.schemas.slot_booking import RatingInfo, VehicleInfo
from app.services.base import BaseService
from app.services.pricing_service import round_money
from app.services.slot_booking_service import SlotBookingService

logger = logging.getLogger(__name__)


def project_booking_status(booking: SlotBooking) -> BookingStatus:
    """
    Admin-facing status of a slot booking.

    A booked slot whose payment has not been captured and that has never
    moved is still ``pending``.
    """
    status = SlotBookingStatus(booking.status)
    if status == SlotBookingStatus.BOOKED:
        payment = booking.payment
        moved = any(event.event != SlotBookingStatus.BOOKED.value for event in booking.events)
        if payment is not None and payment.status == PaymentStatus.PENDING and not moved:
            return BookingStatus.PENDING
    return project_admin_status(status)


def project_timeline(booking: SlotBooking) -> List[AdminTimelineEntry]:
    """Map each timeline entry to its admin status, collapsing consecutive repeats."""
    pending = project_booking_status(booking) == BookingStatus.PENDING
    entries: List[AdminTimelineEntry] = []
    for event in booking.events:
        status = project_admin_status(event.status)
        if pending and status == BookingStatus.CONFIRMED:
            status = BookingStatus.PENDING
        if entries and entries[-1].status == status.value:
            continue
        entries.append(
            AdminTimelineEntry(
                status=status, timestamp=ensure_utc(event.created_at), note=event.note
            )
        )
    return entries


class AdminBookingService(BaseService):
    """Admin booking queries and the refund/dispute/rating workflows."""

    def __init__(self, db: Session, slot_booking_service: Optional[SlotBookingService] = None):
        super().__init__(db)
        self.booking_repo = RepositoryFactory.create_slot_booking_repository(db)
        self.slot_booking_service = slot_booking_service or SlotBookingService(db)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @BaseService.measure_operation("admin_bookings.list")
    def list_bookings(
        self,
        *,
        search: Optional[str] = None,
        statuses: Optional[Sequence[BookingStatus]] = None,
        partner_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        service_category: Optional[ServiceCategory] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[AdminBookingResponse], int]:
        """
        Filtered, newest-first admin listing.

        Admin statuses are widened to the slot statuses that project onto
        them. ``pending`` and ``confirmed`` both come from ``booked`` so the
        query splits booked rows on payment state when only one is requested.
        """
        slot_statuses = self._slot_statuses_for(statuses)
        wanted = {BookingStatus(s) for s in statuses} if statuses else set()
        booked_awaiting_payment = None
        if BookingStatus.PENDING in wanted and BookingStatus.CONFIRMED not in wanted:
            booked_awaiting_payment = True
        elif BookingStatus.CONFIRMED in wanted and BookingStatus.PENDING not in wanted:
            booked_awaiting_payment = False
        filters = SlotBookingFilters(
            partner_id=partner_id,
            customer_id=customer_id,
            statuses=slot_statuses,
            service_category=service_category,
            date_from=date_from,
            date_to=date_to,
            search=search,
            booked_awaiting_payment=booked_awaiting_payment,
        )
        bookings, total = self.booking_repo.search(filters, page, limit)
        return [self.build_view(b) for b in bookings], total

    @staticmethod
    def _slot_statuses_for(
        statuses: Optional[Sequence[BookingStatus]],
    ) -> Optional[List[SlotBookingStatus]]:
        if not statuses:
            return None
        result: List[SlotBookingStatus] = []
        for wanted in statuses:
            wanted = BookingStatus(wanted)
            if wanted == BookingStatus.PENDING:
                result.append(SlotBookingStatus.BOOKED)
                continue
            result.extend(
                s
                for s in SlotBookingStatus
                if s != SlotBookingStatus.RESCHEDULED and project_admin_status(s) == wanted
            )
        return sorted(set(result), key=lambda s: s.value)

    @BaseService.measure_operation("admin_bookings.disputes")
    def list_disputes(
        self, status: Optional[DisputeStatus] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[AdminBookingResponse], int]:
        bookings, total = self.booking_repo.list_disputed(status, page, limit)
        return [self.build_view(b) for b in bookings], total

    def _get(self, booking_id: str) -> SlotBooking:
        booking = self.booking_repo.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def get_booking(self, booking_id: str) -> AdminBookingResponse:
        return self.build_view(self._get(booking_id))

    def build_view(self, booking: SlotBooking) -> AdminBookingResponse:
        payment = booking.payment
        dispute = booking.dispute
        rating = None
        if booking.rating_score is not None:
            rating = RatingInfo(
                score=booking.rating_score,
                comment=booking.rating_comment,
                created_at=ensure_utc(booking.rated_at),
            )
        return AdminBookingResponse(
            id=booking.id,
            booking_number=booking.booking_number,
            customer=AdminBookingCustomer(
                id=booking.customer_id,
                name=booking.customer_name,
                email=booking.customer_email,
                phone=booking.customer_phone,
            ),
            partner=AdminBookingPartner(
                id=booking.partner_id,
                name=booking.partner_name,
                phone=booking.partner_phone,
                address=booking.partner_address,
            ),
            vehicle=VehicleInfo.model_validate(booking.vehicle or {}),
            service=AdminBookingServiceInfo(
                id=booking.service_id,
                name=booking.service_name,
                price=booking.gross_amount,
                duration=booking.duration_minutes,
                service_type=booking.service_type,
                service_category=booking.service_category,
            ),
            scheduled_date=localize_slot(booking.slot_date, booking.start_time),
            slot_date=booking.slot_date,
            start_time=format_hhmm(booking.start_time),
            end_time=format_hhmm(booking.end_time),
            created_at=ensure_utc(booking.created_at),
            status=project_booking_status(booking),
            slot_status=booking.status,
            status_timeline=project_timeline(booking),
            payment=(
                AdminPayment(
                    method=payment.method,
                    amount=payment.amount,
                    platform_fee=payment.platform_fee,
                    partner_payout=payment.partner_payout,
                    status=payment.status,
                    paid_at=ensure_utc(payment.paid_at),
                    refund_amount=payment.refund_amount,
                    refund_reason=payment.refund_reason,
                    refunded_at=ensure_utc(payment.refunded_at),
                )
                if payment is not None
                else None
            ),
            rating=rating,
            dispute=(
                DisputeInfo(
                    reason=dispute.reason,
                    description=dispute.description,
                    customer_evidence=list(dispute.customer_evidence or []),
                    partner_response=dispute.partner_response,
                    partner_responded_at=ensure_utc(dispute.partner_responded_at),
                    status=dispute.status,
                    resolution=dispute.resolution,
                    resolution_notes=dispute.resolution_notes,
                    refund_amount=dispute.refund_amount,
                    created_at=ensure_utc(dispute.created_at),
                    resolved_at=ensure_utc(dispute.resolved_at),
                )
                if dispute is not None
                else None
            ),
            cancellation_reason=booking.cancellation_reason,
            cancelled_by=booking.cancelled_by.value if booking.cancelled_by else None,
            late_cancellation=bool(booking.late_cancellation),
        )

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    def cancel_booking(
        self,
        booking_id: str,
        principal: Principal,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AdminBookingResponse:
        booking = self.slot_booking_service.cancel_booking(
            booking_id, principal, reason=reason, now=now
        )
        return self.build_view(booking)

    def _apply_refund(
        self, booking: SlotBooking, amount: Decimal, reason: Optional[str], now: datetime
    ) -> None:
        """Add ``amount`` to the refunded total; the total never exceeds what was charged."""
        payment = booking.payment
        if payment is None:
            raise InvalidStateException("Booking has no payment", code="NO_PAYMENT")
        if payment.status == PaymentStatus.PENDING:
            raise InvalidStateException(
                "Payment has not been captured", code="PAYMENT_NOT_CAPTURED"
            )
        amount = round_money(Decimal(str(amount)))
        if amount <= 0:
            raise ValidationException("Refund amount must be positive", code="INVALID_REFUND")
        already = Decimal(str(payment.refund_amount or 0))
        charged = Decimal(str(payment.amount))
        if already + amount > charged:
            raise ValidationException(
                "Refund cannot exceed the amount charged",
                code="REFUND_EXCEEDS_AMOUNT",
                details={
                    "amount": float(amount),
                    "already_refunded": float(already),
                    "charged": float(charged),
                },
            )
        payment.refund_amount = already + amount
        payment.refund_reason = reason
        payment.refunded_at = now
        # Partial refunds leave the payment paid
        if payment.refund_amount >= charged:
            payment.status = PaymentStatus.REFUNDED

    @BaseService.measure_operation("admin_bookings.refund")
    def refund_booking(
        self, booking_id: str, request: RefundRequest, now: Optional[datetime] = None
    ) -> AdminBookingResponse:
        current = now or utc_now()
        booking = self._get(booking_id)
        with self.transaction():
            self._apply_refund(booking, request.amount, request.reason, current)
            self.db.flush()
        self.log_operation(
            "refund_booking",
            booking_id=booking.id,
            amount=str(request.amount),
            refunded_total=str(booking.payment.refund_amount),
        )
        return self.build_view(booking)

    @BaseService.measure_operation("admin_bookings.raise_dispute")
    def raise_dispute(
        self,
        booking_id: str,
        request: DisputeCreate,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> AdminBookingResponse:
        current = now or utc_now()
        booking = self._get(booking_id)
        if not principal.is_admin and not (
            principal.is_customer and principal.actor_id == booking.customer_id
        ):
            raise ForbiddenException(
                "Only the booking's customer can raise a dispute", code="FORBIDDEN_BOOKING"
            )
        if not booking.is_finished:
            raise InvalidStateException(
                "Disputes can only be raised on completed bookings",
                code="DISPUTE_NOT_ALLOWED",
                details={"status": SlotBookingStatus(booking.status).value},
            )
        if booking.dispute is not None:
            raise ConflictException("Booking already has a dispute", code="DISPUTE_EXISTS")

        with self.transaction():
            booking.dispute = BookingDispute(
                reason=request.reason,
                description=request.description,
                customer_evidence=list(request.customer_evidence),
                status=DisputeStatus.PENDING,
                created_at=current,
            )
            self.db.flush()
        self.log_operation("raise_dispute", booking_id=booking.id, reason=request.reason)
        return self.build_view(booking)

    @BaseService.measure_operation("admin_bookings.dispute_response")
    def respond_to_dispute(
        self,
        booking_id: str,
        response: str,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> AdminBookingResponse:
        current = now or utc_now()
        booking = self._get(booking_id)
        principal.ensure_partner(booking.partner_id)
        dispute = self._pending_dispute(booking)
        with self.transaction():
            dispute.partner_response = response
            dispute.partner_responded_at = current
            self.db.flush()
        self.log_operation("respond_to_dispute", booking_id=booking.id)
        return self.build_view(booking)

    @staticmethod
    def _pending_dispute(booking: SlotBooking) -> BookingDispute:
        dispute = booking.dispute
        if dispute is None:
            raise NotFoundException("Booking has no dispute", code="DISPUTE_NOT_FOUND")
        if dispute.status != DisputeStatus.PENDING:
            raise InvalidStateException(
                "Dispute is already resolved", code="DISPUTE_ALREADY_RESOLVED"
            )
        return dispute

    @BaseService.measure_operation("admin_bookings.resolve_dispute")
    def resolve_dispute(
        self, booking_id: str, request: DisputeResolveRequest, now: Optional[datetime] = None
    ) -> AdminBookingResponse:
        """
        Close a pending dispute.

        ``refund`` refunds whatever has not been refunded yet,
        ``partial_refund`` refunds ``refund_amount`` and ``dismiss`` refunds
        nothing.
        """
        current = now or utc_now()
        booking = self._get(booking_id)
        dispute = self._pending_dispute(booking)
        action = DisputeResolution(request.action)

        refund: Optional[Decimal] = None
        if action == DisputeResolution.REFUND:
            payment = booking.payment
            if payment is None:
                raise InvalidStateException("Booking has no payment", code="NO_PAYMENT")
            refund = Decimal(str(payment.amount)) - Decimal(str(payment.refund_amount or 0))
        elif action == DisputeResolution.PARTIAL_REFUND:
            if request.refund_amount is None:
                raise ValidationException(
                    "refundAmount is required for a partial refund", code="INVALID_REFUND"
                )
            refund = Decimal(str(request.refund_amount))

        with self.transaction():
            if refund is not None and refund > 0:
                self._apply_refund(booking, refund, request.notes or dispute.reason, current)
            dispute.status = DisputeStatus.RESOLVED
            dispute.resolution = action
            dispute.resolution_notes = request.notes
            dispute.refund_amount = refund
            dispute.resolved_at = current
            self.db.flush()

        self.log_operation(
            "resolve_dispute",
            booking_id=booking.id,
            resolution=action.value,
            refund_amount=str(refund) if refund is not None else None,
        )
        return self.build_view(booking)

    @BaseService.measure_operation("admin_bookings.rate")
    def rate_booking(
        self,
        booking_id: str,
        request: RatingCreate,
        principal: Principal,
        now: Optional[datetime] = None,
    ) -> AdminBookingResponse:
        current = now or utc_now()
        booking = self._get(booking_id)
        if not (principal.is_customer and principal.actor_id == booking.customer_id):
            raise ForbiddenException(
                "Only the booking's customer can rate it", code="FORBIDDEN_BOOKING"
            )
        if not booking.is_finished:
            raise InvalidStateException(
                "Only completed bookings can be rated", code="RATING_NOT_ALLOWED"
            )
        if booking.rating_score is not None:
            raise ConflictException("Booking has already been rated", code="ALREADY_RATED")

        with self.transaction():
            booking.rating_score = request.score
            booking.rating_comment = request.comment
            booking.rated_at = current
            self.db.flush()
        self.log_operation("rate_booking", booking_id=booking.id, score=request.score)
        return self.build_view(booking)
