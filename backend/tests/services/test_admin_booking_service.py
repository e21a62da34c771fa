"""Tests for the admin booking projection, refunds, disputes and ratings."""

from datetime import datetime, timezone
from decimal import Decimal

from conftest import NOW, WEDNESDAY, booking_payload
import pytest

from app.core.enums import (
    ActorRole,
    BookingStatus,
    DisputeStatus,
    PaymentStatus,
    SlotBookingStatus as S,
)
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from app.core.principal import Principal
from app.schemas.admin_booking import (
    DisputeCreate,
    DisputeResolveRequest,
    RatingCreate,
    RefundRequest,
)
from app.schemas.slot_booking import SlotBookingCreate, SlotBookingReschedule
from app.services.admin_booking_service import AdminBookingService
from app.services.slot_booking_service import SlotBookingService

AFTER_START = datetime(2026, 3, 3, 8, 5, tzinfo=timezone.utc)


def _create(db, principal, partner, service, **kwargs):
    data = SlotBookingCreate.model_validate(booking_payload(partner, service, **kwargs))
    return SlotBookingService(db).create_booking(data, principal, now=NOW)


def _complete(db, booking, admin):
    service = SlotBookingService(db)
    service.update_status(booking.id, S.IN_PROGRESS, admin, now=AFTER_START)
    return service.update_status(booking.id, S.COMPLETED, admin, now=AFTER_START)


@pytest.fixture
def completed_booking(db, partner, wash_service, customer_principal, admin):
    return _complete(db, _create(db, customer_principal, partner, wash_service), admin)


class TestProjection:
    def test_card_booking_is_confirmed(self, db, partner, wash_service, customer_principal):
        booking = _create(db, customer_principal, partner, wash_service)

        view = AdminBookingService(db).get_booking(booking.id)

        assert view.status == BookingStatus.CONFIRMED
        assert view.slot_status == S.BOOKED
        assert view.service.price == Decimal("20.00")
        assert view.customer.name == "Maria Ioannou"
        assert view.partner.name == "Sparkle Car Wash"
        assert [e.status for e in view.status_timeline] == ["confirmed"]

    def test_unpaid_cash_booking_is_pending(self, db, partner, wash_service, customer_principal):
        booking = _create(db, customer_principal, partner, wash_service, payment_method="cash")

        view = AdminBookingService(db).get_booking(booking.id)

        assert view.status == BookingStatus.PENDING
        assert [e.status for e in view.status_timeline] == ["pending"]

    def test_rescheduled_cash_booking_is_confirmed(
        self, db, partner, wash_service, customer_principal
    ):
        booking = _create(db, customer_principal, partner, wash_service, payment_method="cash")
        SlotBookingService(db).reschedule_booking(
            booking.id,
            SlotBookingReschedule.model_validate({"date": WEDNESDAY.isoformat(), "startTime": "11:00"}),
            customer_principal,
            now=NOW,
        )

        assert AdminBookingService(db).get_booking(booking.id).status == BookingStatus.CONFIRMED

    def test_delivery_steps_collapse_into_in_progress(
        self, db, partner, delivery_service, customer_principal, admin
    ):
        booking = _create(db, customer_principal, partner, delivery_service)
        service = SlotBookingService(db)
        for target in (S.IN_PROGRESS, S.PICKED, S.OUT_FOR_DELIVERY, S.DELIVERED):
            service.update_status(booking.id, target, admin, now=AFTER_START)

        view = AdminBookingService(db).get_booking(booking.id)

        assert view.status == BookingStatus.COMPLETED
        assert [e.status for e in view.status_timeline] == ["confirmed", "in_progress", "completed"]

    def test_unknown_booking(self, db):
        with pytest.raises(NotFoundException):
            AdminBookingService(db).get_booking("missing")


class TestListing:
    def test_pending_and_confirmed_are_told_apart(
        self, db, partner, wash_service, customer_principal
    ):
        card = _create(db, customer_principal, partner, wash_service)
        cash = _create(db, customer_principal, partner, wash_service, payment_method="cash")
        service = AdminBookingService(db)

        pending, pending_total = service.list_bookings(statuses=[BookingStatus.PENDING])
        confirmed, confirmed_total = service.list_bookings(statuses=[BookingStatus.CONFIRMED])
        both, both_total = service.list_bookings(
            statuses=[BookingStatus.PENDING, BookingStatus.CONFIRMED]
        )

        assert (pending_total, [v.id for v in pending]) == (1, [cash.id])
        assert (confirmed_total, [v.id for v in confirmed]) == (1, [card.id])
        assert both_total == 2

    def test_payment_split_pages_in_the_query(
        self, db, partner, wash_service, customer_principal, admin
    ):
        cash = [
            _create(
                db, customer_principal, partner, wash_service,
                start_time=start, payment_method="cash",
            )
            for start in ("09:00", "10:00", "11:00")
        ]
        card = _create(db, customer_principal, partner, wash_service, start_time="12:00")
        moved = _create(
            db, customer_principal, partner, wash_service, start_time="13:00", payment_method="cash"
        )
        SlotBookingService(db).reschedule_booking(
            moved.id,
            SlotBookingReschedule.model_validate(
                {"date": WEDNESDAY.isoformat(), "startTime": "13:00"}
            ),
            customer_principal,
            now=NOW,
        )
        service = AdminBookingService(db)

        page, total = service.list_bookings(statuses=[BookingStatus.PENDING], page=2, limit=2)
        assert total == 3
        assert len(page) == 1 and page[0].id in {b.id for b in cash}

        page, total = service.list_bookings(statuses=[BookingStatus.CONFIRMED], page=2, limit=1)
        assert total == 2
        assert [v.status for v in page] == [BookingStatus.CONFIRMED]
        assert page[0].id in {card.id, moved.id}

        service.cancel_booking(cash[0].id, admin, reason="Weather", now=NOW)
        _, pending_total = service.list_bookings(statuses=[BookingStatus.PENDING])
        _, mixed_total = service.list_bookings(
            statuses=[BookingStatus.PENDING, BookingStatus.CANCELLED]
        )
        assert (pending_total, mixed_total) == (2, 3)

    def test_search_and_partner_filter(
        self, db, partner, wash_service, customer_principal, other_customer
    ):
        _create(db, customer_principal, partner, wash_service)
        other = Principal(role=ActorRole.CUSTOMER, actor_id=other_customer.id)
        _create(db, other, partner, wash_service, start_time="11:00")
        service = AdminBookingService(db)

        found, total = service.list_bookings(search="Nikos")
        assert total == 1 and found[0].customer.name == "Nikos Petrou"

        _, none_total = service.list_bookings(partner_id="someone-else")
        assert none_total == 0

    def test_cancelled_filter_and_pagination(
        self, db, partner, wash_service, customer_principal, admin
    ):
        for start in ("09:00", "10:00", "11:00"):
            booking = _create(db, customer_principal, partner, wash_service, start_time=start)
            AdminBookingService(db).cancel_booking(booking.id, admin, reason="Weather", now=NOW)

        page, total = AdminBookingService(db).list_bookings(
            statuses=[BookingStatus.CANCELLED], page=2, limit=2
        )
        assert total == 3
        assert len(page) == 1
        assert page[0].cancelled_by == "admin"


class TestRefunds:
    def test_refunds_accumulate_up_to_the_charge(self, db, completed_booking):
        service = AdminBookingService(db)

        service.refund_booking(completed_booking.id, RefundRequest(amount="5.00", reason="Late"))
        view = service.refund_booking(
            completed_booking.id, RefundRequest(amount="6.00", reason="Streaks")
        )

        assert view.payment.status == PaymentStatus.PAID
        assert view.payment.refund_amount == Decimal("11.00")
        assert view.payment.refund_reason == "Streaks"

        with pytest.raises(ValidationException) as exc_info:
            service.refund_booking(
                completed_booking.id, RefundRequest(amount="10.01", reason="Too much")
            )
        assert exc_info.value.code == "REFUND_EXCEEDS_AMOUNT"

        view = service.refund_booking(
            completed_booking.id, RefundRequest(amount="10.00", reason="Redo")
        )
        assert view.payment.status == PaymentStatus.REFUNDED
        assert view.payment.refund_amount == Decimal("21.00")

    def test_uncaptured_cash_cannot_be_refunded(
        self, db, partner, wash_service, customer_principal
    ):
        booking = _create(db, customer_principal, partner, wash_service, payment_method="cash")

        with pytest.raises(InvalidStateException) as exc_info:
            AdminBookingService(db).refund_booking(
                booking.id, RefundRequest(amount="1.00", reason="Goodwill")
            )
        assert exc_info.value.code == "PAYMENT_NOT_CAPTURED"

    def test_refund_must_be_positive(self, db, completed_booking):
        with pytest.raises(ValidationException) as exc_info:
            AdminBookingService(db).refund_booking(
                completed_booking.id, RefundRequest(amount="0", reason="Nothing")
            )
        assert exc_info.value.code == "INVALID_REFUND"


class TestDisputes:
    def test_dispute_requires_finished_booking(
        self, db, partner, wash_service, customer_principal
    ):
        booking = _create(db, customer_principal, partner, wash_service)

        with pytest.raises(InvalidStateException) as exc_info:
            AdminBookingService(db).raise_dispute(
                booking.id, DisputeCreate(reason="Not cleaned"), customer_principal
            )
        assert exc_info.value.code == "DISPUTE_NOT_ALLOWED"

    def test_full_dispute_lifecycle(
        self, db, completed_booking, customer_principal, partner_principal
    ):
        service = AdminBookingService(db)

        raised = service.raise_dispute(
            completed_booking.id,
            DisputeCreate(
                reason="Car still dirty",
                description="Wheels were not washed",
                customer_evidence=["https://img.example.test/1.jpg"],
            ),
            customer_principal,
        )
        assert raised.dispute.status == DisputeStatus.PENDING

        with pytest.raises(ConflictException) as exc_info:
            service.raise_dispute(
                completed_booking.id, DisputeCreate(reason="Again"), customer_principal
            )
        assert exc_info.value.code == "DISPUTE_EXISTS"

        responded = service.respond_to_dispute(
            completed_booking.id, "Wheels were cleaned, photos attached", partner_principal
        )
        assert responded.dispute.partner_response.startswith("Wheels")
        assert responded.dispute.partner_responded_at is not None

        resolved = service.resolve_dispute(
            completed_booking.id,
            DisputeResolveRequest(action="partial_refund", refund_amount="7.50", notes="Split"),
        )
        assert resolved.dispute.status == DisputeStatus.RESOLVED
        assert resolved.dispute.refund_amount == Decimal("7.50")
        assert resolved.payment.refund_amount == Decimal("7.50")

        with pytest.raises(InvalidStateException) as exc_info:
            service.resolve_dispute(completed_booking.id, DisputeResolveRequest(action="dismiss"))
        assert exc_info.value.code == "DISPUTE_ALREADY_RESOLVED"

        _, total = service.list_disputes(DisputeStatus.RESOLVED)
        assert total == 1

    def test_full_refund_resolution_refunds_the_remainder(
        self, db, completed_booking, customer_principal
    ):
        service = AdminBookingService(db)
        service.refund_booking(completed_booking.id, RefundRequest(amount="1.00", reason="Wait"))
        service.raise_dispute(completed_booking.id, DisputeCreate(reason="Scratch"), customer_principal)

        view = service.resolve_dispute(completed_booking.id, DisputeResolveRequest(action="refund"))

        assert view.dispute.refund_amount == Decimal("20.00")
        assert view.payment.refund_amount == Decimal("21.00")

    def test_dismissal_refunds_nothing(self, db, completed_booking, customer_principal):
        service = AdminBookingService(db)
        service.raise_dispute(completed_booking.id, DisputeCreate(reason="Slow"), customer_principal)

        view = service.resolve_dispute(completed_booking.id, DisputeResolveRequest(action="dismiss"))

        assert view.dispute.resolution == "dismiss"
        assert view.payment.status == PaymentStatus.PAID

    def test_other_customer_cannot_dispute(self, db, completed_booking, other_customer):
        stranger = Principal(role=ActorRole.CUSTOMER, actor_id=other_customer.id)
        with pytest.raises(ForbiddenException):
            AdminBookingService(db).raise_dispute(
                completed_booking.id, DisputeCreate(reason="Not mine"), stranger
            )


class TestRating:
    def test_rate_once(self, db, completed_booking, customer_principal):
        service = AdminBookingService(db)

        view = service.rate_booking(
            completed_booking.id, RatingCreate(score=4, comment="Good job"), customer_principal
        )
        assert view.rating.score == 4

        with pytest.raises(ConflictException) as exc_info:
            service.rate_booking(completed_booking.id, RatingCreate(score=5), customer_principal)
        assert exc_info.value.code == "ALREADY_RATED"

    def test_only_finished_bookings_are_rated(
        self, db, partner, wash_service, customer_principal
    ):
        booking = _create(db, customer_principal, partner, wash_service)
        with pytest.raises(InvalidStateException) as exc_info:
            AdminBookingService(db).rate_booking(booking.id, RatingCreate(score=3), customer_principal)
        assert exc_info.value.code == "RATING_NOT_ALLOWED"

    def test_admin_cannot_rate(self, db, completed_booking, admin):
        with pytest.raises(ForbiddenException):
            AdminBookingService(db).rate_booking(completed_booking.id, RatingCreate(score=3), admin)
