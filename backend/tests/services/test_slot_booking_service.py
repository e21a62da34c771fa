"""Service tests for slot booking create, status, cancel, reschedule and timeline."""

from datetime import date, datetime, time, timezone
from decimal import Decimal

from conftest import NOW, TUESDAY, WEDNESDAY, booking_payload, make_service
import pytest

from app.core.enums import ActorRole, CancelledBy, PaymentStatus, SlotBookingStatus as S
from app.core.exceptions import (
    CapacityExceededException,
    ForbiddenException,
    InvalidStateException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from app.core.principal import Principal
from app.core.constants import DEFAULT_WEEKLY_SCHEDULE
from app.schemas.availability import PartnerCapacityUpdate, WeeklyAvailabilityUpdate
from app.schemas.platform_config import BookingRulesUpdate
from app.schemas.slot_booking import SlotBookingCreate, SlotBookingReschedule
from app.services.availability_service import AvailabilityService
from app.services.config_service import ConfigService
from app.services.slot_booking_service import SlotBookingService

# Five minutes after the Tuesday 10:00 local slot starts
AFTER_START = datetime(2026, 3, 3, 8, 5, tzinfo=timezone.utc)


def _create(db, principal, partner, service, **kwargs):
    data = SlotBookingCreate.model_validate(booking_payload(partner, service, **kwargs))
    return SlotBookingService(db).create_booking(data, principal, now=NOW)


def _set_wash_capacity(db, partner, value):
    AvailabilityService(db).update_capacity(
        partner.id, PartnerCapacityUpdate(capacity_by_category={"wash": value})
    )


def _set_partner_horizon(db, partner, days):
    schedule = [
        {"dayOfWeek": d["day_of_week"], "isEnabled": d["is_enabled"], "timeBlocks": d["time_blocks"]}
        for d in DEFAULT_WEEKLY_SCHEDULE
    ]
    AvailabilityService(db).update_weekly_availability(
        partner.id,
        WeeklyAvailabilityUpdate.model_validate(
            {"schedule": schedule, "maxAdvanceBookingDays": days}
        ),
    )


class TestCreateBooking:
    def test_creates_booked_slot_with_pricing_and_payment(
        self, db, partner, wash_service, customer_principal, customer
    ):
        booking = _create(db, customer_principal, partner, wash_service)

        assert booking.status == S.BOOKED
        assert booking.customer_id == customer.id
        assert booking.customer_name == "Maria Ioannou"
        assert booking.start_time == time(10, 0)
        assert booking.end_time == time(10, 30)
        assert booking.bay_id == "bay-w1"
        assert booking.customer_charge == Decimal("21.00")
        assert booking.platform_fee == Decimal("3.00")
        assert booking.partner_payout == Decimal("18.00")
        assert booking.booking_number
        assert [e.event for e in booking.events] == ["booked"]
        assert booking.payment.status == PaymentStatus.PAID
        assert booking.payment.amount == Decimal("21.00")

    def test_cash_payment_stays_pending(self, db, partner, wash_service, customer_principal):
        booking = _create(db, customer_principal, partner, wash_service, payment_method="cash")

        assert booking.payment.status == PaymentStatus.PENDING
        assert booking.payment.paid_at is None

    def test_capacity_limits_overlapping_bookings(
        self, db, partner, wash_service, customer_principal
    ):
        _set_wash_capacity(db, partner, 2)
        first = _create(db, customer_principal, partner, wash_service)
        second = _create(db, customer_principal, partner, wash_service)

        assert {first.bay_id, second.bay_id} == {"bay-w1", "bay-w2"}
        with pytest.raises(CapacityExceededException) as exc_info:
            _create(db, customer_principal, partner, wash_service)
        assert exc_info.value.details["capacity"] == 2

    def test_back_to_back_bookings_leave_a_bay_for_a_longer_service(
        self, db, partner, wash_service, customer_principal
    ):
        _set_wash_capacity(db, partner, 2)
        early = _create(db, customer_principal, partner, wash_service, start_time="09:00")
        late = _create(db, customer_principal, partner, wash_service, start_time="09:45")
        long_wash = make_service(db, partner, name="Wash and Wax", duration=60)

        booking = _create(db, customer_principal, partner, long_wash, start_time="09:15")

        assert early.bay_id == late.bay_id == "bay-w1"
        assert booking.bay_id == "bay-w2"
        # 09:30 would be the third booking held at once
        with pytest.raises(CapacityExceededException):
            _create(db, customer_principal, partner, wash_service, start_time="09:30")

    def test_partner_horizon_limits_booking_date(
        self, db, partner, wash_service, customer_principal
    ):
        _set_partner_horizon(db, partner, 2)

        with pytest.raises(ValidationException) as exc_info:
            _create(
                db, customer_principal, partner, wash_service, slot_date=date(2026, 3, 6)
            )
        assert exc_info.value.code == "BOOKING_TOO_FAR_AHEAD"
        assert exc_info.value.details == {"max_advance_booking_days": 2}
        assert _create(db, customer_principal, partner, wash_service).slot_date == TUESDAY

    def test_cancelling_releases_capacity(self, db, partner, wash_service, customer_principal):
        _set_wash_capacity(db, partner, 1)
        booking = _create(db, customer_principal, partner, wash_service)
        SlotBookingService(db).cancel_booking(booking.id, customer_principal, now=NOW)

        replacement = _create(db, customer_principal, partner, wash_service)
        assert replacement.status == S.BOOKED

    @pytest.mark.parametrize(
        "slot_date, start_time, code",
        [
            (datetime(2026, 2, 27).date(), "10:00", "DATE_IN_PAST"),
            (datetime(2026, 3, 20).date(), "10:00", "BOOKING_TOO_FAR_AHEAD"),
            (NOW.date(), "09:00", "INSUFFICIENT_NOTICE"),
        ],
    )
    def test_booking_rules(
        self, db, partner, wash_service, customer_principal, slot_date, start_time, code
    ):
        with pytest.raises(ValidationException) as exc_info:
            _create(
                db, customer_principal, partner, wash_service,
                slot_date=slot_date, start_time=start_time,
            )
        assert exc_info.value.code == code

    def test_closed_day_is_rejected(self, db, partner, wash_service, customer_principal):
        with pytest.raises(ValidationException) as exc_info:
            _create(
                db, customer_principal, partner, wash_service,
                slot_date=datetime(2026, 3, 8).date(),
            )
        assert exc_info.value.code == "SLOT_UNAVAILABLE"

    def test_unknown_service(self, db, partner, wash_service, customer_principal):
        payload = booking_payload(partner, wash_service)
        payload["serviceId"] = "01HZZZZZZZZZZZZZZZZZZZZZZZ"
        with pytest.raises(NotFoundException):
            SlotBookingService(db).create_booking(
                SlotBookingCreate.model_validate(payload), customer_principal, now=NOW
            )

    def test_partner_books_for_customer(self, db, partner, wash_service, customer, partner_principal):
        booking = _create(
            db, partner_principal, partner, wash_service, customerId=customer.id
        )
        assert booking.customer_id == customer.id
        assert booking.events[0].actor == "partner"

    def test_partner_requires_customer_id(self, db, partner, wash_service, partner_principal):
        with pytest.raises(ValidationException) as exc_info:
            _create(db, partner_principal, partner, wash_service)
        assert exc_info.value.code == "CUSTOMER_REQUIRED"


class TestStatusChanges:
    def test_on_site_flow_settles_cash(self, db, partner, wash_service, customer_principal, admin):
        booking = _create(db, customer_principal, partner, wash_service, payment_method="cash")
        service = SlotBookingService(db)

        service.update_status(booking.id, S.IN_PROGRESS, admin, now=AFTER_START)
        done = service.update_status(booking.id, S.COMPLETED, admin, now=AFTER_START)

        assert done.status == S.COMPLETED
        assert done.started_at is not None and done.completed_at is not None
        assert done.payment.status == PaymentStatus.PAID
        assert [e.status for e in done.events] == [S.BOOKED, S.IN_PROGRESS, S.COMPLETED]

    def test_start_before_slot_time_is_rejected(
        self, db, partner, wash_service, customer_principal, admin
    ):
        booking = _create(db, customer_principal, partner, wash_service)

        with pytest.raises(InvalidStateException) as exc_info:
            SlotBookingService(db).update_status(booking.id, S.IN_PROGRESS, admin, now=NOW)
        assert exc_info.value.code == "SERVICE_NOT_STARTED"

    def test_delivery_flow(self, db, partner, delivery_service, customer_principal, partner_principal):
        booking = _create(db, customer_principal, partner, delivery_service)
        service = SlotBookingService(db)

        with pytest.raises(InvalidTransitionException):
            service.update_status(booking.id, S.DELIVERED, partner_principal, now=AFTER_START)

        for target in (S.IN_PROGRESS, S.PICKED, S.OUT_FOR_DELIVERY, S.DELIVERED):
            booking = service.update_status(booking.id, target, partner_principal, now=AFTER_START)

        assert booking.status == S.DELIVERED
        assert [e.sequence for e in booking.events] == [1, 2, 3, 4, 5]
        timestamps = [e.created_at for e in booking.events]
        assert timestamps == sorted(timestamps)
        assert len(set(timestamps)) == 5

    def test_reschedule_status_is_refused(self, db, partner, wash_service, customer_principal, admin):
        booking = _create(db, customer_principal, partner, wash_service)
        with pytest.raises(ValidationException) as exc_info:
            SlotBookingService(db).update_status(booking.id, S.RESCHEDULED, admin)
        assert exc_info.value.code == "RESCHEDULE_REQUIRED"

    def test_other_customer_cannot_touch_booking(
        self, db, partner, wash_service, customer_principal, other_customer
    ):
        booking = _create(db, customer_principal, partner, wash_service)
        stranger = Principal(role=ActorRole.CUSTOMER, actor_id=other_customer.id)

        with pytest.raises(ForbiddenException):
            SlotBookingService(db).get_booking(booking.id, stranger)
        with pytest.raises(ForbiddenException):
            SlotBookingService(db).cancel_booking(booking.id, stranger, now=NOW)


class TestCancel:
    def test_cancel_outside_window_is_not_late(
        self, db, partner, wash_service, customer_principal
    ):
        booking = _create(db, customer_principal, partner, wash_service)

        cancelled = SlotBookingService(db).cancel_booking(
            booking.id, customer_principal, reason="Plans changed", now=NOW
        )

        assert cancelled.status == S.CANCELLED
        assert cancelled.cancelled_by == CancelledBy.CUSTOMER
        assert cancelled.cancellation_reason == "Plans changed"
        assert cancelled.late_cancellation is False
        assert cancelled.events[-1].previous_status == S.BOOKED

    def test_cancel_inside_window_is_late(self, db, partner, wash_service, customer_principal):
        booking = _create(db, customer_principal, partner, wash_service)

        cancelled = SlotBookingService(db).cancel_booking(
            booking.id, customer_principal, now=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
        )
        assert cancelled.late_cancellation is True

    def test_cancel_twice_is_rejected(self, db, partner, wash_service, customer_principal):
        booking = _create(db, customer_principal, partner, wash_service)
        service = SlotBookingService(db)
        service.cancel_booking(booking.id, customer_principal, now=NOW)

        with pytest.raises(InvalidTransitionException):
            service.cancel_booking(booking.id, customer_principal, now=NOW)


class TestReschedule:
    def _move(self, db, booking, principal, slot_date, start_time):
        data = SlotBookingReschedule.model_validate(
            {"date": slot_date.isoformat(), "startTime": start_time}
        )
        return SlotBookingService(db).reschedule_booking(booking.id, data, principal, now=NOW)

    def test_reschedule_keeps_identity_and_history(
        self, db, partner, wash_service, customer_principal
    ):
        booking = _create(db, customer_principal, partner, wash_service)

        moved = self._move(db, booking, customer_principal, WEDNESDAY, "11:00")

        assert moved.id == booking.id
        assert moved.status == S.BOOKED
        assert moved.slot_date == WEDNESDAY
        assert moved.start_time == time(11, 0)
        assert moved.reschedule_count == 1
        assert moved.rescheduled_from_date == TUESDAY
        assert moved.rescheduled_from_start_time == time(10, 0)
        assert [e.event for e in moved.events] == ["booked", "rescheduled"]

    def test_reschedule_frees_the_old_window(
        self, db, partner, wash_service, customer_principal
    ):
        _set_wash_capacity(db, partner, 1)
        booking = _create(db, customer_principal, partner, wash_service)
        self._move(db, booking, customer_principal, WEDNESDAY, "11:00")

        assert _create(db, customer_principal, partner, wash_service).slot_date == TUESDAY

    def test_reschedule_into_full_window(self, db, partner, wash_service, customer_principal):
        _set_wash_capacity(db, partner, 1)
        _create(db, customer_principal, partner, wash_service, slot_date=WEDNESDAY, start_time="11:00")
        booking = _create(db, customer_principal, partner, wash_service)

        with pytest.raises(CapacityExceededException):
            self._move(db, booking, customer_principal, WEDNESDAY, "11:00")

    def test_shifting_within_own_hold(self, db, partner, wash_service, customer_principal):
        _set_wash_capacity(db, partner, 1)
        booking = _create(db, customer_principal, partner, wash_service)

        moved = self._move(db, booking, customer_principal, TUESDAY, "10:15")
        assert moved.start_time == time(10, 15)

    def test_same_window_is_rejected(self, db, partner, wash_service, customer_principal):
        booking = _create(db, customer_principal, partner, wash_service)
        with pytest.raises(ValidationException) as exc_info:
            self._move(db, booking, customer_principal, TUESDAY, "10:00")
        assert exc_info.value.code == "SAME_WINDOW"

    def test_reschedule_limit(self, db, partner, wash_service, customer_principal):
        booking = _create(db, customer_principal, partner, wash_service)
        self._move(db, booking, customer_principal, WEDNESDAY, "11:00")
        self._move(db, booking, customer_principal, WEDNESDAY, "12:00")

        with pytest.raises(InvalidStateException) as exc_info:
            self._move(db, booking, customer_principal, WEDNESDAY, "13:00")
        assert exc_info.value.code == "RESCHEDULE_LIMIT_REACHED"

    def test_rescheduling_disabled(self, db, partner, wash_service, customer_principal):
        booking = _create(db, customer_principal, partner, wash_service)
        ConfigService(db).update_booking_rules(BookingRulesUpdate(allow_rescheduling=False))

        with pytest.raises(InvalidStateException) as exc_info:
            self._move(db, booking, customer_principal, WEDNESDAY, "11:00")
        assert exc_info.value.code == "RESCHEDULING_DISABLED"

    def test_reschedule_respects_partner_horizon(
        self, db, partner, wash_service, customer_principal
    ):
        _set_partner_horizon(db, partner, 2)
        booking = _create(db, customer_principal, partner, wash_service)

        with pytest.raises(ValidationException) as exc_info:
            self._move(db, booking, customer_principal, date(2026, 3, 6), "10:00")
        assert exc_info.value.code == "BOOKING_TOO_FAR_AHEAD"

    def test_only_booked_slots_move(self, db, partner, wash_service, customer_principal, admin):
        booking = _create(db, customer_principal, partner, wash_service)
        SlotBookingService(db).update_status(booking.id, S.IN_PROGRESS, admin, now=AFTER_START)

        with pytest.raises(InvalidTransitionException):
            self._move(db, booking, customer_principal, WEDNESDAY, "11:00")


class TestPartnerViews:
    def test_week_timeline_groups_by_day(
        self, db, partner, wash_service, customer_principal, partner_principal
    ):
        _create(db, customer_principal, partner, wash_service)
        _create(db, customer_principal, partner, wash_service, slot_date=WEDNESDAY, start_time="09:00")
        cancelled = _create(db, customer_principal, partner, wash_service, start_time="14:00")
        SlotBookingService(db).cancel_booking(cancelled.id, customer_principal, now=NOW)

        timeline = SlotBookingService(db).get_week_timeline(partner.id, partner_principal)

        assert timeline["week_start"] == NOW.date()
        assert len(timeline["days"]) == 7
        assert timeline["days"][0]["day_name"] == "Monday"
        assert [len(d["bookings"]) for d in timeline["days"][:3]] == [0, 1, 1]
        assert timeline["total_bookings"] == 2

    def test_list_partner_bookings_filters_status(
        self, db, partner, wash_service, customer_principal, partner_principal
    ):
        _create(db, customer_principal, partner, wash_service)
        cancelled = _create(db, customer_principal, partner, wash_service, start_time="14:00")
        SlotBookingService(db).cancel_booking(cancelled.id, customer_principal, now=NOW)

        items, total = SlotBookingService(db).list_partner_bookings(
            partner.id, partner_principal, statuses=[S.CANCELLED]
        )
        assert total == 1
        assert items[0].id == cancelled.id

    def test_customer_cannot_read_partner_timeline(self, db, partner, customer_principal):
        with pytest.raises(ForbiddenException):
            SlotBookingService(db).get_week_timeline(partner.id, customer_principal)
