"""Tests for window resolution, capacity configuration and schedule validation."""

from datetime import date, time, timedelta

from conftest import NOW, SUNDAY, TUESDAY, make_service
import pytest

from app.core.enums import ServiceCategory
from app.core.exceptions import (
    CapacityExceededException,
    NotFoundException,
    SlotUnavailableException,
    ValidationException,
)
from app.schemas.availability import PartnerCapacityUpdate, WeeklyAvailabilityUpdate
from app.schemas.platform_config import BookingRulesUpdate
from app.schemas.slot_booking import SlotBookingCreate
from app.services.availability_service import AvailabilityService, day_of_week
from app.services.config_service import ConfigService
from app.services.slot_booking_service import SlotBookingService


def _schedule(enabled_days=(1, 2, 3, 4, 5), blocks=None):
    blocks = blocks or [{"start": "08:00", "end": "12:00"}]
    return {
        "schedule": [
            {
                "dayOfWeek": day,
                "isEnabled": day in enabled_days,
                "timeBlocks": blocks if day in enabled_days else [],
            }
            for day in range(7)
        ]
    }


def _book(db, partner, service, customer_principal, start="10:00", slot_date=TUESDAY):
    data = SlotBookingCreate.model_validate(
        {
            "partnerId": partner.id,
            "serviceId": service.id,
            "date": slot_date.isoformat(),
            "startTime": start,
            "vehicle": {"make": "Mazda", "model": "3", "plateNumber": "LAB 999", "type": "compact"},
        }
    )
    return SlotBookingService(db).create_booking(data, customer_principal, now=NOW)


def _starts(result):
    return [w.start_time.strftime("%H:%M") for w in result.windows]


def test_day_of_week_counts_from_sunday():
    assert day_of_week(SUNDAY) == 0
    assert day_of_week(date(2026, 3, 2)) == 1
    assert day_of_week(date(2026, 3, 7)) == 6


class TestAvailableWindows:
    def test_disabled_weekday_yields_no_windows(self, db, partner):
        result = AvailabilityService(db).get_available_windows(partner.id, SUNDAY, now=NOW)

        assert result.windows == []
        assert result.message == "Partner is closed on Sunday"

    def test_default_schedule_steps_every_fifteen_minutes(self, db, partner):
        result = AvailabilityService(db).get_available_windows(
            partner.id, TUESDAY, ServiceCategory.WASH, 30, now=NOW
        )

        starts = _starts(result)
        assert starts[:3] == ["08:00", "08:15", "08:30"]
        # Last window must still end inside the 08:00-18:00 block
        assert starts[-1] == "17:30"
        assert all(w.remaining_capacity == 3 and w.total_capacity == 3 for w in result.windows)
        assert result.windows[0].bay_id == "bay-w1"

    def test_zero_capacity_category_yields_no_windows(self, db, partner):
        result = AvailabilityService(db).get_available_windows(
            partner.id, TUESDAY, ServiceCategory.OTHER, now=NOW
        )
        assert result.windows == []
        assert result.capacity["other"] == 0

    def test_capacity_is_capped_by_active_bays(self, db, partner):
        service = AvailabilityService(db)
        service.update_capacity(
            partner.id,
            PartnerCapacityUpdate(
                bays=[
                    {"id": "w1", "name": "Wash Bay 1", "serviceCategory": "wash"},
                    {"id": "w2", "name": "Wash Bay 2", "serviceCategory": "wash", "isActive": False},
                ],
                capacity_by_category={"wash": 3},
            ),
        )

        result = service.get_available_windows(partner.id, TUESDAY, "wash", now=NOW)
        assert {w.total_capacity for w in result.windows} == {1}

    def test_past_and_far_future_dates_are_empty(self, db, partner):
        service = AvailabilityService(db)

        past = service.get_available_windows(partner.id, NOW.date() - timedelta(days=4), now=NOW)
        far = service.get_available_windows(partner.id, NOW.date() + timedelta(days=30), now=NOW)

        assert past.windows == [] and past.message == "Date is in the past"
        assert far.windows == [] and "14 days" in far.message

    def test_same_day_windows_respect_minimum_notice(self, db, partner):
        # NOW is 08:00 local on Monday; two hours notice means 10:00 is the first window
        result = AvailabilityService(db).get_available_windows(
            partner.id, NOW.date(), now=NOW
        )
        assert _starts(result)[0] == "10:00"

    def test_full_windows_are_excluded(self, db, partner, wash_service, customer_principal):
        AvailabilityService(db).update_capacity(
            partner.id, PartnerCapacityUpdate(capacity_by_category={"wash": 1})
        )
        _book(db, partner, wash_service, customer_principal, start="10:00")

        starts = _starts(
            AvailabilityService(db).get_available_windows(partner.id, TUESDAY, "wash", 30, now=NOW)
        )

        # 10:00-10:30 plus a 15 minute buffer blocks every start before 10:45
        assert "09:45" not in starts
        assert "10:00" not in starts
        assert "10:30" not in starts
        assert "09:30" in starts
        assert "10:45" in starts

    def test_remaining_capacity_and_bay_rotation(
        self, db, partner, wash_service, customer_principal
    ):
        _book(db, partner, wash_service, customer_principal, start="10:00")

        result = AvailabilityService(db).get_available_windows(
            partner.id, TUESDAY, "wash", 30, now=NOW
        )
        window = next(w for w in result.windows if w.start_time == time(10, 0))

        assert window.remaining_capacity == 2
        assert window.bay_id == "bay-w2"

    def test_back_to_back_bookings_on_one_bay_hold_one_unit(
        self, db, partner, wash_service, customer_principal
    ):
        AvailabilityService(db).update_capacity(
            partner.id, PartnerCapacityUpdate(capacity_by_category={"wash": 2})
        )
        _book(db, partner, wash_service, customer_principal, start="09:00")
        _book(db, partner, wash_service, customer_principal, start="09:45")

        result = AvailabilityService(db).get_available_windows(
            partner.id, TUESDAY, "wash", 60, now=NOW
        )
        window = next(w for w in result.windows if w.start_time == time(9, 15))

        # Both bookings sit on bay-w1 and never overlap each other
        assert window.remaining_capacity == 1
        assert window.bay_id == "bay-w2"

    def test_cancelled_bookings_free_capacity(
        self, db, partner, wash_service, customer_principal
    ):
        AvailabilityService(db).update_capacity(
            partner.id, PartnerCapacityUpdate(capacity_by_category={"wash": 1})
        )
        booking = _book(db, partner, wash_service, customer_principal, start="10:00")
        SlotBookingService(db).cancel_booking(booking.id, customer_principal, now=NOW)

        starts = _starts(
            AvailabilityService(db).get_available_windows(partner.id, TUESDAY, "wash", 30, now=NOW)
        )
        assert "10:00" in starts

    def test_other_categories_do_not_consume_wash_capacity(
        self, db, partner, customer_principal
    ):
        AvailabilityService(db).update_capacity(
            partner.id, PartnerCapacityUpdate(capacity_by_category={"wash": 1, "detailing": 1})
        )
        detailing = make_service(db, partner, name="Interior Detail", category=ServiceCategory.DETAILING)
        _book(db, partner, detailing, customer_principal, start="10:00")

        starts = _starts(
            AvailabilityService(db).get_available_windows(partner.id, TUESDAY, "wash", 30, now=NOW)
        )
        assert "10:00" in starts

    def test_horizon_follows_booking_rules(self, db, partner):
        config = ConfigService(db)
        config.update_booking_rules(BookingRulesUpdate(max_advance_booking_days=3))
        service = AvailabilityService(db, config_service=config)

        result = service.get_available_windows(partner.id, NOW.date() + timedelta(days=4), now=NOW)
        assert result.windows == []

    def test_partner_horizon_is_capped_by_platform(self, db, partner):
        service = AvailabilityService(db)
        availability = service.get_weekly_availability(partner.id)
        availability.max_advance_booking_days = 30
        assert service.booking_horizon(availability) == 14

        saved = service.update_weekly_availability(
            partner.id,
            WeeklyAvailabilityUpdate.model_validate({**_schedule(), "maxAdvanceBookingDays": 2}),
        )
        assert service.booking_horizon(saved) == 2
        result = service.get_available_windows(partner.id, NOW.date() + timedelta(days=4), now=NOW)
        assert result.message == "Bookings open at most 2 days in advance"

    def test_invalid_duration_and_category(self, db, partner):
        service = AvailabilityService(db)
        with pytest.raises(ValidationException) as exc_info:
            service.get_available_windows(partner.id, TUESDAY, "wash", 5, now=NOW)
        assert exc_info.value.code == "INVALID_DURATION"
        with pytest.raises(ValidationException) as exc_info:
            service.get_available_windows(partner.id, TUESDAY, "polish", now=NOW)
        assert exc_info.value.code == "INVALID_SERVICE_CATEGORY"

    def test_unknown_partner(self, db):
        with pytest.raises(NotFoundException):
            AvailabilityService(db).get_available_windows("missing", TUESDAY, now=NOW)


class TestCheckWindow:
    def _check(self, db, partner, start, duration=30):
        service = AvailabilityService(db)
        capacity = service.capacity_repository.get_or_create(partner.id)
        return service.check_window(
            partner.id, TUESDAY, start, duration, ServiceCategory.WASH, capacity=capacity
        )

    def test_window_outside_hours(self, db, partner):
        with pytest.raises(SlotUnavailableException):
            self._check(db, partner, time(17, 45))

    def test_window_off_the_step_grid(self, db, partner):
        with pytest.raises(SlotUnavailableException) as exc_info:
            self._check(db, partner, time(10, 10))
        assert "15-minute" in exc_info.value.message

    def test_step_grid_follows_the_containing_block(
        self, db, partner, wash_service, customer_principal
    ):
        AvailabilityService(db).update_weekly_availability(
            partner.id,
            WeeklyAvailabilityUpdate.model_validate(
                _schedule(
                    blocks=[{"start": "08:00", "end": "12:00"}, {"start": "13:10", "end": "17:00"}]
                )
            ),
        )
        starts = _starts(
            AvailabilityService(db).get_available_windows(partner.id, TUESDAY, "wash", 30, now=NOW)
        )
        assert "13:10" in starts
        assert "13:25" in starts
        assert "13:15" not in starts

        booking = _book(db, partner, wash_service, customer_principal, start="13:10")
        assert booking.start_time == time(13, 10)

        with pytest.raises(SlotUnavailableException) as exc_info:
            self._check(db, partner, time(13, 15))
        assert "15-minute" in exc_info.value.message

    def test_full_window_raises_capacity_exceeded(
        self, db, partner, wash_service, customer_principal
    ):
        AvailabilityService(db).update_capacity(
            partner.id, PartnerCapacityUpdate(capacity_by_category={"wash": 1})
        )
        _book(db, partner, wash_service, customer_principal, start="10:00")

        with pytest.raises(CapacityExceededException) as exc_info:
            self._check(db, partner, time(10, 15))
        assert exc_info.value.details["capacity"] == 1


class TestConfiguration:
    def test_default_schedule_is_returned_unsaved(self, db, partner):
        availability = AvailabilityService(db).get_weekly_availability(partner.id)
        assert availability.id is None
        assert availability.day(0)["is_enabled"] is False
        assert availability.day(6)["time_blocks"] == [{"start": "09:00", "end": "14:00"}]

    def test_update_weekly_availability(self, db, partner):
        update = WeeklyAvailabilityUpdate.model_validate(
            {**_schedule(enabled_days=(2,)), "bufferTimeMinutes": 0}
        )
        saved = AvailabilityService(db).update_weekly_availability(partner.id, update)

        assert saved.buffer_time_minutes == 0
        assert [d["day_of_week"] for d in saved.schedule if d["is_enabled"]] == [2]
        assert saved.schedule[2]["day_name"] == "Tuesday"

        result = AvailabilityService(db).get_available_windows(partner.id, TUESDAY, now=NOW)
        assert _starts(result)[-1] == "11:30"

    def test_overlapping_blocks_are_rejected(self, db, partner):
        update = WeeklyAvailabilityUpdate.model_validate(
            _schedule(blocks=[{"start": "08:00", "end": "12:00"}, {"start": "11:00", "end": "14:00"}])
        )
        with pytest.raises(ValidationException) as exc_info:
            AvailabilityService(db).update_weekly_availability(partner.id, update)
        assert exc_info.value.code == "OVERLAPPING_TIME_BLOCKS"

    def test_block_must_end_after_start(self, db, partner):
        update = WeeklyAvailabilityUpdate.model_validate(
            _schedule(blocks=[{"start": "12:00", "end": "09:00"}])
        )
        with pytest.raises(ValidationException) as exc_info:
            AvailabilityService(db).update_weekly_availability(partner.id, update)
        assert exc_info.value.code == "INVALID_TIME_BLOCK"

    def test_duplicate_days_are_rejected(self, db, partner):
        payload = _schedule()
        payload["schedule"][6]["dayOfWeek"] = 5
        with pytest.raises(ValidationException) as exc_info:
            AvailabilityService(db).update_weekly_availability(
                partner.id, WeeklyAvailabilityUpdate.model_validate(payload)
            )
        assert exc_info.value.code == "INVALID_SCHEDULE"

    def test_duplicate_bay_ids_are_rejected(self, db, partner):
        update = PartnerCapacityUpdate(
            bays=[
                {"id": "w1", "name": "A", "serviceCategory": "wash"},
                {"id": "w1", "name": "B", "serviceCategory": "wash"},
            ]
        )
        with pytest.raises(ValidationException) as exc_info:
            AvailabilityService(db).update_capacity(partner.id, update)
        assert exc_info.value.code == "DUPLICATE_BAY"
