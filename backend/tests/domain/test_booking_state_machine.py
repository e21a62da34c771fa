"""Unit tests for the slot booking state machine."""

import pytest

from app.core.enums import BookingStatus, ServiceType, SlotBookingStatus as S
from app.core.exceptions import InvalidTransitionException
from app.domain.booking_state_machine import (
    allowed_targets,
    flow_for,
    project_admin_status,
    validate_transition,
)


class TestTransitions:
    @pytest.mark.parametrize("service_type", [ServiceType.BOOK_ME, ServiceType.WASHING_VAN])
    def test_on_site_flow(self, service_type):
        assert flow_for(service_type) == (S.BOOKED, S.IN_PROGRESS, S.COMPLETED)
        validate_transition(S.BOOKED, S.IN_PROGRESS, service_type)
        validate_transition(S.IN_PROGRESS, S.COMPLETED, service_type)

    def test_delivery_flow_accepts_each_step(self):
        flow = flow_for(ServiceType.PICK_BY_ME)
        assert flow == (S.BOOKED, S.IN_PROGRESS, S.PICKED, S.OUT_FOR_DELIVERY, S.DELIVERED)
        for current, target in zip(flow, flow[1:]):
            validate_transition(current, target, ServiceType.PICK_BY_ME)

    def test_skipping_steps_is_rejected(self):
        with pytest.raises(InvalidTransitionException) as exc_info:
            validate_transition(S.BOOKED, S.DELIVERED, ServiceType.PICK_BY_ME)
        assert exc_info.value.code == "INVALID_TRANSITION"
        assert exc_info.value.details == {"current_status": "booked", "target_status": "delivered"}

    def test_other_variant_status_is_rejected(self):
        with pytest.raises(InvalidTransitionException):
            validate_transition(S.IN_PROGRESS, S.PICKED, ServiceType.BOOK_ME)
        with pytest.raises(InvalidTransitionException):
            validate_transition(S.IN_PROGRESS, S.COMPLETED, "pick_by_me")

    @pytest.mark.parametrize("status", [S.BOOKED, S.IN_PROGRESS, S.PICKED, S.OUT_FOR_DELIVERY])
    def test_cancel_from_any_non_terminal(self, status):
        validate_transition(status, S.CANCELLED, ServiceType.PICK_BY_ME)

    @pytest.mark.parametrize("status", [S.COMPLETED, S.DELIVERED, S.CANCELLED])
    def test_terminal_statuses_have_no_exits(self, status):
        assert allowed_targets(status, ServiceType.PICK_BY_ME) == frozenset()
        with pytest.raises(InvalidTransitionException):
            validate_transition(status, S.CANCELLED, ServiceType.PICK_BY_ME)

    def test_reschedule_only_from_booked(self):
        assert S.RESCHEDULED in allowed_targets(S.BOOKED, ServiceType.BOOK_ME)
        assert S.RESCHEDULED not in allowed_targets(S.IN_PROGRESS, ServiceType.BOOK_ME)


def test_admin_projection():
    assert project_admin_status(S.BOOKED) == BookingStatus.CONFIRMED
    assert project_admin_status(S.PICKED) == BookingStatus.IN_PROGRESS
    assert project_admin_status(S.OUT_FOR_DELIVERY) == BookingStatus.IN_PROGRESS
    assert project_admin_status(S.DELIVERED) == BookingStatus.COMPLETED
    assert project_admin_status(S.CANCELLED) == BookingStatus.CANCELLED
