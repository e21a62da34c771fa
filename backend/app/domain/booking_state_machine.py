"""
Slot booking status state machine.

Two variants share the ``booked`` entry point:

    on-site  (book_me, washing_van): booked -> in_progress -> completed
    delivery (pick_by_me):           booked -> in_progress -> picked
                                     -> out_for_delivery -> delivered

``cancelled`` is reachable from every non-terminal status. ``rescheduled`` is
a side transition from ``booked`` that leaves the status at ``booked``.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Tuple, Union

from app.core.enums import BookingStatus, ServiceType, SlotBookingStatus
from app.core.exceptions import InvalidTransitionException

S = SlotBookingStatus

ON_SITE_FLOW: Tuple[SlotBookingStatus, ...] = (S.BOOKED, S.IN_PROGRESS, S.COMPLETED)
DELIVERY_FLOW: Tuple[SlotBookingStatus, ...] = (
    S.BOOKED,
    S.IN_PROGRESS,
    S.PICKED,
    S.OUT_FOR_DELIVERY,
    S.DELIVERED,
)

TERMINAL: FrozenSet[SlotBookingStatus] = frozenset({S.COMPLETED, S.DELIVERED, S.CANCELLED})

_ADMIN_PROJECTION: Dict[SlotBookingStatus, BookingStatus] = {
    S.BOOKED: BookingStatus.CONFIRMED,
    S.IN_PROGRESS: BookingStatus.IN_PROGRESS,
    S.PICKED: BookingStatus.IN_PROGRESS,
    S.OUT_FOR_DELIVERY: BookingStatus.IN_PROGRESS,
    S.COMPLETED: BookingStatus.COMPLETED,
    S.DELIVERED: BookingStatus.COMPLETED,
    S.CANCELLED: BookingStatus.CANCELLED,
}


def _coerce_type(service_type: Union[ServiceType, str]) -> ServiceType:
    return service_type if isinstance(service_type, ServiceType) else ServiceType(service_type)


def flow_for(service_type: Union[ServiceType, str]) -> Tuple[SlotBookingStatus, ...]:
    """Ordered forward statuses for the service type's variant."""
    if _coerce_type(service_type) == ServiceType.PICK_BY_ME:
        return DELIVERY_FLOW
    return ON_SITE_FLOW


def is_terminal(status: SlotBookingStatus) -> bool:
    return status in TERMINAL


def allowed_targets(
    status: SlotBookingStatus, service_type: Union[ServiceType, str]
) -> FrozenSet[SlotBookingStatus]:
    """Statuses reachable in one step, including the reschedule side transition."""
    if is_terminal(status):
        return frozenset()
    flow = flow_for(service_type)
    targets = {S.CANCELLED}
    if status in flow:
        index = flow.index(status)
        if index + 1 < len(flow):
            targets.add(flow[index + 1])
    if status == S.BOOKED:
        targets.add(S.RESCHEDULED)
    return frozenset(targets)


def validate_transition(
    current: SlotBookingStatus,
    target: SlotBookingStatus,
    service_type: Union[ServiceType, str],
) -> None:
    """
    Raise InvalidTransitionException unless ``current -> target`` is an edge.

    Skipping steps and using the other variant's statuses are both rejected.
    """
    if target not in allowed_targets(current, service_type):
        raise InvalidTransitionException(
            current=S(current).value,
            target=S(target).value,
            service_type=_coerce_type(service_type).value,
        )


def project_admin_status(status: SlotBookingStatus) -> BookingStatus:
    """Collapse a slot status to the coarser admin-facing booking status."""
    return _ADMIN_PROJECTION[S(status)]
