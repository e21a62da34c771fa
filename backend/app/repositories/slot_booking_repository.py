# backend/app/repositories/slot_booking_repository.py
"""
Slot Booking Repository for the Plindo platform.

Implements data access for slot bookings: capacity lookups for a
partner/date/category, partner schedule listings, and the filtered,
paginated admin views.
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from ..core.enums import DisputeStatus, PaymentStatus, ServiceCategory, SlotBookingStatus
from ..core.exceptions import RepositoryException
from ..models.booking_dispute import BookingDispute
from ..models.booking_payment import BookingPayment
from ..models.slot_booking import BookingStatusEvent, SlotBooking
from .base_repository import BaseRepository


@dataclass
class SlotBookingFilters:
    """Optional filters shared by the partner and admin listings."""

    partner_id: Optional[str] = None
    customer_id: Optional[str] = None
    statuses: Optional[List[SlotBookingStatus]] = None
    service_category: Optional[ServiceCategory] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None
    # Keep only booked rows that are (True) or are not (False) awaiting payment
    booked_awaiting_payment: Optional[bool] = None


class SlotBookingRepository(BaseRepository[SlotBooking]):
    def __init__(self, db: Session):
        super().__init__(db, SlotBooking)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            selectinload(SlotBooking.events),
            selectinload(SlotBooking.payment),
            selectinload(SlotBooking.dispute),
        )

    def booking_number_exists(self, booking_number: str) -> bool:
        return self.exists(booking_number=booking_number)

    def get_active_for_day(
        self,
        partner_id: str,
        slot_date: date,
        category: ServiceCategory,
        exclude_booking_id: Optional[str] = None,
    ) -> List[SlotBooking]:
        """
        Non-cancelled bookings holding capacity for one partner/date/category.

        Args:
            exclude_booking_id: Booking to ignore (the one being rescheduled)
        """
        try:
            query = self.db.query(SlotBooking).filter(
                SlotBooking.partner_id == partner_id,
                SlotBooking.slot_date == slot_date,
                SlotBooking.service_category == category,
                SlotBooking.status != SlotBookingStatus.CANCELLED,
            )
            if exclude_booking_id:
                query = query.filter(SlotBooking.id != exclude_booking_id)
            return query.order_by(SlotBooking.start_time).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading bookings for {partner_id} on {slot_date}: {str(e)}")
            raise RepositoryException(f"Failed to load bookings: {str(e)}")

    def list_for_partner_range(
        self,
        partner_id: str,
        start_date: date,
        end_date: date,
        statuses: Optional[List[SlotBookingStatus]] = None,
    ) -> List[SlotBooking]:
        filters = SlotBookingFilters(
            partner_id=partner_id, date_from=start_date, date_to=end_date, statuses=statuses
        )
        query = self._eager(self._filtered(filters)).order_by(
            SlotBooking.slot_date, SlotBooking.start_time
        )
        return self._execute_query(query)

    def search(
        self, filters: SlotBookingFilters, page: int, limit: int
    ) -> Tuple[List[SlotBooking], int]:
        """Newest first, paginated."""
        query = self._eager(self._filtered(filters)).order_by(
            SlotBooking.created_at.desc(), SlotBooking.id.desc()
        )
        return self.paginate(query, page, limit)

    def list_disputed(
        self, status: Optional[DisputeStatus], page: int, limit: int
    ) -> Tuple[List[SlotBooking], int]:
        query = self._eager(self.db.query(SlotBooking).join(SlotBooking.dispute))
        if status is not None:
            query = query.filter(BookingDispute.status == status)
        query = query.order_by(BookingDispute.created_at.desc(), SlotBooking.id.desc())
        return self.paginate(query, page, limit)

    def _eager(self, query: Query) -> Query:
        return self._apply_eager_loading(query)

    def _filtered(self, filters: SlotBookingFilters) -> Query:
        query = self.db.query(SlotBooking)
        if filters.partner_id:
            query = query.filter(SlotBooking.partner_id == filters.partner_id)
        if filters.customer_id:
            query = query.filter(SlotBooking.customer_id == filters.customer_id)
        if filters.statuses:
            query = query.filter(SlotBooking.status.in_(filters.statuses))
        if filters.service_category:
            query = query.filter(SlotBooking.service_category == filters.service_category)
        if filters.date_from:
            query = query.filter(SlotBooking.slot_date >= filters.date_from)
        if filters.date_to:
            query = query.filter(SlotBooking.slot_date <= filters.date_to)
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            query = query.filter(
                or_(
                    SlotBooking.booking_number.ilike(pattern),
                    SlotBooking.customer_name.ilike(pattern),
                    SlotBooking.partner_name.ilike(pattern),
                    SlotBooking.service_name.ilike(pattern),
                )
            )
        if filters.booked_awaiting_payment is not None:
            awaiting = self._awaiting_payment()
            query = query.filter(
                or_(
                    SlotBooking.status != SlotBookingStatus.BOOKED,
                    awaiting if filters.booked_awaiting_payment else ~awaiting,
                )
            )
        return query

    @staticmethod
    def _awaiting_payment():
        """Uncaptured payment and no timeline entry other than the initial ``booked``."""
        return and_(
            SlotBooking.payment.has(BookingPayment.status == PaymentStatus.PENDING),
            ~SlotBooking.events.any(BookingStatusEvent.event != SlotBookingStatus.BOOKED.value),
        )
