"""
Photography Portfolio Backend — Booking Ledger
===============================================

What:  All reads and writes of Booking rows.
Why:   The booking lifecycle has exactly two writers (checkout creates a
       pending row, the webhook marks it paid). Keeping both here means the
       lifecycle rules live next to the queries that enforce them.
How:   Receives the request's AsyncSession per call; holds no state.
Who:   CheckoutService, WebhookService and the admin / success routes.

Payment transition (mark_paid):
    UPDATE bookings
       SET status = 'confirmed', payment_status = 'paid', paid_at = :now,
           checkout_session_id = COALESCE(checkout_session_id, :sid)
     WHERE id = :id AND status = 'pending' AND payment_status = 'pending'

    One conditional statement, so two concurrent deliveries of the same
    webhook cannot both apply it: the loser updates zero rows, re-reads the
    booking, sees it already paid and returns it unchanged.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import asc, desc, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.exceptions import BookingStateError, DatabaseError, NotFoundError
from portfolio.models.booking import Booking, BookingStatus, PaymentStatus
from portfolio.models.types import utcnow

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

SORTABLE_COLUMNS = {
    "created_at": Booking.created_at,
    "scheduled_date": Booking.scheduled_date,
    "price": Booking.price,
}


@dataclass
class BookingFilter:
    """Admin list filters; every field is optional."""

    status: Optional[str] = None
    service_type: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None
    page: int = 1
    page_size: int = 20
    sort_by: str = "created_at"
    sort_order: str = "desc"


class BookingLedger:
    """
    Persistence and lifecycle rules for bookings.

    Error Handling Strategy:
        Domain errors (NotFoundError, BookingStateError) propagate as-is.
        SQLAlchemy errors are logged and wrapped in DatabaseError; they are
        never swallowed.
    """

    async def create_pending(self, db: AsyncSession, fields: Dict[str, Any]) -> Booking:
        """
        Insert a booking in pending/pending state and flush it to get an id.

        The caller owns the commit; CheckoutService commits right away so the
        row survives a later payment processor failure.
        """
        booking = Booking(
            **fields,
            status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            paid_at=None,
        )
        try:
            db.add(booking)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create booking: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create booking",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info(
            "Booking %s created (service=%s, duration=%dh, price=%s)",
            booking.id,
            booking.service_type,
            booking.duration,
            booking.price,
        )
        return booking

    async def attach_checkout_session(
        self,
        db: AsyncSession,
        booking: Booking,
        session_id: str,
    ) -> Booking:
        """Store the processor's session id on the booking."""
        booking.checkout_session_id = session_id
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to store checkout session %s on booking %s: %s",
                session_id,
                booking.id,
                str(e),
                exc_info=True,
            )
            raise DatabaseError(
                message="Failed to update booking with session ID",
                context={"booking_id": booking.id},
            ) from e
        return booking

    async def get(self, db: AsyncSession, booking_id: int) -> Booking:
        """
        Raises:
            NotFoundError: no booking with this id (→ 404)
        """
        try:
            result = await db.execute(select(Booking).where(Booking.id == booking_id))
            booking = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching booking %s: %s", booking_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the booking. Please try again.",
                context={"booking_id": booking_id},
            ) from e

        if booking is None:
            raise NotFoundError(resource="booking", resource_id=str(booking_id))
        return booking

    async def find_by_checkout_session(
        self,
        db: AsyncSession,
        session_id: str,
    ) -> Optional[Booking]:
        if not session_id:
            return None
        try:
            result = await db.execute(
                select(Booking).where(Booking.checkout_session_id == session_id)
            )
            return result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("Database error looking up session %s: %s", session_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the booking. Please try again.",
                context={"checkout_session_id": session_id},
            ) from e

    async def get_by_checkout_session(self, db: AsyncSession, session_id: str) -> Booking:
        booking = await self.find_by_checkout_session(db, session_id)
        if booking is None:
            raise NotFoundError(resource="booking", resource_id=session_id)
        return booking

    async def mark_paid(
        self,
        db: AsyncSession,
        booking_id: int,
        session_id: Optional[str] = None,
        paid_at: Optional[datetime] = None,
    ) -> Booking:
        """
        Apply the pending → confirmed/paid transition exactly once.

        Returns:
            The booking after the transition, or unchanged if it was already
            paid (duplicate webhook delivery).

        Raises:
            NotFoundError:     no booking with this id
            BookingStateError: booking is neither pending nor already paid
                               (e.g. cancelled before the payment arrived)
            DatabaseError:     the UPDATE itself failed
        """
        values: Dict[str, Any] = {
            "status": BookingStatus.CONFIRMED.value,
            "payment_status": PaymentStatus.PAID.value,
            "paid_at": paid_at or utcnow(),
            "updated_at": utcnow(),
        }
        if session_id:
            values["checkout_session_id"] = func.coalesce(Booking.checkout_session_id, session_id)

        stmt = (
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.status == BookingStatus.PENDING.value,
                Booking.payment_status == PaymentStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("Failed to mark booking %s paid: %s", booking_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to update booking payment status",
                context={"booking_id": booking_id},
            ) from e

        booking = await self._reload(db, booking_id)

        if result.rowcount == 1:
            logger.info(
                "Booking %s confirmed and paid (session=%s)",
                booking_id,
                booking.checkout_session_id,
            )
            return booking

        if booking.payment_status == PaymentStatus.PAID.value:
            logger.info("Booking %s already paid; duplicate payment event ignored", booking_id)
            return booking

        raise BookingStateError(
            message=f"Booking cannot be marked paid while {booking.status}",
            context={
                "booking_id": booking_id,
                "status": booking.status,
                "payment_status": booking.payment_status,
            },
        )

    async def list(
        self,
        db: AsyncSession,
        filters: Optional[BookingFilter] = None,
    ) -> Tuple[List[Booking], int]:
        """
        Paginated, filtered ledger listing.

        Returns:
            (bookings on the requested page, total matching rows)
        """
        filters = filters or BookingFilter()
        page = max(filters.page, 1)
        page_size = min(max(filters.page_size, 1), MAX_PAGE_SIZE)

        conditions = []
        if filters.status:
            conditions.append(Booking.status == filters.status)
        if filters.service_type:
            conditions.append(Booking.service_type == filters.service_type)
        if filters.date_from:
            conditions.append(Booking.scheduled_date >= filters.date_from)
        if filters.date_to:
            conditions.append(Booking.scheduled_date <= filters.date_to)
        if filters.search:
            pattern = f"%{filters.search.lower()}%"
            conditions.append(
                or_(
                    func.lower(Booking.client_name).like(pattern),
                    func.lower(Booking.client_email).like(pattern),
                    func.lower(Booking.location).like(pattern),
                )
            )

        column = SORTABLE_COLUMNS.get(filters.sort_by, Booking.created_at)
        direction = asc if filters.sort_order == "asc" else desc

        query = (
            select(Booking)
            .where(*conditions)
            .order_by(direction(column), direction(Booking.id))
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        count_query = select(func.count(Booking.id)).where(*conditions)

        try:
            result = await db.execute(query)
            bookings = list(result.scalars().all())
            count_result = await db.execute(count_query)
            total = count_result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing bookings: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve bookings. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        return bookings, total

    async def _reload(self, db: AsyncSession, booking_id: int) -> Booking:
        # populate_existing: the bulk UPDATE bypassed the identity map
        try:
            result = await db.execute(
                select(Booking)
                .where(Booking.id == booking_id)
                .execution_options(populate_existing=True)
            )
            booking = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error reloading booking %s: %s", booking_id, str(e))
            raise DatabaseError(context={"booking_id": booking_id}) from e

        if booking is None:
            raise NotFoundError(resource="booking", resource_id=str(booking_id))
        return booking


# ── Singleton Instance ────────────────────────────────────────────────────
booking_ledger = BookingLedger()
