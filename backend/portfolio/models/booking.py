"""
Photography Portfolio Backend — Booking SQLAlchemy Model
=========================================================

What:  ORM model for the `bookings` table (the booking ledger).
Why:   A booking row is the local record of a client's intent to pay; the
       checkout and webhook flows correlate processor events back to it.
Who:   Written by CheckoutService (pending row) and WebhookService (paid
       transition) through BookingLedger; read by the admin routes.

Lifecycle:
    status:          pending → confirmed → completed
                     pending | confirmed → cancelled
                     confirmed → refunded
    payment_status:  pending → paid

Invariants:
    - paid_at is set if and only if payment_status == 'paid'
    - status reaches 'confirmed' in the same UPDATE that sets 'paid'
    - price is computed once at creation and never recomputed
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from portfolio.database import Base
from portfolio.models.types import UTCDateTime, utcnow


class ServiceType(str, enum.Enum):
    PORTRAIT = "portrait"
    WEDDING = "wedding"
    EVENT = "event"
    COMMERCIAL = "commercial"
    SPORTS = "sports"
    NATURE = "nature"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


MIN_DURATION_HOURS = 1
MAX_DURATION_HOURS = 24


class Booking(Base):
    """
    One requested photography engagement.

    Query Patterns:
        - Webhook / success page: WHERE checkout_session_id = :sid
          → idx_bookings_checkout_session_id
        - Webhook transition: UPDATE ... WHERE id = :id AND payment_status = 'pending'
          → primary key
        - Admin list: WHERE status = :s ORDER BY created_at DESC
          → idx_bookings_status, idx_bookings_created_at
    """

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ── Client ────────────────────────────────────────────────────────────
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_email: Mapped[str] = mapped_column(String(255), nullable=False)
    client_phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    # ── Engagement ────────────────────────────────────────────────────────
    service_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    scheduled_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, comment="Duration in hours")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Numeric, not float: rate x hours must be exact
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # ── Lifecycle ─────────────────────────────────────────────────────────
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.PENDING.value,
        server_default=text("'pending'"),
    )
    payment_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
        server_default=text("'pending'"),
    )

    # ── Payment correlation ───────────────────────────────────────────────
    # What: Checkout session id returned by the processor. NULL until the
    # session exists; a request aborted mid-checkout leaves it NULL.
    checkout_session_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        default=None,
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint(
            f"duration >= {MIN_DURATION_HOURS} AND duration <= {MAX_DURATION_HOURS}",
            name="ck_bookings_duration_range",
        ),
        CheckConstraint(
            "(payment_status = 'paid') = (paid_at IS NOT NULL)",
            name="ck_bookings_paid_at_matches_payment_status",
        ),
        Index("idx_bookings_checkout_session_id", "checkout_session_id"),
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_created_at", created_at.desc()),
    )

    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED.value

    def is_completed(self) -> bool:
        return self.status == BookingStatus.COMPLETED.value

    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value and self.paid_at is not None

    def can_be_cancelled(self) -> bool:
        return self.status in (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, service_type='{self.service_type}', "
            f"status='{self.status}', payment_status='{self.payment_status}')>"
        )
