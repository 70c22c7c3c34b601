"""
Photography Portfolio Backend — Checkout Orchestrator
======================================================

What:  Turns a booking request into a pending booking plus a hosted
       checkout session at the payment processor.
Why:   Payment happens on the processor's page; all we can do up front is
       record the client's intent and hand back a redirect URL.
How:   Validate → price → persist & commit → create session → attach id.
Who:   Called by POST /api/stripe/checkout.

Orchestration Flow:
    ┌──────────┐    ┌──────────┐    ┌────────────────┐    ┌──────────────┐    ┌──────────┐
    │ Validate │───▶│  Price   │───▶│ Pending row    │───▶│ Stripe       │───▶│ Attach   │
    │ request  │    │ (Decimal)│    │ (COMMIT)       │    │ session      │    │ session  │
    └──────────┘    └──────────┘    └────────────────┘    └──────────────┘    └──────────┘

    On failure:
    - Validation: ValidationError (400), nothing written
    - Processor:  PaymentProcessorError (500/503), the pending row is kept
                  without a session id
    - Store:      DatabaseError (500)

The pending row is committed before the processor is contacted, so a
payment can never complete for a booking that does not exist locally.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.exceptions import DatabaseError, ValidationError
from portfolio.models.booking import MAX_DURATION_HOURS, MIN_DURATION_HOURS, ServiceType
from portfolio.services.booking_ledger import BookingLedger, booking_ledger
from portfolio.services.payment_gateway import CheckoutSessionRequest, PaymentGateway
from portfolio.services.pricing import DEFAULT_HOURLY_RATE, HOURLY_RATES, compute_price, hourly_rate

logger = logging.getLogger(__name__)

# Accepted scheduled_date formats, tried in order; both are read as UTC
DATE_FORMATS = ("%Y-%m-%dT%H:%M:%SZ", "%Y-%m-%d")

VALID_SERVICE_TYPES = frozenset(s.value for s in ServiceType)


@dataclass
class BookingRequest:
    """A client's booking request as received from the checkout form."""

    service_type: str
    duration: Any
    client_name: str
    client_email: str
    scheduled_date: str
    client_phone: str = ""
    description: str = ""
    location: str = ""
    notes: str = ""


@dataclass(frozen=True)
class CheckoutResult:
    checkout_url: str
    session_id: str
    booking_id: int


def parse_scheduled_date(value: str) -> datetime:
    """
    Parse `YYYY-MM-DDTHH:MM:SSZ` or `YYYY-MM-DD` into an aware UTC datetime.

    Raises:
        ValidationError: any other shape
    """
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except (TypeError, ValueError):
            continue
    raise ValidationError(
        message="Invalid date format. Use ISO format (YYYY-MM-DDTHH:MM:SSZ) or YYYY-MM-DD",
        field="scheduled_date",
    )


class CheckoutService:
    """
    Checkout orchestration with its collaborators injected.

    Args:
        gateway:       Payment processor port
        success_url:   Redirect after payment; may contain {CHECKOUT_SESSION_ID}
        cancel_url:    Redirect when the client abandons the checkout page
        currency:      ISO currency code for inline prices
        price_ids:     service_type → processor price id (hourly)
        rates:         service_type → hourly rate; unknown types get default_rate
        ledger:        Booking persistence
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        success_url: str,
        cancel_url: str,
        currency: str = "usd",
        price_ids: Optional[Mapping[str, str]] = None,
        rates: Optional[Mapping[str, Decimal]] = None,
        default_rate: Decimal = DEFAULT_HOURLY_RATE,
        ledger: BookingLedger = booking_ledger,
    ):
        self.gateway = gateway
        self.success_url = success_url
        self.cancel_url = cancel_url
        self.currency = currency
        self.price_ids = dict(price_ids or {})
        self.rates = dict(HOURLY_RATES if rates is None else rates)
        self.default_rate = default_rate
        self.ledger = ledger

    async def initiate(self, db: AsyncSession, request: BookingRequest) -> CheckoutResult:
        """
        Create a pending booking and its checkout session.

        Raises:
            ValidationError: bad service type, duration, date or client details
            PaymentProcessorError / PaymentProcessorUnavailableError:
                the processor failed; the pending booking stays in the ledger
            DatabaseError: the booking could not be stored
        """
        # ── Step 1: Validate ──────────────────────────────────────────────
        service_type = self._validate_service_type(request.service_type)
        duration = self._validate_duration(request.duration)
        client_name = (request.client_name or "").strip()
        client_email = (request.client_email or "").strip()
        if not client_name:
            raise ValidationError(message="Client name is required", field="client_name")
        if not client_email:
            raise ValidationError(message="Client email is required", field="client_email")
        scheduled_date = parse_scheduled_date(request.scheduled_date)

        # ── Step 2: Price ─────────────────────────────────────────────────
        rate = hourly_rate(service_type, self.rates, self.default_rate)
        price = compute_price(service_type, duration, self.rates, self.default_rate)

        # ── Step 3: Persist the pending booking and commit ────────────────
        fields: Dict[str, Any] = {
            "client_name": client_name,
            "client_email": client_email,
            "client_phone": request.client_phone or "",
            "service_type": service_type,
            "description": request.description or "",
            "location": request.location or "",
            "notes": request.notes or "",
            "scheduled_date": scheduled_date,
            "duration": duration,
            "price": price,
        }
        booking = await self.ledger.create_pending(db, fields)
        await self._commit(db, booking.id)

        # ── Step 4: Create the checkout session ───────────────────────────
        session_request = CheckoutSessionRequest(
            booking_id=booking.id,
            service_type=service_type,
            duration=duration,
            client_name=client_name,
            client_email=client_email,
            hourly_rate=rate,
            success_url=self.success_url,
            cancel_url=self.cancel_url,
            currency=self.currency,
            price_id=self.price_ids.get(service_type),
            description=booking.description,
        )
        try:
            session = await self.gateway.create_checkout_session(session_request)
        except Exception:
            logger.warning(
                "Checkout session creation failed; booking %s stays pending without a session",
                booking.id,
            )
            raise

        # ── Step 5: Attach the session id ─────────────────────────────────
        await self.ledger.attach_checkout_session(db, booking, session.session_id)
        await self._commit(db, booking.id)

        logger.info(
            "Checkout initiated for booking %s (session=%s, price=%s)",
            booking.id,
            session.session_id,
            price,
        )
        return CheckoutResult(
            checkout_url=session.url,
            session_id=session.session_id,
            booking_id=booking.id,
        )

    @staticmethod
    def _validate_service_type(value: str) -> str:
        normalized = (value or "").strip().lower()
        if normalized not in VALID_SERVICE_TYPES:
            raise ValidationError(
                message=(
                    "Invalid service type. Must be one of: "
                    + ", ".join(s.value for s in ServiceType)
                ),
                field="service_type",
            )
        return normalized

    @staticmethod
    def _validate_duration(value: Any) -> int:
        # bool is an int subclass and never a valid duration
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(message="Duration must be a whole number of hours", field="duration")
        if not MIN_DURATION_HOURS <= value <= MAX_DURATION_HOURS:
            raise ValidationError(
                message=(
                    f"Duration must be between {MIN_DURATION_HOURS} "
                    f"and {MAX_DURATION_HOURS} hours"
                ),
                field="duration",
            )
        return value

    @staticmethod
    async def _commit(db: AsyncSession, booking_id: int) -> None:
        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Commit failed for booking %s: %s", booking_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create booking",
                context={"booking_id": booking_id},
            ) from e
