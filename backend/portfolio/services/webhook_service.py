"""
Photography Portfolio Backend — Webhook Reconciler
===================================================

What:  Verifies inbound payment processor events and applies them to the
       booking ledger.
Why:   The processor's signed webhook is the only authoritative signal that
       a booking was paid. The browser redirect to the success page proves
       nothing.
How:   Verify signature → dispatch on event type → conditional ledger update.
Who:   Called by POST /api/stripe/webhook with the raw request body.

Dispatch:
    checkout.session.completed      → BookingLedger.mark_paid
    payment_intent.succeeded        → logged
    payment_intent.payment_failed   → logged
    anything else                   → acknowledged

Delivery semantics:
    The processor delivers at least once and may deliver concurrently.
    mark_paid is a single conditional UPDATE, so duplicates are no-ops.
    An event that names an unknown booking raises WebhookProcessingError
    (HTTP 500), which makes the processor retry it later. A payment for a
    cancelled or completed booking is logged at ERROR and acknowledged:
    no redelivery can apply it, so it needs manual follow-up.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.exceptions import (
    BookingStateError,
    DatabaseError,
    NotFoundError,
    WebhookProcessingError,
    WebhookSignatureError,
)
from portfolio.services.booking_ledger import BookingLedger, booking_ledger
from portfolio.services.payment_gateway import PaymentGateway, WebhookEvent

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"

ACKNOWLEDGEMENT: Dict[str, Any] = {"received": True}


class WebhookService:
    """
    Args:
        gateway:         Verifies signatures and parses events
        webhook_secret:  Shared signing secret; empty means every event is rejected
        ledger:          Booking persistence
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        webhook_secret: str,
        ledger: BookingLedger = booking_ledger,
    ):
        self.gateway = gateway
        self.webhook_secret = webhook_secret
        self.ledger = ledger

    async def handle(
        self,
        db: AsyncSession,
        payload: bytes,
        signature_header: Optional[str],
    ) -> Dict[str, Any]:
        """
        Verify and apply one webhook delivery.

        Returns:
            {"received": True} once the event is verified and dispatched

        Raises:
            WebhookSignatureError:  verification failed; nothing was read (→ 400)
            WebhookProcessingError: verified event could not be applied (→ 500)
            DatabaseError:          store failure during the transition (→ 500)
        """
        if not self.webhook_secret:
            logger.error("Rejecting webhook: STRIPE_WEBHOOK_SECRET is not configured")
            raise WebhookSignatureError(context={"reason": "webhook secret not configured"})

        try:
            event = self.gateway.verify_webhook(payload, signature_header or "", self.webhook_secret)
        except WebhookSignatureError as e:
            logger.warning("Webhook signature verification failed: %s", e.context.get("reason"))
            raise

        logger.info("Webhook event %s received (type=%s)", event.id, event.type)

        if event.type == CHECKOUT_SESSION_COMPLETED:
            await self._handle_checkout_completed(db, event)
        elif event.type == PAYMENT_INTENT_SUCCEEDED:
            logger.info("Payment intent %s succeeded", event.data_object.get("id"))
        elif event.type == PAYMENT_INTENT_FAILED:
            error = event.data_object.get("last_payment_error") or {}
            logger.warning(
                "Payment intent %s failed: %s",
                event.data_object.get("id"),
                error.get("message") if isinstance(error, dict) else error,
            )
        else:
            logger.debug("Ignoring webhook event type %s", event.type)

        return dict(ACKNOWLEDGEMENT)

    async def _handle_checkout_completed(self, db: AsyncSession, event: WebhookEvent) -> None:
        session = event.data_object
        session_id = session.get("id")
        if not isinstance(session_id, str):
            session_id = None

        booking_id = await self._resolve_booking_id(db, session, session_id)
        if booking_id is None:
            logger.error(
                "checkout.session.completed %s names no known booking (session=%s)",
                event.id,
                session_id,
            )
            raise WebhookProcessingError(
                message="Booking not found for checkout session",
                context={"event_id": event.id, "session_id": session_id},
            )

        try:
            await self.ledger.mark_paid(db, booking_id, session_id=session_id)
        except NotFoundError as e:
            logger.error(
                "checkout.session.completed %s references missing booking %s",
                event.id,
                booking_id,
            )
            raise WebhookProcessingError(
                message="Booking not found for checkout session",
                context={"event_id": event.id, "booking_id": booking_id},
            ) from e
        except BookingStateError as e:
            logger.error(
                "checkout.session.completed %s not applied: booking %s is %s (payment %s)",
                event.id,
                booking_id,
                e.context.get("status"),
                e.context.get("payment_status"),
            )
            return

        # Acknowledge only what is durable
        try:
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Commit failed for webhook event %s: %s", event.id, str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to update booking payment status",
                context={"event_id": event.id, "booking_id": booking_id},
            ) from e

    async def _resolve_booking_id(
        self,
        db: AsyncSession,
        session: Dict[str, Any],
        session_id: Optional[str],
    ) -> Optional[int]:
        """client_reference_id, then metadata.booking_id, then a session id lookup."""
        metadata = session.get("metadata")
        candidates = [
            session.get("client_reference_id"),
            metadata.get("booking_id") if isinstance(metadata, dict) else None,
        ]
        for candidate in candidates:
            booking_id = _as_booking_id(candidate)
            if booking_id is not None:
                return booking_id

        if session_id:
            booking = await self.ledger.find_by_checkout_session(db, session_id)
            if booking is not None:
                return booking.id
        return None


def _as_booking_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None
