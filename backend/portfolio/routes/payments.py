"""
Photography Portfolio Backend — Payment Route Handlers
=======================================================

What:  The booking checkout flow under /api/stripe:
           POST /checkout   create a pending booking and a checkout session
           GET  /success    status of the booking behind a checkout session
           GET  /cancel     acknowledgement for an abandoned checkout
           POST /webhook    signed payment events from Stripe
Who:   The public booking form, the frontend redirect pages, and Stripe.

Trust Model:
    The success redirect is just the browser coming back; it proves nothing
    and never changes a booking. Only the signed webhook confirms payment.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import get_db_session
from portfolio.dependencies import get_checkout_service, get_webhook_service
from portfolio.exceptions import ValidationError
from portfolio.middleware.auth import optional_auth
from portfolio.models.booking import PaymentStatus
from portfolio.schemas.booking import (
    BookingResponse,
    BookingStatusResponse,
    CheckoutRequest,
    CheckoutResponse,
    PaymentSuccessResponse,
)
from portfolio.schemas.common import ErrorResponse, MessageResponse, WebhookAck
from portfolio.services.booking_ledger import booking_ledger
from portfolio.services.checkout_service import BookingRequest, CheckoutService
from portfolio.services.token_service import TokenClaims
from portfolio.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["Payments"])

STRIPE_SIGNATURE_HEADER = "Stripe-Signature"


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    responses={
        400: {"description": "Invalid booking request", "model": ErrorResponse},
        500: {"description": "Booking or checkout session could not be created", "model": ErrorResponse},
        503: {"description": "Payment processor temporarily unavailable", "model": ErrorResponse},
    },
    summary="Create a booking and its Stripe checkout session",
)
async def create_checkout(
    body: CheckoutRequest,
    db: AsyncSession = Depends(get_db_session),
    checkout: CheckoutService = Depends(get_checkout_service),
) -> CheckoutResponse:
    result = await checkout.initiate(
        db,
        BookingRequest(
            service_type=body.service_type,
            duration=body.duration,
            client_name=body.client_name,
            client_email=body.client_email,
            client_phone=body.client_phone,
            scheduled_date=body.scheduled_date,
            description=body.description,
            location=body.location,
            notes=body.notes,
        ),
    )
    return CheckoutResponse(
        checkout_url=result.checkout_url,
        session_id=result.session_id,
        booking_id=result.booking_id,
    )


@router.get(
    "/success",
    response_model=PaymentSuccessResponse,
    responses={
        400: {"description": "Missing session ID", "model": ErrorResponse},
        404: {"description": "No booking for this session", "model": ErrorResponse},
    },
    summary="Booking status after the checkout redirect",
)
async def payment_success(
    session_id: Optional[str] = Query(default=None, max_length=255),
    identity: Optional[TokenClaims] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db_session),
) -> PaymentSuccessResponse:
    if not session_id:
        raise ValidationError(message="Missing session ID", field="session_id")

    booking = await booking_ledger.get_by_checkout_session(db, session_id)

    if booking.payment_status == PaymentStatus.PAID.value:
        message = "Payment successful! Your booking is confirmed."
    else:
        # The webhook usually lands a moment after the redirect
        message = "Payment received. Your booking will be confirmed shortly."

    view = (
        BookingResponse.model_validate(booking)
        if identity is not None and identity.is_admin
        else BookingStatusResponse.model_validate(booking)
    )
    return PaymentSuccessResponse(message=message, booking=view)


@router.get(
    "/cancel",
    response_model=MessageResponse,
    summary="Acknowledge an abandoned checkout",
)
async def payment_cancel() -> MessageResponse:
    return MessageResponse(
        message="Payment was cancelled. Your booking has not been confirmed.",
    )


@router.post(
    "/webhook",
    response_model=WebhookAck,
    responses={
        400: {"description": "Signature verification failed", "model": ErrorResponse},
        500: {"description": "Verified event could not be applied; Stripe will retry", "model": ErrorResponse},
    },
    summary="Stripe webhook endpoint",
    include_in_schema=False,
)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
    webhooks: WebhookService = Depends(get_webhook_service),
) -> WebhookAck:
    # The signature covers the exact bytes; never parse before verifying
    payload = await request.body()
    result = await webhooks.handle(db, payload, request.headers.get(STRIPE_SIGNATURE_HEADER))
    return WebhookAck(**result)
