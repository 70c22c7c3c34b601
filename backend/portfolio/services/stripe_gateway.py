"""
Photography Portfolio Backend — Stripe Payment Gateway
=======================================================

What:  PaymentGateway implementation backed by Stripe Checkout.
Why:   Stripe hosts the card form; we only create a checkout session per
       booking and later trust Stripe's signed webhook about the outcome.
How:   The Stripe SDK is synchronous, so each call runs in a worker thread
       under an explicit timeout. Transient failures are retried with
       exponential backoff and jitter (tenacity); everything else fails fast.
Who:   Built once by portfolio.dependencies.get_payment_gateway; called by
       CheckoutService (sessions) and WebhookService (signatures).

Resilience Strategy:
    ┌──────────────────────────────┬──────────┬───────────────────────────────┐
    │ Failure                      │ Retried? │ Surfaces as                   │
    ├──────────────────────────────┼──────────┼───────────────────────────────┤
    │ stripe.APIConnectionError    │ yes      │ PaymentProcessorUnavailable   │
    │ stripe.RateLimitError        │ yes      │ PaymentProcessorUnavailable   │
    │ timeout (STRIPE_TIMEOUT_...) │ yes      │ PaymentProcessorUnavailable   │
    │ any other stripe.StripeError │ no       │ PaymentProcessorError         │
    └──────────────────────────────┴──────────┴───────────────────────────────┘

    Every attempt carries the same idempotency key, so a retry after a
    response was lost never opens a second session for one booking.
"""

import asyncio
import logging
import time
from typing import Any, Dict

import stripe
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from portfolio.exceptions import (
    PaymentProcessorError,
    PaymentProcessorUnavailableError,
    WebhookSignatureError,
)
from portfolio.services.payment_gateway import (
    CheckoutSession,
    CheckoutSessionRequest,
    PaymentGateway,
    WebhookEvent,
)
from portfolio.services.pricing import to_minor_units

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    stripe.APIConnectionError,
    stripe.RateLimitError,
    asyncio.TimeoutError,
)

# Stripe's own default tolerance for signature timestamps (seconds)
WEBHOOK_TOLERANCE_SECONDS = 300


class StripeGateway(PaymentGateway):
    """
    Stripe Checkout adapter.

    Args:
        secret_key:       Stripe secret API key, passed per request so no
                          module-global SDK state is touched.
        timeout_seconds:  Upper bound for one create-session attempt.
        max_attempts:     Attempts for transient failures (1 = no retry).
        min_wait/max_wait: Backoff bounds in seconds.
    """

    def __init__(
        self,
        secret_key: str,
        timeout_seconds: float = 10.0,
        max_attempts: int = 3,
        min_wait: float = 1.0,
        max_wait: float = 8.0,
    ):
        self._secret_key = secret_key
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait

        logger.info(
            "StripeGateway initialized (configured=%s, timeout=%.1fs, attempts=%d)",
            self.is_configured,
            timeout_seconds,
            max_attempts,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._secret_key)

    # ── Checkout ──────────────────────────────────────────────────────────

    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        """
        Open a hosted checkout session for one booking.

        Raises:
            PaymentProcessorUnavailableError: transient failures exhausted all attempts
            PaymentProcessorError: Stripe rejected the request, or no API key
        """
        if not self.is_configured:
            raise PaymentProcessorError(context={"reason": "STRIPE_SECRET_KEY is not set"})

        params = self._session_params(request)
        idempotency_key = f"checkout-booking-{request.booking_id}"

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential_jitter(
                    initial=self.min_wait,
                    max=self.max_wait,
                    jitter=min(1.0, self.max_wait),
                ),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=False,
            ):
                with attempt:
                    session = await self._create_once(params, idempotency_key, request.booking_id)
        except RetryError as e:
            last = e.last_attempt.exception() if e.last_attempt else None
            logger.error(
                "Stripe unavailable for booking %s after %d attempts: %s",
                request.booking_id,
                self.max_attempts,
                type(last).__name__ if last else "unknown",
            )
            raise PaymentProcessorUnavailableError(
                retry_after=int(self.max_wait) or None,
                context={"booking_id": request.booking_id, "attempts": self.max_attempts},
            ) from last
        except stripe.StripeError as e:
            logger.error(
                "Stripe rejected checkout session for booking %s: %s (code=%s)",
                request.booking_id,
                e.user_message or str(e),
                getattr(e, "code", None),
            )
            raise PaymentProcessorError(
                context={"booking_id": request.booking_id, "error_type": type(e).__name__},
            ) from e

        session_id = session["id"]
        url = session["url"]
        if not session_id or not url:
            raise PaymentProcessorError(
                context={"booking_id": request.booking_id, "reason": "session without id or url"},
            )
        return CheckoutSession(session_id=session_id, url=url)

    async def _create_once(
        self,
        params: Dict[str, Any],
        idempotency_key: str,
        booking_id: int,
    ) -> Any:
        start_time = time.time()
        try:
            session = await asyncio.wait_for(
                asyncio.to_thread(
                    stripe.checkout.Session.create,
                    api_key=self._secret_key,
                    idempotency_key=idempotency_key,
                    **params,
                ),
                timeout=self.timeout_seconds,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "Stripe create session for booking %s failed after %.0fms: %s",
                booking_id,
                duration_ms,
                type(e).__name__,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe checkout session %s created for booking %s in %.0fms",
            session["id"],
            booking_id,
            duration_ms,
        )
        return session

    @staticmethod
    def _session_params(request: CheckoutSessionRequest) -> Dict[str, Any]:
        """Build the Checkout Session payload (one line item, quantity = hours)."""
        if request.price_id:
            line_item: Dict[str, Any] = {"price": request.price_id, "quantity": request.duration}
        else:
            line_item = {
                "price_data": {
                    "currency": request.currency,
                    "unit_amount": to_minor_units(request.hourly_rate),
                    "product_data": {
                        "name": f"{request.service_type.title()} photography (per hour)",
                    },
                },
                "quantity": request.duration,
            }

        return {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [line_item],
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
            "customer_email": request.client_email,
            "client_reference_id": str(request.booking_id),
            "metadata": {
                "booking_id": str(request.booking_id),
                "service_type": request.service_type,
                "duration": str(request.duration),
                "client_name": request.client_name,
            },
        }

    # ── Webhooks ──────────────────────────────────────────────────────────

    def verify_webhook(self, payload: bytes, signature_header: str, secret: str) -> WebhookEvent:
        """
        Verify the Stripe-Signature header and parse the event.

        Raises:
            WebhookSignatureError: missing secret/header, bad or stale
                                   signature, or a body that is not an event
        """
        if not secret:
            raise WebhookSignatureError(context={"reason": "webhook secret not configured"})
        if not signature_header:
            raise WebhookSignatureError(
                message="Missing Stripe-Signature header",
                context={"reason": "missing signature header"},
            )

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature_header,
                secret,
                tolerance=WEBHOOK_TOLERANCE_SECONDS,
            )
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(context={"reason": str(e)}) from e
        except ValueError as e:
            # Undecodable or non-JSON body behind a valid signature
            raise WebhookSignatureError(
                message="Invalid webhook payload",
                context={"reason": str(e)},
            ) from e

        body = event.to_dict()
        event_type = body.get("type")
        if not isinstance(event_type, str):
            raise WebhookSignatureError(
                message="Invalid webhook payload",
                context={"reason": "payload is not an event"},
            )

        data = body.get("data")
        data_object = data.get("object") if isinstance(data, dict) else None
        return WebhookEvent(
            id=str(body.get("id", "")),
            type=event_type,
            data_object=dict(data_object) if isinstance(data_object, dict) else {},
        )
