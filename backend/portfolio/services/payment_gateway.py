"""
Photography Portfolio Backend — Payment Processor Interface
============================================================

What:  Abstract contract for the hosted-checkout payment processor.
Why:   CheckoutService and WebhookService only talk to this interface, so
       tests substitute a fake gateway and the Stripe SDK stays confined to
       portfolio.services.stripe_gateway.
How:   Concrete implementations inherit from PaymentGateway and translate
       their SDK errors into the application's exception hierarchy.

Implementations:
    - StripeGateway: Stripe Checkout + Stripe webhook signatures
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CheckoutSessionRequest:
    """Everything the processor needs to open a hosted checkout page."""

    booking_id: int
    service_type: str
    duration: int
    client_name: str
    client_email: str
    hourly_rate: Decimal
    success_url: str
    cancel_url: str
    currency: str = "usd"
    # Processor-side price for this category; None means send inline price data
    price_id: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


@dataclass(frozen=True)
class WebhookEvent:
    """A verified processor event, reduced to the parts we dispatch on."""

    id: str
    type: str
    data_object: Dict[str, Any] = field(default_factory=dict)


class PaymentGateway(ABC):
    """
    Contract:
        - create_checkout_session() either returns a session or raises
          PaymentProcessorError / PaymentProcessorUnavailableError
        - verify_webhook() either returns a verified event or raises
          WebhookSignatureError; it never returns unverified data
    """

    @abstractmethod
    async def create_checkout_session(self, request: CheckoutSessionRequest) -> CheckoutSession:
        ...

    @abstractmethod
    def verify_webhook(self, payload: bytes, signature_header: str, secret: str) -> WebhookEvent:
        """
        Verify `signature_header` over the raw `payload` with `secret` and
        parse the event.

        Args:
            payload:           Raw request body, byte for byte as received
            signature_header:  Value of the processor's signature header
            secret:            Shared webhook signing secret
        """
        ...

    @property
    def is_configured(self) -> bool:
        """True when the gateway has the credentials to create sessions."""
        return True
