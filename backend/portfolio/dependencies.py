"""
Photography Portfolio Backend — Dependency Providers
=====================================================

What:  FastAPI providers that build the services from settings.
Why:   This is the one place where configuration meets the services; below
       it every secret, URL and table arrives as a constructor argument.
How:   Stateless, process-wide collaborators (token service, payment
       gateway) are cached with lru_cache. Tests replace any provider via
       app.dependency_overrides.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends

from portfolio.config import settings
from portfolio.services.auth_service import AuthService
from portfolio.services.checkout_service import CheckoutService
from portfolio.services.payment_gateway import PaymentGateway
from portfolio.services.stripe_gateway import StripeGateway
from portfolio.services.token_service import TokenService
from portfolio.services.webhook_service import WebhookService


@lru_cache
def get_token_service() -> TokenService:
    return TokenService(
        secret=settings.jwt_secret,
        ttl=timedelta(hours=settings.jwt_expires_in_hours),
        issuer=settings.jwt_issuer,
    )


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    return StripeGateway(
        secret_key=settings.stripe_secret_key,
        timeout_seconds=settings.stripe_timeout_seconds,
        max_attempts=settings.retry_max_attempts,
        min_wait=settings.retry_min_wait,
        max_wait=settings.retry_max_wait,
    )


def get_auth_service(tokens: TokenService = Depends(get_token_service)) -> AuthService:
    return AuthService(tokens)


def get_checkout_service(
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutService:
    return CheckoutService(
        gateway=gateway,
        success_url=settings.checkout_success_url,
        cancel_url=settings.checkout_cancel_url,
        currency=settings.stripe_currency,
        price_ids=settings.stripe_price_ids,
    )


def get_webhook_service(
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> WebhookService:
    return WebhookService(gateway=gateway, webhook_secret=settings.stripe_webhook_secret)
