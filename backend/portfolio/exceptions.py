"""
Photography Portfolio Backend — Custom Exception Hierarchy
===========================================================

What:  Application-specific exceptions for the auth and booking/payment flows.
Why:   Each exception maps to one HTTP status code in a global handler, so
       services raise domain errors and never build HTTP responses.
How:   Each exception carries a user-safe message and an optional context
       dict. The context is logged server-side and never returned.

Exception Hierarchy:
    PortfolioError (base)
    ├── ValidationError                   → 400 Bad Request
    ├── AuthError                         → 401 Unauthorized
    │   ├── MissingCredentialsError       → 401 (no / malformed Authorization header)
    │   ├── InvalidTokenError             → 401 (bad signature, expired, malformed)
    │   └── ForbiddenError                → 403 Forbidden (authenticated, wrong role)
    ├── NotFoundError                     → 404 Not Found
    ├── BookingStateError                 → 409 Conflict
    ├── RateLimitExceededError            → 429 Too Many Requests
    ├── WebhookSignatureError             → 400 Bad Request (forged / unverifiable webhook)
    ├── WebhookProcessingError            → 500 (verified event that cannot be applied)
    ├── PaymentProcessorError             → 500 (processor rejected the request)
    │   └── PaymentProcessorUnavailableError → 503 (transient failure, retries exhausted)
    └── DatabaseError                     → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class PortfolioError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PortfolioError):
    """
    Raised when client input fails a business rule.

    When:  Unknown service type, unparseable date, duration out of range,
           missing client details.
    HTTP:  400 Bad Request (schema-level problems stay FastAPI's 422)
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthError(PortfolioError):
    """
    Raised when a request cannot be authenticated.

    The message is deliberately generic. Which check failed (signature,
    expiry, claim shape) goes into `context` for the logs only.
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MissingCredentialsError(AuthError):
    """No Authorization header, or one without the Bearer prefix."""

    def __init__(
        self,
        message: str = "Authorization header is required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidTokenError(AuthError):
    """Token failed signature, expiry, issuer or claim validation."""

    def __init__(
        self,
        message: str = "Invalid or expired token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(AuthError):
    """
    Authenticated caller lacks the required role.

    HTTP:  403 Forbidden, distinct from the 401 of an authentication failure.
    """

    status_code = 403

    def __init__(
        self,
        message: str = "Admin access required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PortfolioError):
    """
    Raised when a requested resource does not exist.

    HTTP:  404 for user-facing lookups. The webhook reconciler converts it
           into WebhookProcessingError instead of acknowledging the event.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class BookingStateError(PortfolioError):
    """A booking transition was requested from a state that does not allow it."""

    status_code = 409

    def __init__(
        self,
        message: str = "The booking cannot change to the requested state",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(PortfolioError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:  429 Too Many Requests, with a Retry-After header.
    """

    status_code = 429

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class WebhookSignatureError(PortfolioError):
    """
    Raised when an inbound webhook fails signature verification.

    This is the only trust boundary in front of payment confirmation:
    nothing in the payload is read until verification passes.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Invalid webhook signature",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class WebhookProcessingError(PortfolioError):
    """
    A verified webhook event could not be applied (e.g. unknown booking).

    HTTP:  500 so the processor keeps retrying instead of treating the
           event as delivered.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "The webhook event could not be processed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PaymentProcessorError(PortfolioError):
    """
    The payment processor rejected a request outright (bad parameters,
    authentication with the processor, unknown price id, ...).

    HTTP:  500. Not retried. The pending booking is kept.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Failed to create checkout session",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PaymentProcessorUnavailableError(PaymentProcessorError):
    """
    The processor could not be reached (timeouts, connection errors,
    rate limiting) after all retry attempts.

    HTTP:  503 with Retry-After. The pending booking is kept.
    """

    status_code = 503

    def __init__(
        self,
        message: str = "The payment service is temporarily unavailable. Please try again shortly.",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(PortfolioError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; SQL, constraint
    names and driver messages are only logged.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
