"""
Photography Portfolio Backend — FastAPI Application Factory
============================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn portfolio.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware Chain:                                           │
    │  ┌────────────┐ ┌────────┐ ┌─────────┐ ┌──────┐ ┌──────┐     │
    │  │ Rate Limit │→│ Req ID │→│ Logging │→│ GZip │→│ CORS │     │
    │  └────────────┘ └────────┘ └─────────┘ └──────┘ └──────┘     │
    │                                                              │
    │  Routes:                                                     │
    │  ┌───────────┐ ┌─────────────┐ ┌────────────┐ ┌─────────┐    │
    │  │ /api/auth │ │ /api/stripe │ │ /api/admin │ │ /health │    │
    │  └───────────┘ └─────────────┘ └────────────┘ └─────────┘    │
    │                                                              │
    │  Exception Handlers: PortfolioError family → JSON errors     │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Report insecure or missing configuration (does not abort)
    3. Optionally create tables (DB_CREATE_TABLES, development only)
    4. Create the default admin if the users table is empty

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from portfolio import __version__
from portfolio.config import settings
from portfolio.database import async_session_factory, create_tables, dispose_engine
from portfolio.dependencies import get_token_service
from portfolio.exceptions import (
    AuthError,
    BookingStateError,
    DatabaseError,
    NotFoundError,
    PaymentProcessorError,
    PaymentProcessorUnavailableError,
    PortfolioError,
    RateLimitExceededError,
    ValidationError,
    WebhookProcessingError,
    WebhookSignatureError,
)
from portfolio.middleware.logging import RequestLoggingMiddleware
from portfolio.middleware.rate_limit import RateLimitMiddleware
from portfolio.middleware.request_id import RequestIDMiddleware, request_id_var
from portfolio.routes import admin, auth, health, payments
from portfolio.services.auth_service import AuthService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    When:   Called once during app startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Third-party libraries that log every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("stripe").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

async def bootstrap_default_admin() -> None:
    """Create the default admin on an empty users table; log and continue on failure."""
    try:
        auth_service = AuthService(get_token_service())
        async with async_session_factory() as session:
            await auth_service.ensure_default_admin(
                session,
                email=settings.default_admin_email,
                password=settings.default_admin_password,
            )
    except (SQLAlchemyError, PortfolioError, ValueError) as e:
        logger.error("Default admin bootstrap failed: %s", str(e), exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Photography Portfolio Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: health checks and the admin login keep working
        log = logger.error if settings.is_production else logger.warning
        log("Configuration problems: %s", str(e))

    if settings.db_create_tables:
        logger.info("DB_CREATE_TABLES is set; creating missing tables")
        await create_tables()

    await bootstrap_default_admin()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Photography Portfolio Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request_id_var.get("")


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": _request_id(request)}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy (Starlette resolves subclasses through the MRO):
        ValidationError                  → 400
        AuthError / ForbiddenError       → 401 (+ WWW-Authenticate) / 403
        NotFoundError                    → 404
        BookingStateError                → 409
        RateLimitExceededError           → 429 (+ Retry-After)
        WebhookSignatureError            → 400
        WebhookProcessingError           → 500
        PaymentProcessorError            → 500, Unavailable subclass 503 (+ Retry-After)
        DatabaseError                    → 500, generic message
        Exception (fallback)             → 500, generic message

    Exception context is logged here and never returned, except for the
    `field` of a ValidationError.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        """Client sent invalid input — tell them what's wrong."""
        logger.warning("[%s] Validation error: %s", _request_id(request), exc.message)
        details = {"field": exc.field} if exc.field else None
        return _error_response(request, 400, "validation_error", exc.message, details)

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        logger.info(
            "[%s] Auth rejected (%d): %s | Context: %s",
            _request_id(request),
            exc.status_code,
            exc.message,
            exc.context,
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        error = "forbidden" if exc.status_code == 403 else "unauthorized"
        return _error_response(request, exc.status_code, error, exc.message, headers=headers)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(request, 404, "not_found", exc.message)

    @app.exception_handler(BookingStateError)
    async def handle_booking_state(request: Request, exc: BookingStateError):
        logger.warning(
            "[%s] Booking state conflict: %s | Context: %s",
            _request_id(request),
            exc.message,
            exc.context,
        )
        return _error_response(request, 409, "conflict", exc.message)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            request,
            429,
            "rate_limit_exceeded",
            exc.message,
            {"retry_after": exc.retry_after},
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(WebhookSignatureError)
    async def handle_webhook_signature(request: Request, exc: WebhookSignatureError):
        logger.warning(
            "[%s] Webhook rejected: %s | Context: %s",
            _request_id(request),
            exc.message,
            exc.context,
        )
        return _error_response(request, 400, "invalid_signature", exc.message)

    @app.exception_handler(WebhookProcessingError)
    async def handle_webhook_processing(request: Request, exc: WebhookProcessingError):
        logger.error(
            "[%s] Webhook processing failed: %s | Context: %s",
            _request_id(request),
            exc.message,
            exc.context,
        )
        return _error_response(request, 500, "webhook_processing_error", exc.message)

    @app.exception_handler(PaymentProcessorError)
    async def handle_payment_processor(request: Request, exc: PaymentProcessorError):
        logger.error(
            "[%s] Payment processor error: %s | Context: %s",
            _request_id(request),
            exc.message,
            exc.context,
        )
        headers = None
        if isinstance(exc, PaymentProcessorUnavailableError) and exc.retry_after:
            headers = {"Retry-After": str(exc.retry_after)}
        error = "payment_unavailable" if exc.status_code == 503 else "payment_error"
        return _error_response(request, exc.status_code, error, exc.message, headers=headers)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        """Database error — generic message to user, details logged server-side."""
        logger.error(
            "[%s] Database error: %s | Context: %s",
            _request_id(request),
            exc.message,
            exc.context,
        )
        return _error_response(
            request,
            500,
            "server_error",
            "An internal error occurred. Please try again later.",
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """
        Catch-all for truly unexpected errors.

        Security: Stack trace is logged server-side ONLY (never in response).
        """
        logger.error("[%s] Unexpected error: %s", _request_id(request), str(exc), exc_info=True)
        return _error_response(
            request,
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="Photography Portfolio API",
        description=(
            "Backend for a photography portfolio: admin authentication, "
            "session booking with Stripe Checkout, and payment reconciliation."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # added CORS → GZip → Logging → RequestID → RateLimit,
    # executed RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )

    # Don't compress small responses (overhead > savings)
    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
        login_max_requests=settings.login_rate_limit_requests,
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(payments.router)
    app.include_router(admin.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `portfolio.main:app` to be importable
app = create_app()
