"""
Photography Portfolio Backend — Health Check Route
===================================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs SELECT 1 against the database and reports whether the payment
       gateway has credentials. Stripe itself is not called; a probe every
       few seconds must not spend API rate limit.

Status levels:
    - healthy:   database reachable, payments configured (HTTP 200)
    - degraded:  database reachable, payments not configured (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from portfolio import __version__, database
from portfolio.dependencies import get_payment_gateway
from portfolio.schemas.common import HealthResponse
from portfolio.services.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    response: Response,
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> HealthResponse:
    db_status = "connected"
    payments_status = "configured" if gateway.is_configured else "not_configured"
    overall = "healthy" if gateway.is_configured else "degraded"

    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        payments=payments_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
