"""
Photography Portfolio Backend — Admin Booking Routes
=====================================================

What:  GET /api/admin/bookings (filtered, paginated ledger) and
       GET /api/admin/bookings/{id}.
Who:   The admin dashboard. Every route here requires an admin token; the
       dependency is attached at router level so no handler can forget it.
"""

import logging
import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import get_db_session
from portfolio.middleware.auth import require_admin
from portfolio.schemas.booking import BookingListResponse, BookingResponse
from portfolio.schemas.common import ErrorResponse
from portfolio.services.booking_ledger import MAX_PAGE_SIZE, BookingFilter, booking_ledger

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses={
        401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
        403: {"description": "Admin access required", "model": ErrorResponse},
    },
)


@router.get(
    "/bookings",
    response_model=BookingListResponse,
    summary="List bookings with filters and pagination",
)
async def list_bookings(
    status: Optional[str] = Query(
        default=None,
        pattern="^(pending|confirmed|completed|cancelled|refunded)$",
    ),
    service_type: Optional[str] = Query(
        default=None,
        pattern="^(portrait|wedding|event|commercial|sports|nature)$",
    ),
    date_from: Optional[datetime] = Query(default=None, description="Scheduled on or after (ISO 8601)"),
    date_to: Optional[datetime] = Query(default=None, description="Scheduled on or before (ISO 8601)"),
    search: Optional[str] = Query(default=None, max_length=255, description="Client name, email or location"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    sort_by: str = Query(default="created_at", pattern="^(created_at|scheduled_date|price)$"),
    sort_order: str = Query(default="desc", pattern="^(asc|desc)$"),
    db: AsyncSession = Depends(get_db_session),
) -> BookingListResponse:
    filters = BookingFilter(
        status=status,
        service_type=service_type,
        date_from=date_from,
        date_to=date_to,
        search=search,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    bookings, total = await booking_ledger.list(db, filters)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    responses={404: {"description": "Booking not found", "model": ErrorResponse}},
    summary="Get one booking",
)
async def get_booking(
    booking_id: int = Path(ge=1),
    db: AsyncSession = Depends(get_db_session),
) -> BookingResponse:
    booking = await booking_ledger.get(db, booking_id)
    return BookingResponse.model_validate(booking)
