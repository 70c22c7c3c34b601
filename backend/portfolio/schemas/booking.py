"""
Photography Portfolio Backend — Booking & Checkout Schemas
===========================================================

What:  API contract for checkout, the payment redirect pages and the admin
       booking ledger.

Validation split:
    Schema (→ 422): wrong JSON types, missing required fields, oversize strings
    Service (→ 400): business rules such as the service type list, the
                     duration (type and 1-24 hour range) and the date format
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_serializer


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class CheckoutRequest(BaseModel):
    """
    Body of POST /api/stripe/checkout.

    scheduled_date: "YYYY-MM-DDTHH:MM:SSZ" or "YYYY-MM-DD" (UTC)
    """
    service_type: str = Field(max_length=50, description="portrait, wedding, event, commercial, sports or nature")
    # Any JSON value: the checkout service turns a bad one into a 400
    duration: Any = Field(description="Whole hours, 1 to 24")
    client_name: str = Field(max_length=255)
    client_email: str = Field(max_length=255)
    client_phone: str = Field(default="", max_length=50)
    scheduled_date: str = Field(description="ISO date or date-time (UTC)")
    description: str = Field(default="", max_length=5000)
    location: str = Field(default="", max_length=500)
    notes: str = Field(default="", max_length=5000)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CheckoutResponse(BaseModel):
    checkout_url: str = Field(description="Hosted checkout page to redirect the client to")
    session_id: str
    booking_id: int


class BookingStatusResponse(BaseModel):
    """
    Public view of a booking, returned by the success page.

    Anyone holding the checkout session id can see it, so it carries no
    client contact details.
    """
    id: int
    service_type: str
    scheduled_date: datetime
    duration: int
    price: Decimal
    status: str
    payment_status: str
    paid_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)


class BookingResponse(BookingStatusResponse):
    """Full ledger record, admin only."""
    client_name: str
    client_email: str
    client_phone: str
    description: str
    location: str
    notes: str
    checkout_session_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PaymentSuccessResponse(BaseModel):
    message: str
    # Full record for an admin caller, public view for everyone else
    booking: Union[BookingResponse, BookingStatusResponse]


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    total: int = Field(description="Bookings matching the filters")
    page: int
    page_size: int
    total_pages: int
