"""
Photography Portfolio Backend — Pricing Table
==============================================

What:  Hourly rates per service category and the price computation.
How:   Decimal arithmetic only. A booking price is rate x hours, rounded to
       cents, and is computed exactly once when the booking is created.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional

from portfolio.models.booking import ServiceType

CENTS = Decimal("0.01")

# USD per hour
HOURLY_RATES: Mapping[str, Decimal] = {
    ServiceType.PORTRAIT.value: Decimal("150.00"),
    ServiceType.WEDDING.value: Decimal("300.00"),
    ServiceType.EVENT.value: Decimal("200.00"),
    ServiceType.COMMERCIAL.value: Decimal("250.00"),
    ServiceType.SPORTS.value: Decimal("180.00"),
    ServiceType.NATURE.value: Decimal("120.00"),
}

DEFAULT_HOURLY_RATE = Decimal("150.00")


def hourly_rate(
    service_type: str,
    rates: Optional[Mapping[str, Decimal]] = None,
    default_rate: Decimal = DEFAULT_HOURLY_RATE,
) -> Decimal:
    """Rate for a category; unknown categories fall back to `default_rate`."""
    table = HOURLY_RATES if rates is None else rates
    return Decimal(table.get(service_type, default_rate))


def compute_price(
    service_type: str,
    duration_hours: int,
    rates: Optional[Mapping[str, Decimal]] = None,
    default_rate: Decimal = DEFAULT_HOURLY_RATE,
) -> Decimal:
    rate = hourly_rate(service_type, rates, default_rate)
    return (rate * duration_hours).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """Decimal dollars to integer cents, as the payment processor expects."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
