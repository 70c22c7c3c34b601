"""
Photography Portfolio Backend — Pricing Unit Tests
===================================================

What:  Hourly rate table, price computation and minor-unit conversion.
"""

from decimal import Decimal

import pytest

from portfolio.services.pricing import (
    DEFAULT_HOURLY_RATE,
    HOURLY_RATES,
    compute_price,
    hourly_rate,
    to_minor_units,
)


class TestHourlyRate:
    @pytest.mark.parametrize(
        "service_type,expected",
        [
            ("portrait", Decimal("150")),
            ("wedding", Decimal("300")),
            ("event", Decimal("200")),
            ("commercial", Decimal("250")),
            ("sports", Decimal("180")),
            ("nature", Decimal("120")),
        ],
    )
    def test_known_categories(self, service_type, expected):
        assert hourly_rate(service_type) == expected

    def test_unknown_category_falls_back_to_default(self):
        assert hourly_rate("underwater") == DEFAULT_HOURLY_RATE

    def test_custom_table(self):
        rates = {"portrait": Decimal("99.50")}
        assert hourly_rate("portrait", rates) == Decimal("99.50")
        assert hourly_rate("wedding", rates, default_rate=Decimal("10")) == Decimal("10")

    def test_every_category_has_a_rate(self):
        assert set(HOURLY_RATES) == {"portrait", "wedding", "event", "commercial", "sports", "nature"}


class TestComputePrice:
    def test_rate_times_hours(self):
        assert compute_price("wedding", 8) == Decimal("2400.00")

    def test_result_is_rounded_to_cents(self):
        rates = {"portrait": Decimal("33.335")}
        assert compute_price("portrait", 1, rates) == Decimal("33.34")

    def test_decimal_exactness(self):
        """0.1 * 3 must be exactly 0.30, which binary floats get wrong."""
        rates = {"nature": Decimal("0.10")}
        assert compute_price("nature", 3, rates) == Decimal("0.30")


class TestMinorUnits:
    def test_whole_amount(self):
        assert to_minor_units(Decimal("150")) == 15000

    def test_fractional_amount(self):
        assert to_minor_units(Decimal("19.99")) == 1999


def test_price_is_exact_for_every_category_and_duration():
    for service_type, rate in HOURLY_RATES.items():
        for hours in range(1, 25):
            assert compute_price(service_type, hours) == rate * hours
