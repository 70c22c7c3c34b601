"""
Photography Portfolio Backend — Booking Ledger Tests
=====================================================

What:  Tests for BookingLedger lookups, the mark_paid transition and the
       admin listing.
How:   Lifecycle and listing tests run against in-memory SQLite, because
       the conditional UPDATE is the point of the test. Error wrapping uses
       the mocked session.

What we test:
    ✅ pending → confirmed/paid, exactly once
    ✅ Duplicate deliveries are no-ops that keep the first paid_at
    ✅ Terminal states are never overwritten
    ✅ Filters, search, sorting and pagination totals
    ✅ SQLAlchemy errors surface as DatabaseError
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from portfolio.exceptions import BookingStateError, DatabaseError, NotFoundError
from portfolio.models.booking import Booking
from portfolio.services.booking_ledger import BookingFilter, BookingLedger


class TestLedgerLookups:
    def setup_method(self):
        self.ledger = BookingLedger()

    @pytest.mark.asyncio
    async def test_create_pending(self, db_session):
        booking = await self.ledger.create_pending(
            db_session,
            {
                "client_name": "Jane",
                "client_email": "jane@example.com",
                "service_type": "event",
                "scheduled_date": datetime(2030, 1, 1, tzinfo=timezone.utc),
                "duration": 3,
                "price": Decimal("600.00"),
            },
        )
        await db_session.commit()

        assert booking.id is not None
        assert booking.status == "pending"
        assert booking.payment_status == "pending"
        assert booking.paid_at is None
        assert booking.checkout_session_id is None

    @pytest.mark.asyncio
    async def test_get_missing_booking(self, db_session):
        with pytest.raises(NotFoundError):
            await self.ledger.get(db_session, 12345)

    @pytest.mark.asyncio
    async def test_find_by_checkout_session(self, db_session, make_booking):
        booking = await make_booking(checkout_session_id="cs_find_me")

        found = await self.ledger.find_by_checkout_session(db_session, "cs_find_me")

        assert found is not None
        assert found.id == booking.id
        assert await self.ledger.find_by_checkout_session(db_session, "cs_nope") is None

    @pytest.mark.asyncio
    async def test_empty_session_id_matches_nothing(self, db_session, make_booking):
        """Bookings without a session must not match an empty lookup."""
        await make_booking()
        assert await self.ledger.find_by_checkout_session(db_session, "") is None

    @pytest.mark.asyncio
    async def test_get_by_checkout_session_missing(self, db_session):
        with pytest.raises(NotFoundError):
            await self.ledger.get_by_checkout_session(db_session, "cs_missing")

    @pytest.mark.asyncio
    async def test_database_error_is_wrapped(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("db down"))

        with pytest.raises(DatabaseError) as exc_info:
            await self.ledger.get(mock_db_session, 1)

        # No SQL leaks into the user-facing message
        assert "SELECT" not in exc_info.value.message


class TestMarkPaid:
    def setup_method(self):
        self.ledger = BookingLedger()

    @pytest.mark.asyncio
    async def test_pending_booking_becomes_confirmed_and_paid(self, db_session, make_booking):
        booking = await make_booking(checkout_session_id="cs_1")

        updated = await self.ledger.mark_paid(db_session, booking.id, session_id="cs_1")

        assert updated.status == "confirmed"
        assert updated.payment_status == "paid"
        assert updated.paid_at is not None
        assert updated.paid_at.tzinfo is not None
        assert updated.is_paid() and updated.is_confirmed()

    @pytest.mark.asyncio
    async def test_duplicate_is_a_no_op(self, db_session, make_booking):
        booking = await make_booking(checkout_session_id="cs_1")
        first = await self.ledger.mark_paid(
            db_session,
            booking.id,
            paid_at=datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc),
        )
        first_paid_at = first.paid_at

        second = await self.ledger.mark_paid(
            db_session,
            booking.id,
            paid_at=datetime(2030, 1, 2, 12, 0, tzinfo=timezone.utc),
        )

        assert second.payment_status == "paid"
        assert second.paid_at == first_paid_at

    @pytest.mark.asyncio
    async def test_session_id_is_filled_in_but_never_replaced(self, db_session, make_booking):
        without = await make_booking()
        with_session = await make_booking(checkout_session_id="cs_original")

        filled = await self.ledger.mark_paid(db_session, without.id, session_id="cs_late")
        kept = await self.ledger.mark_paid(db_session, with_session.id, session_id="cs_other")

        assert filled.checkout_session_id == "cs_late"
        assert kept.checkout_session_id == "cs_original"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["cancelled", "refunded", "completed"])
    async def test_terminal_states_are_not_overwritten(self, db_session, make_booking, status):
        booking = await make_booking(status=status)

        with pytest.raises(BookingStateError):
            await self.ledger.mark_paid(db_session, booking.id)

        reloaded = await self.ledger.get(db_session, booking.id)
        assert reloaded.status == status
        assert reloaded.payment_status == "pending"
        assert reloaded.paid_at is None

    @pytest.mark.asyncio
    async def test_missing_booking(self, db_session):
        with pytest.raises(NotFoundError):
            await self.ledger.mark_paid(db_session, 999)


class TestLedgerList:
    def setup_method(self):
        self.ledger = BookingLedger()

    @pytest.mark.asyncio
    async def test_empty_ledger(self, db_session):
        bookings, total = await self.ledger.list(db_session)
        assert bookings == []
        assert total == 0

    @pytest.mark.asyncio
    async def test_filters(self, db_session, make_booking):
        base = datetime(2030, 3, 1, tzinfo=timezone.utc)
        await make_booking(service_type="wedding", status="confirmed", scheduled_date=base)
        await make_booking(service_type="wedding", scheduled_date=base + timedelta(days=10))
        await make_booking(service_type="nature", scheduled_date=base + timedelta(days=20))

        _, total = await self.ledger.list(db_session, BookingFilter(service_type="wedding"))
        assert total == 2

        confirmed, total = await self.ledger.list(db_session, BookingFilter(status="confirmed"))
        assert total == 1
        assert confirmed[0].status == "confirmed"

        _, total = await self.ledger.list(
            db_session,
            BookingFilter(date_from=base + timedelta(days=5), date_to=base + timedelta(days=15)),
        )
        assert total == 1

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, db_session, make_booking):
        await make_booking(client_name="Maria Lopez", location="Lisbon")
        await make_booking(client_name="Tom", client_email="tom@studio.example", location="Porto")

        by_name, _ = await self.ledger.list(db_session, BookingFilter(search="maria"))
        by_email, _ = await self.ledger.list(db_session, BookingFilter(search="STUDIO"))
        by_location, _ = await self.ledger.list(db_session, BookingFilter(search="lisb"))

        assert [b.client_name for b in by_name] == ["Maria Lopez"]
        assert [b.client_name for b in by_email] == ["Tom"]
        assert [b.client_name for b in by_location] == ["Maria Lopez"]

    @pytest.mark.asyncio
    async def test_pagination_and_sorting(self, db_session, make_booking):
        for price in ("100.00", "300.00", "200.00", "500.00", "400.00"):
            await make_booking(price=Decimal(price))

        page_one, total = await self.ledger.list(
            db_session,
            BookingFilter(page=1, page_size=2, sort_by="price", sort_order="asc"),
        )
        page_three, _ = await self.ledger.list(
            db_session,
            BookingFilter(page=3, page_size=2, sort_by="price", sort_order="asc"),
        )

        assert total == 5
        assert [b.price for b in page_one] == [Decimal("100.00"), Decimal("200.00")]
        assert [b.price for b in page_three] == [Decimal("500.00")]

    @pytest.mark.asyncio
    async def test_page_size_is_capped(self, db_session, make_booking):
        await make_booking()
        bookings, total = await self.ledger.list(db_session, BookingFilter(page_size=10_000))
        assert total == 1
        assert len(bookings) == 1

    @pytest.mark.asyncio
    async def test_newest_first_by_default(self, db_session, make_booking):
        older = await make_booking(client_name="Older")
        newer = await make_booking(client_name="Newer")
        older.created_at = datetime(2029, 1, 1, tzinfo=timezone.utc)
        newer.created_at = datetime(2029, 6, 1, tzinfo=timezone.utc)
        await db_session.commit()

        bookings, _ = await self.ledger.list(db_session)

        assert [b.id for b in bookings] == [newer.id, older.id]


def test_booking_predicates():
    booking = Booking(status="pending", payment_status="pending")
    assert booking.can_be_cancelled() is True
    assert booking.is_paid() is False

    booking.status = "completed"
    assert booking.is_completed() is True
    assert booking.can_be_cancelled() is False
