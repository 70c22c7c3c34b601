"""
Photography Portfolio Backend — ORM Models
===========================================

Importing this package registers every model on Base.metadata, which is
what Alembic autogenerate and create_tables() rely on.
"""

from portfolio.models.booking import Booking, BookingStatus, PaymentStatus, ServiceType
from portfolio.models.user import User, UserRole

__all__ = [
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "ServiceType",
    "User",
    "UserRole",
]
