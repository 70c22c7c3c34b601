"""Create users and bookings tables

Revision ID: 001
Revises: None
Create Date: 2025-06-20 00:00:00.000000+00:00

What:  Creates the credential store (`users`) and the booking ledger
       (`bookings`).
How:   Portable types only (Integer identity, TIMESTAMP WITH TIME ZONE,
       NUMERIC(10, 2)), so the same migration runs on PostgreSQL and SQLite.

Rollback: downgrade() drops both tables (destructive — all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="bcrypt hash; cleartext is never stored",
        ),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=sa.text("''")),
        sa.Column("role", sa.String(50), nullable=False, server_default=sa.text("'admin'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── bookings ──────────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("client_name", sa.String(255), nullable=False),
        sa.Column("client_email", sa.String(255), nullable=False),
        sa.Column("client_phone", sa.String(50), nullable=False, server_default=sa.text("''")),
        sa.Column("service_type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("location", sa.String(500), nullable=False, server_default=sa.text("''")),
        sa.Column("scheduled_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, comment="Duration in hours"),
        sa.Column("notes", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column(
            "price",
            sa.Numeric(10, 2),
            nullable=False,
            comment="Hourly rate x duration, fixed at creation",
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column(
            "checkout_session_id",
            sa.String(255),
            nullable=True,
            comment="Stripe Checkout session id; NULL until the session exists",
        ),
        sa.Column("paid_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "duration >= 1 AND duration <= 24",
            name="ck_bookings_duration_range",
        ),
        sa.CheckConstraint(
            "(payment_status = 'paid') = (paid_at IS NOT NULL)",
            name="ck_bookings_paid_at_matches_payment_status",
        ),
    )

    # Webhook and success page look bookings up by session id
    op.create_index("idx_bookings_checkout_session_id", "bookings", ["checkout_session_id"])
    # Admin list filters by status and pages newest first
    op.create_index("idx_bookings_status", "bookings", ["status"])
    op.create_index("idx_bookings_created_at", "bookings", [sa.text("created_at DESC")])


def downgrade() -> None:
    """
    Drop both tables.

    WARNING: destructive. Every booking and account is lost.
    """
    op.drop_index("idx_bookings_created_at", table_name="bookings")
    op.drop_index("idx_bookings_status", table_name="bookings")
    op.drop_index("idx_bookings_checkout_session_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
