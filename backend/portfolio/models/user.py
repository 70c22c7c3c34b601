"""
Photography Portfolio Backend — User SQLAlchemy Model
======================================================

What:  ORM model for the `users` table (the credential store).
Who:   Read by AuthService at login and profile fetch; written by the
       default-admin bootstrap.

Invariant:
    password_hash only ever holds a bcrypt hash. set_password() hashes a
    cleartext value exactly once and stores an existing bcrypt hash as is,
    so a value can never be hashed twice.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Integer, String, text, true
from sqlalchemy.orm import Mapped, mapped_column

from portfolio.database import Base
from portfolio.models.types import UTCDateTime, utcnow
from portfolio.services.passwords import hash_password, is_password_hash, verify_password


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class User(Base):
    """
    An account that can log in to the admin area.

    Lifecycle:
        1. Created by the startup bootstrap (default admin) or an admin action
        2. last_login updated on each successful login
        3. Deactivated via is_active; never hard-deleted
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash; cleartext is never stored",
    )

    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=UserRole.ADMIN.value,
        server_default=text("'admin'"),
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )

    last_login: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def set_password(self, password: str) -> None:
        if is_password_hash(password):
            self.password_hash = password
        else:
            self.password_hash = hash_password(password)

    def check_password(self, password: str) -> bool:
        return verify_password(password, self.password_hash)

    @property
    def user_role(self) -> UserRole:
        return UserRole(self.role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def full_name(self) -> str:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or self.email

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
