"""
Photography Portfolio Backend — Password Hashing
=================================================

What:  bcrypt hashing and verification for stored user credentials.
Why:   Passwords are never stored or compared in cleartext.
How:   bcrypt with a per-hash random salt (gensalt), default cost factor.

bcrypt only reads the first 72 bytes of its input and recent releases raise
on longer values, so longer passwords are refused when set and never verify.
"""

import bcrypt

from portfolio.exceptions import ValidationError

BCRYPT_MAX_BYTES = 72
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def is_password_hash(value: str) -> bool:
    """True if `value` already looks like a bcrypt hash."""
    return len(value) == 60 and value[:4] in _BCRYPT_PREFIXES


def hash_password(password: str) -> str:
    raw = password.encode("utf-8")
    if not raw:
        raise ValidationError(message="Password must not be empty", field="password")
    if len(raw) > BCRYPT_MAX_BYTES:
        raise ValidationError(
            message=f"Password must be at most {BCRYPT_MAX_BYTES} bytes",
            field="password",
        )
    return bcrypt.hashpw(raw, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    raw = password.encode("utf-8")
    if not raw or len(raw) > BCRYPT_MAX_BYTES or not is_password_hash(hashed):
        return False
    return bcrypt.checkpw(raw, hashed.encode("utf-8"))
