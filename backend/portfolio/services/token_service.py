"""
Photography Portfolio Backend — Session Token Service
======================================================

What:  Issues, validates and refreshes signed session tokens (JWT, HS256).
Why:   Admin endpoints are stateless: the token alone proves who the caller
       is and which role they hold. There is no server-side session store.
How:   PyJWT with a shared secret. Validation pins the accepted algorithms
       to the HMAC family, requires every registered claim we set, checks
       the issuer and converts the payload into a typed TokenClaims value.
Who:   AuthService (issue at login, refresh) and the auth gate dependencies
       in portfolio.middleware.auth (validate on every protected request).

Token layout:
    header   {"alg": "HS256", "typ": "JWT"}
    payload  {"user_id": 1, "email": "...", "role": "admin",
              "sub": "<email>", "iss": "photography-portfolio",
              "iat": <now, rounded down>, "nbf": <iat>, "exp": <now + ttl, rounded up>}

Validity:
    A token is valid only if the signature verifies with the configured
    secret AND now < exp. Every other failure (malformed, tampered, wrong
    issuer, wrong claim types, `alg: none`) is an InvalidTokenError.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt

from portfolio.exceptions import InvalidTokenError
from portfolio.models.user import UserRole

logger = logging.getLogger(__name__)

SIGNING_ALGORITHM = "HS256"

# Only HMAC algorithms verify with a shared secret. Listing them explicitly
# rejects `none` and any asymmetric algorithm named in a forged header.
ACCEPTED_ALGORITHMS = ["HS256", "HS384", "HS512"]

REQUIRED_CLAIMS = ["exp", "iat", "nbf", "iss", "sub"]


@dataclass(frozen=True)
class TokenClaims:
    """Normalized identity carried by a valid session token."""

    user_id: int
    email: str
    role: UserRole
    issued_at: datetime
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """
    Stateless JWT issue / validate / refresh bound to one secret.

    Args:
        secret:  HMAC signing key. Must be non-empty.
        ttl:     Default token lifetime.
        issuer:  Value of the `iss` claim, checked on validation.
        clock:   Source of "now" for issuing; lets tests mint tokens in the past.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta = timedelta(hours=24),
        issuer: str = "photography-portfolio",
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        if ttl <= timedelta(0):
            raise ValueError("Token lifetime must be positive")
        self._secret = secret
        self.ttl = ttl
        self.issuer = issuer
        self._clock = clock

    def issue(
        self,
        user_id: int,
        email: str,
        role: str,
        ttl: Optional[timedelta] = None,
    ) -> str:
        """
        Sign a token valid over [now, now + ttl].

        Raises:
            ValueError: non-positive ttl or unknown role (programming errors,
                        never client input).
        """
        lifetime = ttl if ttl is not None else self.ttl
        if lifetime <= timedelta(0):
            raise ValueError("Token lifetime must be positive")
        role_value = UserRole(role).value

        # NumericDate claims are whole seconds: iat/nbf round down and exp
        # rounds up, so the token is never expired before now + lifetime.
        now = self._clock()
        issued_at = now.replace(microsecond=0)
        expires_at = now + lifetime
        if expires_at.microsecond:
            expires_at = expires_at.replace(microsecond=0) + timedelta(seconds=1)
        payload: Dict[str, Any] = {
            "user_id": user_id,
            "email": email,
            "role": role_value,
            "sub": email,
            "iss": self.issuer,
            "iat": issued_at,
            "nbf": issued_at,
            "exp": expires_at,
        }
        return jwt.encode(payload, self._secret, algorithm=SIGNING_ALGORITHM)

    def validate(self, token: str) -> TokenClaims:
        """
        Verify signature, time window and issuer, then normalize the claims.

        Raises:
            InvalidTokenError: for every failure. The concrete reason is
                               only put into the exception context.
        """
        if not token:
            raise InvalidTokenError(context={"reason": "empty token"})

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=ACCEPTED_ALGORITHMS,
                issuer=self.issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError(context={"reason": "expired"}) from e
        except jwt.InvalidTokenError as e:
            # Base class of every other PyJWT decode failure
            raise InvalidTokenError(
                context={"reason": type(e).__name__, "detail": str(e)}
            ) from e

        return self._to_claims(payload)

    def refresh(self, token: str, ttl: Optional[timedelta] = None) -> str:
        """Reissue a still-valid token with the same identity and a fresh window."""
        claims = self.validate(token)
        return self.issue(
            user_id=claims.user_id,
            email=claims.email,
            role=claims.role.value,
            ttl=ttl,
        )

    @staticmethod
    def _to_claims(payload: Dict[str, Any]) -> TokenClaims:
        user_id = payload.get("user_id")
        email = payload.get("email")
        role = payload.get("role")

        # bool is an int subclass; a `true` user id is still malformed
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise InvalidTokenError(context={"reason": "user_id claim is not an integer"})
        if not isinstance(email, str) or not email:
            raise InvalidTokenError(context={"reason": "email claim missing"})
        try:
            user_role = UserRole(role)
        except ValueError as e:
            raise InvalidTokenError(context={"reason": "unknown role claim"}) from e

        return TokenClaims(
            user_id=user_id,
            email=email,
            role=user_role,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
