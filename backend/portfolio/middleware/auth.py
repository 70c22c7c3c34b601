"""
Photography Portfolio Backend — Auth Gate
==========================================

What:  Per-request authentication and authorization for protected routes.
How:   FastAPI dependencies. Each request walks the same state machine:

           Unauthenticated ──extract──▶ Extracted ──validate──▶ Validated
                 │                          │                       │
                 ▼                          ▼                       ▼ (admin variant)
             Rejected 401              Rejected 401         Authorized │ Rejected 403

       Nothing is cached between requests and there is no server-side
       session: every request presents its bearer token again.

Variants:
    require_auth    any valid token, else 401
    require_admin   valid token with role "admin"; 401 without a valid
                    token, 403 with a valid non-admin token
    optional_auth   same extraction and validation, but every failure
                    yields an anonymous request (None)

On success the TokenClaims are available to the handler as the
dependency's return value, on request.state.identity and through the
current_identity context variable.
"""

import logging
from contextvars import ContextVar
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portfolio.dependencies import get_token_service
from portfolio.exceptions import ForbiddenError, InvalidTokenError, MissingCredentialsError
from portfolio.models.user import UserRole
from portfolio.services.token_service import TokenClaims, TokenService

logger = logging.getLogger(__name__)

# auto_error=False: every failure goes through our own messages and handlers
bearer_scheme = HTTPBearer(auto_error=False)

current_identity: ContextVar[Optional[TokenClaims]] = ContextVar("current_identity", default=None)


def extract_bearer_token(
    authorization: Optional[str],
    credentials: Optional[HTTPAuthorizationCredentials],
) -> str:
    """
    Raises:
        MissingCredentialsError: no header, or not of the form `Bearer <token>`
    """
    if not authorization:
        raise MissingCredentialsError()
    if credentials is None or not credentials.credentials.strip():
        raise MissingCredentialsError(
            message="Invalid authorization header format",
            context={"reason": "expected 'Bearer <token>'"},
        )
    return credentials.credentials.strip()


def _attach(request: Request, claims: Optional[TokenClaims]) -> None:
    request.state.identity = claims
    current_identity.set(claims)


async def require_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    token = extract_bearer_token(request.headers.get("Authorization"), credentials)
    try:
        claims = tokens.validate(token)
    except InvalidTokenError as e:
        logger.info(
            "Rejected token on %s %s: %s",
            request.method,
            request.url.path,
            e.context.get("reason"),
        )
        raise
    _attach(request, claims)
    return claims


async def require_admin(claims: TokenClaims = Depends(require_auth)) -> TokenClaims:
    if claims.role != UserRole.ADMIN:
        logger.warning("User %s (role=%s) denied admin access", claims.user_id, claims.role.value)
        raise ForbiddenError(context={"user_id": claims.user_id, "role": claims.role.value})
    return claims


async def optional_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[TokenClaims]:
    claims: Optional[TokenClaims] = None
    authorization = request.headers.get("Authorization")
    if authorization and credentials is not None:
        try:
            claims = tokens.validate(credentials.credentials.strip())
        except InvalidTokenError as e:
            logger.debug("Ignoring invalid optional token: %s", e.context.get("reason"))
    _attach(request, claims)
    return claims
