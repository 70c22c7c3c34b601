"""
Photography Portfolio Backend — Auth Route Handlers
====================================================

What:  POST /api/auth/login, POST /api/auth/logout, GET /api/auth/me,
       POST /api/auth/refresh.
How:   Thin handlers over AuthService; errors surface through the global
       exception handlers (401 with WWW-Authenticate, 404, 500).

Logout:
    Tokens are stateless and nothing is revoked server-side. Logging out
    means the client discards its token; the endpoint only acknowledges.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.database import get_db_session
from portfolio.dependencies import get_auth_service
from portfolio.middleware.auth import bearer_scheme, extract_bearer_token, optional_auth, require_auth
from portfolio.schemas.auth import LoginRequest, LoginResponse, TokenResponse, UserResponse
from portfolio.schemas.common import ErrorResponse, MessageResponse
from portfolio.services.auth_service import AuthService
from portfolio.services.token_service import TokenClaims

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"description": "Invalid email or password", "model": ErrorResponse},
        429: {"description": "Too many login attempts", "model": ErrorResponse},
    },
    summary="Log in with email and password",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    user, token = await auth.login(db, body.email, body.password)
    return LoginResponse(user=UserResponse.model_validate(user), token=token)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log out (client discards its token)",
)
async def logout(identity: Optional[TokenClaims] = Depends(optional_auth)) -> MessageResponse:
    if identity is not None:
        logger.info("User %s logged out", identity.user_id)
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/me",
    response_model=UserResponse,
    responses={
        401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
        404: {"description": "The token's user no longer exists", "model": ErrorResponse},
    },
    summary="Profile of the authenticated user",
)
async def me(
    identity: TokenClaims = Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> UserResponse:
    user = await auth.get_profile(db, identity.user_id)
    return UserResponse.model_validate(user)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    responses={401: {"description": "Missing, invalid or expired token", "model": ErrorResponse}},
    summary="Exchange a still-valid token for a fresh one",
)
async def refresh(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    token = extract_bearer_token(request.headers.get("Authorization"), credentials)
    return TokenResponse(token=auth.refresh(token))
