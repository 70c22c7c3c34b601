"""
Photography Portfolio Backend — Auth Gate Unit Tests
=====================================================

What:  The require_auth / require_admin / optional_auth dependencies called
       directly, without the HTTP stack.
How:   A MagicMock stands in for the Starlette Request; credentials are
       built the way HTTPBearer would build them.
"""

from unittest.mock import MagicMock

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from portfolio.exceptions import ForbiddenError, InvalidTokenError, MissingCredentialsError
from portfolio.middleware.auth import (
    current_identity,
    extract_bearer_token,
    optional_auth,
    require_admin,
    require_auth,
)


def _request(authorization=None):
    request = MagicMock()
    request.method = "GET"
    request.url.path = "/api/admin/bookings"
    request.headers = {"Authorization": authorization} if authorization else {}
    return request


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestExtractBearerToken:
    def test_missing_header(self):
        with pytest.raises(MissingCredentialsError) as exc_info:
            extract_bearer_token(None, None)
        assert exc_info.value.message == "Authorization header is required"

    def test_header_without_bearer_credentials(self):
        with pytest.raises(MissingCredentialsError) as exc_info:
            extract_bearer_token("Token abc", None)
        assert exc_info.value.message == "Invalid authorization header format"

    def test_token_is_returned(self):
        assert extract_bearer_token("Bearer abc", _credentials("abc")) == "abc"


class TestRequireAuth:
    @pytest.mark.asyncio
    async def test_valid_token_attaches_identity(self, token_service):
        token = token_service.issue(user_id=4, email="a@example.com", role="admin")
        request = _request(f"Bearer {token}")

        claims = await require_auth(request, _credentials(token), token_service)

        assert claims.user_id == 4
        assert request.state.identity == claims
        assert current_identity.get() == claims

    @pytest.mark.asyncio
    async def test_invalid_token(self, token_service):
        request = _request("Bearer nope")
        with pytest.raises(InvalidTokenError):
            await require_auth(request, _credentials("nope"), token_service)

    @pytest.mark.asyncio
    async def test_no_header(self, token_service):
        with pytest.raises(MissingCredentialsError):
            await require_auth(_request(), None, token_service)


class TestRequireAdmin:
    @pytest.mark.asyncio
    async def test_admin_passes(self, token_service):
        claims = token_service.validate(
            token_service.issue(user_id=1, email="a@example.com", role="admin")
        )
        assert await require_admin(claims) is claims

    @pytest.mark.asyncio
    async def test_user_is_forbidden(self, token_service):
        claims = token_service.validate(
            token_service.issue(user_id=2, email="u@example.com", role="user")
        )
        with pytest.raises(ForbiddenError) as exc_info:
            await require_admin(claims)
        assert exc_info.value.status_code == 403


class TestOptionalAuth:
    @pytest.mark.asyncio
    async def test_anonymous(self, token_service):
        request = _request()
        assert await optional_auth(request, None, token_service) is None
        assert request.state.identity is None

    @pytest.mark.asyncio
    async def test_invalid_token_is_anonymous(self, token_service):
        request = _request("Bearer broken")
        assert await optional_auth(request, _credentials("broken"), token_service) is None

    @pytest.mark.asyncio
    async def test_valid_token(self, token_service):
        token = token_service.issue(user_id=9, email="a@example.com", role="user")
        claims = await optional_auth(_request(f"Bearer {token}"), _credentials(token), token_service)
        assert claims is not None
        assert claims.user_id == 9
