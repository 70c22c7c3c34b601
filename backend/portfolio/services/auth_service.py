"""
Photography Portfolio Backend — Auth Service
=============================================

What:  Login, profile lookup, token refresh and the default-admin bootstrap.
How:   Users come from the credential store (users table); tokens come from
       the injected TokenService. Login failures are deliberately uniform:
       unknown email, inactive account and wrong password all produce the
       same 401 so the response does not reveal which accounts exist.
"""

import logging
from typing import Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from portfolio.exceptions import AuthError, DatabaseError, NotFoundError
from portfolio.models.types import utcnow
from portfolio.models.user import User, UserRole
from portfolio.services.token_service import TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    def __init__(self, tokens: TokenService):
        self.tokens = tokens

    async def login(self, db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
        """
        Authenticate by email and password and issue a session token.

        Raises:
            AuthError: any credential mismatch (→ 401, generic message)
            DatabaseError: the user lookup failed
        """
        normalized = (email or "").strip().lower()
        try:
            result = await db.execute(
                select(User).where(
                    func.lower(User.email) == normalized,
                    User.is_active.is_(True),
                )
            )
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "login"}) from e

        if user is None or not user.check_password(password or ""):
            logger.info("Failed login attempt for %s", normalized or "<empty>")
            raise AuthError(message=INVALID_CREDENTIALS, context={"email": normalized})

        # last_login is bookkeeping; the login itself has already succeeded.
        # A savepoint keeps a failure here from poisoning the request transaction.
        now = utcnow()
        try:
            async with db.begin_nested():
                await db.execute(
                    update(User)
                    .where(User.id == user.id)
                    .values(last_login=now)
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError as e:
            logger.warning("Could not update last_login for user %s: %s", user.id, str(e))
        else:
            set_committed_value(user, "last_login", now)

        token = self.tokens.issue(user_id=user.id, email=user.email, role=user.role)
        logger.info("User %s logged in", user.id)
        return user, token

    async def get_profile(self, db: AsyncSession, user_id: int) -> User:
        try:
            user = await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching user %s: %s", user_id, str(e))
            raise DatabaseError(context={"user_id": user_id}) from e
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    def refresh(self, token: str) -> str:
        return self.tokens.refresh(token)

    async def ensure_default_admin(self, db: AsyncSession, email: str, password: str) -> bool:
        """
        Create the bootstrap admin when the users table is empty.

        Returns:
            True if an admin was created.
        """
        count = (await db.execute(select(func.count(User.id)))).scalar() or 0
        if count > 0:
            return False

        admin = User(
            email=email.strip().lower(),
            first_name="Admin",
            last_name="User",
            role=UserRole.ADMIN.value,
            is_active=True,
        )
        admin.set_password(password)
        db.add(admin)
        await db.commit()

        logger.warning(
            "Default admin user created: %s. Change the password immediately!",
            admin.email,
        )
        return True
