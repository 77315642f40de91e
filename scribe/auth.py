"""Accounts, credential checks and session resolution (fastapi-users)."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncGenerator

from fastapi import Depends, Request, Response
from fastapi.security import OAuth2PasswordRequestForm
from fastapi_users import FastAPIUsers, UUIDIDMixin, exceptions
from fastapi_users.authentication import (
    AuthenticationBackend,
    CookieTransport,
    JWTStrategy,
)
from fastapi_users.manager import BaseUserManager
from fastapi_users.password import PasswordHelper
from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase
from pwdlib import PasswordHash
from pwdlib.hashers.bcrypt import BcryptHasher
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.config import settings
from scribe.database import get_async_session
from scribe.exceptions import ValidationFailed
from scribe.models.user import User
from scribe.observability.metrics import LOGIN_FAILURES
from scribe.schemas.user import ProfileChanges, UserCreate
from scribe.utils.sentinel import UNSET

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes; longer inputs are rejected outright.
BCRYPT_MAX_BYTES = 72
FEDERATED_DEFAULT_NAME = "Unnamed"
_TIMING_DUMMY_PASSWORD = "timing-equalizer"


def build_password_helper(rounds: int) -> PasswordHelper:
    return PasswordHelper(PasswordHash((BcryptHasher(rounds=rounds),)))


password_helper = build_password_helper(settings.password_hash_rounds)


def _fits_bcrypt(password: str) -> bool:
    return len(password.encode("utf-8")) <= BCRYPT_MAX_BYTES


class UserManager(UUIDIDMixin, BaseUserManager[User, uuid.UUID]):
    reset_password_token_secret = settings.secret_key
    verification_token_secret = settings.secret_key

    def __init__(
        self,
        user_db: SQLAlchemyUserDatabase[User, uuid.UUID],
        password_helper: PasswordHelper | None = None,
    ):
        super().__init__(user_db, password_helper)

    async def validate_password(self, password: str, user: UserCreate | User) -> None:
        if len(password) < settings.min_password_length:
            raise exceptions.InvalidPasswordException(
                reason=(
                    "Password must be at least "
                    f"{settings.min_password_length} characters"
                )
            )
        if not _fits_bcrypt(password):
            raise exceptions.InvalidPasswordException(
                reason=f"Password must be at most {BCRYPT_MAX_BYTES} bytes"
            )

    async def authenticate(self, credentials: OAuth2PasswordRequestForm) -> User | None:
        """Check an email/password pair.

        Unknown email, a federated-only account (no stored hash) and a wrong
        password all return ``None``; the login route turns every ``None``
        into the same generic error. A hash is computed on every failure
        path so timing does not distinguish them either.
        """
        password = credentials.password
        try:
            user = await self.get_by_email(credentials.username)
        except exceptions.UserNotExists:
            user = None

        if user is None or not user.has_password or not _fits_bcrypt(password):
            self.password_helper.hash(_TIMING_DUMMY_PASSWORD)
            LOGIN_FAILURES.inc()
            return None

        verified, updated_password_hash = self.password_helper.verify_and_update(
            password, user.hashed_password
        )
        if not verified:
            LOGIN_FAILURES.inc()
            return None
        if updated_password_hash is not None:
            await self.user_db.update(user, {"hashed_password": updated_password_hash})
        return user

    async def upsert_federated(self, email: str, name: str | None) -> User:
        """Find-or-create the account for a federated sign-in.

        A new email becomes an account with no password hash. An existing
        email, password-based or not, is reused and only its display name
        is refreshed, so one email never maps to two accounts.
        """
        display_name = (name or "").strip() or FEDERATED_DEFAULT_NAME
        try:
            user = await self.get_by_email(email)
        except exceptions.UserNotExists:
            try:
                user = await self.user_db.create(
                    {
                        "email": email,
                        "name": display_name,
                        "hashed_password": None,
                        "is_verified": True,
                    }
                )
            except IntegrityError:
                # A concurrent callback created it first; fall through to update.
                await self.user_db.session.rollback()
                user = await self.get_by_email(email)
            else:
                logger.info("Created federated-only account %s", user.id)
                return user
        return await self.user_db.update(user, {"name": display_name})

    async def change_password(
        self, user: User, current_password: str, new_password: str
    ) -> User:
        if not user.has_password:
            raise ValidationFailed("Password login not configured for this account")
        verified = False
        if _fits_bcrypt(current_password):
            verified, _ = self.password_helper.verify_and_update(
                current_password, user.hashed_password
            )
        if not verified:
            raise ValidationFailed("Current password is incorrect")
        try:
            await self.validate_password(new_password, user)
        except exceptions.InvalidPasswordException as exc:
            raise ValidationFailed(str(exc.reason)) from exc
        updated = await self.user_db.update(
            user, {"hashed_password": self.password_helper.hash(new_password)}
        )
        logger.info("Password changed for account %s", user.id)
        return updated

    async def update_profile(self, user: User, changes: ProfileChanges) -> User:
        update_dict = {
            field: value
            for field, value in (
                ("name", changes.name),
                ("short_bio", changes.short_bio),
                ("about", changes.about),
            )
            if value is not UNSET
        }
        if not update_dict:
            return user
        return await self.user_db.update(user, update_dict)

    async def on_after_register(self, user: User, request: Request | None = None) -> None:
        logger.info("Registered account %s", user.id)

    async def on_after_login(
        self,
        user: User,
        request: Request | None = None,
        response: Response | None = None,
    ) -> None:
        logger.info("Session issued for account %s", user.id)


async def get_user_db(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[SQLAlchemyUserDatabase[User, uuid.UUID], None]:
    yield SQLAlchemyUserDatabase(session, User)


async def get_user_manager(
    user_db: SQLAlchemyUserDatabase[User, uuid.UUID] = Depends(get_user_db),
) -> AsyncGenerator[UserManager, None]:
    yield UserManager(user_db, password_helper)


def get_jwt_strategy() -> JWTStrategy:
    return JWTStrategy(
        secret=settings.secret_key,
        lifetime_seconds=settings.jwt_lifetime_seconds,
        token_audience=["fastapi-users:auth"],
    )


cookie_transport = CookieTransport(
    cookie_name=settings.auth_cookie_name,
    cookie_secure=settings.is_production,
    cookie_max_age=settings.jwt_lifetime_seconds,
    cookie_httponly=True,
)

auth_backend = AuthenticationBackend(
    name="jwt",
    transport=cookie_transport,
    get_strategy=get_jwt_strategy,
)

fastapi_users = FastAPIUsers[User, uuid.UUID](
    get_user_manager,
    [auth_backend],
)

current_active_user = fastapi_users.current_user(active=True)
optional_current_user = fastapi_users.current_user(active=True, optional=True)
