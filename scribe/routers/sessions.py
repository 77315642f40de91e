"""Password sign-in and sign-out."""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import OAuth2PasswordRequestForm
from fastapi_users.authentication import Strategy
from fastapi_users.router.common import ErrorCode

from scribe.auth import UserManager, auth_backend, fastapi_users, get_user_manager
from scribe.config import settings
from scribe.exceptions import ValidationFailed
from scribe.models.user import User
from scribe.security import limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/jwt", tags=["auth"])

current_user_token = fastapi_users.authenticator.current_user_token(active=True)


@router.post("/login", name="auth:jwt.login")
@limiter.limit(settings.auth_rate_limit)
async def login(
    request: Request,
    credentials: OAuth2PasswordRequestForm = Depends(),
    user_manager: UserManager = Depends(get_user_manager),
    strategy: Strategy = Depends(auth_backend.get_strategy),
) -> Response:
    """Exchange email + password for a session cookie (204).

    Every failure, including an inactive account, gets the same answer.
    """
    user = await user_manager.authenticate(credentials)
    if user is None or not user.is_active:
        raise ValidationFailed(ErrorCode.LOGIN_BAD_CREDENTIALS.value)
    response = await auth_backend.login(strategy, user)
    await user_manager.on_after_login(user, request, response)
    return response


@router.post("/logout", name="auth:jwt.logout")
async def logout(
    user_token: tuple[User, str] = Depends(current_user_token),
    strategy: Strategy = Depends(auth_backend.get_strategy),
) -> Response:
    # JWTs are not revocable; this clears the cookie.
    user, token = user_token
    return await auth_backend.logout(strategy, user, token)
