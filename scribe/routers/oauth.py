"""Sign-in with Google."""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi_users.authentication import Strategy
from fastapi_users.router.common import ErrorCode

from scribe.auth import UserManager, auth_backend, get_user_manager
from scribe.config import settings
from scribe.exceptions import ValidationFailed
from scribe.schemas.user import AuthorizationURL
from scribe.security import limiter, read_state_token, write_state_token
from scribe.services.federated import GoogleIdentityProvider, get_identity_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/google", tags=["auth"])

CALLBACK_ROUTE_NAME = "oauth:google.callback"


def _redirect_url(request: Request) -> str:
    return settings.google_redirect_url or str(request.url_for(CALLBACK_ROUTE_NAME))


@router.get("/authorize", response_model=AuthorizationURL)
async def authorize(
    request: Request,
    provider: GoogleIdentityProvider = Depends(get_identity_provider),
) -> AuthorizationURL:
    url = await provider.authorization_url(_redirect_url(request), write_state_token())
    return AuthorizationURL(authorization_url=url)


@router.get("/callback", name=CALLBACK_ROUTE_NAME)
@limiter.limit(settings.auth_rate_limit)
async def callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    provider: GoogleIdentityProvider = Depends(get_identity_provider),
    user_manager: UserManager = Depends(get_user_manager),
    strategy: Strategy = Depends(auth_backend.get_strategy),
) -> Response:
    """Finish the round trip: check state, fetch the identity, issue a session.

    The account is found by email or created without a password; an
    existing account only gets its display name refreshed.
    """
    if error or not code:
        raise ValidationFailed("Sign-in with Google was cancelled")
    if not state or read_state_token(state) is None:
        raise ValidationFailed("Invalid OAuth state")

    identity = await provider.fetch_identity(code, _redirect_url(request))
    if not identity.email:
        raise ValidationFailed("Google account has no email address")

    user = await user_manager.upsert_federated(identity.email, identity.name)
    if not user.is_active:
        raise ValidationFailed(ErrorCode.LOGIN_BAD_CREDENTIALS.value)

    response = await auth_backend.login(strategy, user)
    await user_manager.on_after_login(user, request, response)
    return response
