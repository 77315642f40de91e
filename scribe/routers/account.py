"""Registration, the caller's own account, and public profiles."""

import logging
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi_users import exceptions
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.auth import (
    UserManager,
    current_active_user,
    get_user_manager,
    optional_current_user,
)
from scribe.config import settings
from scribe.database import get_async_session
from scribe.exceptions import Conflict, NotFound, ValidationFailed
from scribe.models.user import User
from scribe.schemas.post import StoriesPage
from scribe.schemas.user import (
    PasswordChange,
    PasswordChanged,
    ProfileRead,
    ProfileUpdate,
    PublicProfile,
    RegisteredAccount,
    RegisterRequest,
    UserCreate,
)
from scribe.security import limiter
from scribe.services.feed import feed_service
from scribe.services.policy import ensure_same_account

logger = logging.getLogger(__name__)

router = APIRouter(tags=["account"])


def _profile(user: User) -> ProfileRead:
    return ProfileRead(
        id=user.id,
        name=user.name,
        email=user.email,
        short_bio=user.short_bio,
        about=user.about,
    )


@router.post(
    "/register",
    response_model=RegisteredAccount,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.auth_rate_limit)
async def register(
    request: Request,
    payload: RegisterRequest,
    user_manager: UserManager = Depends(get_user_manager),
) -> RegisteredAccount:
    try:
        user = await user_manager.create(
            UserCreate(email=payload.email, password=payload.password, name=payload.name),
            safe=True,
            request=request,
        )
    except exceptions.UserAlreadyExists as exc:
        raise Conflict("An account with this email already exists") from exc
    except IntegrityError as exc:
        # Lost a race with a concurrent registration of the same email.
        raise Conflict("An account with this email already exists") from exc
    except exceptions.InvalidPasswordException as exc:
        raise ValidationFailed(str(exc.reason)) from exc
    return RegisteredAccount(id=user.id, email=user.email, name=user.name)


@router.get("/me", response_model=ProfileRead)
async def read_me(user: User = Depends(current_active_user)) -> ProfileRead:
    return _profile(user)


@router.get("/profile", response_model=ProfileRead)
async def read_profile(user: User = Depends(current_active_user)) -> ProfileRead:
    return _profile(user)


@router.post("/profile", response_model=ProfileRead)
async def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(current_active_user),
    user_manager: UserManager = Depends(get_user_manager),
) -> ProfileRead:
    """Edit the caller's own profile. Fields left out of the body are kept."""
    ensure_same_account(payload.id, user.id)
    updated = await user_manager.update_profile(user, payload.to_changes())
    return _profile(updated)


@router.post("/change-password", response_model=PasswordChanged)
@limiter.limit(settings.auth_rate_limit)
async def change_password(
    request: Request,
    payload: PasswordChange,
    user: User = Depends(current_active_user),
    user_manager: UserManager = Depends(get_user_manager),
) -> PasswordChanged:
    await user_manager.change_password(user, payload.current_password, payload.new_password)
    return PasswordChanged()


@router.get("/me/stories", response_model=StoriesPage)
async def my_stories(
    tab: Literal["drafts", "published"] = Query("drafts"),
    user: User = Depends(current_active_user),
    session: AsyncSession = Depends(get_async_session),
) -> StoriesPage:
    return await feed_service.stories(session, user.id, tab)


@router.get("/users/{account_id}", response_model=PublicProfile)
async def public_profile(
    account_id: str,
    viewer: User | None = Depends(optional_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> PublicProfile:
    try:
        target_id = uuid.UUID(account_id)
    except ValueError as exc:
        raise NotFound("User not found") from exc
    viewer_id = viewer.id if viewer else None
    return await feed_service.public_profile(session, target_id, viewer_id)
