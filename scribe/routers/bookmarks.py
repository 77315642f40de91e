"""Saved posts (the reading library)."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.auth import current_active_user
from scribe.database import get_async_session
from scribe.models.user import User
from scribe.schemas.post import BookmarkState, BookmarkToggle, PostSummary
from scribe.services.feed import feed_service
from scribe.services.reactions import reaction_service

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("", response_model=BookmarkState)
async def toggle_bookmark(
    payload: BookmarkToggle,
    user: User = Depends(current_active_user),
    session: AsyncSession = Depends(get_async_session),
) -> BookmarkState:
    saved = await reaction_service.toggle_bookmark(session, payload.post_id, user.id)
    return BookmarkState(saved=saved)


@router.get("", response_model=list[PostSummary])
async def library(
    user: User = Depends(current_active_user),
    session: AsyncSession = Depends(get_async_session),
) -> list[PostSummary]:
    return await feed_service.library(session, user.id)
