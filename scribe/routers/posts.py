"""Post CRUD, feeds, search and likes."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.auth import current_active_user, optional_current_user
from scribe.config import settings
from scribe.database import get_async_session
from scribe.models.user import User
from scribe.schemas.post import (
    FeedPage,
    LikeState,
    PostCreate,
    PostDeleted,
    PostDetail,
    PostUpdate,
    SearchResults,
)
from scribe.services.feed import feed_service
from scribe.services.policy import get_visible_post
from scribe.services.post_service import post_service
from scribe.services.reactions import reaction_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["posts"])


@router.post("/posts", response_model=PostDetail, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    user: User = Depends(current_active_user),
    session: AsyncSession = Depends(get_async_session),
) -> PostDetail:
    # Slug retries roll the session back, which expires ``user``.
    author_id = user.id
    post = await post_service.create_post(session, author_id, payload)
    return await feed_service.detail(session, post, author_id)


@router.get("/posts", response_model=FeedPage)
async def list_posts(
    author: uuid.UUID | None = Query(None),
    page: int = Query(1, ge=1),
    viewer: User | None = Depends(optional_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> FeedPage:
    """Published posts, newest first, optionally from a single author."""
    return await feed_service.published_feed(
        session,
        viewer.id if viewer else None,
        page=page,
        page_size=settings.feed_page_size,
        author_id=author,
    )


@router.get("/posts/slug/{slug}", response_model=PostDetail)
async def read_post_by_slug(
    slug: str,
    viewer: User | None = Depends(optional_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> PostDetail:
    return await feed_service.post_by_slug(session, slug, viewer.id if viewer else None)


@router.get("/posts/{post_id}", response_model=PostDetail)
async def read_post(
    post_id: int,
    viewer: User | None = Depends(optional_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> PostDetail:
    viewer_id = viewer.id if viewer else None
    post = await get_visible_post(session, post_id, viewer_id)
    return await feed_service.detail(session, post, viewer_id)


@router.put("/posts/{post_id}", response_model=PostDetail)
async def update_post(
    post_id: int,
    payload: PostUpdate,
    user: User = Depends(current_active_user),
    session: AsyncSession = Depends(get_async_session),
) -> PostDetail:
    """Apply a partial edit; keys missing from the body keep their values."""
    user_id = user.id
    post = await post_service.update_post(session, post_id, user_id, payload.to_changes())
    return await feed_service.detail(session, post, user_id)


@router.delete("/posts/{post_id}", response_model=PostDeleted)
async def delete_post(
    post_id: int,
    user: User = Depends(current_active_user),
    session: AsyncSession = Depends(get_async_session),
) -> PostDeleted:
    await post_service.delete_post(session, post_id, user.id)
    return PostDeleted()


@router.get("/search", response_model=SearchResults)
async def search_posts(
    q: str = Query(""),
    viewer: User | None = Depends(optional_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> SearchResults:
    return await feed_service.search(session, q, viewer.id if viewer else None)


@router.post("/posts/{post_id}/like", response_model=LikeState)
async def like_post(
    post_id: int,
    user: User = Depends(current_active_user),
    session: AsyncSession = Depends(get_async_session),
) -> LikeState:
    return await reaction_service.like(session, post_id, user.id)


@router.delete("/posts/{post_id}/like", response_model=LikeState)
async def unlike_post(
    post_id: int,
    user: User = Depends(current_active_user),
    session: AsyncSession = Depends(get_async_session),
) -> LikeState:
    return await reaction_service.unlike(session, post_id, user.id)
