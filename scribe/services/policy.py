"""Who may see and change what."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scribe.exceptions import Forbidden, NotFound
from scribe.models.post import Post


def can_view(post: Post, viewer_id: uuid.UUID | None) -> bool:
    """Published posts are public; drafts are visible to their author only."""
    return post.is_published or (viewer_id is not None and post.author_id == viewer_id)


async def load_post(session: AsyncSession, post_id: int) -> Post | None:
    result = await session.execute(
        select(Post)
        .options(selectinload(Post.author))
        .where(Post.id == post_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_post_or_404(session: AsyncSession, post_id: int) -> Post:
    post = await load_post(session, post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


async def get_visible_post(
    session: AsyncSession, post_id: int, viewer_id: uuid.UUID | None
) -> Post:
    post = await get_post_or_404(session, post_id)
    if not can_view(post, viewer_id):
        raise NotFound("Post not found")
    return post


def ensure_owner(post: Post, user_id: uuid.UUID, action: str = "edit") -> None:
    if post.author_id != user_id:
        raise Forbidden(f"You can only {action} your own posts")


async def get_owned_post(
    session: AsyncSession, post_id: int, user_id: uuid.UUID, action: str = "edit"
) -> Post:
    """Load a post for mutation: 404 when missing, 403 when not the caller's."""
    post = await get_post_or_404(session, post_id)
    ensure_owner(post, user_id, action)
    return post


def ensure_same_account(target_id: uuid.UUID | None, user_id: uuid.UUID) -> None:
    """Profile writes always target the caller; naming someone else is refused."""
    if target_id is not None and target_id != user_id:
        raise Forbidden("You can only update your own profile")
