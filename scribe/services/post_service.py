"""Post lifecycle: create, edit, publish, delete."""

from __future__ import annotations

import logging
import math
import uuid

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.models.post import Post
from scribe.models.reaction import Bookmark, Like
from scribe.schemas.post import PostChanges, PostCreate
from scribe.services.policy import get_owned_post, load_post
from scribe.services.slugs import insert_with_unique_slug
from scribe.utils.dates import utcnow
from scribe.utils.sentinel import UNSET

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200


class PostService:
    """Service for post writes. Every mutation goes through the owner check."""

    @staticmethod
    def calculate_reading_time(content: str) -> int:
        """Estimated reading time in minutes (minimum 1)."""
        word_count = len(content.split())
        return max(1, math.ceil(word_count / WORDS_PER_MINUTE))

    def read_time_label(self, content: str) -> str:
        return f"{self.calculate_reading_time(content)} min read"

    @staticmethod
    def set_published(post: Post, published: bool) -> None:
        """Flip the flag; ``published_at`` is stamped once and then kept forever."""
        post.is_published = published
        if published and post.published_at is None:
            post.published_at = utcnow()

    async def create_post(
        self, session: AsyncSession, author_id: uuid.UUID, payload: PostCreate
    ) -> Post:
        def build(slug: str) -> Post:
            post = Post(
                slug=slug,
                title=payload.title,
                excerpt=payload.excerpt or "",
                content=payload.content or "",
                author_id=author_id,
            )
            self.set_published(post, payload.is_published)
            return post

        post = await insert_with_unique_slug(session, payload.title, build)
        logger.info("Post %s created as %r by %s", post.id, post.slug, author_id)
        return await load_post(session, post.id)

    async def update_post(
        self,
        session: AsyncSession,
        post_id: int,
        user_id: uuid.UUID,
        changes: PostChanges,
    ) -> Post:
        post = await get_owned_post(session, post_id, user_id, action="edit")
        if changes.is_empty:
            return post

        # Title edits never touch the slug.
        if changes.title is not UNSET:
            post.title = changes.title
        if changes.excerpt is not UNSET:
            post.excerpt = changes.excerpt
        if changes.content is not UNSET:
            post.content = changes.content
        if changes.is_published is not UNSET:
            self.set_published(post, changes.is_published)

        await session.commit()
        logger.info("Post %s updated by %s", post.id, user_id)
        return await load_post(session, post.id)

    async def delete_post(
        self, session: AsyncSession, post_id: int, user_id: uuid.UUID
    ) -> None:
        post = await get_owned_post(session, post_id, user_id, action="delete")
        await session.execute(delete(Like).where(Like.post_id == post.id))
        await session.execute(delete(Bookmark).where(Bookmark.post_id == post.id))
        await session.delete(post)
        await session.commit()
        logger.info("Post %s deleted by %s", post_id, user_id)


# Singleton instance
post_service = PostService()
