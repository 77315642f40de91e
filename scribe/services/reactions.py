"""Likes and bookmarks.

The read-before-write here only picks the common-case answer; the unique
(account, post) constraint settles races, and a rejected insert is reported
as "already in that state" rather than recorded twice.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.exceptions import Conflict, NotFound
from scribe.models.post import Post
from scribe.models.reaction import Bookmark, Like
from scribe.observability.metrics import TOGGLE_CONFLICTS
from scribe.schemas.post import LikeState
from scribe.services.policy import can_view
from scribe.utils.db_errors import is_foreign_key_violation, is_unique_violation

logger = logging.getLogger(__name__)


class ReactionService:
    async def like_count(self, session: AsyncSession, post_id: int) -> int:
        count = await session.scalar(
            select(func.count(Like.id)).where(Like.post_id == post_id)
        )
        return count or 0

    async def _insert(
        self, session: AsyncSession, row: Like | Bookmark, kind: str, conflict: Conflict
    ) -> None:
        session.add(row)
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            if is_unique_violation(exc):
                TOGGLE_CONFLICTS.labels(kind).inc()
                logger.info("Duplicate %s rejected by constraint", kind)
                raise conflict from exc
            if is_foreign_key_violation(exc):
                # The post vanished between the lookup and the insert.
                raise NotFound("Post not found") from exc
            raise

    async def like(
        self, session: AsyncSession, post_id: int, user_id: uuid.UUID
    ) -> LikeState:
        post = await session.get(Post, post_id)
        if post is None or not post.is_published:
            raise NotFound("Post not found")

        already_liked = Conflict("Already liked", status_code=400)
        existing = await session.scalar(
            select(Like.id).where(Like.user_id == user_id, Like.post_id == post_id)
        )
        if existing is not None:
            raise already_liked

        await self._insert(
            session, Like(user_id=user_id, post_id=post_id), "like", already_liked
        )
        return LikeState(liked=True, like_count=await self.like_count(session, post_id))

    async def unlike(
        self, session: AsyncSession, post_id: int, user_id: uuid.UUID
    ) -> LikeState:
        post = await session.get(Post, post_id)
        if post is None:
            raise NotFound("Post not found")
        await session.execute(
            delete(Like).where(Like.user_id == user_id, Like.post_id == post_id)
        )
        await session.commit()
        return LikeState(liked=False, like_count=await self.like_count(session, post_id))

    async def toggle_bookmark(
        self, session: AsyncSession, post_id: int, user_id: uuid.UUID
    ) -> bool:
        """Save the post if it is not saved, unsave it if it is. Returns the new state."""
        removed = await session.execute(
            delete(Bookmark).where(
                Bookmark.user_id == user_id, Bookmark.post_id == post_id
            )
        )
        if removed.rowcount:
            await session.commit()
            return False

        post = await session.get(Post, post_id)
        if post is None or not can_view(post, user_id):
            await session.rollback()
            raise NotFound("Post not found")

        await self._insert(
            session,
            Bookmark(user_id=user_id, post_id=post_id),
            "bookmark",
            Conflict("Already saved"),
        )
        return True


reaction_service = ReactionService()
