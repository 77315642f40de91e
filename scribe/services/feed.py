"""Read side: post views, feeds, search, library, stories and profiles."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from scribe.exceptions import NotFound
from scribe.models.post import Post
from scribe.models.reaction import Bookmark, Like
from scribe.models.user import User
from scribe.schemas.post import (
    AuthorOut,
    FeedPage,
    PostDetail,
    PostSummary,
    SearchResults,
    StoriesPage,
)
from scribe.schemas.user import PublicProfile
from scribe.services.policy import can_view
from scribe.services.post_service import post_service

logger = logging.getLogger(__name__)


def _with_author(stmt: Select) -> Select:
    return stmt.options(selectinload(Post.author))


class FeedService:
    async def _like_counts(
        self, session: AsyncSession, post_ids: Sequence[int]
    ) -> dict[int, int]:
        if not post_ids:
            return {}
        rows = await session.execute(
            select(Like.post_id, func.count(Like.id))
            .where(Like.post_id.in_(post_ids))
            .group_by(Like.post_id)
        )
        return {post_id: count for post_id, count in rows.all()}

    async def _viewer_sets(
        self,
        session: AsyncSession,
        post_ids: Sequence[int],
        viewer_id: uuid.UUID | None,
    ) -> tuple[set[int], set[int]]:
        if viewer_id is None or not post_ids:
            return set(), set()
        liked = set(
            await session.scalars(
                select(Like.post_id).where(
                    Like.user_id == viewer_id, Like.post_id.in_(post_ids)
                )
            )
        )
        saved = set(
            await session.scalars(
                select(Bookmark.post_id).where(
                    Bookmark.user_id == viewer_id, Bookmark.post_id.in_(post_ids)
                )
            )
        )
        return liked, saved

    @staticmethod
    def _summary_fields(post: Post) -> dict:
        return {
            "id": post.id,
            "slug": post.slug,
            "title": post.title,
            "excerpt": post.excerpt or "",
            "is_published": post.is_published,
            "published_at": post.published_at,
            "created_at": post.created_at,
            "updated_at": post.updated_at,
            "author": AuthorOut(id=post.author.id, name=post.author.name),
            "read_time": post_service.read_time_label(post.content or ""),
        }

    async def summarize(
        self,
        session: AsyncSession,
        posts: Sequence[Post],
        viewer_id: uuid.UUID | None,
    ) -> list[PostSummary]:
        post_ids = [post.id for post in posts]
        counts = await self._like_counts(session, post_ids)
        liked, saved = await self._viewer_sets(session, post_ids, viewer_id)
        return [
            PostSummary(
                **self._summary_fields(post),
                like_count=counts.get(post.id, 0),
                is_liked=post.id in liked,
                is_saved=post.id in saved,
            )
            for post in posts
        ]

    async def detail(
        self, session: AsyncSession, post: Post, viewer_id: uuid.UUID | None
    ) -> PostDetail:
        counts = await self._like_counts(session, [post.id])
        liked, saved = await self._viewer_sets(session, [post.id], viewer_id)
        return PostDetail(
            **self._summary_fields(post),
            content=post.content or "",
            like_count=counts.get(post.id, 0),
            is_liked=post.id in liked,
            is_saved=post.id in saved,
            is_author=viewer_id is not None and post.author_id == viewer_id,
        )

    async def post_by_slug(
        self, session: AsyncSession, slug: str, viewer_id: uuid.UUID | None
    ) -> PostDetail:
        post = await session.scalar(_with_author(select(Post).where(Post.slug == slug)))
        if post is None or not can_view(post, viewer_id):
            raise NotFound("Post not found")
        return await self.detail(session, post, viewer_id)

    async def published_feed(
        self,
        session: AsyncSession,
        viewer_id: uuid.UUID | None,
        *,
        page: int = 1,
        page_size: int = 20,
        author_id: uuid.UUID | None = None,
    ) -> FeedPage:
        stmt = select(Post).where(Post.is_published.is_(True))
        if author_id is not None:
            stmt = stmt.where(Post.author_id == author_id)
        # One extra row tells whether another page exists.
        stmt = (
            _with_author(stmt)
            .order_by(Post.published_at.desc(), Post.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size + 1)
        )
        posts = list(await session.scalars(stmt))
        has_more = len(posts) > page_size
        return FeedPage(
            posts=await self.summarize(session, posts[:page_size], viewer_id),
            page=page,
            has_more=has_more,
        )

    async def search(
        self, session: AsyncSession, query: str, viewer_id: uuid.UUID | None
    ) -> SearchResults:
        """Case-insensitive substring match over published title, excerpt and body."""
        term = query.strip().lower()
        if not term:
            return SearchResults(query=query, total=0, posts=[])
        stmt = _with_author(
            select(Post)
            .where(
                Post.is_published.is_(True),
                or_(
                    func.lower(Post.title).contains(term, autoescape=True),
                    func.lower(Post.excerpt).contains(term, autoescape=True),
                    func.lower(Post.content).contains(term, autoescape=True),
                ),
            )
            .order_by(Post.published_at.desc(), Post.id.desc())
        )
        posts = list(await session.scalars(stmt))
        return SearchResults(
            query=query,
            total=len(posts),
            posts=await self.summarize(session, posts, viewer_id),
        )

    async def library(self, session: AsyncSession, user_id: uuid.UUID) -> list[PostSummary]:
        """Posts the account has saved, newest save first, still visible to it."""
        stmt = _with_author(
            select(Post)
            .join(Bookmark, Bookmark.post_id == Post.id)
            .where(
                Bookmark.user_id == user_id,
                or_(Post.is_published.is_(True), Post.author_id == user_id),
            )
            .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
        )
        posts = list(await session.scalars(stmt))
        return await self.summarize(session, posts, user_id)

    async def stories(
        self, session: AsyncSession, user_id: uuid.UUID, tab: str
    ) -> StoriesPage:
        counts = dict(
            (
                await session.execute(
                    select(Post.is_published, func.count(Post.id))
                    .where(Post.author_id == user_id)
                    .group_by(Post.is_published)
                )
            ).all()
        )
        stmt = _with_author(
            select(Post)
            .where(
                Post.author_id == user_id,
                Post.is_published.is_(tab == "published"),
            )
            .order_by(Post.updated_at.desc(), Post.id.desc())
        )
        posts = list(await session.scalars(stmt))
        return StoriesPage(
            tab=tab,
            drafts=counts.get(False, 0),
            published=counts.get(True, 0),
            posts=await self.summarize(session, posts, user_id),
        )

    async def public_profile(
        self,
        session: AsyncSession,
        account_id: uuid.UUID,
        viewer_id: uuid.UUID | None,
    ) -> PublicProfile:
        user = await session.get(User, account_id)
        if user is None or not user.is_active:
            raise NotFound("User not found")
        stmt = _with_author(
            select(Post)
            .where(Post.author_id == account_id, Post.is_published.is_(True))
            .order_by(Post.published_at.desc(), Post.id.desc())
        )
        posts = list(await session.scalars(stmt))
        return PublicProfile(
            id=user.id,
            name=user.name,
            short_bio=user.short_bio,
            about=user.about,
            created_at=user.created_at,
            posts=await self.summarize(session, posts, viewer_id),
        )


feed_service = FeedService()
