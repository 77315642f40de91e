"""Pydantic schemas for posts, likes and bookmarks."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from pydantic import Field, field_validator

from scribe.schemas.base import CamelModel
from scribe.utils.sentinel import UNSET, Unset


def _require_title(value: str | None) -> str:
    if value is None or not value.strip():
        raise ValueError("Title is required")
    return value.strip()


class PostCreate(CamelModel):
    """Body of ``POST /posts``. New posts are published unless told otherwise."""

    title: str | None = Field(default=None, validate_default=True)
    excerpt: str | None = None
    content: str | None = None
    is_published: bool = True

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str | None) -> str:
        return _require_title(value)


@dataclass(frozen=True, slots=True)
class PostChanges:
    """Partial update of a post; ``UNSET`` fields are left untouched."""

    title: str | Unset = UNSET
    excerpt: str | Unset = UNSET
    content: str | Unset = UNSET
    is_published: bool | Unset = UNSET

    @property
    def is_empty(self) -> bool:
        return all(
            value is UNSET
            for value in (self.title, self.excerpt, self.content, self.is_published)
        )


class PostUpdate(CamelModel):
    """Body of ``PUT /posts/{id}``.

    Keys missing from the body are not changed. ``null`` for excerpt or
    content clears them to an empty string. The slug is never part of an
    update.
    """

    title: str | None = None
    excerpt: str | None = None
    content: str | None = None
    is_published: bool | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str | None) -> str:
        return _require_title(value)

    @field_validator("is_published")
    @classmethod
    def validate_is_published(cls, value: bool | None) -> bool:
        if value is None:
            raise ValueError("isPublished must be true or false")
        return value

    def to_changes(self) -> PostChanges:
        provided = self.model_fields_set
        return PostChanges(
            title=self.title if "title" in provided else UNSET,
            excerpt=(self.excerpt or "") if "excerpt" in provided else UNSET,
            content=(self.content or "") if "content" in provided else UNSET,
            is_published=(
                self.is_published if "is_published" in provided else UNSET
            ),
        )


class AuthorOut(CamelModel):
    id: uuid.UUID
    name: str


class PostSummary(CamelModel):
    id: int
    slug: str
    title: str
    excerpt: str
    is_published: bool
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    author: AuthorOut
    like_count: int = 0
    is_liked: bool = False
    is_saved: bool = False
    read_time: str


class PostDetail(PostSummary):
    content: str
    is_author: bool = False


class FeedPage(CamelModel):
    posts: list[PostSummary]
    page: int
    has_more: bool


class SearchResults(CamelModel):
    query: str
    total: int
    posts: list[PostSummary]


class StoriesPage(CamelModel):
    tab: str
    drafts: int
    published: int
    posts: list[PostSummary]


class PostDeleted(CamelModel):
    success: bool = True
    message: str = "Post deleted"


class LikeState(CamelModel):
    liked: bool
    like_count: int


class BookmarkToggle(CamelModel):
    post_id: int | None = Field(default=None, validate_default=True)

    @field_validator("post_id")
    @classmethod
    def validate_post_id(cls, value: int | None) -> int:
        if value is None:
            raise ValueError("Missing postId")
        return value


class BookmarkState(CamelModel):
    saved: bool
