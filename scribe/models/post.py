"""Post model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from fastapi_users_db_sqlalchemy.generics import GUID
from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scribe.database import Base
from scribe.utils.dates import utcnow

if TYPE_CHECKING:
    from scribe.models.reaction import Bookmark, Like
    from scribe.models.user import User

SLUG_MAX_LENGTH = 255


class Post(Base):
    """A story owned by one account.

    ``slug`` is assigned once at creation and never rewritten.
    ``published_at`` is stamped on the first transition to published and
    never cleared afterwards, even if the post is unpublished again.
    """

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    slug: Mapped[str] = mapped_column(String(SLUG_MAX_LENGTH), unique=True, index=True)
    title: Mapped[str] = mapped_column(String(300))
    excerpt: Mapped[str] = mapped_column(Text, default="", server_default="")
    content: Mapped[str] = mapped_column(Text, default="", server_default="")
    is_published: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), index=True
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(
        GUID, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    author: Mapped[User] = relationship(back_populates="posts")
    likes: Mapped[list[Like]] = relationship(
        back_populates="post", cascade="all, delete-orphan", passive_deletes=True
    )
    bookmarks: Mapped[list[Bookmark]] = relationship(
        back_populates="post", cascade="all, delete-orphan", passive_deletes=True
    )
