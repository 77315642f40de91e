from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from fastapi_users_db_sqlalchemy import SQLAlchemyBaseUserTableUUID
from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scribe.database import Base
from scribe.utils.dates import utcnow

if TYPE_CHECKING:
    from scribe.models.post import Post


class User(SQLAlchemyBaseUserTableUUID, Base):
    """Account row.

    ``hashed_password`` is NULL for accounts created by federated sign-in;
    such accounts can never pass a password check.
    """

    __tablename__ = "users"

    hashed_password: Mapped[str | None] = mapped_column(
        String(length=1024), nullable=True, default=None
    )
    name: Mapped[str] = mapped_column(String(255), default="", server_default="")
    short_bio: Mapped[str | None] = mapped_column(String(160), nullable=True)
    about: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    posts: Mapped[list[Post]] = relationship(
        back_populates="author", passive_deletes=True
    )

    @property
    def has_password(self) -> bool:
        return bool(self.hashed_password)
