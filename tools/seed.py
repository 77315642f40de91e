#!/usr/bin/env python3
"""Seed a demo account and a welcome post. Safe to run repeatedly."""

from __future__ import annotations

import asyncio
import logging

from fastapi_users import exceptions
from sqlalchemy import select

from scribe.auth import get_user_db, get_user_manager
from scribe.config import settings
from scribe.database import Database
from scribe.models.post import Post
from scribe.observability import configure_logging
from scribe.schemas.post import PostCreate
from scribe.schemas.user import UserCreate
from scribe.services.post_service import post_service

logger = logging.getLogger("scribe.tools.seed")

DEMO_EMAIL = "alice@example.com"
DEMO_PASSWORD = "password"
WELCOME_SLUG = "hello-world"


async def seed(database: Database) -> None:
    await database.create_all()
    async with database.session_factory() as session:
        async for user_db in get_user_db(session):
            async for user_manager in get_user_manager(user_db):
                try:
                    alice = await user_manager.get_by_email(DEMO_EMAIL)
                    logger.info("Demo account %s already exists", DEMO_EMAIL)
                except exceptions.UserNotExists:
                    alice = await user_manager.create(
                        UserCreate(email=DEMO_EMAIL, password=DEMO_PASSWORD, name="Alice")
                    )
                    logger.info("Created demo account %s", alice.email)

        author_id = alice.id
        existing = await session.scalar(select(Post.id).where(Post.slug == WELCOME_SLUG))
        if existing is not None:
            logger.info("Welcome post already present")
            return
        post = await post_service.create_post(
            session,
            author_id,
            PostCreate(
                title="Hello World",
                excerpt="Welcome to Scribe",
                content="<p>This is a demo post.</p>",
            ),
        )
        logger.info("Created welcome post %r", post.slug)


def main() -> None:
    configure_logging(settings.log_level.upper(), json_output=False)
    database = Database(settings.resolved_async_database_url)

    async def run() -> None:
        try:
            await seed(database)
        finally:
            await database.dispose()

    asyncio.run(run())


if __name__ == "__main__":
    main()
