"""Slug derivation and collision-safe allocation for posts."""

from __future__ import annotations

import logging
from collections.abc import Callable

from slugify import slugify
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.exceptions import SlugExhausted
from scribe.models.post import Post
from scribe.observability.metrics import SLUG_COLLISIONS
from scribe.utils.dates import epoch_millis
from scribe.utils.db_errors import is_unique_violation

logger = logging.getLogger(__name__)

# Leaves room under the column limit for a "-<n>" suffix.
BASE_MAX_LENGTH = 200
MAX_INSERT_ATTEMPTS = 5
DISALLOWED_SLUG_CHARS = r"[^a-z0-9]+"


def derive_slug(title: str) -> str:
    """Lowercase, collapse every run outside ``[a-z0-9]`` to one hyphen, trim hyphens.

    Nothing is transliterated or decoded: accented letters, CJK text and HTML
    entities are separators like any other punctuation ("Ärger im Büro" ->
    "rger-im-b-ro"). A title with no ASCII letter or digit yields
    ``post-<epoch millis>``.
    """
    base = slugify(
        title or "",
        entities=False,
        decimal=False,
        hexadecimal=False,
        max_length=BASE_MAX_LENGTH,
        word_boundary=True,
        # Unicode mode skips unidecode, so non-ASCII letters hit the pattern as separators.
        allow_unicode=True,
        regex_pattern=DISALLOWED_SLUG_CHARS,
        # slugify deletes commas between digits; "1,000" must become "1-000".
        replacements=[(",", "-")],
    )
    return base or f"post-{epoch_millis()}"


def candidate(base: str, suffix: int) -> str:
    return base if suffix == 0 else f"{base}-{suffix}"


async def next_free_slug(
    session: AsyncSession, base: str, start: int = 0
) -> tuple[str, int]:
    """Return the first free ``base``, ``base-1``, ``base-2``... at or after ``start``.

    All taken candidates are read in one query; the answer is only a hint,
    the unique index decides at insert time.
    """
    taken = set(
        await session.scalars(
            select(Post.slug).where(
                or_(Post.slug == base, Post.slug.startswith(f"{base}-", autoescape=True))
            )
        )
    )
    suffix = start
    while candidate(base, suffix) in taken:
        suffix += 1
    return candidate(base, suffix), suffix


async def insert_with_unique_slug(
    session: AsyncSession,
    title: str,
    build: Callable[[str], Post],
    max_attempts: int = MAX_INSERT_ATTEMPTS,
) -> Post:
    """Insert the post produced by ``build(slug)`` under a slug nobody else holds.

    When a concurrent insert grabs the same slug first, the unique
    constraint rejects ours; the transaction is rolled back and probing
    resumes after the lost suffix. Gives up with :class:`SlugExhausted`.
    """
    base = derive_slug(title)
    start = 0
    for attempt in range(1, max_attempts + 1):
        slug, suffix = await next_free_slug(session, base, start)
        post = build(slug)
        session.add(post)
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            if not is_unique_violation(exc, "slug"):
                raise
            SLUG_COLLISIONS.inc()
            logger.warning(
                "Slug %r taken concurrently (attempt %d/%d)", slug, attempt, max_attempts
            )
            start = suffix + 1
            continue
        return post
    raise SlugExhausted()
