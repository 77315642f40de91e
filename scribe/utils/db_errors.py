"""Classify IntegrityErrors by the constraint that fired.

Drivers word these differently (SQLite: ``UNIQUE constraint failed: posts.slug``,
PostgreSQL: ``duplicate key value violates unique constraint "ix_posts_slug"``),
so matching is done on lowercase message fragments.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError


def _message(exc: IntegrityError) -> str:
    return str(exc.orig if exc.orig is not None else exc).lower()


def is_unique_violation(exc: IntegrityError, column: str | None = None) -> bool:
    message = _message(exc)
    if "unique" not in message and "duplicate key" not in message:
        return False
    return column is None or column in message


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    return "foreign key" in _message(exc)
