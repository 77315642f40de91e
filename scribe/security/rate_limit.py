"""Per-client rate limiting (slowapi)."""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from scribe.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.default_rate_limit],
    enabled=settings.rate_limit_enabled,
)
