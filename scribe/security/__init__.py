"""Security helpers: rate limiting and the OAuth state token."""

from .oauth_state import read_state_token, write_state_token  # noqa: F401
from .rate_limit import limiter  # noqa: F401

__all__ = ["limiter", "read_state_token", "write_state_token"]
