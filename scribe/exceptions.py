"""Domain errors and the handlers that turn them into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = "Internal server error"


class ScribeError(Exception):
    """Base class for errors that map onto a client-visible status."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_detail: str = "Bad request"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Forbidden(ScribeError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class NotFound(ScribeError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ValidationFailed(ScribeError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class Conflict(ScribeError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"

    def __init__(self, detail: str | None = None, *, status_code: int | None = None):
        super().__init__(detail)
        if status_code is not None:
            self.status_code = status_code


class SlugExhausted(Conflict):
    default_detail = "Could not allocate a unique slug, please retry"


async def scribe_error_handler(request: Request, exc: ScribeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request to %s failed: %s", request.url.path, exc.detail)
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed input as 400 with a readable first message."""
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "msg": _clean_message(error),
                "type": error.get("type"),
            }
        )
    logger.info("Validation failed on %s: %s", request.url.path, errors)
    detail = errors[0]["msg"] if errors else ValidationFailed.default_detail
    return JSONResponse(
        {"detail": detail, "errors": errors},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def _clean_message(error: dict) -> str:
    if error.get("type") == "json_invalid":
        return "Invalid JSON body"
    message = error.get("msg", "")
    # pydantic prefixes messages raised from validators with "Value error, ".
    prefix = "Value error, "
    if message.startswith(prefix):
        return message[len(prefix) :]
    return message


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        {"detail": INTERNAL_ERROR_DETAIL},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        {"detail": INTERNAL_ERROR_DETAIL},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        {"detail": "Rate limit exceeded. Please retry shortly."},
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ScribeError, scribe_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
