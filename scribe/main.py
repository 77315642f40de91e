"""Application factory."""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scribe.config import Settings, settings as default_settings
from scribe.database import Database, get_async_session
from scribe.exceptions import register_exception_handlers
from scribe.observability import MetricsMiddleware, configure_logging, metrics_response
from scribe.routers import account, bookmarks, oauth, posts, sessions
from scribe.security import limiter

logger = logging.getLogger(__name__)

basic_auth = HTTPBasic()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.log_level.upper(), json_output=settings.log_json)

    database = Database(settings.resolved_async_database_url, echo=settings.db_echo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Scribe (%s)", settings.environment)
        if settings.create_tables_on_startup:
            await database.create_all()
        yield
        await database.dispose()
        logger.info("Scribe stopped")

    app = FastAPI(
        title="Scribe",
        description="Blogging API: accounts, posts, likes and bookmarks",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
    )
    app.state.database = database
    app.state.limiter = limiter

    # Order: rate-limit/metrics → CORS → correlation id
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(MetricsMiddleware)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["Accept", "Content-Type", "Authorization"],
        )
    app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")
    register_exception_handlers(app)

    app.include_router(sessions.router)
    if settings.google_enabled:
        app.include_router(oauth.router)
    else:
        logger.info("Google sign-in disabled (no client credentials)")
    app.include_router(account.router)
    app.include_router(posts.router)
    app.include_router(bookmarks.router)

    def verify_metrics_auth(
        credentials: HTTPBasicCredentials = Depends(basic_auth),
    ) -> str:
        """Check HTTP Basic credentials for the metrics endpoint."""
        if not settings.metrics_password:
            return credentials.username
        correct_username = secrets.compare_digest(
            credentials.username, settings.metrics_username
        )
        correct_password = secrets.compare_digest(
            credentials.password, settings.metrics_password
        )
        if not (correct_username and correct_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
                headers={"WWW-Authenticate": "Basic"},
            )
        return credentials.username

    @app.get("/healthz", tags=["system"], summary="Health check", response_model=dict)
    async def health_check(session: AsyncSession = Depends(get_async_session)) -> dict:
        try:
            await session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("Health check failed: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="unhealthy"
            ) from exc
        if settings.is_production:
            return {"status": "healthy"}
        return {"status": "healthy", "database": "connected", "version": app.version}

    @app.get("/metrics", include_in_schema=False)
    def metrics(_: str = Depends(verify_metrics_auth)):
        """Prometheus metrics (HTTP Basic, see METRICS_USERNAME / METRICS_PASSWORD)."""
        return metrics_response()

    return app


app = create_app()
