"""FastAPI application factory.

The connection pool is a process-wide resource with an explicit lifecycle:
it is opened in the lifespan before the app serves requests, exposed to
handlers through app.state (see parqueo.api.dependencies.get_pool), and
closed on shutdown. Tests inject their own pool instead.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from parqueo.api.errors import register_error_handlers
from parqueo.api.routers import public
from parqueo.infra.db import ConnectionPool
from parqueo.infra.settings import Settings, load_settings
from parqueo.observability.correlation import (
    CORRELATION_ID_HEADER,
    bind_correlation_id,
    new_correlation_id,
    unbind_correlation_id,
)
from parqueo.observability.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    owns_pool = app.state.db_pool is None
    if owns_pool:
        app.state.db_pool = ConnectionPool.from_settings(app.state.settings)
    try:
        yield
    finally:
        if owns_pool:
            app.state.db_pool.close()
            app.state.db_pool = None


def create_app(
    settings: Settings | None = None,
    *,
    pool: ConnectionPool | None = None,
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Explicit settings. If None, read from the environment.
        pool: Pre-built pool. If None, one is created on startup from
              settings and closed on shutdown.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = load_settings()

    configure_logging()

    app = FastAPI(
        title="Parqueo",
        description="Parking slot reservations for students, staff and visitors",
        lifespan=_lifespan,
    )
    app.state.settings = settings
    app.state.db_pool = pool

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or new_correlation_id()
        token = bind_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            unbind_correlation_id(token)

    register_error_handlers(app)
    app.include_router(public.router)

    logger.info(
        "app created",
        extra={"extra_fields": {"environment": settings.environment, "schema": settings.db_schema}},
    )
    return app
