"""FastAPI dependencies shared by the parking routes."""

from fastapi import Request

from parqueo.domain.errors import StoreError
from parqueo.infra.db import ConnectionPool


def get_pool(request: Request) -> ConnectionPool:
    """Return the process-wide connection pool attached at startup."""
    pool = getattr(request.app.state, "db_pool", None)
    if pool is None:
        raise StoreError("database pool is not initialized")
    return pool
