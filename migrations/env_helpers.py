"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without triggering
alembic.context at import time.
"""

from __future__ import annotations

import os
from typing import Mapping

from psycopg2.extensions import parse_dsn
from sqlalchemy.engine import URL

from parqueo.infra.settings import DEFAULT_SCHEMA


def get_database_url(environ: Mapping[str, str] | None = None) -> URL:
    """Build a SQLAlchemy URL from DATABASE_URL (libpq DSN or URL).

    DB_PASSWORD fills in the password when the DSN carries none.
    """
    env = os.environ if environ is None else environ
    dsn = env.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL is required to run migrations")

    params = parse_dsn(dsn)
    password = params.pop("password", None) or env.get("DB_PASSWORD") or None
    port = params.pop("port", None)
    host = params.pop("host", None)

    query: dict[str, str] = {}
    if host and host.startswith("/"):
        # Unix socket directory goes in the query string
        query["host"] = host
        host = None

    return URL.create(
        "postgresql+psycopg2",
        username=params.pop("user", None),
        password=password,
        host=host,
        port=int(port) if port else None,
        database=params.pop("dbname", None),
        query={**query, **params},
    )


def get_schema(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    return env.get("DB_SCHEMA") or DEFAULT_SCHEMA
