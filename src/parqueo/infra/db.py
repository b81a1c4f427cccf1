"""Database access layer using psycopg2.

Provides:
- ConnectionPool: bounded, process-wide pool; callers wait for a free slot
- txn(): Context manager for short, safe transactions on a pooled connection
- fetchone/fetchall: Query helpers
- for_update(): SELECT ... FOR UPDATE helper
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator, Sequence

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor, parse_dsn
from psycopg2.pool import ThreadedConnectionPool

from parqueo.domain.errors import StoreError

if TYPE_CHECKING:
    from parqueo.infra.settings import Settings

logger = logging.getLogger(__name__)


def _connect_kwargs(dsn: str, *, password: str | None, schema: str) -> dict[str, Any]:
    """Extra psycopg2.connect() arguments for every pooled connection.

    DB_PASSWORD is only applied when the DSN does not already carry one.
    """
    kwargs: dict[str, Any] = {"options": f"-c search_path={schema}"}
    if password and "password" not in parse_dsn(dsn):
        kwargs["password"] = password
    return kwargs


class ConnectionPool:
    """Bounded pool of PostgreSQL connections.

    psycopg2's ThreadedConnectionPool raises PoolError when exhausted. A
    bounded semaphore in front of it makes callers block until a connection
    is released, up to acquire_timeout seconds.

    Lifecycle: create before serving, close() on shutdown.
    """

    def __init__(
        self,
        dsn: str,
        *,
        minconn: int,
        maxconn: int,
        acquire_timeout: float,
        schema: str,
        password: str | None = None,
    ) -> None:
        self._pool = ThreadedConnectionPool(
            minconn,
            maxconn,
            dsn,
            **_connect_kwargs(dsn, password=password, schema=schema),
        )
        self._slots = threading.BoundedSemaphore(maxconn)
        self._acquire_timeout = acquire_timeout
        self.maxconn = maxconn
        logger.info(
            "connection pool initialized",
            extra={"extra_fields": {"minconn": minconn, "maxconn": maxconn, "schema": schema}},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> ConnectionPool:
        return cls(
            settings.database_url,
            minconn=settings.pool_min,
            maxconn=settings.pool_max,
            acquire_timeout=settings.pool_timeout,
            schema=settings.db_schema,
            password=settings.db_password,
        )

    @property
    def closed(self) -> bool:
        return bool(self._pool.closed)

    @contextmanager
    def connection(self) -> Iterator[PgConnection]:
        """Check out a connection, returning it to the pool on every exit path.

        Raises:
            StoreError: If the pool is closed, no connection frees up within
                acquire_timeout, or the driver cannot connect.
        """
        if self.closed:
            raise StoreError("connection pool is closed")
        if not self._slots.acquire(timeout=self._acquire_timeout):
            raise StoreError("timed out waiting for a database connection")
        try:
            try:
                conn = self._pool.getconn()
            except psycopg2.Error as exc:
                raise StoreError(
                    f"could not obtain database connection: {exc}",
                    code=getattr(exc, "pgcode", None),
                ) from exc
            try:
                yield conn
            finally:
                # putconn rolls back connections left inside a transaction
                self._pool.putconn(conn, close=bool(conn.closed))
        finally:
            self._slots.release()

    def close(self) -> None:
        """Close every pooled connection. Safe to call twice."""
        if self.closed:
            return
        self._pool.closeall()
        logger.info("connection pool closed")


def _rollback_quietly(conn: PgConnection) -> None:
    try:
        conn.rollback()
    except psycopg2.Error:
        logger.exception("rollback failed")


@contextmanager
def txn(pool: ConnectionPool) -> Iterator[PgCursor]:
    """Context manager for a short, safe transaction.

    Commits on successful exit, rolls back on any exception. Driver errors
    are re-raised as StoreError; every other exception propagates unchanged.
    The connection goes back to the pool in all cases.

    Args:
        pool: Pool to borrow the connection from.

    Yields:
        Cursor for executing queries within the transaction.

    Example:
        with txn(pool) as cur:
            reserve(cur, user_id="u-1", shift_id=7)
    """
    with pool.connection() as conn:
        try:
            with conn.cursor() as cur:
                yield cur
            conn.commit()
        except psycopg2.Error as exc:
            _rollback_quietly(conn)
            raise StoreError(
                str(exc).strip() or type(exc).__name__,
                code=getattr(exc, "pgcode", None),
            ) from exc
        except Exception:
            _rollback_quietly(conn)
            raise


def fetchone(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> tuple[Any, ...] | None:
    """Execute query and fetch one row, or None if no results."""
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> list[tuple[Any, ...]]:
    """Execute query and fetch all rows."""
    cur.execute(query, params)
    return cur.fetchall()


def for_update(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> tuple[Any, ...] | None:
    """Execute SELECT ... FOR UPDATE and fetch one row.

    Appends the FOR UPDATE clause to the query. Use within a transaction
    to lock the selected row until commit/rollback.

    Args:
        cur: Database cursor.
        query: SELECT query (without FOR UPDATE).
        params: Query parameters.

    Returns:
        Single row tuple or None if no results.
    """
    full_query = query.rstrip().rstrip(";") + " FOR UPDATE"
    cur.execute(full_query, params)
    return cur.fetchone()
