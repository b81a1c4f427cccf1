"""Runtime settings loaded from environment variables.

All configuration is read once at startup. Missing or invalid values raise
ConfigError so the process can refuse to serve instead of failing per request.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping

_SCHEMA_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")

DEFAULT_SCHEMA = "desarrolladores"
DEFAULT_CORS_ORIGINS = ("http://localhost:5173",)


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""

    pass


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration.

    Attributes:
        database_url: libpq DSN or postgres:// URL.
        db_password: Password used only when database_url carries none.
        db_schema: Schema holding the parking tables (set as search_path).
        pool_min: Connections opened eagerly by the pool.
        pool_max: Upper bound of concurrently checked-out connections.
        pool_timeout: Seconds a request waits for a free connection.
        environment: "development" exposes error details in responses.
        host: Listen host for the bundled server.
        port: Listen port for the bundled server.
        cors_origins: Origins allowed by CORS.
    """

    database_url: str
    db_password: str | None = None
    db_schema: str = DEFAULT_SCHEMA
    pool_min: int = 2
    pool_max: int = 10
    pool_timeout: float = 60.0
    environment: str = "production"
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    @property
    def debug(self) -> bool:
        return self.environment == "development"


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from the environment.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If DATABASE_URL is missing or a value is invalid.
    """
    env = os.environ if environ is None else environ

    database_url = env.get("DATABASE_URL")
    if not database_url:
        raise ConfigError("DATABASE_URL environment variable not set")

    db_schema = env.get("DB_SCHEMA") or DEFAULT_SCHEMA
    if not _SCHEMA_PATTERN.match(db_schema):
        raise ConfigError(f"DB_SCHEMA is not a valid identifier: {db_schema!r}")

    pool_min = _int(env, "DB_POOL_MIN", 2)
    pool_max = _int(env, "DB_POOL_MAX", 10)
    if pool_max < 1:
        raise ConfigError("DB_POOL_MAX must be at least 1")
    if pool_min < 0 or pool_min > pool_max:
        raise ConfigError("DB_POOL_MIN must be between 0 and DB_POOL_MAX")

    pool_timeout = _float(env, "DB_POOL_TIMEOUT", 60.0)
    if pool_timeout <= 0:
        raise ConfigError("DB_POOL_TIMEOUT must be positive")

    port = _int(env, "PORT", 8000)
    if not 0 < port < 65536:
        raise ConfigError(f"PORT out of range: {port}")

    origins_raw = env.get("CORS_ORIGINS")
    if origins_raw:
        cors_origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip())
    else:
        cors_origins = DEFAULT_CORS_ORIGINS

    return Settings(
        database_url=database_url,
        db_password=env.get("DB_PASSWORD") or None,
        db_schema=db_schema,
        pool_min=pool_min,
        pool_max=pool_max,
        pool_timeout=pool_timeout,
        environment=(env.get("APP_ENV") or "production").lower(),
        host=env.get("HOST") or "127.0.0.1",
        port=port,
        cors_origins=cors_origins,
    )
