"""Tests for environment configuration."""

import pytest

from parqueo.infra.settings import (
    DEFAULT_CORS_ORIGINS,
    DEFAULT_SCHEMA,
    ConfigError,
    Settings,
    load_settings,
)


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings({"DATABASE_URL": "dbname=parqueo"})

        assert settings == Settings(database_url="dbname=parqueo")
        assert settings.db_schema == DEFAULT_SCHEMA
        assert settings.cors_origins == DEFAULT_CORS_ORIGINS
        assert settings.debug is False

    def test_missing_database_url(self):
        with pytest.raises(ConfigError, match="DATABASE_URL"):
            load_settings({})

    def test_overrides(self):
        settings = load_settings(
            {
                "DATABASE_URL": "postgres://u@h/db",
                "DB_PASSWORD": "pw",
                "DB_SCHEMA": "parking_2024",
                "DB_POOL_MIN": "1",
                "DB_POOL_MAX": "20",
                "DB_POOL_TIMEOUT": "2.5",
                "APP_ENV": "Development",
                "HOST": "0.0.0.0",
                "PORT": "3000",
                "CORS_ORIGINS": "https://a.example, https://b.example,",
            }
        )

        assert settings.db_password == "pw"
        assert settings.db_schema == "parking_2024"
        assert (settings.pool_min, settings.pool_max, settings.pool_timeout) == (1, 20, 2.5)
        assert settings.debug is True
        assert (settings.host, settings.port) == ("0.0.0.0", 3000)
        assert settings.cors_origins == ("https://a.example", "https://b.example")

    @pytest.mark.parametrize("schema", ["1abc", "a-b", "x; DROP TABLE y", "a" * 64])
    def test_rejects_unsafe_schema(self, schema):
        with pytest.raises(ConfigError, match="DB_SCHEMA"):
            load_settings({"DATABASE_URL": "dbname=x", "DB_SCHEMA": schema})

    @pytest.mark.parametrize(
        "env",
        [
            {"DB_POOL_MAX": "0"},
            {"DB_POOL_MIN": "5", "DB_POOL_MAX": "2"},
            {"DB_POOL_MIN": "-1"},
            {"DB_POOL_TIMEOUT": "0"},
            {"PORT": "70000"},
            {"PORT": "eighty"},
            {"DB_POOL_TIMEOUT": "soon"},
        ],
    )
    def test_rejects_invalid_numbers(self, env):
        with pytest.raises(ConfigError):
            load_settings({"DATABASE_URL": "dbname=x", **env})

    def test_empty_values_fall_back_to_defaults(self):
        settings = load_settings(
            {"DATABASE_URL": "dbname=x", "DB_POOL_MAX": "", "PORT": "", "DB_PASSWORD": ""}
        )
        assert settings.pool_max == 10
        assert settings.port == 8000
        assert settings.db_password is None
