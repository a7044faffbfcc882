"""Tests for configuration management."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from dex_trade_aggregator.aggregation.bucketing import DAY, HOUR
from dex_trade_aggregator.config import (
    AggregationSettings,
    DatabaseSettings,
    RedisSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

_ENV_VARS = (
    "DATABASE_URL",
    "DATABASE_POOL_SIZE",
    "REDIS_URL",
    "REDIS_KEY_PREFIX",
    "AGGREGATION_GRANULARITIES",
    "AGGREGATION_RATIO_PRECISION",
    "STORE_BACKEND",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate settings from the developer's environment and .env file."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.store_backend == "sql"
        assert settings.log_level == "INFO"
        assert settings.database.url.startswith("sqlite+aiosqlite://")
        assert settings.aggregation.granularities == (HOUR, DAY)
        assert settings.aggregation.ratio_precision == 34
        assert settings.get_logging_level() == logging.INFO

    def test_env_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("STORE_BACKEND", "redis")
        monkeypatch.setenv("REDIS_URL", "rediss://cache:6380/1")
        monkeypatch.setenv("AGGREGATION_GRANULARITIES", "minute:60,week:604800")
        monkeypatch.setenv("AGGREGATION_RATIO_PRECISION", "50")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        settings = Settings()
        assert settings.store_backend == "redis"
        assert settings.redis.url == "rediss://cache:6380/1"
        assert [g.label for g in settings.aggregation.granularities] == ["minute", "week"]
        assert settings.aggregation.ratio_precision == 50
        assert settings.get_logging_level() == logging.DEBUG

    def test_env_file(self, tmp_path) -> None:
        (tmp_path / ".env").write_text("STORE_BACKEND=memory\nAGGREGATION_GRANULARITIES=day:86400\n")
        settings = Settings()
        assert settings.store_backend == "memory"
        assert settings.aggregation.granularities == (DAY,)


class TestValidation:
    """Tests for invalid settings."""

    def test_bad_database_url(self, monkeypatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "mysql://localhost/db")
        with pytest.raises(ValidationError):
            DatabaseSettings()

    def test_bad_redis_url(self, monkeypatch) -> None:
        monkeypatch.setenv("REDIS_URL", "http://localhost")
        with pytest.raises(ValidationError):
            RedisSettings()

    @pytest.mark.parametrize("spec", ["", "hour", "hour:0", "hour:3600,hour:60", "half-hour:1800"])
    def test_bad_granularities(self, monkeypatch, spec: str) -> None:
        monkeypatch.setenv("AGGREGATION_GRANULARITIES", spec)
        with pytest.raises(ValidationError):
            AggregationSettings()

    def test_bad_precision(self, monkeypatch) -> None:
        monkeypatch.setenv("AGGREGATION_RATIO_PRECISION", "0")
        with pytest.raises(ValidationError):
            AggregationSettings()

    def test_bad_backend(self, monkeypatch) -> None:
        monkeypatch.setenv("STORE_BACKEND", "mongo")
        with pytest.raises(ValidationError):
            Settings()


class TestHelpers:
    """Tests for summary and command checks."""

    def test_redacted_summary(self, monkeypatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://user:secret@db:5432/dex")
        summary = Settings().redacted_summary()
        assert summary["database_url"] == "postgresql+asyncpg://user:***@db:5432/dex"
        assert "secret" not in str(summary)
        assert summary["aggregation"] == {"granularities": "hour:3600,day:86400", "ratio_precision": "34"}

    def test_init_db_requires_sql_backend(self, monkeypatch) -> None:
        monkeypatch.setenv("STORE_BACKEND", "memory")
        settings = Settings()
        with pytest.raises(ValueError):
            settings.validate_requirements(command="init-db")
        settings.validate_requirements(command="replay")

    def test_init_db_allowed_for_sql_backend_with_sqlite_url(self, monkeypatch) -> None:
        monkeypatch.setenv("STORE_BACKEND", "sql")
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./local.db")
        Settings().validate_requirements(command="init-db")

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first
