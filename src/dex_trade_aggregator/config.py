"""Settings for the DEX trade aggregator.

Everything is read from environment variables (or a local .env file) and
validated once at startup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dex_trade_aggregator.aggregation.bucketing import Granularity, parse_granularities
from dex_trade_aggregator.aggregation.decimal_math import RATIO_PRECISION

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    url: str = Field(
        default="sqlite+aiosqlite:///./dex_trade_aggregator.db",
        alias="DATABASE_URL",
        description="PostgreSQL or SQLite connection string",
    )
    pool_size: int = Field(default=5, alias="DATABASE_POOL_SIZE", ge=1, le=100)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith(("postgresql://", "postgresql+asyncpg://", "sqlite://", "sqlite+aiosqlite://")):
            raise ValueError("DATABASE_URL must be a PostgreSQL or SQLite connection string")
        return v


class RedisSettings(BaseSettings):
    """Redis connection settings."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    url: str = Field(
        default="redis://localhost:6379",
        alias="REDIS_URL",
        description="Redis connection string",
    )
    key_prefix: str = Field(
        default="dex:",
        alias="REDIS_KEY_PREFIX",
        description="Prefix applied to every key written by the Redis stores",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith(("redis://", "rediss://")):
            raise ValueError("REDIS_URL must start with redis:// or rediss://")
        return v


class AggregationSettings(BaseSettings):
    """Bucket granularities and ratio precision."""

    model_config = SettingsConfigDict(env_prefix="AGGREGATION_", extra="ignore")

    granularities_spec: str = Field(
        default="hour:3600,day:86400",
        alias="AGGREGATION_GRANULARITIES",
        description="Comma-separated label:seconds pairs, applied in order",
    )
    ratio_precision: int = Field(
        default=RATIO_PRECISION,
        alias="AGGREGATION_RATIO_PRECISION",
        ge=1,
        le=200,
        description="Significant digits kept for per-trade ratio samples",
    )

    @field_validator("granularities_spec")
    @classmethod
    def validate_granularities(cls, v: str) -> str:
        parse_granularities(v)
        return v

    @property
    def granularities(self) -> tuple[Granularity, ...]:
        return parse_granularities(self.granularities_spec)


class Settings(BaseSettings):
    """Top-level settings: store backend selection plus the nested sections."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    database: DatabaseSettings = Field(
        default_factory=lambda: DatabaseSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    redis: RedisSettings = Field(
        default_factory=lambda: RedisSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    aggregation: AggregationSettings = Field(
        default_factory=lambda: AggregationSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    store_backend: Literal["sql", "redis", "memory"] = Field(
        default="sql",
        alias="STORE_BACKEND",
        description="Where aggregates and open offers are persisted; 'sql' uses DATABASE_URL",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "database_url": self._redact_url(self.database.url),
            "redis_url": self._redact_url(self.redis.url),
            "aggregation": {
                "granularities": ",".join(f"{g.label}:{g.seconds}" for g in self.aggregation.granularities),
                "ratio_precision": str(self.aggregation.ratio_precision),
            },
            "store_backend": self.store_backend,
            "log_level": self.log_level,
        }

    def validate_requirements(self, *, command: Literal["replay", "init-db"]) -> None:
        """Validate command-specific requirements.

        Raises:
            ValueError: If the command cannot run with this configuration.
        """
        if command == "init-db" and self.store_backend != "sql":
            raise ValueError("init-db requires STORE_BACKEND=sql")

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment and .env once per process.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Forget the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
