"""Centralized configuration management with immutable configuration values.

This module implements the configuration model using Pydantic and Pydantic
Settings, providing type-safe configuration with validation and environment
variable support.

Two layers exist:
- **Settings**: process-level values and the feature flags, resolved once by
  Pydantic Settings from the environment and an optional ``.env`` file
- **Configuration slices**: ``LogConfig``, ``JwtConfig``, ``DatabaseConfig``,
  ``RedisConfig`` and ``VaultConfig``, validated from a flat string mapping by
  the configuration loaders in ``plinth.bootstrap.loaders``

All models are frozen. ``ApplicationConfig`` bundles the loaded slices into the
single configuration value that is handed to every component at startup.
"""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from plinth.core.constants import DEFAULT_EXCLUDED_PATHS, DEFAULT_SENSITIVE_FIELDS

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]

LOG_LEVEL_ALIASES = {"WARN": "WARNING", "VERBOSE": "TRACE", "FATAL": "CRITICAL"}


def parse_flag(value: object) -> bool:
    """Interpret an environment flag.

    Only the literal string ``"true"`` (case-insensitive, whitespace ignored)
    enables a flag; every other value disables it.

    Args:
        value: Raw flag value.

    Returns:
        bool: The flag state.
    """
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


def split_csv(value: object) -> object:
    """Split a comma-separated string into stripped, non-empty entries."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class _Slice(BaseModel):
    """Base for configuration slices validated from env-var aliases."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class LogConfig(_Slice):
    """Logging configuration."""

    log_level: LogLevel = Field(
        default="DEBUG",
        validation_alias="LOG_LEVEL",
        description="Minimum level written to the log sink",
    )
    log_format: Literal["json", "pretty"] = Field(
        default="pretty",
        validation_alias="LOG_FORMAT",
        description="One JSON object per line, or colorized human-readable output",
    )
    sensitive_fields: tuple[str, ...] = Field(
        default=DEFAULT_SENSITIVE_FIELDS,
        validation_alias="LOG_SENSITIVE_FIELDS",
        description="Key substrings whose values are masked in logs",
    )
    excluded_paths: tuple[str, ...] = Field(
        default=DEFAULT_EXCLUDED_PATHS,
        validation_alias="LOG_EXCLUDE_PATHS",
        description="Path substrings exempt from request/response logging",
    )
    slow_request_threshold_ms: int = Field(
        default=1000,
        gt=0,
        validation_alias="LOG_SLOW_REQUEST_THRESHOLD_MS",
        description="Threshold for slow request warnings (milliseconds)",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        """Accept lower-case and common alias level names."""
        if isinstance(v, str):
            level = v.strip().upper()
            return LOG_LEVEL_ALIASES.get(level, level)
        return v

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_format(cls, v: object) -> object:
        """Accept the format name in any case."""
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("sensitive_fields", "excluded_paths", mode="before")
    @classmethod
    def parse_list(cls, v: object) -> object:
        """Split comma-separated environment values."""
        return split_csv(v)


class JwtConfig(_Slice):
    """Authentication token configuration."""

    access_token_secret: str = Field(
        default="change-me-access-secret",
        validation_alias="JWT_ACCESS_TOKEN_SECRET",
    )
    access_token_expires_in: str = Field(
        default="15m",
        validation_alias="JWT_ACCESS_TOKEN_EXPIRES_IN",
    )
    refresh_token_secret: str = Field(
        default="change-me-refresh-secret",
        validation_alias="JWT_REFRESH_TOKEN_SECRET",
    )
    refresh_token_expires_in: str = Field(
        default="7d",
        validation_alias="JWT_REFRESH_TOKEN_EXPIRES_IN",
    )


class DatabaseConfig(_Slice):
    """Database configuration settings."""

    host: str = Field(validation_alias="DB_HOST", description="PostgreSQL host")
    name: str = Field(validation_alias="DB_NAME", description="Database name")
    username: str = Field(validation_alias="DB_USER", description="Database user")
    password: str = Field(default="", validation_alias="DB_PASSWORD")
    port: int = Field(default=5432, gt=0, lt=65536, validation_alias="DB_PORT")
    use_connection_pooler: bool = Field(
        default=False,
        validation_alias="DB_USE_CONNECTION_POOLER",
        description="Running behind PgBouncer/RDS Proxy (disables prepared statements)",
    )
    ssl: bool = Field(default=False, validation_alias="DB_SSL")
    pool_size: int = Field(
        default=10,
        ge=1,
        le=100,
        validation_alias="DB_POOL_SIZE",
        description="Number of connections to maintain in the pool",
    )
    max_overflow: int = Field(
        default=5,
        ge=0,
        le=50,
        validation_alias="DB_MAX_OVERFLOW",
        description="Maximum overflow connections above pool_size",
    )
    pool_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        validation_alias="DB_POOL_TIMEOUT",
        description="Timeout in seconds for acquiring a connection from the pool",
    )
    echo: bool = Field(
        default=False,
        validation_alias="DB_ECHO",
        description="Whether to log SQL statements (use only for debugging)",
    )

    @field_validator("use_connection_pooler", "ssl", "echo", mode="before")
    @classmethod
    def parse_bool(cls, v: object) -> bool:
        """Interpret boolean environment values like the feature flags."""
        return parse_flag(v)

    @property
    def url(self) -> URL:
        """SQLAlchemy URL for the asyncpg driver."""
        return URL.create(
            "postgresql+asyncpg",
            username=self.username,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.name,
        )


class RedisConfig(_Slice):
    """Redis cache configuration."""

    host: str = Field(validation_alias="REDIS_HOST")
    port: int = Field(default=6379, gt=0, lt=65536, validation_alias="REDIS_PORT")
    username: str = Field(default="", validation_alias="REDIS_USER")
    password: str = Field(default="", validation_alias="REDIS_PASSWORD")
    db: int = Field(default=0, ge=0, validation_alias="REDIS_DB")


class VaultConfig(_Slice):
    """HashiCorp Vault KV v2 secret-store configuration."""

    address: str = Field(
        default="http://127.0.0.1:8200",
        validation_alias="VAULT_ADDR",
    )
    token: str = Field(validation_alias="VAULT_TOKEN")
    secret_path: str = Field(validation_alias="SECRET_PATH")
    mount_path: str = Field(default="secret", validation_alias="MOUNT_PATH")
    timeout: float = Field(default=5.0, gt=0, validation_alias="VAULT_TIMEOUT")

    @property
    def secret_url(self) -> str:
        """Full URL of the KV v2 secret."""
        mount = self.mount_path.strip("/")
        path = self.secret_path.strip("/")
        return f"{self.address.rstrip('/')}/v1/{mount}/data/{path}"


class Settings(BaseSettings):
    """Process-level settings and the optional-service feature flags."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application settings
    app_name: str = Field(default="Plinth", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    # API settings
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=3000, description="API port")
    docs_url: str | None = Field(default="/docs", description="Swagger UI URL")
    redoc_url: str | None = Field(default="/redoc", description="ReDoc URL")
    openapi_url: str | None = Field(
        default="/openapi.json", description="OpenAPI schema URL"
    )

    # Optional services
    use_database: bool = Field(default=False, description="Activate PostgreSQL")
    use_redis: bool = Field(default=False, description="Activate the Redis cache")
    use_vault: bool = Field(
        default=False, description="Load secrets from HashiCorp Vault at startup"
    )

    @field_validator("use_database", "use_redis", "use_vault", mode="before")
    @classmethod
    def parse_feature_flag(cls, v: object) -> bool:
        """Only the literal string "true" enables a feature."""
        return parse_flag(v)

    @field_validator("docs_url", "redoc_url", "openapi_url", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


class ApplicationConfig(BaseModel):
    """Fully assembled, read-only configuration for the running process."""

    model_config = ConfigDict(frozen=True)

    settings: Settings
    logger: LogConfig
    jwt: JwtConfig
    database: DatabaseConfig | None = None
    redis: RedisConfig | None = None
    secrets_loaded: bool = False
    loaded_configurations: tuple[str, ...] = ()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
