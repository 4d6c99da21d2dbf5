"""Unit tests for plinth/core/config.py."""

import pydantic
import pytest
import pytest_check

from plinth.core.config import (
    ApplicationConfig,
    DatabaseConfig,
    JwtConfig,
    LogConfig,
    RedisConfig,
    Settings,
    VaultConfig,
    get_settings,
    parse_flag,
)


@pytest.mark.unit
class TestParseFlag:
    """Only the literal "true" enables a flag."""

    @pytest.mark.parametrize("value", ["true", "TRUE", " True ", True])
    def test_enabled(self, value: object) -> None:
        assert parse_flag(value) is True

    @pytest.mark.parametrize("value", ["false", "1", "yes", "on", "", None, False])
    def test_disabled(self, value: object) -> None:
        assert parse_flag(value) is False


@pytest.mark.unit
class TestSettings:
    """Test process-level settings."""

    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        with pytest_check.check:
            assert settings.app_name == "Plinth"
        with pytest_check.check:
            assert settings.api_port == 3000
        with pytest_check.check:
            assert settings.use_database is False
        with pytest_check.check:
            assert settings.use_redis is False
        with pytest_check.check:
            assert settings.use_vault is False

    def test_feature_flags_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("USE_DATABASE", "true")
        monkeypatch.setenv("USE_REDIS", "1")
        monkeypatch.setenv("USE_VAULT", "TRUE")

        settings = Settings(_env_file=None)

        assert settings.use_database is True
        assert settings.use_redis is False
        assert settings.use_vault is True

    def test_settings_are_frozen(self) -> None:
        settings = Settings(_env_file=None)

        with pytest.raises(pydantic.ValidationError):
            settings.use_database = True  # type: ignore[misc]

    def test_empty_docs_url_disables_docs(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOCS_URL", "")

        assert Settings(_env_file=None).docs_url is None

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


@pytest.mark.unit
class TestLogConfig:
    """Test the logging slice."""

    def test_defaults(self) -> None:
        config = LogConfig()

        assert config.log_level == "DEBUG"
        assert config.log_format == "pretty"
        assert "password" in config.sensitive_fields
        assert config.excluded_paths == ("/api/v1/health", "/health")

    @pytest.mark.parametrize(
        ("raw", "level"),
        [("info", "INFO"), ("warn", "WARNING"), ("verbose", "TRACE"), ("ERROR", "ERROR")],
    )
    def test_level_aliases(self, raw: str, level: str) -> None:
        assert LogConfig.model_validate({"LOG_LEVEL": raw}).log_level == level

    def test_format_is_case_insensitive(self) -> None:
        assert LogConfig.model_validate({"LOG_FORMAT": "JSON"}).log_format == "json"

    def test_unknown_format_rejected(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            LogConfig.model_validate({"LOG_FORMAT": "xml"})

    def test_comma_separated_lists(self) -> None:
        config = LogConfig.model_validate(
            {
                "LOG_SENSITIVE_FIELDS": "ssn, pin,,cardNumber",
                "LOG_EXCLUDE_PATHS": "/metrics,/health",
            }
        )

        assert config.sensitive_fields == ("ssn", "pin", "cardNumber")
        assert config.excluded_paths == ("/metrics", "/health")


@pytest.mark.unit
class TestServiceSlices:
    """Test the database, redis, vault and jwt slices."""

    def test_database_url(self) -> None:
        config = DatabaseConfig.model_validate(
            {
                "DB_HOST": "db.internal",
                "DB_NAME": "plinth",
                "DB_USER": "app",
                "DB_PASSWORD": "p@ss",
                "DB_PORT": "6432",
                "DB_USE_CONNECTION_POOLER": "true",
            }
        )

        assert config.url.drivername == "postgresql+asyncpg"
        assert config.url.host == "db.internal"
        assert config.url.port == 6432
        assert config.url.password == "p@ss"
        assert config.use_connection_pooler is True
        assert config.ssl is False

    def test_database_requires_connection_parameters(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            DatabaseConfig.model_validate({"DB_HOST": "localhost"})

    def test_redis_defaults(self) -> None:
        config = RedisConfig.model_validate({"REDIS_HOST": "cache"})

        assert (config.host, config.port, config.db) == ("cache", 6379, 0)

    def test_vault_secret_url(self) -> None:
        config = VaultConfig.model_validate(
            {
                "VAULT_ADDR": "http://vault:8200/",
                "VAULT_TOKEN": "t",
                "SECRET_PATH": "/plinth/dev",
            }
        )

        assert config.secret_url == "http://vault:8200/v1/secret/data/plinth/dev"

    def test_jwt_defaults(self) -> None:
        config = JwtConfig()

        assert config.access_token_expires_in == "15m"
        assert config.refresh_token_expires_in == "7d"

    def test_application_config_is_frozen(self) -> None:
        config = ApplicationConfig(
            settings=Settings(_env_file=None), logger=LogConfig(), jwt=JwtConfig()
        )

        with pytest.raises(pydantic.ValidationError):
            config.database = None  # type: ignore[misc]
