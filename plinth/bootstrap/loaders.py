"""Configuration loaders and the factory that orders them.

A configuration loader turns the flat string source (``.env`` entries, the
process environment and, when enabled, Vault secrets) into one named
configuration slice. ``ConfigurationLoaderFactory`` decides from the feature
flags which loaders run and in which order:

1. ``vault`` when ``USE_VAULT`` is on; a source loader whose secrets are
   merged over the source before any slice is validated
2. ``logger`` and ``jwt``, always
3. ``database`` when ``USE_DATABASE`` is on
4. ``redis`` when ``USE_REDIS`` is on

Loaders run sequentially and synchronously, before any request is accepted.
"""

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from dotenv import dotenv_values
from pydantic import BaseModel, ValidationError

from plinth.core.config import (
    ApplicationConfig,
    DatabaseConfig,
    JwtConfig,
    LogConfig,
    RedisConfig,
    Settings,
    VaultConfig,
)
from plinth.core.exceptions import ConfigurationError
from plinth.core.types import ConfigSource
from plinth.infrastructure.secrets.vault import VaultClient

ENV_FILE_PATH = ".env"


@dataclass(frozen=True)
class ConfigurationLoader:
    """A named step of configuration loading.

    Attributes:
        name: Explicit loader name, reported in ``loaded_configurations``.
        load: Callable producing the loader's result from the current source.
        is_source: The result is a mapping merged into the source instead of
            a configuration slice.
    """

    name: str
    load: Callable[[ConfigSource], Any]
    is_source: bool = False


def validate_slice[M: BaseModel](model: type[M], name: str, source: ConfigSource) -> M:
    """Validate one configuration slice from the flat source.

    Empty strings count as unset.

    Args:
        model: Slice model to validate.
        name: Slice name used in error messages.
        source: Flat key/value source.

    Returns:
        M: The validated slice.

    Raises:
        ConfigurationError: Naming every missing variable, or the validation
            problem when values are present but invalid.
    """
    values = {key: value for key, value in source.items() if value != ""}
    try:
        return model.model_validate(values)
    except ValidationError as e:
        missing = [
            ".".join(str(part) for part in error["loc"])
            for error in e.errors()
            if error["type"] == "missing"
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required {name} configuration: {', '.join(missing)}"
            ) from e
        raise ConfigurationError(f"Invalid {name} configuration: {e}") from e


def _slice_loader[M: BaseModel](name: str, model: type[M]) -> ConfigurationLoader:
    return ConfigurationLoader(
        name=name, load=lambda source: validate_slice(model, name, source)
    )


def create_vault_loader(
    transport: httpx.BaseTransport | None = None,
) -> ConfigurationLoader:
    """Build the loader that fetches the Vault secret bundle.

    Args:
        transport: Optional httpx transport for the Vault client.

    Returns:
        ConfigurationLoader: Source loader whose result is a string mapping.
    """

    def load(source: ConfigSource) -> dict[str, str]:
        vault_config = validate_slice(VaultConfig, "vault", source)
        secrets = VaultClient(vault_config, transport=transport).read_secret()
        return {str(key).upper(): str(value) for key, value in secrets.items()}

    return ConfigurationLoader(name="vault", load=load, is_source=True)


class ConfigurationLoaderFactory:
    """Decides which configuration loaders run, from the feature flags."""

    @staticmethod
    def create_loaders(
        settings: Settings,
        *,
        vault_transport: httpx.BaseTransport | None = None,
    ) -> list[ConfigurationLoader]:
        """Return the loaders to run, in order.

        Args:
            settings: Process settings holding the feature flags.
            vault_transport: Optional httpx transport for the Vault loader.

        Returns:
            list[ConfigurationLoader]: Vault first when enabled, then logger,
                jwt and the enabled service slices.
        """
        loaders = [
            _slice_loader("logger", LogConfig),
            _slice_loader("jwt", JwtConfig),
        ]
        if settings.use_database:
            loaders.append(_slice_loader("database", DatabaseConfig))
        if settings.use_redis:
            loaders.append(_slice_loader("redis", RedisConfig))
        if settings.use_vault:
            loaders.insert(0, create_vault_loader(vault_transport))
        return loaders

    @staticmethod
    def get_loaded_configurations(settings: Settings) -> list[str]:
        """Names of the loaders that run for these settings."""
        return [
            loader.name for loader in ConfigurationLoaderFactory.create_loaders(settings)
        ]

    @staticmethod
    def get_env_file_path(settings: Settings) -> str | None:
        """The ``.env`` file to read, or None when secrets come from Vault."""
        if settings.use_vault:
            return None
        return ENV_FILE_PATH


def read_sources(
    settings: Settings,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Snapshot the file and environment sources into one flat mapping.

    Keys are upper-cased. Environment values override ``.env`` entries.

    Args:
        settings: Process settings.
        environ: Environment to read. Defaults to ``os.environ``.

    Returns:
        dict[str, str]: The merged source.
    """
    merged: dict[str, str] = {}
    env_file = ConfigurationLoaderFactory.get_env_file_path(settings)
    if env_file and Path(env_file).is_file():
        merged.update(
            {
                key.upper(): value
                for key, value in dotenv_values(env_file).items()
                if value is not None
            }
        )
    environment = os.environ if environ is None else environ
    merged.update({key.upper(): value for key, value in environment.items()})
    return merged


def load_configuration(
    settings: Settings,
    environ: Mapping[str, str] | None = None,
    *,
    vault_transport: httpx.BaseTransport | None = None,
) -> ApplicationConfig:
    """Run every loader in order and assemble the application configuration.

    Args:
        settings: Process settings holding the feature flags.
        environ: Environment to read. Defaults to ``os.environ``.
        vault_transport: Optional httpx transport for the Vault loader.

    Returns:
        ApplicationConfig: The immutable configuration for the process.

    Raises:
        ConfigurationError: If a loader fails or an enabled slice is incomplete.
    """
    source = read_sources(settings, environ)
    loaders = ConfigurationLoaderFactory.create_loaders(
        settings, vault_transport=vault_transport
    )

    slices: dict[str, Any] = {}
    for loader in loaders:
        result = loader.load(source)
        if loader.is_source:
            source = {**source, **result}
        else:
            slices[loader.name] = result

    return ApplicationConfig(
        settings=settings,
        logger=slices["logger"],
        jwt=slices["jwt"],
        database=slices.get("database"),
        redis=slices.get("redis"),
        secrets_loaded=settings.use_vault,
        loaded_configurations=tuple(loader.name for loader in loaders),
    )
