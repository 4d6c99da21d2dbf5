"""Startup assembly of configuration and service modules."""

from collections.abc import Mapping
from dataclasses import dataclass

import httpx

from plinth.bootstrap.loaders import load_configuration
from plinth.bootstrap.modules import InfrastructureModuleBuilder, InfrastructureModules
from plinth.core.config import ApplicationConfig, Settings
from plinth.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AssembledInfrastructure:
    """Configuration and activated modules, read-only for the process lifetime."""

    config: ApplicationConfig
    modules: InfrastructureModules


class ConfigurationAssembler:
    """Turns the feature flags into a loaded configuration and module set.

    Args:
        settings: Process settings holding the feature flags.
        vault_transport: Optional httpx transport for the Vault loader.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        vault_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.vault_transport = vault_transport

    def assemble(
        self, environ: Mapping[str, str] | None = None
    ) -> AssembledInfrastructure:
        """Load configuration, then build the activated modules.

        Args:
            environ: Environment to read. Defaults to ``os.environ``.

        Returns:
            AssembledInfrastructure: The assembled result.

        Raises:
            ConfigurationError: If any enabled service is incompletely configured.
        """
        config = load_configuration(
            self.settings, environ, vault_transport=self.vault_transport
        )
        modules = (
            InfrastructureModuleBuilder.create(config)
            .with_logger()
            .with_database()
            .with_redis()
            .build()
        )

        logger.log(
            "Infrastructure modules loaded",
            context={
                "modules": list(modules.names),
                "configurations": list(config.loaded_configurations),
            },
        )
        return AssembledInfrastructure(config=config, modules=modules)
