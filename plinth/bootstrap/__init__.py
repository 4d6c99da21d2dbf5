"""Startup assembly of configuration loaders and optional service modules.

- **loaders**: Configuration loaders and ``ConfigurationLoaderFactory``
- **modules**: Service modules, load strategies and ``InfrastructureModuleBuilder``
- **assembler**: ``ConfigurationAssembler``, the single entry point used at startup
"""

from plinth.bootstrap.assembler import AssembledInfrastructure, ConfigurationAssembler
from plinth.bootstrap.loaders import ConfigurationLoader, ConfigurationLoaderFactory
from plinth.bootstrap.modules import (
    InfrastructureModuleBuilder,
    InfrastructureModules,
    ModuleLoadStrategy,
    ServiceModule,
)

__all__ = [
    "AssembledInfrastructure",
    "ConfigurationAssembler",
    "ConfigurationLoader",
    "ConfigurationLoaderFactory",
    "InfrastructureModuleBuilder",
    "InfrastructureModules",
    "ModuleLoadStrategy",
    "ServiceModule",
]
