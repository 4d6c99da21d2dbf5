"""Service modules, their load strategies and the builder that activates them.

Each optional service is represented by a ``ModuleLoadStrategy`` registered
under an explicit name. The builder filters registered strategies by
``should_load()`` and maps the survivors through ``create()``, preserving
registration order. Adding a service means registering one more strategy.

Activation depends only on the assembled configuration, never on runtime
state: each strategy's decision is taken once per builder and reused.
"""

from collections.abc import Iterable, Iterator
from typing import Protocol, Self

from loguru import logger

from plinth.core.config import ApplicationConfig, LogConfig
from plinth.core.exceptions import ConfigurationError
from plinth.core.logging import get_logger, setup_logging
from plinth.infrastructure.cache.redis import RedisModule
from plinth.infrastructure.database.session import DatabaseModule

LOGGER_MODULE = "logger"
DATABASE_MODULE = "database"
REDIS_MODULE = "redis"

_log = get_logger(__name__)


class ServiceModule(Protocol):
    """A started-at-boot, stopped-at-shutdown service handle."""

    async def start(self) -> None:
        """Acquire resources and verify the service is reachable."""
        ...

    async def stop(self) -> None:
        """Release resources."""
        ...


class ModuleLoadStrategy(Protocol):
    """Activation predicate and constructor of one service module."""

    def should_load(self) -> bool:
        """Whether the module is activated for this configuration."""
        ...

    def create(self) -> ServiceModule:
        """Construct the module."""
        ...


class LoggerModule:
    """Configures the log pipeline and flushes it at shutdown."""

    name = LOGGER_MODULE

    def __init__(self, config: LogConfig, *, debug: bool = False) -> None:
        self.config = config
        self.debug = debug

    def configure(self) -> None:
        """Install the log sink for the configured format."""
        setup_logging(self.config, debug=self.debug)

    async def start(self) -> None:
        """Nothing to start; logging is configured when the module is built."""

    async def stop(self) -> None:
        """Wait for queued log messages to be written."""
        await logger.complete()


class LoggerModuleStrategy:
    """Always loads the logger module."""

    def __init__(self, config: ApplicationConfig) -> None:
        self.config = config

    def should_load(self) -> bool:
        return True

    def create(self) -> LoggerModule:
        module = LoggerModule(self.config.logger, debug=self.config.settings.debug)
        module.configure()
        return module


class DatabaseModuleStrategy:
    """Loads the database module when ``USE_DATABASE`` is enabled."""

    def __init__(self, config: ApplicationConfig) -> None:
        self.config = config

    def should_load(self) -> bool:
        return self.config.settings.use_database

    def create(self) -> DatabaseModule:
        if self.config.database is None:
            raise ConfigurationError(
                "Database module is enabled but its configuration was not loaded"
            )
        return DatabaseModule(self.config.database)


class RedisModuleStrategy:
    """Loads the Redis module when ``USE_REDIS`` is enabled."""

    def __init__(self, config: ApplicationConfig) -> None:
        self.config = config

    def should_load(self) -> bool:
        return self.config.settings.use_redis

    def create(self) -> RedisModule:
        if self.config.redis is None:
            raise ConfigurationError(
                "Redis module is enabled but its configuration was not loaded"
            )
        return RedisModule(self.config.redis)


class InfrastructureModules:
    """Immutable, ordered set of activated service modules.

    Args:
        modules: ``(name, module)`` pairs in activation order.
    """

    def __init__(self, modules: Iterable[tuple[str, ServiceModule]]) -> None:
        self._modules = tuple(modules)

    @property
    def names(self) -> tuple[str, ...]:
        """Module names in activation order."""
        return tuple(name for name, _ in self._modules)

    def get(self, name: str) -> ServiceModule | None:
        """Look up a module by name."""
        for module_name, module in self._modules:
            if module_name == name:
                return module
        return None

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __iter__(self) -> Iterator[tuple[str, ServiceModule]]:
        return iter(self._modules)

    def __len__(self) -> int:
        return len(self._modules)

    async def start_all(self) -> None:
        """Start modules in activation order.

        If one fails, the modules already started are stopped in reverse order
        and the error is re-raised, aborting startup.
        """
        started: list[tuple[str, ServiceModule]] = []
        for name, module in self._modules:
            try:
                await module.start()
            except Exception as e:
                _log.error(
                    f"Failed to start module {name}",
                    context={"module": name},
                    exception=e,
                )
                await self._stop(reversed(started))
                raise
            started.append((name, module))

    async def stop_all(self) -> None:
        """Stop modules in reverse activation order, logging failures."""
        await self._stop(reversed(self._modules))

    @staticmethod
    async def _stop(modules: Iterable[tuple[str, ServiceModule]]) -> None:
        for name, module in modules:
            try:
                await module.stop()
            except Exception as e:  # noqa: BLE001 - keep stopping the rest
                _log.error(
                    f"Failed to stop module {name}",
                    context={"module": name},
                    exception=e,
                )


class InfrastructureModuleBuilder:
    """Fluent registry of module strategies.

    Example:
        modules = (
            InfrastructureModuleBuilder.create(config)
            .with_logger()
            .with_database()
            .with_redis()
            .build()
        )
    """

    def __init__(self, config: ApplicationConfig) -> None:
        self.config = config
        self._strategies: list[tuple[str, ModuleLoadStrategy]] = []
        self._decisions: dict[str, bool] = {}

    @classmethod
    def create(cls, config: ApplicationConfig) -> Self:
        """Start a builder for the given configuration."""
        return cls(config)

    def register(self, name: str, strategy: ModuleLoadStrategy) -> Self:
        """Register a strategy under an explicit name.

        Raises:
            ValueError: If the name is already registered.
        """
        if any(registered == name for registered, _ in self._strategies):
            raise ValueError(f"Module '{name}' is already registered")
        self._strategies.append((name, strategy))
        return self

    def with_logger(self) -> Self:
        return self.register(LOGGER_MODULE, LoggerModuleStrategy(self.config))

    def with_database(self) -> Self:
        return self.register(DATABASE_MODULE, DatabaseModuleStrategy(self.config))

    def with_redis(self) -> Self:
        return self.register(REDIS_MODULE, RedisModuleStrategy(self.config))

    def _should_load(self, name: str, strategy: ModuleLoadStrategy) -> bool:
        if name not in self._decisions:
            self._decisions[name] = strategy.should_load()
        return self._decisions[name]

    def get_loaded_modules(self) -> list[str]:
        """Names of the registered modules that will be activated."""
        return [
            name
            for name, strategy in self._strategies
            if self._should_load(name, strategy)
        ]

    def build(self) -> InfrastructureModules:
        """Create every activated module, in registration order."""
        return InfrastructureModules(
            (name, strategy.create())
            for name, strategy in self._strategies
            if self._should_load(name, strategy)
        )
