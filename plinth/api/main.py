"""FastAPI application initialization and configuration module.

This module handles:
- Configuration assembly and service module activation (before serving)
- Application lifecycle management (module start/stop)
- Middleware registration in the correct order
- Exception handler registration
- Root, info and health endpoints

Middleware are executed in reverse order of registration, so the correlation
context is registered last to wrap request logging.
"""

import time
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from typing import Annotated, Any

import httpx
from fastapi import Depends, FastAPI, Request

from plinth.api.health import router as health_router
from plinth.api.middleware.error_handler import (
    ErrorBoundaryMiddleware,
    register_exception_handlers,
)
from plinth.api.middleware.request_context import RequestContextMiddleware
from plinth.api.middleware.request_logging import RequestLoggingMiddleware
from plinth.api.utils.responses import ORJSONResponse
from plinth.bootstrap.assembler import ConfigurationAssembler
from plinth.core.config import ApplicationConfig, Settings, get_settings
from plinth.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Start service modules before serving and stop them on shutdown.

    Args:
        app_instance: The FastAPI application instance.

    Yields:
        None: Nothing is yielded, this is just a lifespan context.
    """
    modules = app_instance.state.modules
    await modules.start_all()
    logger.log(
        f"Application startup complete - {app_instance.title} v{app_instance.version}",
        context={"modules": list(modules.names)},
    )

    yield

    logger.log("Application shutdown initiated")
    await modules.stop_all()


def get_app_config(request: Request) -> ApplicationConfig:
    """Dependency returning the assembled configuration."""
    return request.app.state.config  # type: ignore[no-any-return]


def create_app(
    settings: Settings | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    vault_transport: httpx.BaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().
        environ: Environment to load configuration from. Defaults to ``os.environ``.
        vault_transport: Optional httpx transport for the Vault loader.

    Returns:
        FastAPI: Configured FastAPI application instance.

    Raises:
        ConfigurationError: If an enabled service is incompletely configured.
    """
    if settings is None:
        settings = get_settings()

    assembled = ConfigurationAssembler(
        settings, vault_transport=vault_transport
    ).assemble(environ)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    application.state.config = assembled.config
    application.state.modules = assembled.modules
    application.state.started_at = time.monotonic()

    register_exception_handlers(application)

    # 3. Error boundary (converts exceptions the routing layer leaves unhandled)
    application.add_middleware(ErrorBoundaryMiddleware)

    # 2. Request logging middleware (logs requests/responses)
    application.add_middleware(
        RequestLoggingMiddleware, log_config=assembled.config.logger
    )

    # 1. Request context middleware (creates correlation ID)
    application.add_middleware(RequestContextMiddleware)

    application.include_router(health_router)

    @application.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint returning a welcome message."""
        return {"message": f"Hello from {settings.app_name}!"}

    @application.get("/info")
    async def info(
        config: Annotated[ApplicationConfig, Depends(get_app_config)],
    ) -> dict[str, Any]:
        """Get application information.

        Returns:
            dict[str, Any]: Name, version, environment, activated modules and
                loaded configuration slices.
        """
        return {
            "app_name": config.settings.app_name,
            "version": config.settings.app_version,
            "environment": config.settings.environment,
            "debug": config.settings.debug,
            "modules": list(application.state.modules.names),
            "configurations": list(config.loaded_configurations),
        }

    return application
