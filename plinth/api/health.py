"""Health endpoints for container orchestration and monitoring.

``/health`` reports each activated backing service as ``up`` or ``down``.
The overall status is ``healthy`` when nothing is down, ``degraded`` when
some services are down and others up, and ``unhealthy`` when every checked
service is down. ``/health/ready`` fails with 503 when any service is down;
``/health/live`` only proves the process answers.
"""

import time
from datetime import UTC, datetime
from http import HTTPStatus
from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel
from starlette.exceptions import HTTPException

from plinth.api.schemas.errors import ErrorResponse
from plinth.bootstrap.modules import InfrastructureModules
from plinth.core.constants import MILLISECONDS_PER_SECOND
from plinth.core.logging import get_logger

router = APIRouter(prefix="/health", tags=["health"])
logger = get_logger(__name__)

type ServiceState = Literal["up", "down"]


class ServiceStatus(BaseModel):
    """Liveness of one backing service."""

    status: ServiceState
    message: str | None = None
    response_time_ms: float | None = None


class HealthResponse(BaseModel):
    """Aggregate health of the service."""

    status: Literal["healthy", "degraded", "unhealthy"]
    timestamp: datetime
    uptime: float
    environment: str
    version: str
    services: dict[str, ServiceStatus]


async def check_services(modules: InfrastructureModules) -> dict[str, ServiceStatus]:
    """Run the liveness probe of every module that has one.

    Args:
        modules: The activated modules.

    Returns:
        dict[str, ServiceStatus]: Status per module name.
    """
    services: dict[str, ServiceStatus] = {}
    for name, module in modules:
        check = getattr(module, "check", None)
        if check is None:
            continue
        start = time.perf_counter()
        is_healthy, error = await check()
        elapsed_ms = round((time.perf_counter() - start) * MILLISECONDS_PER_SECOND, 2)
        if is_healthy:
            services[name] = ServiceStatus(status="up", response_time_ms=elapsed_ms)
        else:
            logger.warn(
                f"{name} health check failed", context={"service": name, "error": error}
            )
            services[name] = ServiceStatus(status="down", message=error)
    return services


def overall_status(
    services: dict[str, ServiceStatus],
) -> Literal["healthy", "degraded", "unhealthy"]:
    """Combine service states into the overall status."""
    states = {service.status for service in services.values()}
    if "down" not in states:
        return "healthy"
    return "degraded" if "up" in states else "unhealthy"


@router.get("", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Report the status of every activated backing service."""
    settings = request.app.state.config.settings
    services = await check_services(request.app.state.modules)
    return HealthResponse(
        status=overall_status(services),
        timestamp=datetime.now(UTC),
        uptime=round(time.monotonic() - request.app.state.started_at, 3),
        environment=settings.environment,
        version=settings.app_version,
        services=services,
    )


@router.get(
    "/ready",
    responses={HTTPStatus.SERVICE_UNAVAILABLE.value: {"model": ErrorResponse}},
)
async def readiness(request: Request) -> dict[str, str]:
    """Readiness probe: fails while any backing service is down."""
    services = await check_services(request.app.state.modules)
    down = [name for name, service in services.items() if service.status == "down"]
    if down:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail=f"Services unavailable: {', '.join(down)}",
        )
    return {"status": "ready"}


@router.get("/live")
async def liveness(request: Request) -> dict[str, object]:
    """Liveness probe."""
    return {
        "status": "alive",
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
    }
