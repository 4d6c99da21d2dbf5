"""Fixtures for integration tests against the assembled application."""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from loguru import logger
from pydantic import BaseModel

from plinth.api.main import create_app
from plinth.core.config import Settings
from plinth.core.exceptions import ForbiddenError, NotFoundError
from plinth.core.logging import get_logger


class LoginRequest(BaseModel):
    """Body of the sample login route."""

    email: str
    password: str


def add_test_routes(app: FastAPI) -> None:
    """Routes that exercise the success and failure paths."""
    route_logger = get_logger("tests.routes")

    @app.get("/test/users/{user_id}")
    async def get_user(user_id: int) -> dict[str, int]:
        if user_id == 1:
            return {"id": 1}
        raise NotFoundError("User", user_id)

    @app.get("/test/reports")
    async def get_reports() -> None:
        raise ForbiddenError("reports")

    @app.post("/test/login")
    async def login(body: LoginRequest) -> dict[str, str]:
        route_logger.log("Login attempt", context={"email": body.email})
        return {"email": body.email}

    @app.get("/test/crash")
    async def crash() -> None:
        raise RuntimeError("Something went wrong")


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run each test where no stray ``.env`` file can be picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def app() -> FastAPI:
    """Baseline application (no optional services) with test routes."""
    application = create_app(Settings(_env_file=None), environ={"LOG_FORMAT": "json"})
    add_test_routes(application)
    return application


@pytest.fixture
def app_log_records(app: FastAPI) -> Generator[list[dict[str, Any]]]:
    """Records emitted after the application configured logging."""
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="TRACE")
    yield records
    logger.remove(handler_id)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Async client talking to the application in-process."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as test_client:
        yield test_client
