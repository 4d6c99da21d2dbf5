"""FastAPI dependency injection for database session management.

The ``DatabaseSession`` type alias injects a session into route handlers
without repeating the ``Depends()`` pattern. Sessions come from the
``DatabaseModule`` registered on ``app.state.modules`` at startup.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from plinth.core.exceptions import ErrorRecord, ExceptionKind, PlinthError
from plinth.infrastructure.database.session import DatabaseModule


def get_database_module(request: Request) -> DatabaseModule:
    """Return the activated database module.

    Args:
        request: The current request.

    Returns:
        DatabaseModule: The shared database handle.

    Raises:
        PlinthError: If the database feature is disabled.
    """
    module = request.app.state.modules.get(DatabaseModule.name)
    if not isinstance(module, DatabaseModule):
        raise PlinthError(
            ErrorRecord.create(
                [],
                500,
                ExceptionKind.INTERNAL_SERVER_ERROR,
                "Database module is not enabled",
            )
        )
    return module


async def get_db(
    module: Annotated[DatabaseModule, Depends(get_database_module)],
) -> AsyncGenerator[AsyncSession]:
    """Provide a database session for the duration of a request.

    Yields:
        AsyncSession: Session committed on success, rolled back on error.

    Example:
        @app.get("/users")
        async def get_users(db: DatabaseSession):
            result = await db.execute(select(User))
            return result.scalars().all()
    """
    async with module.session() as session:
        yield session


# Type alias for cleaner dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
