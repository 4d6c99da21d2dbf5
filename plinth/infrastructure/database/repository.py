"""Base repository pattern implementation for database operations.

This module provides a generic repository base class that implements common
CRUD operations for SQLAlchemy models using async patterns.

Driver failures never leave the repository untyped:
- a unique-constraint violation becomes ``BadRequestError`` with kind
  ``UNIQUE_VIOLATION`` and the offending columns as target
- any other SQLAlchemy error becomes ``DatabaseOperationError``
- ``get_by_id_or_raise`` misses become ``NotFoundError``
"""

import re
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import delete as sql_delete
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from plinth.core.exceptions import (
    BadRequestError,
    DatabaseOperationError,
    ExceptionKind,
    NotFoundError,
    PlinthError,
)
from plinth.infrastructure.database.base import BaseModel

DEFAULT_PAGINATION_LIMIT = 100
UNIQUE_VIOLATION_SQLSTATE = "23505"

# PostgreSQL detail line: Key (email)=(a@b.c) already exists.
_KEY_DETAIL_PATTERN = re.compile(r"Key \((.+?)\)=")


def _sqlstate(error: IntegrityError) -> str | None:
    """Find the SQLSTATE on the driver error or the exception it wraps."""
    for candidate in (error.orig, getattr(error.orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def _violating_columns(error: IntegrityError) -> list[str]:
    """Extract the column names from a unique-violation detail message."""
    sources = [
        getattr(error.orig, "detail", None),
        getattr(getattr(error.orig, "__cause__", None), "detail", None),
        str(error.orig),
    ]
    for source in sources:
        if source and (match := _KEY_DETAIL_PATTERN.search(str(source))):
            return [column.strip() for column in match.group(1).split(",")]
    return []


def translate_integrity_error(error: IntegrityError, operation: str) -> PlinthError:
    """Map an integrity error to the matching taxonomy exception.

    Args:
        error: The error raised by SQLAlchemy.
        operation: Name of the repository operation.

    Returns:
        PlinthError: ``BadRequestError`` for unique violations, otherwise
            ``DatabaseOperationError``.
    """
    if _sqlstate(error) == UNIQUE_VIOLATION_SQLSTATE:
        columns = _violating_columns(error)
        return BadRequestError(
            columns,
            ExceptionKind.UNIQUE_VIOLATION,
            f"Duplicate value for {', '.join(columns) or 'a unique field'}",
        )
    return DatabaseOperationError(error, operation)


class BaseRepository[T: BaseModel]:
    """Base repository class providing common CRUD operations.

    Args:
        session: The async SQLAlchemy session to use for operations.
        model_class: The SQLAlchemy model class this repository manages.

    Example:
        class UserRepository(BaseRepository[User]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, User)
    """

    def __init__(self, session: AsyncSession, model_class: type[T]) -> None:
        self.session = session
        self.model_class = model_class

    @property
    def resource_name(self) -> str:
        """Name used in not-found details."""
        return self.model_class.__name__

    @asynccontextmanager
    async def _translate_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError as e:
            raise translate_integrity_error(e, operation) from e
        except SQLAlchemyError as e:
            raise DatabaseOperationError(e, operation) from e

    async def get_by_id(self, entity_id: int) -> T | None:
        """Retrieve a model instance by its ID.

        Args:
            entity_id: The primary key ID of the model to retrieve.

        Returns:
            T | None: The model instance if found, None otherwise.
        """
        async with self._translate_errors("get_by_id"):
            stmt = select(self.model_class).where(self.model_class.id == entity_id)
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def get_by_id_or_raise(self, entity_id: int) -> T:
        """Retrieve a model instance by its ID or raise ``NotFoundError``.

        Args:
            entity_id: The primary key ID of the model to retrieve.

        Returns:
            T: The model instance.

        Raises:
            NotFoundError: If no instance has this ID.
        """
        instance = await self.get_by_id(entity_id)
        if instance is None:
            raise NotFoundError(self.resource_name, entity_id)
        return instance

    async def get_all(
        self, skip: int = 0, limit: int = DEFAULT_PAGINATION_LIMIT
    ) -> list[T]:
        """Retrieve model instances ordered by ID with pagination."""
        async with self._translate_errors("get_all"):
            stmt = (
                select(self.model_class)
                .offset(skip)
                .limit(limit)
                .order_by(self.model_class.id)
            )
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

    async def create(self, obj: T) -> T:
        """Create a new model instance in the database.

        Args:
            obj: The model instance to create.

        Returns:
            T: The created model instance with populated ID and timestamps.

        Raises:
            BadRequestError: If a unique constraint is violated.
            DatabaseOperationError: On any other database failure.
        """
        async with self._translate_errors("create"):
            self.session.add(obj)
            await self.session.flush()
            await self.session.refresh(obj)

        logger.info("Created {} instance with ID: {}", self.resource_name, obj.id)
        return obj

    async def update(self, entity_id: int, data: Mapping[str, object]) -> T:
        """Update a model instance by its ID with partial data.

        Unknown field names are ignored with a warning.

        Args:
            entity_id: The primary key ID of the model to update.
            data: Fields to update.

        Returns:
            T: The updated model instance.

        Raises:
            NotFoundError: If no instance has this ID.
        """
        instance = await self.get_by_id_or_raise(entity_id)

        for key, value in data.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
            else:
                logger.warning(
                    "Attempted to update non-existent field '{}' on {}",
                    key,
                    self.resource_name,
                )

        async with self._translate_errors("update"):
            await self.session.flush()
            await self.session.refresh(instance)

        logger.info(
            "Updated {} instance ID {} - fields: {}",
            self.resource_name,
            entity_id,
            list(data.keys()),
        )
        return instance

    async def delete(self, entity_id: int) -> bool:
        """Delete a model instance by its ID.

        Returns:
            bool: True if the instance was deleted, False if not found.
        """
        async with self._translate_errors("delete"):
            stmt = sql_delete(self.model_class).where(self.model_class.id == entity_id)
            result = await self.session.execute(stmt)

        deleted = bool(result.rowcount)  # type: ignore[attr-defined]
        if deleted:
            logger.info("Deleted {} instance with ID: {}", self.resource_name, entity_id)
        return deleted

    async def soft_delete(self, entity_id: int) -> T:
        """Set ``deleted_at`` on a soft-deletable instance.

        Raises:
            NotFoundError: If no instance has this ID.
            TypeError: If the model has no ``deleted_at`` column.
        """
        if not hasattr(self.model_class, "deleted_at"):
            raise TypeError(f"{self.resource_name} does not support soft delete")
        return await self.update(entity_id, {"deleted_at": datetime.now(UTC)})

    async def count(self) -> int:
        """Count all instances of the model."""
        async with self._translate_errors("count"):
            stmt = select(func.count()).select_from(self.model_class)
            result = await self.session.execute(stmt)
            return result.scalar() or 0

    async def exists(self, entity_id: int) -> bool:
        """Check if a model instance exists by its ID."""
        async with self._translate_errors("exists"):
            stmt = (
                select(func.count())
                .select_from(self.model_class)
                .where(self.model_class.id == entity_id)
            )
            result = await self.session.execute(stmt)
            return (result.scalar() or 0) > 0

    async def filter_by(self, **kwargs: object) -> list[T]:
        """Filter model instances by field equality, ordered by ID.

        Args:
            **kwargs: Field-value pairs to filter by.

        Returns:
            list[T]: Instances matching all conditions.
        """
        stmt = select(self.model_class)
        for field, value in kwargs.items():
            if hasattr(self.model_class, field):
                stmt = stmt.where(getattr(self.model_class, field) == value)
            else:
                logger.warning(
                    "Attempted to filter by non-existent field '{}' on {}",
                    field,
                    self.resource_name,
                )

        async with self._translate_errors("filter_by"):
            result = await self.session.execute(stmt.order_by(self.model_class.id))
            return list(result.scalars().all())
