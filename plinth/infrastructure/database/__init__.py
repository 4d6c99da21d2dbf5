"""Database infrastructure with async PostgreSQL and repository pattern.

Core components:
- **base**: Declarative base, common model fields and soft delete
- **session**: ``DatabaseModule``, the shared engine and session factory
- **repository**: Generic repository translating driver errors
- **dependencies**: FastAPI dependency injection helpers
"""

from plinth.infrastructure.database.base import Base, BaseModel, SoftDeleteMixin
from plinth.infrastructure.database.dependencies import DatabaseSession, get_db
from plinth.infrastructure.database.repository import BaseRepository
from plinth.infrastructure.database.session import (
    DatabaseModule,
    create_database_engine,
)

__all__ = [
    "Base",
    "BaseModel",
    "BaseRepository",
    "DatabaseModule",
    "DatabaseSession",
    "SoftDeleteMixin",
    "create_database_engine",
    "get_db",
]
