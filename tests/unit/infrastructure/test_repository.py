"""Unit tests for plinth/infrastructure/database/repository.py."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from pytest_mock import MockerFixture
from sqlalchemy import String
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from plinth.core.exceptions import (
    BadRequestError,
    DatabaseOperationError,
    ExceptionKind,
    NotFoundError,
)
from plinth.infrastructure.database.base import BaseModel, SoftDeleteMixin
from plinth.infrastructure.database.repository import (
    BaseRepository,
    translate_integrity_error,
)


class Account(SoftDeleteMixin, BaseModel):
    """Model used only by these tests."""

    __tablename__ = "test_accounts"

    email: Mapped[str] = mapped_column(String(255), unique=True)


class Plain(BaseModel):
    """Model without soft delete."""

    __tablename__ = "test_plain"


class DriverError(Exception):
    """Stand-in for an asyncpg error carrying a SQLSTATE."""

    def __init__(self, message: str, sqlstate: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate
        self.detail = detail


def _integrity_error(sqlstate: str, detail: str | None = None) -> IntegrityError:
    return IntegrityError(
        "INSERT INTO test_accounts ...",
        {},
        DriverError("constraint violated", sqlstate, detail),
    )


def _result(mocker: MockerFixture, **attrs: Any) -> MagicMock:
    result = mocker.MagicMock()
    for name, value in attrs.items():
        getattr(result, name).return_value = value
    return result


@pytest.fixture
def session(mocker: MockerFixture) -> AsyncMock:
    """Mocked async session."""
    return mocker.AsyncMock(spec=AsyncSession)


@pytest.fixture
def repository(session: AsyncMock) -> BaseRepository[Account]:
    """Repository bound to the mocked session."""
    return BaseRepository(session, Account)


@pytest.mark.unit
class TestTranslateIntegrityError:
    """Test driver error translation."""

    def test_unique_violation_becomes_bad_request(self) -> None:
        error = _integrity_error(
            "23505", "Key (email)=(ann@example.com) already exists."
        )

        result = translate_integrity_error(error, "create")

        assert isinstance(result, BadRequestError)
        assert result.kind is ExceptionKind.UNIQUE_VIOLATION
        assert result.record.target == ("email",)
        assert result.record.detail == "Duplicate value for email"

    def test_composite_key_lists_every_column(self) -> None:
        error = _integrity_error("23505", "Key (tenant_id, email)=(1, a@b.c) already exists.")

        result = translate_integrity_error(error, "create")

        assert result.record.target == ("tenant_id", "email")

    def test_unique_violation_without_detail(self) -> None:
        result = translate_integrity_error(_integrity_error("23505"), "create")

        assert result.record.target == ()
        assert result.record.detail == "Duplicate value for a unique field"

    def test_sqlstate_on_wrapped_cause(self) -> None:
        cause = DriverError("dup", "23505", "Key (email)=(x) already exists.")
        wrapper = Exception("wrapped")
        wrapper.__cause__ = cause

        result = translate_integrity_error(
            IntegrityError("INSERT", {}, wrapper), "create"
        )

        assert result.kind is ExceptionKind.UNIQUE_VIOLATION
        assert result.record.target == ("email",)

    def test_other_integrity_errors_are_database_errors(self) -> None:
        result = translate_integrity_error(_integrity_error("23503"), "create")

        assert isinstance(result, DatabaseOperationError)
        assert result.record.detail == "constraint violated"
        assert result.status == 500


@pytest.mark.unit
class TestBaseRepository:
    """Test CRUD operations against a mocked session."""

    async def test_get_by_id(
        self,
        repository: BaseRepository[Account],
        session: AsyncMock,
        mocker: MockerFixture,
    ) -> None:
        account = Account(id=1, email="ann@example.com")
        session.execute.return_value = _result(mocker, scalar_one_or_none=account)

        assert await repository.get_by_id(1) is account

    async def test_get_by_id_or_raise_not_found(
        self,
        repository: BaseRepository[Account],
        session: AsyncMock,
        mocker: MockerFixture,
    ) -> None:
        session.execute.return_value = _result(mocker, scalar_one_or_none=None)

        with pytest.raises(NotFoundError) as exc_info:
            await repository.get_by_id_or_raise(7)

        assert exc_info.value.record.detail == "Account with identifier 7 not found"
        assert exc_info.value.record.target == ("7",)

    async def test_create_flushes_and_refreshes(
        self, repository: BaseRepository[Account], session: AsyncMock
    ) -> None:
        account = Account(email="ann@example.com")

        assert await repository.create(account) is account

        session.add.assert_called_once_with(account)
        session.flush.assert_awaited_once()
        session.refresh.assert_awaited_once_with(account)

    async def test_create_unique_violation(
        self, repository: BaseRepository[Account], session: AsyncMock
    ) -> None:
        session.flush.side_effect = _integrity_error(
            "23505", "Key (email)=(ann@example.com) already exists."
        )

        with pytest.raises(BadRequestError) as exc_info:
            await repository.create(Account(email="ann@example.com"))

        record = exc_info.value.record
        assert record.status == 400
        assert record.type is ExceptionKind.UNIQUE_VIOLATION
        assert record.message == "bad request error(s) in email"
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    async def test_driver_failure_becomes_database_error(
        self,
        repository: BaseRepository[Account],
        session: AsyncMock,
        log_records: list[dict[str, Any]],
    ) -> None:
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("gone"))

        with pytest.raises(DatabaseOperationError):
            await repository.count()

        assert log_records[-1]["extra"]["operation"] == "count"

    async def test_update_sets_known_fields(
        self,
        repository: BaseRepository[Account],
        session: AsyncMock,
        mocker: MockerFixture,
    ) -> None:
        account = Account(id=1, email="old@example.com")
        session.execute.return_value = _result(mocker, scalar_one_or_none=account)

        updated = await repository.update(
            1, {"email": "new@example.com", "unknown": "ignored"}
        )

        assert updated.email == "new@example.com"
        assert not hasattr(updated, "unknown")
        session.flush.assert_awaited_once()

    async def test_update_missing_raises(
        self,
        repository: BaseRepository[Account],
        session: AsyncMock,
        mocker: MockerFixture,
    ) -> None:
        session.execute.return_value = _result(mocker, scalar_one_or_none=None)

        with pytest.raises(NotFoundError):
            await repository.update(1, {"email": "x"})

    async def test_delete(
        self,
        repository: BaseRepository[Account],
        session: AsyncMock,
        mocker: MockerFixture,
    ) -> None:
        session.execute.return_value = mocker.MagicMock(rowcount=1)

        assert await repository.delete(1) is True

    async def test_delete_missing(
        self,
        repository: BaseRepository[Account],
        session: AsyncMock,
        mocker: MockerFixture,
    ) -> None:
        session.execute.return_value = mocker.MagicMock(rowcount=0)

        assert await repository.delete(1) is False

    async def test_soft_delete(
        self,
        repository: BaseRepository[Account],
        session: AsyncMock,
        mocker: MockerFixture,
    ) -> None:
        account = Account(id=1, email="ann@example.com")
        session.execute.return_value = _result(mocker, scalar_one_or_none=account)

        result = await repository.soft_delete(1)

        assert result.is_deleted

    async def test_soft_delete_unsupported(
        self, session: AsyncMock
    ) -> None:
        with pytest.raises(TypeError, match="does not support soft delete"):
            await BaseRepository(session, Plain).soft_delete(1)

    async def test_count_and_exists(
        self,
        repository: BaseRepository[Account],
        session: AsyncMock,
        mocker: MockerFixture,
    ) -> None:
        session.execute.return_value = _result(mocker, scalar=3)

        assert await repository.count() == 3
        assert await repository.exists(1) is True

    async def test_get_all_and_filter_by(
        self,
        repository: BaseRepository[Account],
        session: AsyncMock,
        mocker: MockerFixture,
    ) -> None:
        accounts = [Account(id=1, email="a@x"), Account(id=2, email="b@x")]
        result = mocker.MagicMock()
        result.scalars.return_value.all.return_value = accounts
        session.execute.return_value = result

        assert await repository.get_all(limit=10) == accounts
        assert await repository.filter_by(email="a@x", missing=1) == accounts


@pytest.mark.unit
class TestSoftDeleteMixin:
    """Test the soft delete marker."""

    def test_soft_delete_and_restore(self) -> None:
        account = Account(email="ann@example.com")

        assert not account.is_deleted
        account.soft_delete()
        assert account.is_deleted
        account.restore()
        assert account.deleted_at is None

    def test_unique_constraint_naming_convention(self) -> None:
        names = {c.name for c in Account.__table__.constraints}

        assert "uq_test_accounts_email" in names
