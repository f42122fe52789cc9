"""Shared plumbing for the SQLAlchemy-backed ports."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from authgate.services._shared.errors import UnavailableError
from authgate.uow.sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the offset on read)."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


class SqlAlchemyAdapter:
    """
    Base class for adapters that implement a port with units of work.

    Subclasses open one UoW per port call. Driver faults other than integrity
    violations surface as :class:`UnavailableError`; integrity violations are
    left for the subclass to map onto domain conflicts.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        return SQLAlchemyReadOnlyUnitOfWork(isolation_level=self.DEFAULT_READ_ISOLATION)

    @contextmanager
    def unavailable_on_failure(self, operation: str) -> Iterator[None]:
        """Translate non-integrity SQLAlchemy errors raised in the block."""
        try:
            yield
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise UnavailableError(f"{operation} failed: database unavailable") from exc
