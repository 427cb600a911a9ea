"""Shared utilities for SQLAlchemy repositories."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import ColumnElement
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from qme.exceptions import StorageError

logger = logging.getLogger(__name__)


def equals_or_null(column: Any, value: Any) -> ColumnElement[bool]:
    """Equality that compares with IS NULL when ``value`` is None."""
    if value is None:
        return column.is_(None)
    return column == value


@asynccontextmanager
async def storage_errors(
    session: AsyncSession, operation: str, **details: Any
) -> AsyncIterator[None]:
    """Translate SQLAlchemy failures into StorageError, keeping the cause.

    The session is rolled back first so it stays usable for later calls.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Storage operation %s failed: %s", operation, exc)
        await session.rollback()
        raise StorageError(operation, details=details or None) from exc
