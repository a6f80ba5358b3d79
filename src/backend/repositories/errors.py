"""
Repository-level errors.

Raised by the SQLAlchemy repositories so callers never have to import
database driver exceptions.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError


class StoreError(Exception):
    """Base exception for store operations."""

    pass


class StoreUnavailableError(StoreError):
    """The database could not be reached or the statement timed out."""

    pass


class KeyConstraintViolation(StoreError):
    """An insert violated a ring key uniqueness constraint."""

    pass


class KeyValueRejected(StoreError):
    """An insert carried a value the ring key columns cannot hold."""

    pass


@asynccontextmanager
async def translate_connection_errors() -> AsyncGenerator[None, None]:
    """Re-raise connection-level driver failures as StoreUnavailableError."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        raise StoreUnavailableError(str(e.orig or e)) from e
    except DBAPIError as e:
        if e.connection_invalidated:
            raise StoreUnavailableError(str(e.orig or e)) from e
        raise
