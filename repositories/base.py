"""
Shared plumbing for MongoDB repositories.

Every driver failure is logged and re-raised as StoreUnavailableError so
callers see one recoverable error type regardless of the pymongo cause.
"""

from __future__ import annotations

import functools

from pymongo.errors import PyMongoError

from errors import StoreUnavailableError
from shared.logging import get_logger

log = get_logger(__name__)


def translate_store_errors(operation: str):
    """Wrap an async repository method so PyMongoError becomes StoreUnavailableError."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except PyMongoError as exc:
                log.error(
                    "store_operation_failed",
                    operation=operation,
                    collection=getattr(self, "collection_name", None),
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise StoreUnavailableError(
                    f"{operation} failed: storage backend unavailable"
                ) from exc

        return wrapper

    return decorator
