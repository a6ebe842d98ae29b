"""Repository layer for database operations.

Repositories encapsulate all database queries and translate driver errors
into store-neutral exceptions, keeping services free of SQL.
"""

from repositories.property_repository import (
    DuplicateKeyError,
    PropertyRepository,
    PropertyStore,
    StorageError,
)
from repositories.utils import log_slow_query

__all__ = [
    "DuplicateKeyError",
    "PropertyRepository",
    "PropertyStore",
    "StorageError",
    "log_slow_query",
]
