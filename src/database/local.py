"""Backend selection for the item store."""

import logging
from typing import Optional

from .base import ItemStore
from .sqlite_store import SQLiteItemStore

logger = logging.getLogger(__name__)

SUPPORTED_DATABASE_TYPES = ("sqlite", "mongodb")


def get_item_store(
    database_type: str = "sqlite",
    db_path: str = "learning.db",
    mongodb_uri: Optional[str] = None,
    mongodb_database: Optional[str] = None,
    pool_size: int = 10,
    acquire_timeout: float = 30.0,
) -> ItemStore:
    """Build the item store for the configured backend.

    The backend is chosen once at construction; callers only see ItemStore.
    """
    if database_type == "mongodb":
        # pymongo is only imported when the MongoDB backend is selected
        from .mongo_store import MongoItemStore

        logger.info(f"Using MongoDB item store (database={mongodb_database or 'from URI'})")
        return MongoItemStore(
            connection_string=mongodb_uri,
            database_name=mongodb_database,
            pool_size=pool_size,
            acquire_timeout=acquire_timeout,
        )

    if database_type == "sqlite":
        logger.info(f"Using SQLite item store at {db_path}")
        return SQLiteItemStore(db_path=db_path, pool_size=pool_size, acquire_timeout=acquire_timeout)

    raise ValueError(
        f"Unsupported database type: {database_type}. Must be one of {list(SUPPORTED_DATABASE_TYPES)}"
    )
