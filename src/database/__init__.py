"""
Persistence layer for learning items.

Contains the store interface, the SQLite and MongoDB backends, the ordering
engine and the connection pool they share.
"""

from .base import ItemOperations, ItemStore, Record
from .exceptions import (
    NotFoundError,
    PoolExhausted,
    StoreError,
    TrackerError,
    ValidationError,
)
from .local import get_item_store

__all__ = [
    'ItemOperations', 'ItemStore', 'Record', 'get_item_store',
    'TrackerError', 'ValidationError', 'NotFoundError', 'StoreError', 'PoolExhausted',
]
