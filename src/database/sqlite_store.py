"""
SQLite item store.

File-backed, single writer: suitable for a single-instance deployment only.
``:memory:`` is supported for tests and runs on a single pooled connection,
since every sqlite3 connection to ``:memory:`` opens its own database.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, List

from .base import ItemStore, Record
from .ordering import status_rank_sql

logger = logging.getLogger(__name__)

TABLE_NAME = "learning_items"

# Columns added after the first release; older tables are migrated in place
MIGRATION_COLUMNS = [
    ("status", "VARCHAR(20) DEFAULT 'todo'"),
    ("resolved", "BOOLEAN DEFAULT 0"),
    ("order_index", "INTEGER DEFAULT 0"),
]

UPDATABLE_COLUMNS = {"status", "resolved", "order_index"}

SELECT_COLUMNS = "id, title, description, status, resolved, order_index, created_at"


class SQLiteItemStore(ItemStore):
    """Item store on the stdlib sqlite3 driver"""

    database_type = "sqlite"

    def __init__(
        self,
        db_path: str = "learning.db",
        pool_size: int = 10,
        acquire_timeout: float = 30.0,
    ):
        self.db_path = db_path
        self.busy_timeout = acquire_timeout
        if db_path == ":memory:":
            pool_size = 1
        super().__init__(pool_size=pool_size, acquire_timeout=acquire_timeout)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _disconnect(self, conn: sqlite3.Connection) -> None:
        conn.close()

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        if self.db_path != ":memory:":
            conn.execute("PRAGMA journal_mode=WAL")

        with conn:
            conn.execute(f'''
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title VARCHAR(255) NOT NULL,
                    description TEXT NOT NULL,
                    status VARCHAR(20) DEFAULT 'todo',
                    resolved BOOLEAN DEFAULT 0,
                    order_index INTEGER DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            ''')

        for column, definition in MIGRATION_COLUMNS:
            try:
                with conn:
                    conn.execute(f"ALTER TABLE {TABLE_NAME} ADD COLUMN {column} {definition}")
                logger.info(f"Added column {column} to {TABLE_NAME}")
            except sqlite3.OperationalError as e:
                if "duplicate column" not in str(e).lower():
                    raise
                logger.debug(f"Column {column} already exists on {TABLE_NAME}")

        with conn:
            conn.execute(f'''
                CREATE INDEX IF NOT EXISTS idx_{TABLE_NAME}_order
                ON {TABLE_NAME}(status, order_index)
            ''')

    def _row_to_record(self, row: sqlite3.Row) -> Record:
        record = dict(row)
        record["resolved"] = bool(record["resolved"])
        return record

    def _select_ordered(self, conn: sqlite3.Connection) -> List[Record]:
        cursor = conn.execute(f'''
            SELECT {SELECT_COLUMNS}
            FROM {TABLE_NAME}
            ORDER BY {status_rank_sql()} ASC, order_index ASC, created_at DESC, id DESC
        ''')
        return [self._row_to_record(row) for row in cursor.fetchall()]

    def _insert(self, conn: sqlite3.Connection, title: str, description: str, created_at: datetime) -> int:
        with conn:
            cursor = conn.execute(
                f'''
                INSERT INTO {TABLE_NAME} (title, description, status, resolved, order_index, created_at)
                VALUES (?, ?, 'todo', 0, 0, ?)
                ''',
                (title, description, created_at.isoformat(timespec="microseconds")),
            )
        return cursor.lastrowid

    def _delete(self, conn: sqlite3.Connection, item_id: int) -> int:
        with conn:
            cursor = conn.execute(f"DELETE FROM {TABLE_NAME} WHERE id = ?", (item_id,))
        return cursor.rowcount

    def _update(self, conn: sqlite3.Connection, item_id: int, fields: Dict[str, Any]) -> int:
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")

        assignments = ", ".join(f"{column} = ?" for column in fields)
        with conn:
            cursor = conn.execute(
                f"UPDATE {TABLE_NAME} SET {assignments} WHERE id = ?",
                (*fields.values(), item_id),
            )
        return cursor.rowcount

    def _renumber(self, conn: sqlite3.Connection, ordered_ids: List[int]) -> None:
        with conn:
            conn.executemany(
                f"UPDATE {TABLE_NAME} SET order_index = ? WHERE id = ?",
                [(position, item_id) for position, item_id in enumerate(ordered_ids)],
            )
