"""
MongoDB item store.

Provides the same interface as SQLiteItemStore on native MongoDB collections.
Integer ids come from a ``counters`` collection so records keep the same
shape on both backends.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import MongoClient, ReturnDocument, UpdateOne
from pymongo.database import Database
from pymongo.errors import OperationFailure, WaitQueueTimeoutError

from .base import ItemStore, Record
from .exceptions import PoolExhausted, TrackerError
from .ordering import status_rank_expression

logger = logging.getLogger(__name__)

COLLECTION_NAME = "learning_items"
COUNTERS_COLLECTION = "counters"

# IndexOptionsConflict, IndexKeySpecsConflict, NamespaceExists
ALREADY_EXISTS_CODES = {85, 86, 48}


class MongoItemStore(ItemStore):
    """Item store on pymongo"""

    database_type = "mongodb"

    def __init__(
        self,
        connection_string: str,
        database_name: Optional[str] = None,
        pool_size: int = 10,
        acquire_timeout: float = 30.0,
        client: Optional[MongoClient] = None,
    ):
        if not connection_string and client is None:
            raise ValueError("MongoDB connection string required. Set MONGODB_URI")

        self.connection_string = connection_string
        self.database_name = database_name or self._database_from_uri(connection_string)
        # pymongo keeps its own socket pool; the store pool bounds in-flight operations to the same size
        self.client = client or MongoClient(
            connection_string,
            maxPoolSize=pool_size,
            waitQueueTimeoutMS=int(acquire_timeout * 1000),
            tz_aware=True,
            connect=False,
        )
        super().__init__(pool_size=pool_size, acquire_timeout=acquire_timeout)

    @staticmethod
    def _database_from_uri(connection_string: Optional[str]) -> str:
        if not connection_string:
            return "learning_tracker"
        path = connection_string.split("://", 1)[-1].split("/", 1)
        name = path[1].split("?")[0] if len(path) > 1 else ""
        return name or "learning_tracker"

    def _connect(self) -> Database:
        return self.client[self.database_name]

    def _disconnect(self, conn: Database) -> None:
        # connections belong to the shared client, closed in close()
        pass

    async def close(self) -> None:
        await super().close()
        self.client.close()
        logger.info("MongoDB client closed")

    def _translate_error(self, error: Exception) -> TrackerError:
        if isinstance(error, WaitQueueTimeoutError):
            return PoolExhausted(f"No MongoDB connection available: {error}")
        return super()._translate_error(error)

    def _init_schema(self, db: Database) -> None:
        db.client.admin.command("ping")
        items = db[COLLECTION_NAME]
        for keys, options in (
            ([("id", 1)], {"unique": True}),
            ([("status", 1), ("order_index", 1)], {}),
        ):
            try:
                items.create_index(keys, **options)
            except OperationFailure as e:
                if e.code not in ALREADY_EXISTS_CODES:
                    raise
                logger.debug(f"Index {keys} already exists on {COLLECTION_NAME}")

        db[COUNTERS_COLLECTION].update_one(
            {"_id": COLLECTION_NAME},
            {"$setOnInsert": {"seq": 0}},
            upsert=True,
        )

    def _document_to_record(self, document: Dict[str, Any]) -> Record:
        created_at = document["created_at"]
        return {
            "id": document["id"],
            "title": document["title"],
            "description": document["description"],
            "status": document.get("status", "todo"),
            "resolved": bool(document.get("resolved", False)),
            "order_index": document.get("order_index", 0),
            "created_at": created_at.isoformat() if isinstance(created_at, datetime) else created_at,
        }

    def _select_ordered(self, db: Database) -> List[Record]:
        pipeline = [
            {"$addFields": {"status_rank": status_rank_expression()}},
            {"$sort": {"status_rank": 1, "order_index": 1, "created_at": -1, "id": -1}},
            {"$project": {"_id": 0, "status_rank": 0}},
        ]
        return [self._document_to_record(doc) for doc in db[COLLECTION_NAME].aggregate(pipeline)]

    def _next_id(self, db: Database) -> int:
        counter = db[COUNTERS_COLLECTION].find_one_and_update(
            {"_id": COLLECTION_NAME},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return counter["seq"]

    def _insert(self, db: Database, title: str, description: str, created_at: datetime) -> int:
        item_id = self._next_id(db)
        db[COLLECTION_NAME].insert_one({
            "id": item_id,
            "title": title,
            "description": description,
            "status": "todo",
            "resolved": False,
            "order_index": 0,
            "created_at": created_at,
        })
        return item_id

    def _delete(self, db: Database, item_id: int) -> int:
        return db[COLLECTION_NAME].delete_one({"id": item_id}).deleted_count

    def _update(self, db: Database, item_id: int, fields: Dict[str, Any]) -> int:
        return db[COLLECTION_NAME].update_one({"id": item_id}, {"$set": fields}).matched_count

    def _renumber(self, db: Database, ordered_ids: List[int]) -> None:
        if not ordered_ids:
            return
        db[COLLECTION_NAME].bulk_write(
            [
                UpdateOne({"id": item_id}, {"$set": {"order_index": position}})
                for position, item_id in enumerate(ordered_ids)
            ],
            ordered=False,
        )
