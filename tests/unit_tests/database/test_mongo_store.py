"""
MongoDB item store tests.

Construction and error translation run offline. The behavioural tests need a
server and are skipped unless MONGODB_URI points at one.
"""

import os
import random
import uuid

import pytest
from pymongo import MongoClient
from pymongo.errors import WaitQueueTimeoutError

from database.exceptions import NotFoundError, PoolExhausted, StoreError
from database.local import get_item_store
from database.mongo_store import MongoItemStore
from database.ordering import sort_records

MONGODB_URI = os.environ.get("MONGODB_URI")

requires_mongo = pytest.mark.skipif(not MONGODB_URI, reason="MONGODB_URI not set")


def test_connection_string_is_required():
    with pytest.raises(ValueError, match="MONGODB_URI"):
        MongoItemStore(connection_string=None)


@pytest.mark.parametrize("uri, expected", [
    ("mongodb://localhost:27017/tracker_db", "tracker_db"),
    ("mongodb://user:pw@localhost:27017/tracker_db?authSource=admin", "tracker_db"),
    ("mongodb://localhost:27017", "learning_tracker"),
    ("mongodb://localhost:27017/", "learning_tracker"),
])
def test_database_name_from_uri(uri, expected):
    store = MongoItemStore(connection_string=uri)

    assert store.database_name == expected
    store.client.close()


def test_explicit_database_name_wins():
    store = MongoItemStore(connection_string="mongodb://localhost:27017/from_uri", database_name="explicit")

    assert store.database_name == "explicit"
    store.client.close()


def test_wait_queue_timeout_maps_to_pool_exhausted():
    store = MongoItemStore(connection_string="mongodb://localhost:27017/tracker_db")

    assert isinstance(store._translate_error(WaitQueueTimeoutError("busy")), PoolExhausted)
    assert isinstance(store._translate_error(RuntimeError("boom")), StoreError)
    store.client.close()


def test_get_item_store_selects_mongodb():
    store = get_item_store("mongodb", mongodb_uri="mongodb://localhost:27017/tracker_db", pool_size=3)

    assert isinstance(store, MongoItemStore)
    assert store.database_type == "mongodb"
    store.client.close()


@pytest.fixture
async def mongo_store():
    database_name = f"tracker_test_{uuid.uuid4().hex[:8]}"
    client = MongoClient(MONGODB_URI, tz_aware=True)
    store = MongoItemStore(connection_string=MONGODB_URI, database_name=database_name, client=client)
    await store.init()
    yield store
    client.drop_database(database_name)
    await store.close()


@requires_mongo
class TestMongoItemStore:

    async def test_create_and_list(self, mongo_store):
        first = await mongo_store.create("First", "one")
        second = await mongo_store.create("Second", "two")

        records = await mongo_store.list()
        assert [r["id"] for r in records] == [second, first]
        assert records[0]["status"] == "todo"
        assert records[0]["resolved"] is False

    async def test_ids_are_sequential_integers(self, mongo_store):
        ids = [await mongo_store.create(f"Item {n}", "d") for n in range(3)]

        assert ids == [ids[0], ids[0] + 1, ids[0] + 2]

    async def test_status_rank_ordering(self, mongo_store):
        done = await mongo_store.create("Done", "d")
        todo = await mongo_store.create("Todo", "d")
        await mongo_store.resolve(done)

        assert [r["id"] for r in await mongo_store.list()] == [todo, done]

    async def test_absent_id_is_a_zero_row_success(self, mongo_store):
        assert await mongo_store.delete(12345) == 0
        assert await mongo_store.set_status(12345, "progress") == 0

    async def test_reorder(self, mongo_store):
        c = await mongo_store.create("C", "d")
        b = await mongo_store.create("B", "d")
        a = await mongo_store.create("A", "d")

        await mongo_store.reorder(a, c)

        records = await mongo_store.list()
        assert [r["id"] for r in records] == [b, c, a]
        assert [r["order_index"] for r in records] == [0, 1, 2]

    async def test_reorder_unknown_id(self, mongo_store):
        item_id = await mongo_store.create("Only", "d")

        with pytest.raises(NotFoundError):
            await mongo_store.reorder(item_id, 999)

    async def test_list_follows_ordering_key_after_random_mutations(self, mongo_store):
        rng = random.Random(31337)
        ids = [await mongo_store.create(f"Item {n}", "d") for n in range(8)]
        for _ in range(25):
            item_id = rng.choice(ids)
            action = rng.choice(["status", "position", "resolve"])
            if action == "status":
                await mongo_store.set_status(item_id, rng.choice(["todo", "progress", "completed", "blocked"]))
            elif action == "position":
                await mongo_store.set_position(item_id, rng.randint(0, 3))
            else:
                await mongo_store.resolve(item_id)

        records = await mongo_store.list()
        assert records == sort_records(records)
