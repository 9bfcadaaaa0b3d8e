"""
Unit tests for the SQLite item store.
Each test runs against a fresh database file under tmp_path.
"""

import asyncio
import random
import sqlite3

import pytest

from database.exceptions import NotFoundError, PoolExhausted, ValidationError
from database.local import get_item_store
from database.ordering import sort_records
from database.sqlite_store import TABLE_NAME, SQLiteItemStore


async def _ids(store):
    return [record["id"] for record in await store.list()]


class TestSchema:
    """Table creation and in-place migration"""

    async def test_init_creates_table(self, sqlite_store, db_path):
        conn = sqlite3.connect(db_path)
        cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (TABLE_NAME,))
        assert cursor.fetchone() is not None
        conn.close()

    async def test_init_is_idempotent(self, sqlite_store):
        await sqlite_store.init()
        assert await sqlite_store.list() == []

    async def test_init_migrates_legacy_table(self, db_path):
        conn = sqlite3.connect(db_path)
        conn.execute(f'''
            CREATE TABLE {TABLE_NAME} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title VARCHAR(255) NOT NULL,
                description TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        ''')
        conn.execute(
            f"INSERT INTO {TABLE_NAME} (title, description, created_at) VALUES (?, ?, ?)",
            ("Old", "Pre-migration row", "2023-01-01T00:00:00.000000+00:00"),
        )
        conn.commit()
        conn.close()

        store = SQLiteItemStore(db_path=db_path)
        await store.init()
        records = await store.list()
        await store.close()

        assert len(records) == 1
        assert records[0]["status"] == "todo"
        assert records[0]["resolved"] is False
        assert records[0]["order_index"] == 0


class TestCreateAndList:

    async def test_create_returns_id_and_defaults(self, sqlite_store):
        item_id = await sqlite_store.create("Learn asyncio", "Event loops and tasks")

        records = await sqlite_store.list()
        assert len(records) == 1
        record = records[0]
        assert record["id"] == item_id
        assert record["title"] == "Learn asyncio"
        assert record["description"] == "Event loops and tasks"
        assert record["status"] == "todo"
        assert record["resolved"] is False
        assert record["order_index"] == 0
        assert record["created_at"]

    @pytest.mark.parametrize("title, description", [("", "desc"), ("title", "   "), (None, "desc")])
    async def test_blank_fields_are_rejected(self, sqlite_store, title, description):
        with pytest.raises(ValidationError) as exc_info:
            await sqlite_store.create(title, description)

        assert exc_info.value.message == "Title and description are required"
        assert await sqlite_store.list() == []

    async def test_newest_first_at_equal_position(self, sqlite_store):
        first = await sqlite_store.create("First", "one")
        second = await sqlite_store.create("Second", "two")

        assert await _ids(sqlite_store) == [second, first]

    async def test_list_orders_by_status_rank(self, sqlite_store):
        done = await sqlite_store.create("Done", "d")
        doing = await sqlite_store.create("Doing", "p")
        todo = await sqlite_store.create("Todo", "t")
        odd = await sqlite_store.create("Odd", "o")
        await sqlite_store.set_status(done, "completed")
        await sqlite_store.set_status(doing, "progress")
        await sqlite_store.set_status(odd, "someday")

        assert await _ids(sqlite_store) == [todo, doing, done, odd]

    @pytest.mark.parametrize("seed", [7, 1234, 98765])
    async def test_list_follows_ordering_key_after_random_mutations(self, sqlite_store, seed):
        rng = random.Random(seed)
        ids = []
        for step in range(60):
            action = rng.choice(["create", "create", "status", "position", "resolve", "unresolve"])
            if action == "create" or not ids:
                ids.append(await sqlite_store.create(f"Item {step}", "random sequence"))
            elif action == "status":
                status = rng.choice(["todo", "progress", "completed", "blocked", "someday"])
                await sqlite_store.set_status(rng.choice(ids), status)
            elif action == "position":
                await sqlite_store.set_position(rng.choice(ids), rng.randint(0, 5))
            elif action == "resolve":
                await sqlite_store.resolve(rng.choice(ids))
            else:
                await sqlite_store.unresolve(rng.choice(ids))

            records = await sqlite_store.list()
            assert records == sort_records(records)

        assert sorted(record["id"] for record in records) == sorted(ids)

    async def test_concurrent_creates_get_distinct_ids(self, sqlite_store):
        ids = await asyncio.gather(*(sqlite_store.create(f"Item {n}", "concurrent") for n in range(10)))

        assert len(set(ids)) == 10
        assert sorted(await _ids(sqlite_store)) == sorted(ids)


class TestUpdates:

    async def test_resolve_and_unresolve(self, sqlite_store):
        item_id = await sqlite_store.create("Resolve me", "d")

        assert await sqlite_store.resolve(item_id) == 1
        record = (await sqlite_store.list())[0]
        assert (record["resolved"], record["status"]) == (True, "completed")

        assert await sqlite_store.unresolve(item_id) == 1
        record = (await sqlite_store.list())[0]
        assert (record["resolved"], record["status"]) == (False, "todo")

    async def test_set_status_tracks_resolved(self, sqlite_store):
        item_id = await sqlite_store.create("Status", "d")

        await sqlite_store.set_status(item_id, "completed")
        assert (await sqlite_store.list())[0]["resolved"] is True

        await sqlite_store.set_status(item_id, "progress")
        record = (await sqlite_store.list())[0]
        assert (record["status"], record["resolved"]) == ("progress", False)

    async def test_unknown_status_is_stored_verbatim(self, sqlite_store):
        item_id = await sqlite_store.create("Status", "d")

        await sqlite_store.set_status(item_id, "blocked")

        assert (await sqlite_store.list())[0]["status"] == "blocked"

    async def test_blank_status_is_rejected(self, sqlite_store):
        item_id = await sqlite_store.create("Status", "d")

        with pytest.raises(ValidationError):
            await sqlite_store.set_status(item_id, "")

    async def test_set_position(self, sqlite_store):
        first = await sqlite_store.create("First", "d")
        second = await sqlite_store.create("Second", "d")

        await sqlite_store.set_position(second, 5)

        assert await _ids(sqlite_store) == [first, second]

    async def test_absent_id_is_a_zero_row_success(self, sqlite_store):
        assert await sqlite_store.delete(999) == 0
        assert await sqlite_store.resolve(999) == 0
        assert await sqlite_store.unresolve(999) == 0
        assert await sqlite_store.set_status(999, "progress") == 0
        assert await sqlite_store.set_position(999, 3) == 0

    async def test_delete(self, sqlite_store):
        keep = await sqlite_store.create("Keep", "d")
        drop = await sqlite_store.create("Drop", "d")

        assert await sqlite_store.delete(drop) == 1

        assert await _ids(sqlite_store) == [keep]


class TestReorder:

    @pytest.fixture
    async def abc(self, sqlite_store):
        """Three items listed as [a, b, c] with positions 0..2."""
        c = await sqlite_store.create("C", "d")
        b = await sqlite_store.create("B", "d")
        a = await sqlite_store.create("A", "d")
        for position, item_id in enumerate([a, b, c]):
            await sqlite_store.set_position(item_id, position)
        return a, b, c

    async def test_drag_first_onto_last(self, sqlite_store, abc):
        a, b, c = abc

        assert await sqlite_store.reorder(a, c) is True

        assert await _ids(sqlite_store) == [b, c, a]

    async def test_drag_last_onto_first(self, sqlite_store, abc):
        a, b, c = abc

        await sqlite_store.reorder(c, a)

        assert await _ids(sqlite_store) == [c, a, b]

    async def test_positions_are_renumbered_densely(self, sqlite_store, abc):
        a, b, c = abc
        await sqlite_store.set_position(b, 40)

        await sqlite_store.reorder(a, c)

        assert [record["order_index"] for record in await sqlite_store.list()] == [0, 1, 2]

    async def test_unknown_id_leaves_order_untouched(self, sqlite_store, abc):
        before = await sqlite_store.list()

        with pytest.raises(NotFoundError):
            await sqlite_store.reorder(abc[0], 999)

        assert await sqlite_store.list() == before

    async def test_concurrent_reorders_are_serialized(self, sqlite_store, abc):
        a, b, c = abc

        await asyncio.gather(sqlite_store.reorder(a, c), sqlite_store.reorder(c, b))

        records = await sqlite_store.list()
        assert sorted(record["id"] for record in records) == sorted(abc)
        assert [record["order_index"] for record in records] == [0, 1, 2]


class TestPool:

    async def test_memory_database_uses_a_single_connection(self):
        store = SQLiteItemStore(db_path=":memory:", pool_size=8)
        await store.init()
        await store.create("In memory", "d")

        assert len(await store.list()) == 1
        assert store.pool_stats().max_size == 1
        await store.close()

    async def test_pool_exhaustion_surfaces_as_pool_exhausted(self, db_path):
        store = SQLiteItemStore(db_path=db_path, pool_size=1, acquire_timeout=0.05)
        await store.init()

        async with store.pool.connection():
            with pytest.raises(PoolExhausted):
                await store.list()
        await store.close()


def test_get_item_store_selects_sqlite(db_path):
    store = get_item_store("sqlite", db_path=db_path, pool_size=2)

    assert isinstance(store, SQLiteItemStore)
    assert store.database_type == "sqlite"
    assert store.pool_stats().max_size == 2


def test_get_item_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        get_item_store("postgres")
