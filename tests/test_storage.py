# tests/test_storage.py

from __future__ import annotations

import pytest

from signage_tasks.storage.entities import EntityFactories, EntityFactory
from signage_tasks.storage.pool import SqlitePool
from signage_tasks.storage.sqlite import SqliteStorage
from signage_tasks.tasks.task_errors import NotFoundError, PersistenceError


@pytest.fixture()
def storage(tmp_path) -> SqliteStorage:
    return SqliteStorage(tmp_path / "nested" / "signage.sqlite3")


def test_storage_maps_sqlite_errors(storage: SqliteStorage) -> None:
    with pytest.raises(PersistenceError):
        with storage.connect() as conn:
            conn.execute("SELECT * FROM missing_table")


def test_storage_transaction_rolls_back(storage: SqliteStorage) -> None:
    with storage.connect() as conn:
        conn.execute("CREATE TABLE t (x INTEGER)")
        conn.commit()

    with pytest.raises(RuntimeError):
        with storage.transaction() as conn:
            conn.execute("INSERT INTO t VALUES (1)")
            raise RuntimeError("boom")

    with storage.transaction() as conn:
        conn.execute("INSERT INTO t VALUES (2)")

    with storage.connect() as conn:
        rows = [r["x"] for r in conn.execute("SELECT x FROM t").fetchall()]
    assert rows == [2]


def test_pool_get_set_ttl_and_purge(storage: SqliteStorage) -> None:
    pool = SqlitePool(storage)

    pool.set("k", {"n": 1}, ttl_seconds=10, now_ts=100.0)
    assert pool.get("k", now_ts=105.0) == {"n": 1}
    assert pool.get("k", "gone", now_ts=110.0) == "gone"
    assert pool.has("k", now_ts=109.9)
    assert not pool.has("k", now_ts=110.0)

    pool.set("k", "replaced", now_ts=200.0)
    assert pool.get("k", now_ts=10_000.0) == "replaced"

    pool.set("short", 1, ttl_seconds=1, now_ts=100.0)
    assert pool.purge(now_ts=200.0) == 1
    pool.delete("k")
    assert pool.clear() == 0


def test_pool_stores_none_values(storage: SqliteStorage) -> None:
    pool = SqlitePool(storage)
    pool.set("nothing", None)
    assert pool.has("nothing")
    assert pool.get("nothing", "default") is None


def test_entity_factory_crud(storage: SqliteStorage) -> None:
    displays = EntityFactory(storage, "display")

    lobby = displays.create({"display": "Lobby", "logged_in": True}, now_ts=10.0)
    cafe = displays.create({"display": "Cafe", "logged_in": False}, now_ts=20.0)

    assert displays.get_by_id(lobby.id).data == {"display": "Lobby", "logged_in": True}
    assert [d.id for d in displays.query()] == [lobby.id, cafe.id]
    assert [d.id for d in displays.query(filters={"logged_in": False})] == [cafe.id]
    assert [d.id for d in displays.query(created_before=15.0)] == [lobby.id]
    assert [d.id for d in displays.query(where=lambda e: e.get("display") == "Cafe")] == [cafe.id]
    assert [d.id for d in displays.query(start=1, length=5)] == [cafe.id]

    lobby.data["logged_in"] = False
    displays.save(lobby, now_ts=30.0)
    reloaded = displays.get_by_id(lobby.id)
    assert reloaded.get("logged_in") is False
    assert reloaded.updated_at == 30.0
    assert reloaded.created_at == 10.0

    displays.delete(lobby)
    with pytest.raises(NotFoundError):
        displays.get_by_id(lobby.id)
    with pytest.raises(NotFoundError):
        displays.save(lobby)


def test_entity_kinds_are_separate(storage: SqliteStorage) -> None:
    factories = EntityFactories.from_storage(storage)
    media = factories.media.create({"name": "clip"})

    assert factories.display.query() == []
    with pytest.raises(NotFoundError):
        factories.display.get_by_id(media.id)


def test_entity_factory_rejects_unknown_kind(storage: SqliteStorage) -> None:
    with pytest.raises(ValueError):
        EntityFactory(storage, "spaceship")
