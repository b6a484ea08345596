import sqlite3

import pytest

from hours_tracker.storage import (
    ObjectStore,
    SessionKeyValueStore,
    SqliteKeyValueStore,
    StorageError,
    init_storage,
    schema_version,
    upgrade_object_store,
)


def test_sqlite_key_value_store(conn):
    store = SqliteKeyValueStore(conn)
    assert store.get_item("username") is None
    store.set_item("username", "ann")
    store.set_item("username", "bob")
    assert store.get_item("username") == "bob"
    store.remove_item("username")
    assert store.get_item("username") is None
    # removing a missing key is fine
    store.remove_item("username")


def test_session_key_value_store_wraps_mapping():
    mapping = {}
    store = SessionKeyValueStore(mapping)
    store.set_item("username", "ann")
    assert mapping == {"username": "ann"}
    assert store.get_item("username") == "ann"
    store.remove_item("username")
    assert store.get_item("username") is None


def test_fresh_database_gets_both_collections(conn):
    assert schema_version(conn) == 2
    assert ObjectStore(conn).collections() == {"entries": "id", "users": "username"}


def test_upgrade_from_version_one_keeps_existing_entries():
    connection = sqlite3.connect(":memory:")
    init_storage(connection, version=1)
    store = ObjectStore(connection)
    assert store.collections() == {"entries": "id"}
    store.put("entries", {"id": 1, "hours": "8"})

    previous = upgrade_object_store(connection, 2)

    assert previous == 1
    assert store.collections() == {"entries": "id", "users": "username"}
    assert store.get("entries", 1) == {"id": 1, "hours": "8"}


def test_reopening_at_same_version_is_a_no_op(conn):
    ObjectStore(conn).put("users", {"username": "ann", "hours": {}})
    assert upgrade_object_store(conn, 2) == 2
    assert ObjectStore(conn).get("users", "ann") == {"username": "ann", "hours": {}}


def test_opening_at_lower_version_fails(conn):
    with pytest.raises(StorageError):
        upgrade_object_store(conn, 1)


def test_put_is_an_upsert(conn):
    store = ObjectStore(conn)
    store.put("users", {"username": "ann", "hours": {}})
    store.put("users", {"username": "ann", "hours": {"2024-4": {"1": "8"}}})
    assert store.get("users", "ann")["hours"] == {"2024-4": {"1": "8"}}
    assert store.get("users", "bob") is None


def test_put_requires_key_field(conn):
    with pytest.raises(StorageError):
        ObjectStore(conn).put("users", {"hours": {}})


def test_unknown_collection(conn):
    with pytest.raises(StorageError):
        ObjectStore(conn).get("projects", "x")


def test_corrupt_record_raises_storage_error(conn):
    conn.execute("INSERT INTO store_users (key, record) VALUES (?, ?)", ("ann", "{not json"))
    with pytest.raises(StorageError):
        ObjectStore(conn).get("users", "ann")
