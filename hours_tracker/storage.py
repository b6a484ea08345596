"""
Persistence adapters for the hours tracker.

Two kinds of store are provided.  A key-value text store holds the flat entry
list and the remembered username; a structured object store holds named
record collections (``entries`` and ``users``) in SQLite, versioned through
``PRAGMA user_version`` so older databases are upgraded in place.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Dict, MutableMapping, Optional, Tuple

logger = logging.getLogger(__name__)

OBJECT_STORE_VERSION = 2

# (version, collection, key field).  Each collection is created when the
# database is upgraded from below its version.
COLLECTIONS: Tuple[Tuple[int, str, str], ...] = (
    (1, "entries", "id"),
    (2, "users", "username"),
)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_items (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS object_stores (
    name TEXT PRIMARY KEY,
    key_path TEXT NOT NULL
);
"""


class StorageError(RuntimeError):
    """Raised when stored data cannot be read or written."""


class KeyValueStore:
    """Simple text store keyed by string."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


class SqliteKeyValueStore(KeyValueStore):
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def get_item(self, key: str) -> Optional[str]:
        try:
            row = self.conn.execute("SELECT value FROM kv_items WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not read {key!r}.") from exc
        return None if row is None else row[0]

    def set_item(self, key: str, value: str) -> None:
        try:
            self.conn.execute(
                """
                INSERT INTO kv_items (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, str(value)),
            )
            self.conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not write {key!r}.") from exc

    def remove_item(self, key: str) -> None:
        try:
            self.conn.execute("DELETE FROM kv_items WHERE key = ?", (key,))
            self.conn.commit()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not remove {key!r}.") from exc


class SessionKeyValueStore(KeyValueStore):
    """Key-value store over a mutable mapping such as ``flask.session``."""

    def __init__(self, mapping: MutableMapping[str, Any]) -> None:
        self.mapping = mapping

    def get_item(self, key: str) -> Optional[str]:
        value = self.mapping.get(key)
        return None if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        self.mapping[key] = str(value)

    def remove_item(self, key: str) -> None:
        self.mapping.pop(key, None)


def _table_name(collection: str) -> str:
    return f"store_{collection}"


def schema_version(conn: sqlite3.Connection) -> int:
    return int(conn.execute("PRAGMA user_version").fetchone()[0])


def upgrade_object_store(conn: sqlite3.Connection, version: int = OBJECT_STORE_VERSION) -> int:
    """Bring the object store up to ``version`` and return the previous version."""
    try:
        current = schema_version(conn)
        if current > version:
            raise StorageError(
                f"Object store is at version {current}; cannot open it at version {version}."
            )
        if current == version:
            return current
        conn.executescript(SCHEMA)
        for introduced, collection, key_path in COLLECTIONS:
            if current < introduced <= version:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {_table_name(collection)} (
                        key TEXT PRIMARY KEY,
                        record TEXT NOT NULL
                    )
                    """
                )
                conn.execute(
                    "INSERT OR REPLACE INTO object_stores (name, key_path) VALUES (?, ?)",
                    (collection, key_path),
                )
                logger.info("Created object store collection %r (key %r)", collection, key_path)
        # PRAGMA does not accept bound parameters
        conn.execute(f"PRAGMA user_version = {int(version)}")
        conn.commit()
    except sqlite3.Error as exc:
        raise StorageError("Could not upgrade the object store.") from exc
    logger.info("Object store upgraded from version %s to %s", current, version)
    return current


def init_storage(conn: sqlite3.Connection, version: int = OBJECT_STORE_VERSION) -> None:
    """Create the key-value table and upgrade the object store."""
    try:
        conn.executescript(SCHEMA)
    except sqlite3.Error as exc:
        raise StorageError("Could not initialise storage.") from exc
    upgrade_object_store(conn, version)


class ObjectStore:
    """Named record collections, each keyed by one field of its records."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def collections(self) -> Dict[str, str]:
        try:
            rows = self.conn.execute("SELECT name, key_path FROM object_stores ORDER BY name").fetchall()
        except sqlite3.Error as exc:
            raise StorageError("Could not list object store collections.") from exc
        return {row[0]: row[1] for row in rows}

    def _key_path(self, collection: str) -> str:
        key_path = self.collections().get(collection)
        if key_path is None:
            raise StorageError(f"Unknown collection {collection!r}.")
        return key_path

    def get(self, collection: str, key: object) -> Optional[Dict[str, Any]]:
        self._key_path(collection)
        try:
            row = self.conn.execute(
                f"SELECT record FROM {_table_name(collection)} WHERE key = ?",
                (str(key),),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not read {collection}/{key}.") from exc
        if row is None:
            return None
        try:
            record = json.loads(row[0])
        except ValueError as exc:
            raise StorageError(f"Stored record {collection}/{key} is unreadable.") from exc
        if not isinstance(record, dict):
            raise StorageError(f"Stored record {collection}/{key} is unreadable.")
        return record

    def put(self, collection: str, record: Dict[str, Any]) -> str:
        key_path = self._key_path(collection)
        key = record.get(key_path)
        if key is None or key == "":
            raise StorageError(f"Record for {collection!r} is missing its {key_path!r} field.")
        try:
            self.conn.execute(
                f"""
                INSERT INTO {_table_name(collection)} (key, record) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET record = excluded.record
                """,
                (str(key), json.dumps(record)),
            )
            self.conn.commit()
        except (sqlite3.Error, TypeError) as exc:
            raise StorageError(f"Could not write {collection}/{key}.") from exc
        return str(key)

