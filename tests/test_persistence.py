import json
import sqlite3
from pathlib import Path

import pytest

from learncart.errors import PersistenceError
from learncart.models import CartEntry, Technology
from learncart.persistence import (
    CART_KEY,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
    deserialize_cart,
    serialize_cart,
)


def _entry(technology: Technology, identifier: str, hours: int) -> CartEntry:
    return CartEntry(
        technology=technology,
        identifier=identifier,
        title=f"{identifier} title",
        summary="summary",
        resource_locator=f"{identifier}.html",
        hours=hours,
    )


def test_cart_key_is_namespaced() -> None:
    assert CART_KEY == "learncart:cart"


def test_serialize_round_trip_preserves_order_and_technology() -> None:
    entries = (
        _entry(Technology.REACT, "Events", 4),
        _entry(Technology.JAVASCRIPT, "Events", 6),
        _entry(Technology.JAVASCRIPT, "Arrays", 6),
    )
    assert deserialize_cart(serialize_cart(entries)) == entries


def test_deserialize_legacy_entries_defaults_to_javascript() -> None:
    legacy = json.dumps(
        [{"name": "Arrays", "title": "Working with Arrays", "summary": "s", "page_html": "a.html", "estimatedHours": 6}]
    )
    (entry,) = deserialize_cart(legacy)
    assert entry.technology is Technology.JAVASCRIPT
    assert entry.hours == 6
    assert entry.resource_locator == "a.html"


def test_deserialize_drops_duplicate_entries() -> None:
    text = json.dumps([{"name": "A", "hours": 1}, {"name": "A", "hours": 2}])
    entries = deserialize_cart(text)
    assert len(entries) == 1
    assert entries[0].hours == 1


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        '{"name": "A"}',
        "[1, 2]",
        '[{"title": "no name", "hours": 1}]',
        '[{"name": "A", "hours": "six"}]',
        '[{"name": "A", "hours": 1, "technology": "python"}]',
        "[" * 100000,
    ],
)
def test_deserialize_rejects_corrupt_payloads(text: str) -> None:
    with pytest.raises(ValueError):
        deserialize_cart(text)


def test_memory_store_get_set_and_failure() -> None:
    store = MemoryKeyValueStore({"k": "v"})
    assert store.get("k") == "v"
    assert store.get("missing") is None
    store.set("k", "w")
    assert store.get("k") == "w"
    assert store.write_count == 1

    store.fail_writes = True
    with pytest.raises(PersistenceError):
        store.set("k", "x")
    assert store.get("k") == "w"


def test_sqlite_store_round_trip() -> None:
    store = SqliteKeyValueStore(":memory:")
    assert store.get(CART_KEY) is None
    store.set(CART_KEY, "[]")
    store.set(CART_KEY, '[{"name": "A", "hours": 1}]')
    assert store.get(CART_KEY) == '[{"name": "A", "hours": 1}]'


def test_sqlite_store_persists_across_connections(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "state.db"
    first = SqliteKeyValueStore(db_path)
    first.set(CART_KEY, "[]")
    first.close()

    second = SqliteKeyValueStore(db_path)
    assert second.get(CART_KEY) == "[]"
    second.close()


def test_migration_sets_user_version_and_schema_history() -> None:
    store = SqliteKeyValueStore(":memory:")
    version = int(store._conn.execute("PRAGMA user_version").fetchone()[0])  # noqa: SLF001
    assert version == 1
    rows = store._conn.execute("SELECT version FROM schema_migrations ORDER BY version").fetchall()  # noqa: SLF001
    assert [int(row["version"]) for row in rows] == [1]


def test_newer_schema_version_is_rejected(tmp_path: Path) -> None:
    db_path = tmp_path / "future.db"
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA user_version = 99")
        conn.commit()
    finally:
        conn.close()

    with pytest.raises(RuntimeError):
        SqliteKeyValueStore(db_path)


def test_sqlite_write_failure_raises_persistence_error() -> None:
    store = SqliteKeyValueStore(":memory:")
    store.close()
    with pytest.raises(PersistenceError):
        store.set(CART_KEY, "[]")
