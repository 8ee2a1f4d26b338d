"""Key-value persistence for cart state, backed by SQLite or memory."""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, cast

from .errors import PersistenceError
from .models import CartEntry, Technology

SCHEMA_VERSION = 1
KEY_NAMESPACE = "learncart"
CART_KEY = f"{KEY_NAMESPACE}:cart"


class KeyValueStore(Protocol):
    """Minimal string key-value storage contract."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """In-process store for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.values: dict[str, str] = dict(initial or {})
        self.fail_writes = False
        self.write_count = 0

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PersistenceError(key, "storage quota exceeded")
        self.values[key] = value
        self.write_count += 1


class SqliteKeyValueStore:
    """Database-backed key-value store."""

    def __init__(self, db_path: Path | str) -> None:
        """Open database and apply schema migrations."""
        if isinstance(db_path, Path):
            db_path.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_path)
        else:
            target = db_path
        self._conn = sqlite3.connect(target)
        self._conn.row_factory = sqlite3.Row
        self._apply_migrations()

    def _apply_migrations(self) -> None:
        """Apply forward-only schema migrations to latest version."""
        current = int(self._conn.execute("PRAGMA user_version").fetchone()[0])
        if current > SCHEMA_VERSION:
            raise RuntimeError(f"Database schema version {current} is newer than supported {SCHEMA_VERSION}.")

        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
                """)

        for version in range(current + 1, SCHEMA_VERSION + 1):
            if version == 1:
                self._migrate_to_v1()
            with self._conn:
                self._conn.execute(f"PRAGMA user_version = {version}")
                self._conn.execute(
                    "INSERT OR REPLACE INTO schema_migrations (version, applied_at) VALUES (?, ?)",
                    (version, datetime.now(UTC).isoformat()),
                )

    def _migrate_to_v1(self) -> None:
        """Create the key-value table."""
        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """)

    def get(self, key: str) -> str | None:
        """Return stored value or None when the key is missing."""
        row = self._conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def set(self, key: str, value: str) -> None:
        """Replace the value stored under a key."""
        now = datetime.now(UTC).isoformat()
        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, now),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(key, str(exc)) from exc

    def close(self) -> None:
        """Close db connection."""
        self._conn.close()

    def __del__(self) -> None:  # pragma: no cover
        """Best-effort connection cleanup."""
        try:
            self.close()
        except Exception:
            pass


def serialize_cart(entries: Sequence[CartEntry]) -> str:
    """Encode the full cart as a JSON array."""
    payload = [
        {
            "technology": entry.technology.value,
            "name": entry.identifier,
            "title": entry.title,
            "summary": entry.summary,
            "page_html": entry.resource_locator,
            "hours": entry.hours,
        }
        for entry in entries
    ]
    return json.dumps(payload, ensure_ascii=True)


def deserialize_cart(text: str) -> tuple[CartEntry, ...]:
    """Decode a stored cart.

    Accepts entries written before carts recorded a technology (``estimatedHours``
    and no ``technology`` field); those are attributed to JavaScript. Duplicate
    entries keep their first occurrence. Raises ``ValueError`` for anything that
    is not a cart payload.
    """
    try:
        raw_obj: object = json.loads(text)
    except RecursionError as exc:
        raise ValueError("Stored cart is nested too deeply.") from exc
    if not isinstance(raw_obj, list):
        raise ValueError("Stored cart must be a JSON array.")

    entries: list[CartEntry] = []
    seen: set[tuple[Technology, str]] = set()
    for item in cast(list[object], raw_obj):
        if not isinstance(item, dict):
            raise ValueError("Stored cart entries must be JSON objects.")
        row = cast(dict[str, object], item)
        identifier = row.get("name")
        if not isinstance(identifier, str) or not identifier:
            raise ValueError("Stored cart entry is missing a name.")
        hours = row.get("hours", row.get("estimatedHours"))
        if isinstance(hours, bool) or not isinstance(hours, int):
            raise ValueError(f"Stored cart entry '{identifier}' has invalid hours.")
        technology = Technology(str(row.get("technology", Technology.JAVASCRIPT.value)))
        entry = CartEntry(
            technology=technology,
            identifier=identifier,
            title=str(row.get("title", identifier)),
            summary=str(row.get("summary", "")),
            resource_locator=str(row.get("page_html", "")),
            hours=hours,
        )
        if entry.key in seen:
            continue
        seen.add(entry.key)
        entries.append(entry)
    return tuple(entries)
