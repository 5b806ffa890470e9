# ==============================
# SQLite Backend
# ==============================
"""
SQLite backend for the durable snapshot.

Tables:
- schema_version
- kv_store(key TEXT PRIMARY KEY, value TEXT NOT NULL, updated_at INTEGER NOT NULL)

Notes:
- Idempotent schema creation on init.
- Minimal migration strategy: integer schema version.
- WAL journal + busy timeout so concurrent writers queue instead of failing.
"""

from __future__ import annotations

import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from curae.memory.base import KeyValueBackend

SCHEMA_VERSION = 1
BUSY_TIMEOUT_MS = 5000


class SQLiteBackend(KeyValueBackend):
    def __init__(self, *, db_path: str, initialize: bool = True) -> None:
        self.db_path = db_path
        if initialize:
            self._init_db()

    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.db_path, check_same_thread=False, timeout=BUSY_TIMEOUT_MS / 1000)
        con.row_factory = sqlite3.Row
        con.execute("PRAGMA journal_mode=WAL;")
        con.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS};")
        con.execute("PRAGMA synchronous=NORMAL;")
        return con

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            with con:
                yield con
        finally:
            con.close()

    def _init_db(self) -> None:
        Path(self.db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        with self._session() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  version INTEGER NOT NULL
                )
                """
            )
            row = con.execute("SELECT version FROM schema_version WHERE id=1").fetchone()
            if row is None:
                con.execute("INSERT INTO schema_version (id, version) VALUES (1, ?)", (SCHEMA_VERSION,))
                version = SCHEMA_VERSION
            else:
                version = int(row["version"])

            if version < SCHEMA_VERSION:
                self._migrate(con, from_version=version, to_version=SCHEMA_VERSION)

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL,
                  updated_at INTEGER NOT NULL
                )
                """
            )

    def _migrate(self, con: sqlite3.Connection, *, from_version: int, to_version: int) -> None:
        # v1 only; placeholder for future migrations
        con.execute("UPDATE schema_version SET version=? WHERE id=1", (to_version,))

    def get(self, key: str) -> Optional[str]:
        with self._session() as con:
            row = con.execute("SELECT value FROM kv_store WHERE key=?", (key,)).fetchone()
        return None if row is None else str(row["value"])

    def set(self, key: str, value: str) -> None:
        with self._session() as con:
            con.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """,
                (key, value, int(time.time())),
            )

    def delete(self, key: str) -> None:
        with self._session() as con:
            con.execute("DELETE FROM kv_store WHERE key=?", (key,))

    def ensure_schema(self) -> None:
        self._init_db()

    def get_schema_version(self) -> int:
        with self._session() as con:
            try:
                row = con.execute("SELECT version FROM schema_version WHERE id=1").fetchone()
            except sqlite3.OperationalError:
                return 0
        return 0 if row is None else int(row["version"])
