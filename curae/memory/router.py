# ==============================
# Memory Router
# ==============================
"""
Memory router provides the single persistence handle given to the DocumentStore.

- Delegates all operations to a chosen backend (sqlite or in-memory).
- from_settings resolves storage paths so callers never build file paths themselves.
"""

from __future__ import annotations

from typing import Optional

from curae.config.schema import Settings
from curae.memory.base import KeyValueBackend
from curae.memory.in_memory import InMemoryBackend
from curae.memory.sqlite_backend import SQLiteBackend


class MemoryRouter(KeyValueBackend):
    def __init__(self, backend: KeyValueBackend) -> None:
        self.backend = backend

    def get(self, key: str) -> Optional[str]:
        return self.backend.get(key)

    def set(self, key: str, value: str) -> None:
        self.backend.set(key, value)

    def delete(self, key: str) -> None:
        self.backend.delete(key)

    def ensure_schema(self) -> None:
        self.backend.ensure_schema()

    def get_schema_version(self) -> int:
        return self.backend.get_schema_version()

    @classmethod
    def from_settings(cls, settings: Settings) -> "MemoryRouter":
        """
        Instantiate router using repo settings.
        """
        if settings.store.backend == "memory":
            return cls(InMemoryBackend())

        if settings.store.db_path:
            db_file = settings.resolve_path(settings.store.db_path)
        else:
            db_file = settings.resolve_path(settings.app.paths.storage_dir) / "vectors" / "curae.sqlite"
        db_file.parent.mkdir(parents=True, exist_ok=True)

        backend = SQLiteBackend(db_path=str(db_file))
        backend.ensure_schema()
        return cls(backend)
