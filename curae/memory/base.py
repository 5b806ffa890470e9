# ==============================
# Memory Backend Contracts
# ==============================
"""
Memory layer is the ONLY place where persistence is allowed.

The engine persists exactly one thing: the DocumentStore snapshot, a JSON string
stored under one well-known key. Backends therefore expose a tiny key-value surface.

Rules:
- No vectorization or ranking here.
- Backends may raise on I/O failure; callers (DocumentStore) decide how to absorb it.
- Concrete persistence lives in sqlite_backend.py (or other backends).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueBackend(ABC):
    """
    Interface used by the DocumentStore for snapshot load/save.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    # Optional hooks for durable backends so tooling can introspect.
    def ensure_schema(self) -> None:
        """
        Ensure backing schema exists. In-memory backends can no-op.
        """
        return None

    def get_schema_version(self) -> int:
        """
        Return integer schema version if supported. Defaults to 0.
        """
        return 0
