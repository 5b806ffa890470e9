# ==============================
# In-Memory Backend (Dev)
# ==============================
"""
In-memory key-value backend for local dev/testing.

Not durable. Deterministic. No file I/O.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional

from curae.memory.base import KeyValueBackend


class InMemoryBackend(KeyValueBackend):
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._values)
