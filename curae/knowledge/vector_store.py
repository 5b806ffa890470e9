# ==============================
# Document Store (in-memory + snapshot)
# ==============================
"""
Keyed collection of (id, vector, metadata) with cosine search.

Choices:
- The in-memory map is authoritative for every read. Persistence is best-effort:
  the full map is re-serialized after each mutation and written under one key of a
  KeyValueBackend. Load/save failures are logged and absorbed.
- The snapshot is loaded lazily, once (initialize() is idempotent).
- A snapshot whose version differs from the configured version is discarded, not migrated.
- One re-entrant lock serializes writers and snapshot I/O; searches copy the document
  list under the lock and score outside it.
- Ties in similarity keep map order: first-insertion order of the id (re-upserting an
  id keeps its position, clear() and replace_all() reset it).
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from curae.contracts.document_schema import Document, SearchResult, StoreSnapshot
from curae.knowledge.vectorizer import cosine_similarity
from curae.logging.metrics import Metrics
from curae.memory.base import KeyValueBackend

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_KEY = "curae_vector_store"
DEFAULT_SNAPSHOT_VERSION = "1.0"

DocumentFilter = Callable[[Document], bool]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MetadataFilters(BaseModel):
    """Declarative filters for search_with_filters."""
    # skinTypes, concerns and other keys callers pass along are ignored
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    category: Optional[str] = None
    max_price: Optional[float] = Field(default=None, alias="maxPrice")
    preferences: Dict[str, bool] = Field(default_factory=dict, description="camelCase flag -> required")

    def matches(self, doc: Document) -> bool:
        meta = doc.metadata
        if self.category and meta.category != self.category:
            return False
        if self.max_price and meta.price > self.max_price:
            return False
        if self.preferences:
            enabled = set(meta.preferences.enabled_flags())
            for flag, required in self.preferences.items():
                if required and flag not in enabled:
                    return False
        return True


class DocumentStore:
    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        snapshot_key: str = DEFAULT_SNAPSHOT_KEY,
        snapshot_version: str = DEFAULT_SNAPSHOT_VERSION,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self.backend = backend
        self.snapshot_key = snapshot_key
        self.snapshot_version = snapshot_version
        self.metrics = metrics or Metrics()
        self._documents: Dict[str, Document] = {}
        self._lock = threading.RLock()
        self._initialized = False

    # ==============================
    # Snapshot I/O
    # ==============================
    def initialize(self) -> None:
        with self._lock:
            if self._initialized:
                return
            self._documents = self._load_snapshot()
            self._initialized = True

    def _load_snapshot(self) -> Dict[str, Document]:
        try:
            raw = self.backend.get(self.snapshot_key)
        except Exception as exc:
            logger.warning("Failed to read vector store snapshot: %s", exc)
            return {}
        if not raw:
            return {}

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("snapshot is not an object")
            if data.get("version") != self.snapshot_version:
                logger.warning(
                    "Discarding vector store snapshot with version %r (expected %r)",
                    data.get("version"),
                    self.snapshot_version,
                )
                return {}
            snapshot = StoreSnapshot.model_validate(data)
        except (ValueError, ValidationError) as exc:
            logger.warning("Corrupted vector store snapshot ignored: %s", exc)
            return {}

        documents: Dict[str, Document] = {}
        for doc in snapshot.documents:
            documents[doc.id] = doc
        logger.info("Loaded %d documents from snapshot (last updated %s)", len(documents), snapshot.last_updated)
        return documents

    def _persist(self) -> None:
        snapshot = StoreSnapshot(
            version=self.snapshot_version,
            documents=list(self._documents.values()),
            last_updated=_utc_now_iso(),
        )
        try:
            payload = json.dumps(snapshot.model_dump(mode="json", by_alias=True), ensure_ascii=False)
            self.backend.set(self.snapshot_key, payload)
        except Exception as exc:
            self.metrics.inc("store.persist_failures")
            logger.warning("Failed to persist vector store: %s", exc)

    # ==============================
    # Mutations
    # ==============================
    def upsert(self, document: Document) -> None:
        with self._lock:
            self.initialize()
            self._documents[document.id] = document
            self._persist()

    def upsert_many(self, documents: Iterable[Document]) -> None:
        with self._lock:
            self.initialize()
            for doc in documents:
                self._documents[doc.id] = doc
            self._persist()

    def replace_all(self, documents: Iterable[Document]) -> None:
        """Swap the whole collection in one step; readers see either the old or the new set."""
        fresh: Dict[str, Document] = {}
        for doc in documents:
            fresh[doc.id] = doc
        with self._lock:
            self._documents = fresh
            self._initialized = True
            self._persist()

    def delete(self, doc_id: str) -> None:
        with self._lock:
            self.initialize()
            self._documents.pop(doc_id, None)
            self._persist()

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()
            # the map stays authoritative; the next load should not resurrect old data
            self._initialized = True
            try:
                self.backend.delete(self.snapshot_key)
            except Exception as exc:
                self.metrics.inc("store.persist_failures")
                logger.warning("Failed to remove vector store snapshot: %s", exc)

    # ==============================
    # Reads
    # ==============================
    def get(self, doc_id: str) -> Optional[Document]:
        with self._lock:
            self.initialize()
            return self._documents.get(doc_id)

    def get_all(self) -> List[Document]:
        with self._lock:
            self.initialize()
            return list(self._documents.values())

    def count(self) -> int:
        with self._lock:
            self.initialize()
            return len(self._documents)

    def is_populated(self) -> bool:
        return self.count() > 0

    def search(
        self,
        query_vector: List[float],
        *,
        top_k: int = 10,
        min_similarity: float = 0.1,
        filter: Optional[DocumentFilter] = None,
    ) -> List[SearchResult]:
        """
        Filter first, then score. Keeps similarity >= min_similarity, sorts descending
        (stable, so ties keep store order) and truncates to top_k.
        """
        candidates = self.get_all()

        results: List[SearchResult] = []
        for doc in candidates:
            if filter is not None and not filter(doc):
                continue
            similarity = cosine_similarity(query_vector, doc.vector)
            if similarity >= min_similarity:
                results.append(SearchResult(document=doc, similarity=similarity))

        results.sort(key=lambda r: r.similarity, reverse=True)
        return results[: max(0, int(top_k))]

    def search_with_filters(
        self,
        query_vector: List[float],
        filters: MetadataFilters | Dict[str, object],
        top_k: int = 10,
    ) -> List[SearchResult]:
        criteria = filters if isinstance(filters, MetadataFilters) else MetadataFilters.model_validate(filters)
        return self.search(query_vector, top_k=top_k, filter=criteria.matches)
