# ==============================
# Ingestion Pipeline
# ==============================
"""
Projects catalog items into Documents and loads them into the DocumentStore.

Rules:
- Document id is "<id_prefix><catalog id>" (default "product_<id>").
- productUrl depends on source; marketplaceUrl is kept equal to it.
- Per-item failures are skipped and reported; batch failures become IngestResult(success=False).
  Nothing here raises to the caller.
- Drift is a mismatch between the store count and the number of distinct valid catalog ids;
  it triggers a full re-ingest that swaps the store contents in one step.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence, Set, Tuple

from pydantic import ValidationError

from curae.config.schema import IngestionConfig
from curae.contracts.catalog_schema import CatalogItem
from curae.contracts.document_schema import Document, DocumentMetadata
from curae.contracts.retrieval_schema import IngestionStatus, IngestResult
from curae.knowledge.catalog import CatalogRecord, CatalogSource
from curae.knowledge.vector_store import DocumentStore
from curae.knowledge.vectorizer import Vectorizer
from curae.logging.logger import LogContext, with_context
from curae.logging.metrics import Metrics

logger = logging.getLogger(__name__)


# ==============================
# Projection
# ==============================
def product_url_for(item: CatalogItem, config: Optional[IngestionConfig] = None) -> str:
    cfg = config or IngestionConfig()
    template = cfg.marketplace_url_template if item.source == "marketplace" else cfg.discovery_url_template
    return template.format(id=item.id)


def product_to_document(
    record: CatalogRecord,
    *,
    vectorizer: Optional[Vectorizer] = None,
    config: Optional[IngestionConfig] = None,
) -> Document:
    """Validate one catalog record and project it into a Document. Raises on invalid input."""
    cfg = config or IngestionConfig()
    vec = vectorizer or Vectorizer()
    item = record if isinstance(record, CatalogItem) else CatalogItem.model_validate(record)

    url = product_url_for(item, cfg)
    metadata = DocumentMetadata(
        product_id=item.id,
        brand=item.brand,
        name=item.name,
        category=item.category,
        price=item.price,
        rating=item.rating,
        review_count=item.review_count,
        skin_types=list(item.skin_types),
        concerns=list(item.concerns),
        key_ingredients=list(item.key_ingredients),
        active_ingredients=list(item.active_ingredients),
        preferences=item.preferences,
        in_stock=item.in_stock,
        size=item.size,
        image=item.image,
        description=item.description,
        source=item.source,
        product_url=url,
        marketplace_url=url,
    )
    return Document(
        id=f"{cfg.id_prefix}{item.id}",
        vector=vec.embed_structured(item),
        metadata=metadata,
    )


def _record_label(record: CatalogRecord) -> str:
    if isinstance(record, CatalogItem):
        return str(record.id)
    if isinstance(record, dict):
        return str(record.get("id", "<missing id>"))
    return repr(record)[:60]


# ==============================
# Pipeline
# ==============================
class IngestionPipeline:
    def __init__(
        self,
        store: DocumentStore,
        catalog: CatalogSource,
        *,
        vectorizer: Optional[Vectorizer] = None,
        config: Optional[IngestionConfig] = None,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.vectorizer = vectorizer or Vectorizer()
        self.config = config or IngestionConfig()
        self.metrics = metrics or store.metrics
        # single-flight guard for ensure_ingested / re_ingest_all
        self._ingest_lock = threading.Lock()

    def _project(self, records: Sequence[CatalogRecord]) -> Tuple[List[Document], List[str]]:
        documents: List[Document] = []
        skipped: List[str] = []
        for record in records:
            try:
                documents.append(product_to_document(record, vectorizer=self.vectorizer, config=self.config))
            except Exception as exc:
                label = _record_label(record)
                skipped.append(label)
                self.metrics.inc("ingest.failures")
                logger.warning("Skipping catalog item %s: %s", label, exc)
        return documents, skipped

    def ingest_all(self, items: Optional[Sequence[CatalogRecord]] = None) -> IngestResult:
        return self._ingest(items, replace=False)

    def _ingest(self, items: Optional[Sequence[CatalogRecord]], *, replace: bool) -> IngestResult:
        log = with_context(logger, LogContext(operation="re_ingest_all" if replace else "ingest_all"))
        with self.metrics.timed("ingest.ms"):
            try:
                records = list(items) if items is not None else self.catalog.items()
                documents, skipped = self._project(records)
                if replace:
                    self.store.replace_all(documents)
                else:
                    self.store.upsert_many(documents)
                count = self.store.count()
            except Exception as exc:
                self.metrics.inc("ingest.failures")
                log.error("Catalog ingestion failed: %s", exc)
                return IngestResult(success=False, count=0, error=str(exc))

        self.metrics.inc("ingest.documents", len(documents))
        log.info("Ingested %d documents (%d skipped)", len(documents), len(skipped))
        return IngestResult(success=True, count=count, skipped=skipped)

    def ingest_one(self, item: CatalogRecord) -> bool:
        try:
            document = product_to_document(item, vectorizer=self.vectorizer, config=self.config)
            self.store.upsert(document)
        except Exception as exc:
            self.metrics.inc("ingest.failures")
            with_context(logger, LogContext(operation="ingest_one", doc_id=_record_label(item))).warning(
                "Failed to ingest catalog item: %s", exc
            )
            return False
        self.metrics.inc("ingest.documents")
        return True

    def is_ingested(self) -> bool:
        return self.store.is_populated()

    def re_ingest_all(self, items: Optional[Sequence[CatalogRecord]] = None) -> IngestResult:
        with self._ingest_lock:
            return self._ingest(items, replace=True)

    def expected_document_count(self, records: Sequence[CatalogRecord]) -> int:
        """Distinct document ids the given records would produce; invalid records are not counted."""
        ids: Set[str] = set()
        for record in records:
            try:
                item = record if isinstance(record, CatalogItem) else CatalogItem.model_validate(record)
            except ValidationError:
                continue
            ids.add(f"{self.config.id_prefix}{item.id}")
        return len(ids)

    def ensure_ingested(self) -> IngestResult:
        """
        Bootstrap or repair the store. Concurrent callers wait on the same lock, so the
        second caller sees a populated store and does nothing.
        """
        with self._ingest_lock:
            try:
                records = self.catalog.items()
            except Exception as exc:
                logger.error("Catalog unavailable: %s", exc)
                return IngestResult(success=False, count=0, error=str(exc))

            if not self.store.is_populated():
                logger.info("Store empty; ingesting %d catalog items", len(records))
                return self.ingest_all(records)

            current = self.store.count()
            expected = self.expected_document_count(records)
            if current != expected:
                logger.info("Catalog drift detected (store=%d, catalog=%d); re-ingesting", current, expected)
                return self._ingest(records, replace=True)

            return IngestResult(success=True, count=current)

    def status(self) -> IngestionStatus:
        try:
            catalog_count = len(self.catalog.items())
        except Exception as exc:
            logger.warning("Catalog unavailable for status: %s", exc)
            catalog_count = 0
        return IngestionStatus(
            is_ingested=self.store.is_populated(),
            document_count=self.store.count(),
            catalog_count=catalog_count,
        )
