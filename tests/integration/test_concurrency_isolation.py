from __future__ import annotations

# ==============================
# Tests: Concurrency
# ==============================

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List

from curae.contracts.retrieval_schema import Survey
from curae.knowledge.catalog import StaticCatalog
from curae.knowledge.ingestion import IngestionPipeline
from curae.knowledge.retriever import RetrievalEngine
from curae.knowledge.vector_store import DocumentStore
from curae.memory.in_memory import InMemoryBackend


class CountingCatalog(StaticCatalog):
    """Catalog whose reads are slow enough for callers to overlap."""

    def __init__(self, records) -> None:
        super().__init__(records)
        self.reads = 0
        self._lock = threading.Lock()

    def items(self):
        with self._lock:
            self.reads += 1
        time.sleep(0.01)
        return super().items()


def test_concurrent_ensure_ingested_ingests_once(make_product) -> None:
    store = DocumentStore(InMemoryBackend())
    catalog = CountingCatalog([make_product(i) for i in range(1, 21)])
    pipeline = IngestionPipeline(store, catalog)

    barrier = threading.Barrier(8)

    def worker(_: int) -> int:
        barrier.wait()
        return pipeline.ensure_ingested().count

    with ThreadPoolExecutor(max_workers=8) as pool:
        counts = list(pool.map(worker, range(8)))

    assert counts == [20] * 8
    assert store.count() == 20
    assert store.metrics.counter("ingest.documents") == 20


def test_parallel_retrievals_are_consistent(make_product) -> None:
    store = DocumentStore(InMemoryBackend())
    records = [
        make_product(i, skinTypes=["oily"], concerns=["acne"], category=("serum" if i % 2 else "cleanser"))
        for i in range(1, 31)
    ]
    pipeline = IngestionPipeline(store, StaticCatalog(records))
    engine = RetrievalEngine(store, pipeline)
    survey = Survey(skin_type="oily", concerns=["acne"])

    expected = [p.product_id for p in engine.retrieve(survey, {"limit": 5}).products]
    errors: List[Exception] = []

    def worker(_: int) -> List[int]:
        try:
            return [p.product_id for p in engine.retrieve(survey, {"limit": 5}).products]
        except Exception as exc:  # pragma: no cover - failure path
            errors.append(exc)
            return []

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(pool.map(worker, range(24)))

    assert not errors
    assert all(r == expected for r in results)


def test_writes_interleaved_with_searches(make_product) -> None:
    store = DocumentStore(InMemoryBackend())
    pipeline = IngestionPipeline(store, StaticCatalog())
    stop = threading.Event()
    errors: List[Exception] = []
    query_vector = pipeline.vectorizer.embed("serum")

    def reader() -> None:
        while not stop.is_set():
            try:
                results = store.search(query_vector, min_similarity=0.0)
                sims = [r.similarity for r in results]
                assert sims == sorted(sims, reverse=True)
            except Exception as exc:  # pragma: no cover - failure path
                errors.append(exc)
                return

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for i in range(1, 41):
        pipeline.ingest_one(make_product(i))
    stop.set()
    for t in threads:
        t.join()

    assert not errors
    assert store.count() == 40


class DriftingCatalog(StaticCatalog):
    """Every read adds or drops one extra toner, so each ensure_ingested sees drift."""

    def __init__(self, records, extra) -> None:
        super().__init__(records)
        self._extra = extra
        self._flip = False
        self._lock = threading.Lock()

    def items(self):
        with self._lock:
            self._flip = not self._flip
            include = self._flip
        records = super().items()
        return records + [self._extra] if include else records


def test_routine_stays_complete_while_catalog_drifts(make_product) -> None:
    records = []
    next_id = 1
    for category in ("cleanser", "serum", "moisturizer", "sunscreen"):
        for _ in range(3):
            records.append(make_product(next_id, skinTypes=["oily"], concerns=["acne"], category=category))
            next_id += 1
    catalog = DriftingCatalog(records, make_product(99, skinTypes=["oily"], category="toner"))
    store = DocumentStore(InMemoryBackend())
    engine = RetrievalEngine(store, IngestionPipeline(store, catalog))
    survey = Survey(skin_type="oily", concerns=["acne"])
    routine_limit = engine.config.routine_limit

    def worker(_: int) -> List[int]:
        routine = engine.retrieve_routine(survey)
        return [len(picks) for picks in routine.values()]

    with ThreadPoolExecutor(max_workers=4) as pool:
        sizes = list(pool.map(worker, range(30)))

    assert all(s == [routine_limit] * 4 for s in sizes)
    assert store.metrics.counter("ingest.documents") > len(records) + 1


def test_routine_reads_catalog_once(make_product) -> None:
    records = [make_product(i, category=c) for i, c in enumerate(("cleanser", "serum", "moisturizer", "sunscreen"), 1)]
    catalog = CountingCatalog(records)
    store = DocumentStore(InMemoryBackend())
    engine = RetrievalEngine(store, IngestionPipeline(store, catalog))

    engine.retrieve_routine(Survey(skin_type="oily"))
    assert catalog.reads == 1
