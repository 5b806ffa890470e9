# ==============================
# Testing Fixtures
# ==============================
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from curae.knowledge.catalog import StaticCatalog
from curae.knowledge.ingestion import IngestionPipeline
from curae.knowledge.retriever import RetrievalEngine
from curae.knowledge.vector_store import DocumentStore
from curae.knowledge.vectorizer import Vectorizer
from curae.logging.metrics import Metrics
from curae.memory.in_memory import InMemoryBackend

ProductFactory = Callable[..., Dict[str, Any]]


def _make_product(product_id: int, **overrides: Any) -> Dict[str, Any]:
    """Catalog record in its camelCase wire shape; keyword overrides use the same names."""
    record: Dict[str, Any] = {
        "id": product_id,
        "name": f"Product {product_id}",
        "brand": "Brand",
        "description": "",
        "category": "serum",
        "price": 20.0,
        "rating": 4.0,
        "reviewCount": 10,
        "skinTypes": [],
        "concerns": [],
        "keyIngredients": [],
        "activeIngredients": [],
        "preferences": {},
        "inStock": True,
        "image": "",
        "source": "discovery",
    }
    record.update(overrides)
    return record


@pytest.fixture
def make_product() -> ProductFactory:
    return _make_product


@pytest.fixture
def memory_backend() -> InMemoryBackend:
    """In-memory KV backend for deterministic persistence during tests."""
    return InMemoryBackend()


@pytest.fixture
def metrics() -> Metrics:
    return Metrics()


@pytest.fixture
def vectorizer() -> Vectorizer:
    return Vectorizer()


@pytest.fixture
def store(memory_backend: InMemoryBackend, metrics: Metrics) -> DocumentStore:
    return DocumentStore(memory_backend, metrics=metrics)


@pytest.fixture
def catalog() -> StaticCatalog:
    return StaticCatalog()


@pytest.fixture
def pipeline(store: DocumentStore, catalog: StaticCatalog, vectorizer: Vectorizer) -> IngestionPipeline:
    return IngestionPipeline(store, catalog, vectorizer=vectorizer)


@pytest.fixture
def engine(store: DocumentStore, pipeline: IngestionPipeline) -> RetrievalEngine:
    return RetrievalEngine(store, pipeline)
