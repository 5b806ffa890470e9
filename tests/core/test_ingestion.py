# ==============================
# Tests: Ingestion Pipeline
# ==============================
from __future__ import annotations

from typing import List

from curae.config.schema import IngestionConfig
from curae.knowledge.catalog import CatalogSource, StaticCatalog
from curae.knowledge.ingestion import IngestionPipeline, product_to_document
from curae.knowledge.vector_store import DocumentStore


class BrokenCatalog(CatalogSource):
    def items(self) -> List[dict]:
        raise RuntimeError("catalog service down")


class ExplodingStore(DocumentStore):
    def upsert_many(self, documents) -> None:
        raise RuntimeError("store exploded")


def test_product_to_document_projection(make_product) -> None:
    doc = product_to_document(
        make_product(
            42,
            source="marketplace",
            preferences={"crueltyFree": True, "glutenFree": True},
            activeIngredients=[{"name": "Retinol", "concentration": 0.5, "concentrationUnit": "%"}],
            size={"value": 30, "unit": "ml"},
            extraneousField="ignored",
        )
    )
    assert doc.id == "product_42"
    assert doc.metadata.product_id == 42
    assert doc.metadata.product_url == "/marketplace/product/42"
    assert doc.metadata.marketplace_url == doc.metadata.product_url
    assert doc.metadata.active_ingredients[0].name == "Retinol"
    assert doc.metadata.preferences.gluten_free is True
    assert len(doc.vector) == 128


def test_discovery_url_and_custom_templates(make_product) -> None:
    doc = product_to_document(make_product(7))
    assert doc.metadata.source == "discovery"
    assert doc.metadata.product_url == "/product-detail/7"

    cfg = IngestionConfig(id_prefix="sku-", discovery_url_template="/p/{id}")
    custom = product_to_document(make_product(7), config=cfg)
    assert custom.id == "sku-7"
    assert custom.metadata.product_url == "/p/7"


def test_ingest_all_is_idempotent(pipeline: IngestionPipeline, catalog: StaticCatalog, store: DocumentStore, make_product) -> None:
    catalog.replace([make_product(i) for i in range(1, 6)])
    first = pipeline.ingest_all()
    second = pipeline.ingest_all()
    assert first.success and second.success
    assert first.count == second.count == 5
    ids = [d.id for d in store.get_all()]
    assert len(ids) == len(set(ids)) == 5


def test_ingest_all_skips_invalid_items(pipeline: IngestionPipeline, store: DocumentStore, make_product, metrics) -> None:
    records = [make_product(1), {"id": 2, "name": "no price"}, make_product(3, price=-5)]
    result = pipeline.ingest_all(records)
    assert result.success
    assert result.count == 1
    assert result.skipped == ["2", "3"]
    assert metrics.counter("ingest.failures") == 2


def test_ingest_all_reports_batch_failure(memory_backend, make_product) -> None:
    store = ExplodingStore(memory_backend)
    pipeline = IngestionPipeline(store, StaticCatalog([make_product(1)]))
    result = pipeline.ingest_all()
    assert result.success is False
    assert result.count == 0
    assert "store exploded" in result.error


def test_ingest_one(pipeline: IngestionPipeline, store: DocumentStore, make_product) -> None:
    assert pipeline.ingest_one(make_product(9)) is True
    assert store.get("product_9") is not None
    assert pipeline.ingest_one({"id": "not-a-number"}) is False
    assert store.count() == 1


def test_ensure_ingested_bootstraps_and_recovers_drift(
    pipeline: IngestionPipeline, catalog: StaticCatalog, store: DocumentStore, make_product
) -> None:
    catalog.replace([make_product(i) for i in range(1, 11)])
    assert not pipeline.is_ingested()

    pipeline.ensure_ingested()
    assert store.count() == 10

    # no drift -> nothing re-ingested
    again = pipeline.ensure_ingested()
    assert again.success and again.count == 10

    catalog.add(make_product(11))
    catalog.add(make_product(12))
    pipeline.ensure_ingested()
    assert store.count() == 12


def test_re_ingest_drops_removed_items(pipeline: IngestionPipeline, catalog: StaticCatalog, store: DocumentStore, make_product) -> None:
    catalog.replace([make_product(1), make_product(2), make_product(3)])
    pipeline.ensure_ingested()
    catalog.replace([make_product(1), make_product(4)])
    pipeline.ensure_ingested()
    assert sorted(d.id for d in store.get_all()) == ["product_1", "product_4"]


def test_status(pipeline: IngestionPipeline, catalog: StaticCatalog, make_product) -> None:
    catalog.replace([make_product(1), make_product(2)])
    before = pipeline.status()
    assert before.model_dump(by_alias=True) == {"isIngested": False, "documentCount": 0, "catalogCount": 2}
    pipeline.ensure_ingested()
    after = pipeline.status()
    assert after.is_ingested and after.document_count == 2


def test_unreadable_catalog_is_reported(store: DocumentStore) -> None:
    pipeline = IngestionPipeline(store, BrokenCatalog())
    result = pipeline.ensure_ingested()
    assert result.success is False
    assert "catalog service down" in result.error
    assert pipeline.status().catalog_count == 0


def test_invalid_and_duplicate_records_do_not_count_as_drift(
    pipeline: IngestionPipeline, catalog: StaticCatalog, store: DocumentStore, make_product, metrics
) -> None:
    catalog.replace([make_product(1), make_product(2), {"id": 3, "name": "no price"}, make_product(2, name="Dup")])
    assert pipeline.expected_document_count(catalog.items()) == 2

    pipeline.ensure_ingested()
    assert store.count() == 2
    assert metrics.counter("ingest.failures") == 1
    assert metrics.counter("ingest.documents") == 3

    for _ in range(3):
        result = pipeline.ensure_ingested()
        assert result.success and result.count == 2
    assert metrics.counter("ingest.failures") == 1
    assert metrics.counter("ingest.documents") == 3


def test_drift_re_ingest_swaps_store_without_clearing(
    pipeline: IngestionPipeline, catalog: StaticCatalog, store: DocumentStore, make_product, monkeypatch
) -> None:
    catalog.replace([make_product(1), make_product(2)])
    pipeline.ensure_ingested()

    def _no_clear() -> None:
        raise AssertionError("re-ingest must not empty the live store")

    monkeypatch.setattr(store, "clear", _no_clear)
    catalog.replace([make_product(2), make_product(5), make_product(6)])
    result = pipeline.ensure_ingested()
    assert result.success and result.count == 3
    assert [d.id for d in store.get_all()] == ["product_2", "product_5", "product_6"]
