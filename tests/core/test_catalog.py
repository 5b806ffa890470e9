# ==============================
# Tests: Catalog Sources
# ==============================
from __future__ import annotations

import json
from pathlib import Path

import pytest

from curae.knowledge.catalog import CatalogLoadError, FileCatalog, StaticCatalog
from curae.knowledge.ingestion import IngestionPipeline

SAMPLE_CATALOG = Path(__file__).resolve().parents[2] / "data" / "sample_catalog.yaml"


def test_static_catalog_is_a_copying_list(make_product) -> None:
    catalog = StaticCatalog([make_product(1)])
    snapshot = catalog.items()
    catalog.add(make_product(2))
    assert len(snapshot) == 1
    assert len(catalog) == 2


def test_file_catalog_json_list_and_yaml_mapping(tmp_path: Path, make_product) -> None:
    json_file = tmp_path / "catalog.json"
    json_file.write_text(json.dumps([make_product(1), make_product(2)]), encoding="utf-8")
    assert [r["id"] for r in FileCatalog(json_file).items()] == [1, 2]

    yaml_file = tmp_path / "catalog.yml"
    yaml_file.write_text("products:\n  - id: 5\n    name: X\n", encoding="utf-8")
    assert FileCatalog(yaml_file).items() == [{"id": 5, "name": "X"}]

    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    assert FileCatalog(empty).items() == []


def test_file_catalog_errors(tmp_path: Path) -> None:
    with pytest.raises(CatalogLoadError):
        FileCatalog(tmp_path / "missing.json").items()

    broken = tmp_path / "broken.json"
    broken.write_text("{oops", encoding="utf-8")
    with pytest.raises(CatalogLoadError):
        FileCatalog(broken).items()

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("just a string", encoding="utf-8")
    with pytest.raises(CatalogLoadError):
        FileCatalog(scalar).items()


def test_sample_catalog_ingests_cleanly(store) -> None:
    pipeline = IngestionPipeline(store, FileCatalog(SAMPLE_CATALOG))
    result = pipeline.ensure_ingested()
    assert result.success
    assert result.skipped == []
    assert result.count == len(FileCatalog(SAMPLE_CATALOG))
