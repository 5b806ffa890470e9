# ==============================
# Catalog Sources
# ==============================
"""
Read-only catalog collaborators for ingestion.

A catalog is an ordered list of product records. Records are returned raw (dicts or
CatalogItem); validation happens per item inside the ingestion pipeline so one bad
record never hides the rest.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from curae.contracts.catalog_schema import CatalogItem

logger = logging.getLogger(__name__)

CatalogRecord = Union[CatalogItem, Dict[str, Any]]


class CatalogLoadError(RuntimeError):
    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class CatalogSource(ABC):
    @abstractmethod
    def items(self) -> List[CatalogRecord]:
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self.items())


class StaticCatalog(CatalogSource):
    """In-memory catalog. Mutable so callers (and tests) can grow it in place."""

    def __init__(self, records: Optional[Iterable[CatalogRecord]] = None) -> None:
        self._records: List[CatalogRecord] = list(records or [])

    def items(self) -> List[CatalogRecord]:
        return list(self._records)

    def add(self, record: CatalogRecord) -> None:
        self._records.append(record)

    def replace(self, records: Iterable[CatalogRecord]) -> None:
        self._records = list(records)


class FileCatalog(CatalogSource):
    """
    Catalog stored as a JSON or YAML file.

    Accepted shapes: a top-level list of products, or a mapping with a "products" list.
    The file is re-read on every items() call so edits show up as drift.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    def items(self) -> List[CatalogRecord]:
        if not self.path.exists():
            raise CatalogLoadError(str(self.path), "catalog file not found")
        raw = self.path.read_text(encoding="utf-8").strip()
        if not raw:
            return []

        try:
            if self.path.suffix.lower() == ".json":
                data = json.loads(raw)
            else:
                data = yaml.safe_load(raw)
        except (ValueError, yaml.YAMLError) as exc:
            raise CatalogLoadError(str(self.path), f"unparseable catalog: {exc}") from exc

        if isinstance(data, dict):
            data = data.get("products", [])
        if data is None:
            return []
        if not isinstance(data, list):
            raise CatalogLoadError(str(self.path), "catalog root must be a list or contain a 'products' list")

        logger.debug("Loaded %d catalog records from %s", len(data), self.path)
        return data
