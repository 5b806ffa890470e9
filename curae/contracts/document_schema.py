# ==============================
# Document Contracts
# ==============================
"""
Documents held by the DocumentStore and the persisted snapshot envelope.

Snapshot wire format (one value under one key of the KV backend):
  {"version": "1.0", "documents": [Document...], "lastUpdated": "<ISO-8601>"}
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from curae.contracts.catalog_schema import ActiveIngredient, ProductPreferences, ProductSize, ProductSource


class DocumentMetadata(BaseModel):
    """
    Closed metadata schema stored next to every vector.

    marketplace_url is a deprecated alias of product_url and is always kept equal to it.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    product_id: int
    brand: str
    name: str
    category: str
    price: float
    rating: float = 0.0
    review_count: int = 0
    skin_types: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)
    key_ingredients: List[str] = Field(default_factory=list)
    active_ingredients: List[ActiveIngredient] = Field(default_factory=list)
    preferences: ProductPreferences = Field(default_factory=ProductPreferences)
    in_stock: bool = True
    size: Optional[ProductSize] = None
    image: str = ""
    description: str = ""
    source: ProductSource = "discovery"
    product_url: str = ""
    marketplace_url: str = ""

    @model_validator(mode="after")
    def _sync_urls(self) -> "DocumentMetadata":
        if not self.product_url and self.marketplace_url:
            self.product_url = self.marketplace_url
        self.marketplace_url = self.product_url
        return self


class Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    id: str
    vector: List[float]
    metadata: DocumentMetadata


class SearchResult(BaseModel):
    document: Document
    similarity: float


class StoreSnapshot(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    version: str
    documents: List[Document] = Field(default_factory=list)
    last_updated: str
