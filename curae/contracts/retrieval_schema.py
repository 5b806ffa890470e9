# ==============================
# Retrieval Contracts
# ==============================
"""
Query, option and result envelopes for ingestion and retrieval.

Failures are data, not control flow: ingestion reports through IngestResult and
retrieval always returns a well-formed RetrievalResult (possibly empty).
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from curae.contracts.catalog_schema import ActiveIngredient, ProductPreferences, ProductSource

BudgetRange = Literal["budget", "mid", "premium"]
SourceFilter = Literal["all", "marketplace-only", "discovery-only"]


class ContractModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


# ==============================
# Query Side
# ==============================
class SurveyPreferences(ContractModel):
    cruelty_free: Optional[bool] = None
    vegan: Optional[bool] = None
    fragrance_free: Optional[bool] = None
    alcohol_free: Optional[bool] = None
    budget_range: Optional[BudgetRange] = None


class Survey(ContractModel):
    """The user's skin profile, used as the primary retrieval query."""

    skin_type: Optional[str] = None
    concerns: List[str] = Field(default_factory=list)
    sensitivities: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)
    preferences: SurveyPreferences = Field(default_factory=SurveyPreferences)


class RetrievalOptions(ContractModel):
    category: Optional[str] = None
    limit: int = Field(default=10, ge=0)
    min_similarity: float = Field(default=0.05)
    natural_language_query: Optional[str] = None
    source_filter: SourceFilter = "all"


# ==============================
# Result Side
# ==============================
class RankedProduct(ContractModel):
    product_id: int
    brand: str
    name: str
    category: str
    price: float
    rating: float
    review_count: int
    skin_types: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)
    key_ingredients: List[str] = Field(default_factory=list)
    active_ingredients: List[ActiveIngredient] = Field(default_factory=list)
    preferences: ProductPreferences = Field(default_factory=ProductPreferences)
    in_stock: bool = True
    image: str = ""
    description: str = ""
    source: ProductSource = "discovery"
    product_url: str = ""
    marketplace_url: str = Field(default="", description="Deprecated alias of product_url.")

    similarity_score: float
    attribute_score: int
    final_score: float
    match_reasons: List[str] = Field(default_factory=list)


class RetrievalQuery(ContractModel):
    skin_type: Optional[str] = None
    concerns: Optional[List[str]] = None
    category: Optional[str] = None


class RetrievalResult(ContractModel):
    products: List[RankedProduct] = Field(default_factory=list)
    query: RetrievalQuery = Field(default_factory=RetrievalQuery)
    total_candidates: int = 0
    processing_time_ms: int = 0


# ==============================
# Ingestion Side
# ==============================
class IngestResult(ContractModel):
    success: bool
    count: int
    error: Optional[str] = None
    skipped: List[str] = Field(default_factory=list)


class IngestionStatus(ContractModel):
    is_ingested: bool
    document_count: int
    catalog_count: int


# ==============================
# Chat Helpers
# ==============================
class ChatRecommendations(ContractModel):
    products: List[RankedProduct] = Field(default_factory=list)
    formatted: str
    total_found: int = 0
    source_filter: SourceFilter = "all"


class RoutineRecommendations(ContractModel):
    routine: Dict[str, List[RankedProduct]] = Field(default_factory=dict)
    formatted: str
