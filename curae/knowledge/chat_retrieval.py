# ==============================
# Chat Retrieval Helpers
# ==============================
"""
Convenience layer for a chat front end: retrieval plus ready-to-send text.
"""

from __future__ import annotations

from typing import Optional

from curae.config.schema import ChatConfig
from curae.contracts.retrieval_schema import (
    ChatRecommendations,
    IngestResult,
    RetrievalOptions,
    RoutineRecommendations,
    SourceFilter,
)
from curae.knowledge.retriever import RetrievalEngine, SurveyLike, as_survey
from curae.utils.formatters import (
    format_products_for_chat,
    format_routine_for_chat,
    format_source_fallback,
)


class ChatRetrieval:
    def __init__(self, engine: RetrievalEngine, *, config: Optional[ChatConfig] = None) -> None:
        self.engine = engine
        self.config = config or ChatConfig()

    def initialize(self) -> IngestResult:
        return self.engine.ensure_ingested()

    def get_product_recommendations(
        self,
        profile: SurveyLike,
        *,
        category: Optional[str] = None,
        query: Optional[str] = None,
        limit: Optional[int] = None,
        source_filter: SourceFilter = "all",
    ) -> ChatRecommendations:
        survey = as_survey(profile)
        options = RetrievalOptions(
            category=category,
            limit=limit or self.config.default_limit,
            min_similarity=self.engine.config.default_min_similarity,
            natural_language_query=query,
            source_filter=source_filter,
        )
        result = self.engine.retrieve(survey, options)

        if not result.products and source_filter != "all":
            formatted = format_source_fallback(source_filter)
        else:
            formatted = format_products_for_chat(result.products, marketplace_name=self.config.marketplace_name)

        return ChatRecommendations(
            products=result.products,
            formatted=formatted,
            total_found=result.total_candidates,
            source_filter=source_filter,
        )

    def get_routine_recommendations(self, profile: SurveyLike) -> RoutineRecommendations:
        survey = as_survey(profile)
        routine = self.engine.retrieve_routine(survey)
        formatted = format_routine_for_chat(routine, survey, marketplace_name=self.config.marketplace_name)
        return RoutineRecommendations(routine=routine, formatted=formatted)
