# ==============================
# Retrieval Engine
# ==============================
"""
Hybrid retrieval: vector similarity candidates re-ranked by attribute score.

Pipeline (retrieve):
1. ensure_ingested (bootstraps or repairs the store).
2. Query vector = survey vector, or survey*0.7 + query*0.3 when free text is given.
3. Filter by exact category and by source ("marketplace-only" / "discovery-only").
4. Over-fetch limit*3 candidates from the store.
5. finalScore = similarity*100*0.6 + attributeScore*0.4; stable sort descending; truncate.

A retrieval miss is an empty, well-formed result, never an exception.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from curae.config.schema import RankingConfig, Settings
from curae.contracts.document_schema import Document, SearchResult
from curae.contracts.retrieval_schema import (
    IngestResult,
    RankedProduct,
    RetrievalOptions,
    RetrievalQuery,
    RetrievalResult,
    Survey,
)
from curae.knowledge.catalog import CatalogSource, FileCatalog, StaticCatalog
from curae.knowledge.ingestion import IngestionPipeline
from curae.knowledge.scoring import score_attributes
from curae.knowledge.vector_store import DocumentStore
from curae.knowledge.vectorizer import Vector, Vectorizer, blend
from curae.logging.logger import LogContext, with_context
from curae.logging.metrics import Metrics
from curae.memory.base import KeyValueBackend
from curae.memory.router import MemoryRouter

logger = logging.getLogger(__name__)

SurveyLike = Union[Survey, Mapping[str, Any], None]
OptionsLike = Union[RetrievalOptions, Mapping[str, Any], None]


def as_survey(survey: SurveyLike) -> Survey:
    if survey is None:
        return Survey()
    if isinstance(survey, Survey):
        return survey
    return Survey.model_validate(survey)


def _source_matches(doc: Document, source_filter: str) -> bool:
    if source_filter == "marketplace-only":
        return doc.metadata.source == "marketplace"
    if source_filter == "discovery-only":
        return doc.metadata.source == "discovery"
    return True


def build_filter(options: RetrievalOptions) -> Callable[[Document], bool]:
    def _filter(doc: Document) -> bool:
        if options.category and doc.metadata.category != options.category:
            return False
        return _source_matches(doc, options.source_filter)

    return _filter


class RetrievalEngine:
    def __init__(
        self,
        store: DocumentStore,
        pipeline: IngestionPipeline,
        *,
        vectorizer: Optional[Vectorizer] = None,
        config: Optional[RankingConfig] = None,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self.store = store
        self.pipeline = pipeline
        self.vectorizer = vectorizer or pipeline.vectorizer
        self.config = config or RankingConfig()
        self.metrics = metrics or store.metrics

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        catalog: Optional[CatalogSource] = None,
        *,
        backend: Optional[KeyValueBackend] = None,
        metrics: Optional[Metrics] = None,
    ) -> "RetrievalEngine":
        """
        Wire store, pipeline and engine from Settings.
        Without an explicit catalog, ingestion.catalog_path is used (or an empty catalog).
        """
        if catalog is None:
            if settings.ingestion.catalog_path:
                catalog = FileCatalog(settings.resolve_path(settings.ingestion.catalog_path))
            else:
                catalog = StaticCatalog()
        metrics = metrics or Metrics()
        store = DocumentStore(
            backend or MemoryRouter.from_settings(settings),
            snapshot_key=settings.store.snapshot_key,
            snapshot_version=settings.store.snapshot_version,
            metrics=metrics,
        )
        vectorizer = Vectorizer()
        pipeline = IngestionPipeline(
            store, catalog, vectorizer=vectorizer, config=settings.ingestion, metrics=metrics
        )
        return cls(store, pipeline, vectorizer=vectorizer, config=settings.ranking, metrics=metrics)

    # ==============================
    # Public API
    # ==============================
    def ensure_ingested(self) -> IngestResult:
        return self.pipeline.ensure_ingested()

    def retrieve(self, survey: SurveyLike, options: OptionsLike = None) -> RetrievalResult:
        profile, opts = as_survey(survey), self._as_options(options)
        self.ensure_ingested()
        return self._retrieve(profile, opts)

    def _retrieve(self, profile: Survey, opts: RetrievalOptions) -> RetrievalResult:
        log = with_context(
            logger,
            LogContext(operation="retrieve", category=opts.category, source_filter=opts.source_filter),
        )

        self.metrics.inc("retrieve.calls")
        timer = self.metrics.start_timer("retrieve.ms")

        query_vector = self._query_vector(profile, opts.natural_language_query)
        candidates = self.store.search(
            query_vector,
            top_k=opts.limit * self.config.candidate_multiplier,
            min_similarity=opts.min_similarity,
            filter=build_filter(opts),
        )
        self.metrics.inc("retrieve.candidates", len(candidates))

        ranked = [self._rank(candidate, profile) for candidate in candidates]
        # list.sort is stable, so equal scores keep similarity order
        ranked.sort(key=lambda p: p.final_score, reverse=True)

        elapsed_ms = self.metrics.stop_timer(timer)
        log.debug("Retrieved %d candidates in %d ms", len(candidates), elapsed_ms)

        return RetrievalResult(
            products=ranked[: opts.limit],
            query=RetrievalQuery(
                skin_type=profile.skin_type,
                concerns=list(profile.concerns),
                category=opts.category,
            ),
            total_candidates=len(candidates),
            processing_time_ms=elapsed_ms,
        )

    def retrieve_by_category(self, survey: SurveyLike, category: str, limit: int = 3) -> List[RankedProduct]:
        return self.retrieve(survey, self._category_options(category, limit)).products

    def retrieve_routine(self, survey: SurveyLike) -> Dict[str, List[RankedProduct]]:
        """Top picks per routine category, retrieved in parallel after one ingestion check. Keys keep category order."""
        profile = as_survey(survey)
        categories = list(self.config.routine_categories)
        self.ensure_ingested()

        with ThreadPoolExecutor(max_workers=self.config.routine_workers) as pool:
            futures = {
                category: pool.submit(self._category_picks, profile, category)
                for category in categories
            }
            return {category: futures[category].result() for category in categories}

    def search(self, query: str, survey: SurveyLike = None, limit: int = 5) -> List[RankedProduct]:
        options = RetrievalOptions(
            natural_language_query=query,
            limit=limit,
            min_similarity=self.config.default_min_similarity,
        )
        return self.retrieve(survey, options).products

    # ==============================
    # Internals
    # ==============================
    def _category_options(self, category: str, limit: int) -> RetrievalOptions:
        return RetrievalOptions(
            category=category,
            limit=limit,
            min_similarity=self.config.default_min_similarity,
        )

    def _category_picks(self, profile: Survey, category: str) -> List[RankedProduct]:
        # caller has already run ensure_ingested
        return self._retrieve(profile, self._category_options(category, self.config.routine_limit)).products

    def _as_options(self, options: OptionsLike) -> RetrievalOptions:
        if options is None:
            return RetrievalOptions(
                limit=self.config.default_limit,
                min_similarity=self.config.default_min_similarity,
            )
        if isinstance(options, RetrievalOptions):
            return options
        return RetrievalOptions.model_validate(options)

    def _query_vector(self, survey: Survey, query_text: Optional[str]) -> Vector:
        survey_vector = self.vectorizer.embed_survey(survey)
        if not query_text:
            return survey_vector
        return blend(
            survey_vector,
            self.vectorizer.embed_query(query_text),
            self.config.survey_weight,
            self.config.query_weight,
        )

    def _rank(self, candidate: SearchResult, survey: Survey) -> RankedProduct:
        meta = candidate.document.metadata
        attributes = score_attributes(meta, survey)
        similarity_score = candidate.similarity * 100
        final_score = (
            similarity_score * self.config.similarity_weight
            + attributes.score * self.config.attribute_weight
        )

        fields = meta.model_dump(exclude={"size", "product_url", "marketplace_url"})
        url = meta.product_url or meta.marketplace_url
        return RankedProduct(
            **fields,
            product_url=url,
            marketplace_url=url,
            similarity_score=similarity_score,
            attribute_score=attributes.score,
            final_score=final_score,
            match_reasons=attributes.reasons,
        )
