# ==============================
# Attribute Scoring
# ==============================
"""
Rule-based, explainable attribute score for one candidate against one survey.

Point table:
- skin type match (or universal product)     +25
- each matched concern                       +20, capped at +60
- each shared preference flag                +10
- each sensitivity violation                 -30
- price inside the requested budget bracket  +15
- rating >= 4.8 / >= 4.5                     +10 / +5
- in stock                                   +5

Reasons are appended in the same order points are awarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from curae.contracts.document_schema import DocumentMetadata
from curae.contracts.retrieval_schema import Survey

SKIN_TYPE_POINTS = 25
CONCERN_POINTS = 20
CONCERN_CAP = 60
PREFERENCE_POINTS = 10
SENSITIVITY_PENALTY = -30
BUDGET_POINTS = 15
TOP_RATING_POINTS = 10
GOOD_RATING_POINTS = 5
IN_STOCK_POINTS = 5

# Inclusive bounds; brackets overlap on purpose.
BUDGET_RANGES: Dict[str, Tuple[float, float]] = {
    "budget": (0.0, 30.0),
    "mid": (25.0, 50.0),
    "premium": (45.0, float("inf")),
}

UNIVERSAL_SKIN_TYPES = frozenset({"all", "all skin types"})

# (survey/product attribute, reason)
PREFERENCE_REASONS: Tuple[Tuple[str, str], ...] = (
    ("cruelty_free", "Cruelty-free"),
    ("vegan", "Vegan"),
    ("fragrance_free", "Fragrance-free"),
    ("alcohol_free", "Alcohol-free"),
)


@dataclass
class AttributeScore:
    score: int = 0
    reasons: List[str] = field(default_factory=list)


def is_skin_type_match(product_skin_type: str, skin_type: str) -> bool:
    lowered = product_skin_type.lower()
    return lowered == skin_type.lower() or lowered in UNIVERSAL_SKIN_TYPES


def concern_matches(product_concern: str, concern: str) -> bool:
    pc = product_concern.lower()
    uc = concern.lower()
    return uc in pc or pc in uc


def violates_sensitivity(meta: DocumentMetadata, sensitivity: str) -> bool:
    lowered = sensitivity.lower()
    if "fragrance" in lowered:
        return not meta.preferences.fragrance_free
    if "alcohol" in lowered:
        return not meta.preferences.alcohol_free

    ingredients = list(meta.key_ingredients) + [ai.name for ai in meta.active_ingredients]
    return any(lowered in ing.lower() for ing in ingredients)


def in_budget(price: float, budget_range: str) -> bool:
    low, high = BUDGET_RANGES[budget_range]
    return low <= price <= high


def score_attributes(meta: DocumentMetadata, survey: Survey) -> AttributeScore:
    result = AttributeScore()

    if survey.skin_type:
        if any(is_skin_type_match(st, survey.skin_type) for st in meta.skin_types):
            result.score += SKIN_TYPE_POINTS
            result.reasons.append(f"Suitable for {survey.skin_type} skin")

    if survey.concerns:
        matched = [c for c in survey.concerns if any(concern_matches(pc, c) for pc in meta.concerns)]
        result.score += min(CONCERN_POINTS * len(matched), CONCERN_CAP)
        if matched:
            result.reasons.append(f"Addresses: {', '.join(matched)}")

    prefs = survey.preferences
    for attr, reason in PREFERENCE_REASONS:
        if getattr(prefs, attr) and getattr(meta.preferences, attr):
            result.score += PREFERENCE_POINTS
            result.reasons.append(reason)

    for sensitivity in survey.sensitivities:
        if violates_sensitivity(meta, sensitivity):
            result.score += SENSITIVITY_PENALTY
            result.reasons.append(f"Warning: May contain {sensitivity}")

    if prefs.budget_range and in_budget(meta.price, prefs.budget_range):
        result.score += BUDGET_POINTS
        result.reasons.append(f"Within {prefs.budget_range} budget")

    if meta.rating >= 4.8:
        result.score += TOP_RATING_POINTS
        result.reasons.append("Highly rated (4.8+)")
    elif meta.rating >= 4.5:
        result.score += GOOD_RATING_POINTS

    if meta.in_stock:
        result.score += IN_STOCK_POINTS

    return result
