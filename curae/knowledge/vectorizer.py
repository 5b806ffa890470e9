# ==============================
# Vectorizer
# ==============================
"""
Deterministic text -> vector mapping for skincare catalog and survey data.

Algorithm:
- Lowercase, replace punctuation (except hyphens) with spaces, split on whitespace,
  drop tokens of length <= 1.
- Add bigrams so multi-word terms ("hyaluronic acid") can hit the vocabulary.
- Count term frequency. In-vocabulary terms write freq * weight into their own slot;
  out-of-vocabulary terms hash into a slot and accumulate freq * 0.5.
- L2-normalize. The all-zero vector means "no signal" and is returned as is.

The hash and EMBEDDING_DIM are part of the persisted snapshot format: changing either
invalidates every stored vector (bump StoreConfig.snapshot_version when you do).

Never raises: malformed input degrades to the zero vector.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from curae.contracts.catalog_schema import CatalogItem
from curae.contracts.retrieval_schema import Survey

logger = logging.getLogger(__name__)

Vector = List[float]

EMBEDDING_DIM = 128
OOV_WEIGHT = 0.5

# Slot assignment follows insertion order; append new terms at the end only.
SKINCARE_VOCABULARY: Dict[str, float] = {
    # Skin types
    "dry": 1.5,
    "oily": 1.5,
    "combination": 1.5,
    "normal": 1.5,
    "sensitive": 1.8,
    # Concerns
    "acne": 1.8,
    "aging": 1.6,
    "wrinkles": 1.6,
    "fine lines": 1.6,
    "hyperpigmentation": 1.7,
    "dark spots": 1.7,
    "brightening": 1.5,
    "dullness": 1.5,
    "pores": 1.5,
    "texture": 1.4,
    "redness": 1.6,
    "inflammation": 1.6,
    "sensitivity": 1.7,
    "hydration": 1.5,
    "moisture": 1.4,
    "barrier": 1.6,
    "barrier repair": 1.8,
    "dehydration": 1.5,
    "oil control": 1.5,
    # Key ingredients
    "retinol": 2.0,
    "vitamin c": 1.9,
    "niacinamide": 1.9,
    "hyaluronic acid": 1.8,
    "salicylic acid": 1.9,
    "glycolic acid": 1.8,
    "ceramides": 1.8,
    "peptides": 1.7,
    "centella asiatica": 1.7,
    "squalane": 1.6,
    "zinc oxide": 1.5,
    "vitamin e": 1.4,
    "ferulic acid": 1.6,
    "azelaic acid": 1.7,
    "benzoyl": 1.6,
    "aha": 1.6,
    "bha": 1.6,
    # Product types
    "cleanser": 1.3,
    "serum": 1.3,
    "moisturizer": 1.3,
    "sunscreen": 1.3,
    "spf": 1.3,
    "treatment": 1.3,
    "mask": 1.3,
    "toner": 1.3,
    "cream": 1.2,
    "gel": 1.2,
    "oil": 1.2,
    # Preferences
    "vegan": 1.4,
    "cruelty-free": 1.4,
    "fragrance-free": 1.5,
    "alcohol-free": 1.4,
    "organic": 1.3,
    "natural": 1.3,
    "reef-safe": 1.3,
}

TERM_INDEX: Dict[str, int] = {term: i for i, term in enumerate(SKINCARE_VOCABULARY)}

EMBEDDING_SCHEMA: Dict[str, Any] = {
    "dimension": EMBEDDING_DIM,
    "similarity": "cosine",
    "vocabularySize": len(SKINCARE_VOCABULARY),
}

_PUNCT_RE = re.compile(r"[^\w\s-]", re.ASCII)
_CAMEL_RE = re.compile(r"([A-Z])")


# ==============================
# Text Helpers
# ==============================
def tokenize(text: str) -> List[str]:
    cleaned = _PUNCT_RE.sub(" ", text.lower())
    return [tok for tok in cleaned.split() if len(tok) > 1]


def build_terms(tokens: Sequence[str]) -> List[str]:
    """
    Unigrams followed by the unigram+bigram sequence.

    Unigrams therefore count twice relative to bigrams; stored vectors depend on it.
    """
    tokens = list(tokens)
    bigrams = [f"{tokens[i]} {tokens[i + 1]}" for i in range(len(tokens) - 1)]
    return tokens + tokens + bigrams


def hash_term(term: str) -> int:
    """31-multiplier string hash folded to signed 32 bits, then made non-negative."""
    h = 0
    for ch in term:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def decamel(key: str) -> str:
    return _CAMEL_RE.sub(r" \1", key).lower()


# ==============================
# Vector Math
# ==============================
def zero_vector() -> Vector:
    return [0.0] * EMBEDDING_DIM


def normalize(vector: np.ndarray) -> np.ndarray:
    magnitude = float(np.sqrt(np.sum(vector * vector)))
    if magnitude == 0.0:
        return vector
    return vector / magnitude


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    dot(a, b) / (|a| * |b|). Returns 0.0 for mismatched lengths or a zero-magnitude side.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape or va.ndim != 1:
        return 0.0
    magnitude = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if magnitude == 0.0:
        return 0.0
    return float(np.dot(va, vb) / magnitude)


def blend(a: Sequence[float], b: Sequence[float], weight_a: float, weight_b: float) -> Vector:
    """Component-wise weighted sum; no renormalization."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        logger.debug("blend: shape mismatch %s vs %s, keeping first vector", va.shape, vb.shape)
        return va.tolist()
    return (va * weight_a + vb * weight_b).tolist()


# ==============================
# Vectorizer
# ==============================
class Vectorizer:
    """Stateless; safe to share between threads."""

    dimension = EMBEDDING_DIM

    def embed(self, text: Optional[str]) -> Vector:
        if not isinstance(text, str):
            return zero_vector()
        try:
            return self._embed(text).tolist()
        except Exception as exc:
            logger.debug("embed: degraded to zero vector: %s", exc)
            return zero_vector()

    def _embed(self, text: str) -> np.ndarray:
        vector = np.zeros(EMBEDDING_DIM, dtype=np.float64)
        freqs = Counter(build_terms(tokenize(text)))
        for term, freq in freqs.items():
            index = TERM_INDEX.get(term)
            if index is not None and index < EMBEDDING_DIM:
                vector[index] = freq * SKINCARE_VOCABULARY[term]
            else:
                vector[hash_term(term) % EMBEDDING_DIM] += freq * OOV_WEIGHT
        return normalize(vector)

    def embed_query(self, text: Optional[str]) -> Vector:
        return self.embed(text)

    def embed_structured(self, item: CatalogItem) -> Vector:
        """
        Weighted text view of a catalog item: category x2, skin types x2,
        concerns x3, key ingredients x3, enabled preference flags, name, description.
        """
        try:
            parts: List[str] = [item.category, item.category]
            for skin_type in item.skin_types:
                parts.extend([skin_type] * 2)
            for concern in item.concerns:
                parts.extend([concern] * 3)
            for ingredient in item.key_ingredients:
                parts.extend([ingredient] * 3)
            parts.extend(decamel(flag) for flag in item.preferences.enabled_flags())
            parts.extend([item.name, item.description])
        except Exception as exc:
            logger.debug("embed_structured: degraded to zero vector: %s", exc)
            return zero_vector()
        return self.embed(" ".join(p for p in parts if p))

    def embed_survey(self, survey: Survey) -> Vector:
        """
        Skin type x3, concerns x4, goals x2. Sensitivities become "avoid X" / "no X"
        so they pull away from products that merely mention X. Enabled preferences x2.
        """
        try:
            parts: List[str] = []
            if survey.skin_type:
                parts.extend([survey.skin_type] * 3)
            for concern in survey.concerns:
                parts.extend([concern] * 4)
            for goal in survey.goals:
                parts.extend([goal] * 2)
            for sensitivity in survey.sensitivities:
                parts.extend([f"avoid {sensitivity}", f"no {sensitivity}"])
            prefs = survey.preferences
            if prefs.cruelty_free:
                parts.extend(["cruelty-free"] * 2)
            if prefs.vegan:
                parts.extend(["vegan"] * 2)
            if prefs.fragrance_free:
                parts.extend(["fragrance-free"] * 2)
            if prefs.alcohol_free:
                parts.extend(["alcohol-free"] * 2)
        except Exception as exc:
            logger.debug("embed_survey: degraded to zero vector: %s", exc)
            return zero_vector()
        return self.embed(" ".join(parts))
