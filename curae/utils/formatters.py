# ==============================
# Formatters
# ==============================
"""
Presentation helpers for ranked products (JSON projection and chat text).

No I/O. No persistence. No ranking decisions.
"""

from __future__ import annotations

import json
from typing import Dict, List, Mapping, Optional, Sequence

from curae.contracts.retrieval_schema import RankedProduct, Survey

NO_MATCH_MESSAGE = (
    "I couldn't find products matching your criteria. "
    "Could you tell me more about your skin type and concerns?"
)

CHAT_LABELS = ("**Best Match**", "**Alternative Option**", "**Budget-Friendly Option**")

DEFAULT_MARKETPLACE_NAME = "Lorem Curae"


def _number(x: float) -> str:
    """Render like a JS number: 5.0 -> "5", 4.5 -> "4.5"."""
    value = float(x)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _price(x: float) -> str:
    return f"${x:.2f}"


def _available_in(product: RankedProduct) -> str:
    return "Marketplace" if product.source == "marketplace" else "Discovery"


# ==============================
# JSON
# ==============================
def product_summary(product: RankedProduct) -> Dict[str, object]:
    return {
        "brand": product.brand,
        "name": product.name,
        "category": product.category,
        "price": _price(product.price),
        "rating": f"{_number(product.rating)}/5",
        "whyItFits": list(product.match_reasons),
        "availableIn": _available_in(product),
        "productUrl": product.product_url,
        "keyIngredients": list(product.key_ingredients),
    }


def format_products_as_json(products: Sequence[RankedProduct]) -> str:
    return json.dumps([product_summary(p) for p in products], indent=2, ensure_ascii=False)


# ==============================
# Chat Text
# ==============================
def _chat_entry(label: str, product: RankedProduct, marketplace_name: str) -> str:
    if product.source == "marketplace":
        location = f"Available on Marketplace: Buy on {marketplace_name} Marketplace ({product.product_url})"
    else:
        location = f"Available in Discovery: View in Discovery ({product.product_url})"

    lines = [
        label,
        f"**{product.brand}** - {product.name}",
        f"- Category: {product.category}",
        f"- Price: {_price(product.price)}",
        f"- Rating: {_number(product.rating)}/5 ({product.review_count:,} reviews)",
        f"- Key ingredients: {', '.join(product.key_ingredients)}",
        f"- Why it fits: {'; '.join(product.match_reasons)}",
        f"- {location}",
    ]
    return "\n".join(lines)


def format_products_for_chat(
    products: Sequence[RankedProduct],
    *,
    marketplace_name: str = DEFAULT_MARKETPLACE_NAME,
) -> str:
    """
    Labelled text for every product; the third and later entries share the budget label.
    An empty list yields the no-match sentence.
    """
    if not products:
        return NO_MATCH_MESSAGE

    entries = [
        _chat_entry(CHAT_LABELS[min(i, len(CHAT_LABELS) - 1)], product, marketplace_name)
        for i, product in enumerate(products)
    ]
    return "\n\n".join(entries).strip()


def format_source_fallback(source_filter: str) -> str:
    if source_filter == "marketplace-only":
        source_name, alternate = "Marketplace", "Discovery"
    else:
        source_name, alternate = "Discovery", "Marketplace"
    return (
        f"I didn't find {source_name} products that match your profile. "
        f"Would you like me to show {alternate} options instead?"
    )


# ==============================
# Routine Text
# ==============================
def _first(routine: Mapping[str, List[RankedProduct]], category: str, index: int = 0) -> Optional[RankedProduct]:
    picks = routine.get(category) or []
    return picks[index] if len(picks) > index else None


def _routine_step(number: int, step: str, product: RankedProduct, fallback: str) -> List[str]:
    reason = product.match_reasons[0] if product.match_reasons else fallback
    return [
        f"{number}. **{step}:** {product.brand} {product.name} ({_price(product.price)})",
        f"   - {reason}",
    ]


def format_routine_for_chat(
    routine: Mapping[str, List[RankedProduct]],
    survey: Optional[Survey] = None,
    *,
    marketplace_name: str = DEFAULT_MARKETPLACE_NAME,
) -> str:
    profile = survey or Survey()
    lines: List[str] = [
        f"Here's a personalized skincare routine for your {profile.skin_type or 'skin'} type:",
        "",
        "**Morning Routine:**",
    ]

    morning = (
        (1, "Cleanse", "cleanser", "Great for your skin type"),
        (2, "Treat", "serum", "Targets your concerns"),
        (3, "Moisturize", "moisturizer", "Hydrates and protects"),
        (4, "Protect", "sunscreen", "Essential sun protection"),
    )
    for number, step, category, fallback in morning:
        product = _first(routine, category)
        if product is not None:
            lines.extend(_routine_step(number, step, product, fallback))

    lines.extend(["", "**Evening Routine:**", "1. **Cleanse:** Same as morning"])
    night_serum = _first(routine, "serum", 1)
    if night_serum is not None:
        lines.extend(_routine_step(2, "Treat", night_serum, "Night treatment"))
    elif _first(routine, "serum") is not None:
        lines.append("2. **Treat:** Same serum or alternate with a night treatment")
    if _first(routine, "moisturizer") is not None:
        lines.append("3. **Moisturize:** Same as morning (or a richer night cream)")

    closing = f"All products available on the {marketplace_name} Marketplace."
    if profile.concerns:
        closing += f" This routine specifically targets your {' and '.join(profile.concerns)} concerns."
    lines.extend(["", closing])
    return "\n".join(lines)
