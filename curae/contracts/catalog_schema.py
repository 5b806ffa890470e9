# ==============================
# Catalog Contracts
# ==============================
"""
Catalog item contracts (read-only input to ingestion).

Catalog files and the persisted snapshot use camelCase field names; Python code
uses snake_case attributes. Both spellings are accepted on input.
Unknown catalog fields are ignored so upstream catalog growth never breaks ingestion.
"""

# ==============================
# Imports
# ==============================
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ProductSource = Literal["marketplace", "discovery"]


# ==============================
# Models
# ==============================
class CatalogModel(BaseModel):
    """Shared config: camelCase aliases, populate by either name, ignore unknown fields."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ProductSize(CatalogModel):
    value: float
    unit: Literal["ml", "oz", "g", "fl oz"]


class ActiveIngredient(CatalogModel):
    name: str
    concentration: Optional[float] = None
    concentration_unit: Optional[Literal["%", "mg", "IU"]] = None
    is_key_active: Optional[bool] = None


class ProductPreferences(CatalogModel):
    cruelty_free: bool = False
    vegan: bool = False
    fragrance_free: bool = False
    alcohol_free: bool = False
    gluten_free: bool = False
    silicone_free: bool = False
    plant_based: bool = False
    chemical_free: bool = False

    def enabled_flags(self) -> List[str]:
        """camelCase names of the flags that are switched on, in declaration order."""
        data = self.model_dump(by_alias=True)
        return [name for name, value in data.items() if value]


class CatalogItem(CatalogModel):
    id: int
    name: str
    brand: str
    description: str = ""
    category: str
    price: float = Field(ge=0)
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
    source: ProductSource = "discovery"
