"""
Pydantic schemas for the Search Engine
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_LOCALE = "en"


class SortBy(str, Enum):
    """Available result orderings"""
    relevance = "relevance"
    price_asc = "price_asc"
    price_desc = "price_desc"
    newest = "newest"


class ProductRecord(BaseModel):
    """
    Read-only catalog entry scored by the search engine.

    ``name`` and ``description`` are localized ({"en": ..., "ar": ...}); a plain
    string is stored under the default locale.
    """

    id: str
    name: Dict[str, str]
    description: Dict[str, str] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    category: str = ""
    price: float = Field(ge=0)
    inventory_count: int = Field(default=0, ge=0)
    is_featured: bool = False
    created_at: Optional[datetime] = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "id": "1",
                "name": {"en": "Wireless Bluetooth Headphones", "ar": "سماعات بلوتوث لاسلكية"},
                "description": {"en": "Noise cancelling, 30-hour battery life."},
                "tags": ["electronics", "audio", "wireless"],
                "category": "electronics",
                "price": 199.99,
                "inventory_count": 25,
                "is_featured": True,
            }
        }

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _localize_plain_text(cls, value):
        if value is None:
            return {}
        if isinstance(value, str):
            return {DEFAULT_LOCALE: value}
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _dedupe_tags(cls, value):
        if not value:
            return []
        return list(dict.fromkeys(value))

    def localized_name(self, locale: str = DEFAULT_LOCALE) -> str:
        return _pick_locale(self.name, locale)

    def localized_description(self, locale: str = DEFAULT_LOCALE) -> str:
        return _pick_locale(self.description, locale)

    @property
    def in_stock(self) -> bool:
        return self.inventory_count > 0


def _pick_locale(texts: Dict[str, str], locale: str) -> str:
    """Requested locale, then the default locale, then whatever is there"""
    if texts.get(locale):
        return texts[locale]
    if texts.get(DEFAULT_LOCALE):
        return texts[DEFAULT_LOCALE]
    return next((text for text in texts.values() if text), "")


class SearchFilters(BaseModel):
    """
    Filtering, ordering and pagination options for a search call.

    Accepts snake_case field names or the camelCase option names
    (priceMin, priceMax, inStockOnly, featuredOnly, sortBy); unknown keys are rejected.
    """

    category: Optional[str] = None
    price_min: Optional[float] = Field(default=None, ge=0, alias="priceMin")
    price_max: Optional[float] = Field(default=None, ge=0, alias="priceMax")
    in_stock_only: bool = Field(default=False, alias="inStockOnly")
    featured_only: bool = Field(default=False, alias="featuredOnly")
    sort_by: SortBy = Field(default=SortBy.relevance, alias="sortBy")
    limit: int = Field(default=20, ge=1)
    offset: int = Field(default=0, ge=0)

    class Config:
        extra = "forbid"
        populate_by_name = True

    @model_validator(mode="after")
    def _check_price_range(self):
        if self.price_min is not None and self.price_max is not None and self.price_min > self.price_max:
            raise ValueError(f"price_min ({self.price_min}) must not exceed price_max ({self.price_max})")
        return self

    def has_active_filters(self) -> bool:
        """True when any catalog predicate (not ordering or paging) is set"""
        return bool(
            self.category
            or self.price_min is not None
            or self.price_max is not None
            or self.in_stock_only
            or self.featured_only
        )

    def matches(self, product: ProductRecord) -> bool:
        """Apply the exact-match and range predicates to one product"""
        if self.category and product.category != self.category:
            return False
        if self.price_min is not None and product.price < self.price_min:
            return False
        if self.price_max is not None and product.price > self.price_max:
            return False
        if self.in_stock_only and not product.in_stock:
            return False
        if self.featured_only and not product.is_featured:
            return False
        return True


HighlightSpans = Dict[str, List[Tuple[int, int]]]


@dataclass
class ScoredCandidate:
    """A product with its relevance score and matched substring spans."""
    product: ProductRecord
    score: float
    highlights: HighlightSpans = field(default_factory=dict)


@dataclass
class SearchResult:
    """One page of ranked products plus autocomplete suggestions."""
    candidates: List[ScoredCandidate] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    total: int = 0

    @property
    def results(self) -> List[ProductRecord]:
        return [candidate.product for candidate in self.candidates]

    @classmethod
    def empty(cls) -> "SearchResult":
        return cls()
