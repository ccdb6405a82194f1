"""
Pydantic schemas for the search API endpoints
"""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from shopsearch.engines.search.schemas import ScoredCandidate


class ProductHitSchema(BaseModel):
    """A ranked product with text resolved for the requested locale"""
    id: str
    name: str
    description: str = ""
    tags: List[str] = []
    category: str = ""
    price: float
    inventory_count: int = 0
    in_stock: bool = False
    is_featured: bool = False
    created_at: Optional[datetime] = None
    score: float = 0.0
    highlights: Dict[str, List[Tuple[int, int]]] = {}

    @classmethod
    def from_candidate(cls, candidate: ScoredCandidate, locale: str) -> "ProductHitSchema":
        product = candidate.product
        return cls(
            id=product.id,
            name=product.localized_name(locale),
            description=product.localized_description(locale),
            tags=list(product.tags),
            category=product.category,
            price=product.price,
            inventory_count=product.inventory_count,
            in_stock=product.in_stock,
            is_featured=product.is_featured,
            created_at=product.created_at,
            score=round(candidate.score, 4),
            highlights=candidate.highlights,
        )


class SearchResponse(BaseModel):
    """Search results response"""
    products: List[ProductHitSchema]
    suggestions: List[str]
    total: int


class SuggestionsResponse(BaseModel):
    """Autocomplete suggestions response"""
    suggestions: List[str]
