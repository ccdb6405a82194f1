"""
Search API routes
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from shopsearch.core.config import settings
from shopsearch.core.exceptions import SearchServiceError
from shopsearch.engines.search import SearchEngine
from shopsearch.schemas.search import ProductHitSchema, SearchResponse, SuggestionsResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/search", tags=["search"])


def get_search_engine(request: Request) -> SearchEngine:
    """Search engine built in the application lifespan"""
    return request.app.state.search_engine


@router.get("", response_model=SearchResponse)
async def search_products(
    q: str = Query(""),
    category: Optional[str] = Query(None),
    price_min: Optional[float] = Query(None, alias="priceMin"),
    price_max: Optional[float] = Query(None, alias="priceMax"),
    in_stock: bool = Query(False, alias="inStock"),
    featured: bool = Query(False),
    sort: str = Query("relevance"),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    offset: int = Query(0),
    locale: Optional[str] = Query(None),
    engine: SearchEngine = Depends(get_search_engine)
):
    """Ranked product search with filters, pagination and suggestions"""
    # Validated by the engine; invalid values raise InvalidFilterError (400)
    filters = {
        "category": category or None,
        "price_min": price_min,
        "price_max": price_max,
        "in_stock_only": in_stock,
        "featured_only": featured,
        "sort_by": sort,
        "limit": limit,
        "offset": offset,
    }

    try:
        result = await engine.search(q, filters, locale)
    except SearchServiceError:
        raise
    except Exception as e:
        logger.error(f"Error searching products: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error searching products")

    resolved_locale = locale or engine.default_locale
    return SearchResponse(
        products=[ProductHitSchema.from_candidate(c, resolved_locale) for c in result.candidates],
        suggestions=result.suggestions,
        total=result.total,
    )


@router.get("/suggestions", response_model=SuggestionsResponse)
async def get_suggestions(
    q: str = Query(""),
    locale: Optional[str] = Query(None),
    engine: SearchEngine = Depends(get_search_engine)
):
    """Autocomplete suggestions for a partial query"""
    try:
        suggestions = await engine.suggest(q, locale)
    except SearchServiceError:
        raise
    except Exception as e:
        logger.error(f"Error fetching suggestions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error fetching suggestions")

    return SuggestionsResponse(suggestions=suggestions)
