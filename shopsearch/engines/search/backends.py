"""
Search backends: interchangeable strategies behind the SearchEngine.

Every backend receives an already validated SearchFilters object and a trimmed,
non-empty query (or an empty query together with active filters) and returns
one page of results plus suggestions.
"""
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence

from .catalog import CatalogAccessor
from .schemas import DEFAULT_LOCALE, ProductRecord, ScoredCandidate, SearchFilters, SearchResult, SortBy
from .scoring import MIN_RELEVANCE_SCORE, RelevanceScorer
from .similarity import similarity
from .synonyms import SynonymDictionary, SynonymExpander

logger = logging.getLogger(__name__)

# Suggestions
MIN_SUGGESTION_QUERY_LENGTH = 2
MAX_SUGGESTIONS = 5
SUGGESTION_MIN_SIMILARITY = 0.5


class SearchBackend(ABC):
    """Strategy interface for ranking products and producing suggestions"""

    name = "base"

    @abstractmethod
    async def search(self, query: str, filters: SearchFilters, locale: str) -> SearchResult:
        """Return one page of ranked products, the match total and suggestions"""

    @abstractmethod
    async def suggest(self, query: str, locale: str) -> List[str]:
        """Return autocomplete suggestions for a query of at least two characters"""

    async def close(self):
        """Release backend resources"""


class InProcessSearchBackend(SearchBackend):
    """
    Fuzzy, synonym-aware ranking computed in-process over a catalog snapshot.

    Pipeline per call:
        1. fetch one catalog snapshot
        2. apply the category / price / stock / featured predicates
        3. score each candidate (max over synonym variants) and drop scores <= 0.3
        4. sort, count, paginate
        5. collect suggestions from the same snapshot
    """

    name = "inprocess"

    def __init__(
        self,
        catalog: CatalogAccessor,
        expander: Optional[SynonymExpander] = None,
        scorer: Optional[RelevanceScorer] = None,
        min_score: float = MIN_RELEVANCE_SCORE,
    ):
        self.catalog = catalog
        self.expander = expander or SynonymExpander(SynonymDictionary.default())
        self.scorer = scorer or RelevanceScorer()
        self.min_score = min_score
        logger.info("InProcessSearchBackend initialized")

    async def search(self, query: str, filters: SearchFilters, locale: str = DEFAULT_LOCALE) -> SearchResult:
        wants_suggestions = len(query) >= MIN_SUGGESTION_QUERY_LENGTH

        # Suggestions ignore the predicates, so they need the full snapshot
        if wants_suggestions:
            snapshot = await self.catalog.fetch_catalog()
            candidates = [p for p in snapshot if filters.matches(p)]
        else:
            snapshot = []
            candidates = await self.catalog.fetch_catalog(filters)

        candidates = _dedupe(candidates)

        if query:
            variants = self.expander.expand(query)
            scored = [self.scorer.score_candidate(p, variants, locale) for p in candidates]
            scored = [c for c in scored if c.score > self.min_score]
        else:
            # Browse mode: filters only, nothing to rank against
            variants = []
            scored = [ScoredCandidate(product=p, score=0.0) for p in candidates]

        ordered = sort_candidates(scored, filters.sort_by)
        page = ordered[filters.offset:filters.offset + filters.limit]

        suggestions = []
        if wants_suggestions:
            suggestions = collect_suggestions(snapshot, query, variants, locale)

        logger.info(
            f"In-process search matched {len(ordered)} of {len(candidates)} candidates "
            f"(variants={len(variants)}, returned={len(page)})"
        )

        return SearchResult(candidates=page, suggestions=suggestions, total=len(ordered))

    async def suggest(self, query: str, locale: str = DEFAULT_LOCALE) -> List[str]:
        snapshot = await self.catalog.fetch_catalog()
        return collect_suggestions(snapshot, query, self.expander.expand(query), locale)


def sort_candidates(candidates: List[ScoredCandidate], sort_by: SortBy) -> List[ScoredCandidate]:
    """
    Order scored candidates; every ordering is stable so ties keep catalog order

    Args:
        candidates: Scored candidates in catalog order
        sort_by: Requested ordering

    Returns:
        New sorted list
    """
    if sort_by == SortBy.price_asc:
        return sorted(candidates, key=lambda c: c.product.price)

    if sort_by == SortBy.price_desc:
        return sorted(candidates, key=lambda c: c.product.price, reverse=True)

    if sort_by == SortBy.newest:
        # Products without a creation time go last
        return sorted(
            candidates,
            key=lambda c: (
                c.product.created_at is not None,
                c.product.created_at.timestamp() if c.product.created_at else 0.0,
            ),
            reverse=True,
        )

    return sorted(candidates, key=lambda c: c.score, reverse=True)


def collect_suggestions(
    snapshot: Iterable[ProductRecord],
    query: str,
    variants: Sequence[str],
    locale: str = DEFAULT_LOCALE
) -> List[str]:
    """
    Autocomplete suggestions from catalog text and synonym variants

    Names, tags and categories similar to the query (> 0.5) come first in catalog
    order, then the synonym variants that differ from the query.
    """
    if len(query) < MIN_SUGGESTION_QUERY_LENGTH:
        return []

    suggestions = {}
    for product in snapshot:
        for text in (product.localized_name(locale), *product.tags, product.category):
            if text and similarity(text, query) > SUGGESTION_MIN_SIMILARITY:
                suggestions.setdefault(text, None)

    for variant in variants:
        if variant != query:
            suggestions.setdefault(variant, None)

    return list(suggestions)[:MAX_SUGGESTIONS]


def _dedupe(products: Iterable[ProductRecord]) -> List[ProductRecord]:
    """Drop repeated product ids, keeping the first occurrence"""
    seen = set()
    unique = []
    for product in products:
        if product.id not in seen:
            seen.add(product.id)
            unique.append(product)
    return unique
