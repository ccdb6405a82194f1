"""
Multi-field weighted relevance scoring.

Scoring Formula (per query variant):
    SCORE =
        3 * similarity(name, q)         +
        2 * similarity(description, q)  +
        2 * max(similarity(tag, q))     +   (0 when the product has no tags)
        1 * similarity(category, q)

A product's relevance for a query is the MAXIMUM over the synonym variants of
that query; variant scores are never summed.
"""
import re
from typing import List, Optional, Sequence, Tuple

from .schemas import DEFAULT_LOCALE, HighlightSpans, ProductRecord, ScoredCandidate
from .similarity import similarity

# Candidates at or below this score are dropped from search results
MIN_RELEVANCE_SCORE = 0.3


class RelevanceScorer:
    """Scores catalog products against a query and its synonym variants."""

    # Field weights - fixed, results depend on these exact values
    WEIGHTS = {
        "name": 3.0,
        "description": 2.0,
        "tags": 2.0,
        "category": 1.0,
    }

    def score(self, product: ProductRecord, query: str, locale: str = DEFAULT_LOCALE) -> float:
        """Weighted score for a single query string"""
        return self._weighted_total(product, query, locale)

    def score_variants(
        self,
        product: ProductRecord,
        variants: Sequence[str],
        locale: str = DEFAULT_LOCALE
    ) -> Tuple[float, Optional[str]]:
        """
        Best score over all query variants

        Args:
            product: Catalog product
            variants: Expanded queries (original first)
            locale: Locale of the name/description text to score

        Returns:
            (max score, variant that produced it)
        """
        best_score = 0.0
        best_variant = None
        for variant in variants:
            total = self.score(product, variant, locale)
            # Strictly greater keeps the earliest variant on ties
            if best_variant is None or total > best_score:
                best_score = total
                best_variant = variant
        return best_score, best_variant

    def score_candidate(
        self,
        product: ProductRecord,
        variants: Sequence[str],
        locale: str = DEFAULT_LOCALE
    ) -> ScoredCandidate:
        """Score a product and record where its best variant matched"""
        best_score, best_variant = self.score_variants(product, variants, locale)
        highlights = self._highlight(product, best_variant, locale) if best_variant else {}
        return ScoredCandidate(product=product, score=best_score, highlights=highlights)

    def _weighted_total(self, product: ProductRecord, query: str, locale: str) -> float:
        field_scores = {
            "name": similarity(product.localized_name(locale), query),
            "description": similarity(product.localized_description(locale), query),
            "tags": max((similarity(tag, query) for tag in product.tags), default=0.0),
            "category": similarity(product.category, query),
        }
        return sum(field_scores[name] * weight for name, weight in self.WEIGHTS.items())

    def _highlight(self, product: ProductRecord, query: str, locale: str) -> HighlightSpans:
        """Character spans of case-insensitive substring matches in the text fields"""
        query = query.strip()
        if not query:
            return {}

        pattern = re.compile(re.escape(query), re.IGNORECASE)
        fields = {
            "name": product.localized_name(locale),
            "description": product.localized_description(locale),
            "category": product.category,
        }

        highlights: HighlightSpans = {}
        for field_name, text in fields.items():
            spans = _spans(pattern, text)
            if spans:
                highlights[field_name] = spans

        return highlights


def _spans(pattern: re.Pattern, text: str) -> List[Tuple[int, int]]:
    return [match.span() for match in pattern.finditer(text or "")]
