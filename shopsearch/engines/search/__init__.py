"""
Search Engine

Fuzzy, synonym-aware product search with multi-field relevance ranking.
"""

from .backends import InProcessSearchBackend, SearchBackend
from .catalog import CatalogAccessor, DatabaseCatalog, InMemoryCatalog
from .core import SearchEngine, build_search_engine, validate_filters
from .elasticsearch_backend import ElasticsearchSearchBackend, create_elasticsearch_client
from .schemas import (
    ProductRecord,
    ScoredCandidate,
    SearchFilters,
    SearchResult,
    SortBy
)
from .scoring import MIN_RELEVANCE_SCORE, RelevanceScorer
from .similarity import levenshtein_distance, similarity
from .synonyms import DEFAULT_SYNONYMS, SynonymDictionary, SynonymExpander

__all__ = [
    "SearchEngine",
    "build_search_engine",
    "validate_filters",
    "SearchBackend",
    "InProcessSearchBackend",
    "ElasticsearchSearchBackend",
    "create_elasticsearch_client",
    "CatalogAccessor",
    "InMemoryCatalog",
    "DatabaseCatalog",
    "ProductRecord",
    "ScoredCandidate",
    "SearchFilters",
    "SearchResult",
    "SortBy",
    "RelevanceScorer",
    "MIN_RELEVANCE_SCORE",
    "similarity",
    "levenshtein_distance",
    "DEFAULT_SYNONYMS",
    "SynonymDictionary",
    "SynonymExpander"
]
