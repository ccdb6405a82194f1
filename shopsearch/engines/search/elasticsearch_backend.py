"""
Elasticsearch-backed search: the external-index variant of the search backend.

Observable behaviour matches the in-process backend (filters, pagination,
suggestion cap); ranking is the engine's own BM25 scoring over a multi-field
fuzzy query. Synonyms are applied at index time through a synonym token filter
built from the same SynonymDictionary the in-process expander uses.
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from elasticsearch import ApiError, AsyncElasticsearch, TransportError
from elasticsearch.helpers import async_bulk

from shopsearch.core.config import Settings
from shopsearch.core.exceptions import CatalogUnavailableError

from .backends import MAX_SUGGESTIONS, MIN_SUGGESTION_QUERY_LENGTH, SearchBackend
from .schemas import DEFAULT_LOCALE, ProductRecord, ScoredCandidate, SearchFilters, SearchResult, SortBy
from .synonyms import SynonymDictionary

logger = logging.getLogger(__name__)

# Built-in language analyzers per locale; "arabic" is redefined in the index settings
LOCALE_ANALYZERS = {
    "en": "english",
    "ar": "arabic",
}

HIGHLIGHT_TAG = re.compile(r"<em>(.*?)</em>", re.DOTALL)


def create_elasticsearch_client(settings: Settings) -> AsyncElasticsearch:
    """Build the async client from settings (basic auth only when a username is set)"""
    if settings.elasticsearch_username:
        return AsyncElasticsearch(
            settings.elasticsearch_url,
            basic_auth=(settings.elasticsearch_username, settings.elasticsearch_password),
        )
    return AsyncElasticsearch(settings.elasticsearch_url)


def build_index_body(synonyms: SynonymDictionary, locales: Sequence[str]) -> Dict[str, Any]:
    """
    Index settings and mappings for the product index

    Args:
        synonyms: Dictionary turned into the index-time synonym filter
        locales: Locales that get their own name/description sub-fields

    Returns:
        {"settings": ..., "mappings": ...}
    """
    def localized_text(with_suggest: bool) -> Dict[str, Any]:
        properties = {}
        for locale in locales:
            fields = {
                "keyword": {"type": "keyword"},
                "synonyms": {"type": "text", "analyzer": "synonym_analyzer"},
            }
            if with_suggest:
                fields["suggest"] = {"type": "completion"}
            properties[locale] = {
                "type": "text",
                "analyzer": LOCALE_ANALYZERS.get(locale, "standard"),
                "fields": fields,
            }
        return {"type": "object", "properties": properties}

    return {
        "settings": {
            "analysis": {
                "filter": {
                    "synonym_filter": {
                        "type": "synonym",
                        "synonyms": synonyms.to_synonym_rules(),
                    },
                },
                "analyzer": {
                    "arabic": {
                        "tokenizer": "standard",
                        "filter": ["lowercase", "arabic_normalization", "arabic_stem"],
                    },
                    "synonym_analyzer": {
                        "tokenizer": "standard",
                        "filter": ["lowercase", "synonym_filter"],
                    },
                },
            },
        },
        "mappings": {
            "properties": {
                "id": {"type": "keyword"},
                "name": localized_text(with_suggest=True),
                "description": localized_text(with_suggest=False),
                "category": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "keyword"},
                        "name": {
                            "type": "object",
                            "properties": {
                                locale: {"type": "text", "analyzer": LOCALE_ANALYZERS.get(locale, "standard")}
                                for locale in locales
                            },
                        },
                    },
                },
                "price": {"type": "double"},
                "tags": {
                    "type": "text",
                    "analyzer": "synonym_analyzer",
                    "fields": {"keyword": {"type": "keyword"}},
                },
                "is_featured": {"type": "boolean"},
                "inventory_quantity": {"type": "integer"},
                "created_at": {"type": "date"},
            },
        },
    }


def to_document(product: ProductRecord, locales: Sequence[str]) -> Dict[str, Any]:
    """Index document for a catalog product"""
    return {
        "id": product.id,
        "name": dict(product.name),
        "description": dict(product.description),
        "category": {
            "id": product.category,
            "name": {locale: product.category for locale in locales},
        },
        "price": product.price,
        "tags": list(product.tags),
        "is_featured": product.is_featured,
        "inventory_quantity": product.inventory_count,
        "created_at": product.created_at.isoformat() if product.created_at else None,
    }


def from_document(source: Dict[str, Any]) -> ProductRecord:
    """Catalog product rebuilt from an index document"""
    category = source.get("category") or {}
    return ProductRecord(
        id=source["id"],
        name=source.get("name") or {},
        description=source.get("description") or {},
        tags=source.get("tags") or [],
        category=category.get("id") or "",
        price=source.get("price") or 0.0,
        inventory_count=max(source.get("inventory_quantity") or 0, 0),
        is_featured=bool(source.get("is_featured")),
        created_at=source.get("created_at"),
    )


def highlight_spans(fragment: str) -> List[tuple]:
    """Spans of <em> markers in a whole-field highlight, in unmarked-text offsets"""
    spans = []
    removed = 0
    for match in HIGHLIGHT_TAG.finditer(fragment):
        start = match.start() - removed
        end = start + len(match.group(1))
        spans.append((start, end))
        removed += len("<em>") + len("</em>")
    return spans


class ElasticsearchSearchBackend(SearchBackend):
    """Search backend that delegates matching and ranking to an Elasticsearch index"""

    name = "elasticsearch"

    def __init__(
        self,
        client: AsyncElasticsearch,
        index: str = "products",
        synonyms: Optional[SynonymDictionary] = None,
        locales: Sequence[str] = ("en", "ar"),
    ):
        self.client = client
        self.index = index
        self.synonyms = synonyms or SynonymDictionary.default()
        self.locales = list(locales)
        logger.info(f"ElasticsearchSearchBackend initialized for index '{index}'")

    # ------------------------------------------------------------------
    # Index management
    # ------------------------------------------------------------------

    async def setup_index(self) -> bool:
        """
        Create the product index if it does not exist yet

        Returns:
            True when the index was created, False when it already existed
        """
        try:
            exists = await self.client.indices.exists(index=self.index)
            if exists:
                logger.info(f"Elasticsearch index '{self.index}' already exists")
                return False

            body = build_index_body(self.synonyms, self.locales)
            await self.client.indices.create(
                index=self.index,
                settings=body["settings"],
                mappings=body["mappings"],
            )
        except (ApiError, TransportError) as e:
            logger.error(f"Elasticsearch index setup failed: {e}")
            raise CatalogUnavailableError("Search index setup failed", source="elasticsearch") from e

        logger.info(f"Elasticsearch index '{self.index}' created")
        return True

    async def index_product(self, product: ProductRecord):
        """Index or replace a single product"""
        try:
            await self.client.index(
                index=self.index,
                id=product.id,
                document=to_document(product, self.locales),
            )
        except (ApiError, TransportError) as e:
            logger.error(f"Product indexing error for {product.id}: {e}")
            raise CatalogUnavailableError(
                "Product indexing failed", detail={"product_id": product.id}, source="elasticsearch"
            ) from e

    async def bulk_index(self, products: Iterable[ProductRecord], refresh: bool = False) -> int:
        """
        Index many products in one bulk request stream

        Returns:
            Number of successfully indexed documents
        """
        actions = (
            {
                "_index": self.index,
                "_id": product.id,
                "_source": to_document(product, self.locales),
            }
            for product in products
        )
        try:
            indexed, _ = await async_bulk(self.client, actions, refresh=refresh)
        except (ApiError, TransportError) as e:
            logger.error(f"Bulk indexing failed: {e}")
            raise CatalogUnavailableError("Bulk indexing failed", source="elasticsearch") from e

        logger.info(f"Indexed {indexed} products into '{self.index}'")
        return indexed

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def build_query(self, query: str, filters: SearchFilters, locale: str) -> Dict[str, Any]:
        """Bool query: fuzzy multi_match (or match_all when browsing) under filter clauses"""
        filter_clauses: List[Dict[str, Any]] = []

        if filters.category:
            filter_clauses.append({"term": {"category.id": filters.category}})

        if filters.price_min is not None or filters.price_max is not None:
            price_range = {}
            if filters.price_min is not None:
                price_range["gte"] = filters.price_min
            if filters.price_max is not None:
                price_range["lte"] = filters.price_max
            filter_clauses.append({"range": {"price": price_range}})

        if filters.in_stock_only:
            filter_clauses.append({"range": {"inventory_quantity": {"gt": 0}}})

        if filters.featured_only:
            filter_clauses.append({"term": {"is_featured": True}})

        if query:
            must = [{
                "multi_match": {
                    "query": query,
                    "fields": [
                        f"name.{locale}^3",
                        f"name.{locale}.synonyms^3",
                        f"description.{locale}^2",
                        f"description.{locale}.synonyms^2",
                        f"category.name.{locale}",
                        "tags^2",
                    ],
                    "fuzziness": "AUTO",
                    "operator": "or",
                }
            }]
        else:
            must = [{"match_all": {}}]

        return {"bool": {"must": must, "filter": filter_clauses}}

    def build_sort(self, sort_by: SortBy, browse: bool = False) -> Optional[List[Dict[str, Any]]]:
        """Sort clauses; None keeps relevance (_score) ordering"""
        # match_all scores every hit equally
        if browse and sort_by == SortBy.relevance:
            return [{"id": {"order": "asc"}}]
        if sort_by == SortBy.price_asc:
            return [{"price": {"order": "asc"}}, {"id": {"order": "asc"}}]
        if sort_by == SortBy.price_desc:
            return [{"price": {"order": "desc"}}, {"id": {"order": "asc"}}]
        if sort_by == SortBy.newest:
            return [{"created_at": {"order": "desc", "missing": "_last"}}, {"id": {"order": "asc"}}]
        return None

    def build_suggest(self, query: str, locale: str) -> Dict[str, Any]:
        return {
            "product_suggest": {
                "prefix": query,
                "completion": {
                    "field": f"name.{locale}.suggest",
                    "size": MAX_SUGGESTIONS,
                    "skip_duplicates": True,
                },
            }
        }

    async def search(self, query: str, filters: SearchFilters, locale: str = DEFAULT_LOCALE) -> SearchResult:
        request: Dict[str, Any] = {
            "index": self.index,
            "query": self.build_query(query, filters, locale),
            "from_": filters.offset,
            "size": filters.limit,
            "track_total_hits": True,
            "highlight": {
                "number_of_fragments": 0,
                "fields": {
                    f"name.{locale}": {},
                    f"description.{locale}": {},
                },
            },
        }

        sort = self.build_sort(filters.sort_by, browse=not query)
        if sort:
            request["sort"] = sort

        if len(query) >= MIN_SUGGESTION_QUERY_LENGTH:
            request["suggest"] = self.build_suggest(query, locale)

        body = await self._request(self.client.search, **request)

        hits = body.get("hits", {})
        candidates = [self._to_candidate(hit, locale) for hit in hits.get("hits", [])]
        total = hits.get("total", {}).get("value", len(candidates))

        logger.info(f"Elasticsearch search returned {len(candidates)} of {total} hits")
        return SearchResult(
            candidates=candidates,
            suggestions=self._suggestions(body),
            total=total,
        )

    async def suggest(self, query: str, locale: str = DEFAULT_LOCALE) -> List[str]:
        body = await self._request(
            self.client.search,
            index=self.index,
            size=0,
            suggest=self.build_suggest(query, locale),
        )
        return self._suggestions(body)

    async def close(self):
        await self.client.close()

    async def _request(self, method, **kwargs) -> Dict[str, Any]:
        try:
            response = await method(**kwargs)
        except (ApiError, TransportError) as e:
            logger.error(f"Elasticsearch request failed: {e}")
            raise CatalogUnavailableError("Search index is unavailable", source="elasticsearch") from e
        return getattr(response, "body", response)

    def _to_candidate(self, hit: Dict[str, Any], locale: str) -> ScoredCandidate:
        highlights = {}
        for field_name, fragments in (hit.get("highlight") or {}).items():
            if fragments:
                # name.en -> name
                highlights[field_name.split(".")[0]] = highlight_spans(fragments[0])

        return ScoredCandidate(
            product=from_document(hit["_source"]),
            score=hit.get("_score") or 0.0,
            highlights=highlights,
        )

    def _suggestions(self, body: Dict[str, Any]) -> List[str]:
        entries = (body.get("suggest") or {}).get("product_suggest") or []
        if not entries:
            return []

        suggestions = []
        for option in entries[0].get("options", []):
            text = option.get("text")
            if text and text not in suggestions:
                suggestions.append(text)
        return suggestions[:MAX_SUGGESTIONS]
