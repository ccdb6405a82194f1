"""
Search Engine Core

Main orchestration class for product search: validates filters, short-circuits
empty queries and delegates ranking to the configured backend.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from elasticsearch import AsyncElasticsearch
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import async_sessionmaker

from shopsearch.core.config import Settings
from shopsearch.core.exceptions import InvalidFilterError

from .backends import MAX_SUGGESTIONS, MIN_SUGGESTION_QUERY_LENGTH, InProcessSearchBackend, SearchBackend
from .catalog import CatalogAccessor, DatabaseCatalog
from .elasticsearch_backend import ElasticsearchSearchBackend, create_elasticsearch_client
from .schemas import DEFAULT_LOCALE, SearchFilters, SearchResult
from .synonyms import SynonymDictionary, SynonymExpander

logger = logging.getLogger(__name__)

FilterInput = Union[SearchFilters, Dict[str, Any], None]


class SearchEngine:
    """
    Main Search Engine

    Every call is independent: one catalog snapshot (or one index request) per
    search, no state carried between calls.
    """

    def __init__(
        self,
        backend: SearchBackend,
        default_locale: str = DEFAULT_LOCALE,
        supported_locales: Optional[Sequence[str]] = None,
    ):
        self.backend = backend
        self.default_locale = default_locale
        self.supported_locales = list(supported_locales or [default_locale])
        if default_locale not in self.supported_locales:
            self.supported_locales.append(default_locale)

        logger.info(f"SearchEngine initialized with '{backend.name}' backend")

    async def search(
        self,
        query: Optional[str],
        filters: FilterInput = None,
        locale: Optional[str] = None
    ) -> SearchResult:
        """
        Search the catalog

        Args:
            query: Free-text query; empty or whitespace-only is allowed
            filters: SearchFilters (or a dict of its fields)
            locale: Locale of the name/description text to match

        Returns:
            SearchResult with one page of ranked products, the total and suggestions

        Raises:
            InvalidFilterError: Filters or locale are invalid (raised before any catalog access)
            CatalogUnavailableError: The catalog or index could not be read
        """
        start_time = datetime.now()

        search_filters = validate_filters(filters)
        locale = self._resolve_locale(locale)
        query = (query or "").strip()

        if not query and not search_filters.has_active_filters():
            logger.debug("Empty query without filters, skipping catalog access")
            return SearchResult.empty()

        result = await self.backend.search(query, search_filters, locale)

        if len(query) < MIN_SUGGESTION_QUERY_LENGTH:
            result.suggestions = []
        else:
            result.suggestions = result.suggestions[:MAX_SUGGESTIONS]

        processing_time = (datetime.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Search '{query}' returned {len(result.candidates)}/{result.total} products "
            f"in {processing_time:.2f}ms"
        )

        return result

    async def suggest(self, query: Optional[str], locale: Optional[str] = None) -> List[str]:
        """Autocomplete suggestions; queries shorter than two characters get none"""
        locale = self._resolve_locale(locale)
        query = (query or "").strip()

        if len(query) < MIN_SUGGESTION_QUERY_LENGTH:
            return []

        suggestions = await self.backend.suggest(query, locale)
        return suggestions[:MAX_SUGGESTIONS]

    async def close(self):
        await self.backend.close()

    def _resolve_locale(self, locale: Optional[str]) -> str:
        if not locale:
            return self.default_locale
        if locale not in self.supported_locales:
            raise InvalidFilterError(
                f"Unsupported locale: {locale}",
                detail={"locale": locale, "supported": self.supported_locales},
            )
        return locale


def validate_filters(filters: FilterInput) -> SearchFilters:
    """
    Normalize caller filters into a validated SearchFilters

    Raises:
        InvalidFilterError: With the pydantic error list as detail
    """
    if filters is None:
        return SearchFilters()

    if isinstance(filters, SearchFilters):
        data = filters.model_dump()
    else:
        data = dict(filters)

    # Instances built with model_construct() skip field validation
    try:
        return SearchFilters.model_validate(data)
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        raise InvalidFilterError("Invalid search filters", detail=errors) from e


def build_search_engine(
    settings: Settings,
    session_factory: Optional[async_sessionmaker] = None,
    catalog: Optional[CatalogAccessor] = None,
    es_client: Optional[AsyncElasticsearch] = None,
) -> SearchEngine:
    """
    Wire the search engine for the configured backend

    Args:
        settings: Application settings
        session_factory: Database sessions for the default DatabaseCatalog
        catalog: Explicit catalog accessor (takes precedence over session_factory)
        es_client: Explicit Elasticsearch client (built from settings otherwise)

    Returns:
        Ready SearchEngine
    """
    if settings.synonyms_path:
        dictionary = SynonymDictionary.from_json_file(settings.synonyms_path)
    else:
        dictionary = SynonymDictionary.default()

    backend_name = settings.search_backend.lower()

    if backend_name == "inprocess":
        if catalog is None:
            if session_factory is None:
                raise ValueError("In-process search needs a catalog or a database session factory")
            catalog = DatabaseCatalog(session_factory, timeout_seconds=settings.catalog_timeout_seconds)

        backend = InProcessSearchBackend(
            catalog=catalog,
            expander=SynonymExpander(dictionary, whole_word=settings.search_synonym_whole_word),
        )

    elif backend_name == "elasticsearch":
        backend = ElasticsearchSearchBackend(
            client=es_client or create_elasticsearch_client(settings),
            index=settings.elasticsearch_index,
            synonyms=dictionary,
            locales=settings.supported_locales,
        )

    else:
        raise ValueError(f"Unknown search backend: {settings.search_backend}")

    return SearchEngine(
        backend,
        default_locale=settings.default_locale,
        supported_locales=settings.supported_locales,
    )
