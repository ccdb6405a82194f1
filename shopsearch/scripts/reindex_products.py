"""
Rebuild the Elasticsearch product index from the database catalog.

Creates the index (mapping, analyzers and synonym filter) when it is missing,
then bulk-indexes every active product.

Usage:
    python -m shopsearch.scripts.reindex_products [--index products] [--recreate] [--refresh]
"""
import argparse
import asyncio
import logging
import time

from shopsearch.core.config import settings
from shopsearch.core.database import create_engine_from_settings, create_session_factory
from shopsearch.core.logging import setup_logging
from shopsearch.engines.search.catalog import DatabaseCatalog
from shopsearch.engines.search.elasticsearch_backend import ElasticsearchSearchBackend, create_elasticsearch_client
from shopsearch.engines.search.synonyms import SynonymDictionary

logger = logging.getLogger(__name__)


async def reindex(index: str, recreate: bool = False, refresh: bool = False) -> int:
    """
    Index the whole database catalog

    Args:
        index: Target index name
        recreate: Drop the index first so mapping changes take effect
        refresh: Refresh the index after the bulk load

    Returns:
        Number of indexed products
    """
    db_engine = create_engine_from_settings(settings)
    catalog = DatabaseCatalog(
        create_session_factory(db_engine),
        timeout_seconds=max(settings.catalog_timeout_seconds, 60.0),
    )

    if settings.synonyms_path:
        synonyms = SynonymDictionary.from_json_file(settings.synonyms_path)
    else:
        synonyms = SynonymDictionary.default()

    backend = ElasticsearchSearchBackend(
        client=create_elasticsearch_client(settings),
        index=index,
        synonyms=synonyms,
        locales=settings.supported_locales,
    )

    try:
        if recreate:
            logger.info(f"Deleting index '{index}'")
            await backend.client.indices.delete(index=index, ignore_unavailable=True)

        await backend.setup_index()

        products = await catalog.fetch_catalog()
        logger.info(f"Fetched {len(products)} products from the database")

        return await backend.bulk_index(products, refresh=refresh)
    finally:
        await backend.close()
        await db_engine.dispose()


async def main():
    parser = argparse.ArgumentParser(description="Rebuild the product search index")
    parser.add_argument("--index", default=settings.elasticsearch_index, help="Index name")
    parser.add_argument("--recreate", action="store_true", help="Delete and recreate the index")
    parser.add_argument("--refresh", action="store_true", help="Refresh the index after loading")
    args = parser.parse_args()

    setup_logging(settings)

    start_time = time.time()
    indexed = await reindex(args.index, recreate=args.recreate, refresh=args.refresh)
    logger.info(f"Reindex complete: {indexed} products in {time.time() - start_time:.1f}s")


if __name__ == "__main__":
    asyncio.run(main())
