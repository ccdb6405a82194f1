"""
Catalog accessors: the collaborators that supply product snapshots to the search engine.

Fetching the catalog is the only I/O in a search call. Failures are raised as
CatalogUnavailableError and never turned into an empty catalog.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload

from shopsearch.core.database import get_db_session
from shopsearch.core.exceptions import CatalogUnavailableError
from shopsearch.database.models import Category, Product

from .schemas import ProductRecord, SearchFilters

logger = logging.getLogger(__name__)


class CatalogAccessor(ABC):
    """Supplies a consistent product snapshot for one search call"""

    @abstractmethod
    async def fetch_catalog(self, filters: Optional[SearchFilters] = None) -> List[ProductRecord]:
        """
        Fetch the catalog, optionally narrowed by the filter predicates

        Args:
            filters: Category / price / stock / featured predicates to push down.
                Ordering and pagination fields are ignored.

        Returns:
            Products in stable catalog order
        """


class InMemoryCatalog(CatalogAccessor):
    """Fixed catalog snapshot held in memory"""

    def __init__(self, products: Iterable[ProductRecord]):
        self._products = tuple(products)

        seen = set()
        for product in self._products:
            if product.id in seen:
                raise ValueError(f"Duplicate product id in catalog: {product.id}")
            seen.add(product.id)

    async def fetch_catalog(self, filters: Optional[SearchFilters] = None) -> List[ProductRecord]:
        if filters is None:
            return list(self._products)
        return [p for p in self._products if filters.matches(p)]


class DatabaseCatalog(CatalogAccessor):
    """Active products read from the relational store"""

    def __init__(self, session_factory: async_sessionmaker, timeout_seconds: float = 5.0):
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds
        logger.info("DatabaseCatalog initialized")

    async def fetch_catalog(self, filters: Optional[SearchFilters] = None) -> List[ProductRecord]:
        try:
            return await asyncio.wait_for(self._load(filters), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error(f"Catalog fetch timed out after {self.timeout_seconds}s")
            raise CatalogUnavailableError(
                "Catalog fetch timed out",
                detail={"timeout_seconds": self.timeout_seconds},
                source="database",
            ) from e
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Catalog fetch failed: {e}", exc_info=True)
            raise CatalogUnavailableError("Catalog is unavailable", source="database") from e

    async def _load(self, filters: Optional[SearchFilters]) -> List[ProductRecord]:
        query = (
            select(Product)
            .where(Product.status == "active")
            .options(selectinload(Product.category))
        )

        if filters is not None:
            if filters.category:
                query = query.join(Category, Product.category_id == Category.id).where(
                    Category.slug == filters.category
                )

            if filters.price_min is not None:
                query = query.where(Product.price >= filters.price_min)

            if filters.price_max is not None:
                query = query.where(Product.price <= filters.price_max)

            if filters.in_stock_only:
                query = query.where(Product.inventory_quantity > 0)

            if filters.featured_only:
                query = query.where(Product.is_featured.is_(True))

        query = query.order_by(Product.id)

        async with get_db_session(self.session_factory) as session:
            result = await session.execute(query)
            products = result.scalars().unique().all()

        logger.info(f"Loaded {len(products)} catalog products")
        return [to_product_record(product) for product in products]


def to_product_record(product: Product) -> ProductRecord:
    """Convert a database row into the engine's read model"""
    return ProductRecord(
        id=product.id,
        name=product.name or {},
        description=product.description or {},
        tags=product.tags or [],
        category=product.category.slug if product.category else "",
        price=product.price or 0.0,
        inventory_count=max(product.inventory_quantity or 0, 0),
        is_featured=bool(product.is_featured),
        created_at=product.created_at,
    )
