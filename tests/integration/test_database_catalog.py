"""
Integration tests for the database-backed catalog against in-memory SQLite
"""
import asyncio
from datetime import datetime
from unittest.mock import patch

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from shopsearch.core.database import create_session_factory, create_tables, to_async_url
from shopsearch.core.exceptions import CatalogUnavailableError
from shopsearch.database.models import Category, Product
from shopsearch.engines.search import DatabaseCatalog, InProcessSearchBackend, SearchEngine, SearchFilters


def make_engine():
    return create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
async def db_engine():
    engine = make_engine()
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(db_engine):
    """Session factory over a seeded catalog"""
    factory = create_session_factory(db_engine)

    async with factory() as session:
        electronics = Category(id=1, slug="electronics")
        clothing = Category(id=2, slug="clothing")
        session.add_all([electronics, clothing])
        session.add_all([
            Product(
                id=1,
                name={"en": "Wireless Bluetooth Headphones", "ar": "سماعات بلوتوث لاسلكية"},
                description={"en": "Noise cancelling headphones."},
                price=199.99,
                inventory_quantity=25,
                tags=["electronics", "audio", "wireless"],
                is_featured=True,
                category_id=1,
                created_at=datetime(2024, 1, 1),
            ),
            Product(
                id=2,
                name={"en": "Organic Cotton T-Shirt"},
                price=29.99,
                inventory_quantity=0,
                tags=["clothing"],
                category_id=2,
                created_at=datetime(2024, 1, 2),
            ),
            Product(
                id=3,
                name={"en": "Smart Fitness Watch"},
                price=299.99,
                inventory_quantity=15,
                tags=None,
                category_id=1,
                created_at=datetime(2024, 1, 3),
            ),
            Product(
                id=4,
                name={"en": "Draft Headphones"},
                price=9.99,
                status="draft",
                category_id=1,
            ),
        ])
        await session.commit()

    return factory


class TestModels:
    """Tests for the catalog read model"""

    @pytest.mark.unit
    def test_product_columns(self):
        assert set(Product.__table__.columns.keys()) == {
            "id", "name", "description", "price", "inventory_quantity", "tags",
            "status", "is_featured", "category_id", "created_at",
        }

    @pytest.mark.unit
    def test_category_columns(self):
        assert set(Category.__table__.columns.keys()) == {"id", "slug"}


class TestToAsyncUrl:
    """Tests for database URL conversion"""

    @pytest.mark.unit
    def test_postgres_url(self):
        assert to_async_url("postgresql://u:p@db:5432/shop") == "postgresql+asyncpg://u:p@db:5432/shop"

    @pytest.mark.unit
    def test_other_urls_unchanged(self):
        assert to_async_url("sqlite+aiosqlite://") == "sqlite+aiosqlite://"


class TestDatabaseCatalog:
    """Tests for DatabaseCatalog.fetch_catalog"""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_active_products_in_id_order(self, session_factory):
        catalog = DatabaseCatalog(session_factory)

        products = await catalog.fetch_catalog()

        assert [product.id for product in products] == ["1", "2", "3"]
        headphones = products[0]
        assert headphones.category == "electronics"
        assert headphones.localized_name("ar") == "سماعات بلوتوث لاسلكية"
        assert headphones.localized_description() == "Noise cancelling headphones."
        assert headphones.tags == ["electronics", "audio", "wireless"]
        assert headphones.is_featured is True
        assert products[2].tags == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_category_pushdown(self, session_factory):
        catalog = DatabaseCatalog(session_factory)

        products = await catalog.fetch_catalog(SearchFilters(category="electronics"))

        assert [product.id for product in products] == ["1", "3"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_price_and_stock_pushdown(self, session_factory):
        catalog = DatabaseCatalog(session_factory)

        by_price = await catalog.fetch_catalog(SearchFilters(price_min=29.99, price_max=199.99))
        in_stock = await catalog.fetch_catalog(SearchFilters(in_stock_only=True))
        featured = await catalog.fetch_catalog(SearchFilters(featured_only=True))

        assert [product.id for product in by_price] == ["1", "2"]
        assert [product.id for product in in_stock] == ["1", "3"]
        assert [product.id for product in featured] == ["1"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_search_over_database(self, session_factory):
        engine = SearchEngine(InProcessSearchBackend(DatabaseCatalog(session_factory)))

        result = await engine.search("headphones")

        # The draft product is never searchable
        assert result.results[0].id == "1"
        assert "4" not in [product.id for product in result.results]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_missing_tables(self):
        engine = make_engine()
        catalog = DatabaseCatalog(create_session_factory(engine))

        try:
            with pytest.raises(CatalogUnavailableError) as exc_info:
                await catalog.fetch_catalog()
        finally:
            await engine.dispose()

        assert exc_info.value.source == "database"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_timeout(self, session_factory):
        catalog = DatabaseCatalog(session_factory, timeout_seconds=0.01)

        async def slow_load(filters):
            await asyncio.sleep(1)
            return []

        with patch.object(catalog, "_load", new=slow_load):
            with pytest.raises(CatalogUnavailableError) as exc_info:
                await catalog.fetch_catalog()

        assert exc_info.value.detail == {"timeout_seconds": 0.01}
