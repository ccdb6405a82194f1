"""
Shared pytest fixtures and configuration for all tests
"""
from datetime import datetime
from typing import List
from unittest.mock import AsyncMock

import pytest

from shopsearch.core.exceptions import CatalogUnavailableError
from shopsearch.engines.search import (
    CatalogAccessor,
    InMemoryCatalog,
    InProcessSearchBackend,
    ProductRecord,
    SearchEngine,
)


def make_product(id, name, price=10.0, **kwargs) -> ProductRecord:
    """Build a ProductRecord with sensible defaults for tests"""
    return ProductRecord(id=id, name=name, price=price, **kwargs)


@pytest.fixture
def sample_products() -> List[ProductRecord]:
    """Storefront sample catalog"""
    return [
        make_product(
            "1",
            {"en": "Wireless Bluetooth Headphones", "ar": "سماعات بلوتوث لاسلكية"},
            price=199.99,
            description="High-quality wireless headphones with noise cancellation and 30-hour battery life.",
            category="electronics",
            inventory_count=25,
            tags=["electronics", "audio", "wireless"],
            is_featured=True,
            created_at=datetime(2024, 1, 1),
        ),
        make_product(
            "2",
            "Organic Cotton T-Shirt",
            price=29.99,
            description="Comfortable and sustainable organic cotton t-shirt in various colors.",
            category="clothing",
            inventory_count=50,
            tags=["clothing", "organic", "cotton"],
            created_at=datetime(2024, 1, 2),
        ),
        make_product(
            "3",
            "Smart Fitness Watch",
            price=299.99,
            description="Advanced fitness tracking with heart rate monitor, GPS, and smartphone integration.",
            category="electronics",
            inventory_count=15,
            tags=["electronics", "fitness", "wearable"],
            is_featured=True,
            created_at=datetime(2024, 1, 3),
        ),
        make_product(
            "4",
            "Ceramic Coffee Mug Set",
            price=39.99,
            description="Set of 4 handcrafted ceramic coffee mugs perfect for your morning routine.",
            category="home-garden",
            inventory_count=30,
            tags=["home", "kitchen", "ceramic"],
            created_at=datetime(2024, 1, 4),
        ),
        make_product(
            "5",
            "Yoga Mat Premium",
            price=79.99,
            description="Non-slip premium yoga mat with excellent grip and cushioning for all yoga practices.",
            category="sports",
            inventory_count=20,
            tags=["sports", "yoga", "fitness"],
            created_at=datetime(2024, 1, 5),
        ),
        make_product(
            "6",
            "Leather Crossbody Bag",
            price=149.99,
            description="Stylish genuine leather crossbody bag with multiple compartments.",
            category="accessories",
            inventory_count=12,
            tags=["accessories", "leather", "bag"],
            is_featured=True,
            created_at=datetime(2024, 1, 6),
        ),
    ]


@pytest.fixture
def catalog(sample_products) -> InMemoryCatalog:
    return InMemoryCatalog(sample_products)


@pytest.fixture
def engine(catalog) -> SearchEngine:
    """In-process search engine over the sample catalog"""
    return SearchEngine(InProcessSearchBackend(catalog), supported_locales=["en", "ar"])


@pytest.fixture
def mock_catalog(sample_products):
    """Catalog accessor whose fetches can be inspected"""
    mock = AsyncMock(spec=CatalogAccessor)
    mock.fetch_catalog.return_value = list(sample_products)
    return mock


@pytest.fixture
def failing_catalog():
    """Catalog accessor that is down"""
    mock = AsyncMock(spec=CatalogAccessor)
    mock.fetch_catalog.side_effect = CatalogUnavailableError("Catalog is unavailable", source="database")
    return mock
