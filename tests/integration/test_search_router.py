"""
Tests for the search API endpoints.

The app is used without its lifespan: each test puts a SearchEngine over an
in-memory (or failing) catalog on ``app.state`` before issuing requests.
"""
import pytest
import structlog
from fastapi.testclient import TestClient

from shopsearch.engines.search import InMemoryCatalog, InProcessSearchBackend, SearchEngine
from shopsearch.main import app
from shopsearch.middleware import get_request_id


@pytest.fixture
def client(engine):
    """TestClient wrapping the app with the sample catalog engine"""
    app.state.search_engine = engine
    return TestClient(app)


@pytest.fixture
def failing_client(failing_catalog):
    app.state.search_engine = SearchEngine(InProcessSearchBackend(failing_catalog))
    return TestClient(app)


class TestSearchEndpoint:
    """Tests for GET /api/search"""

    @pytest.mark.integration
    def test_exact_name(self, client):
        response = client.get("/api/search", params={"q": "Wireless Bluetooth Headphones"})

        assert response.status_code == 200
        data = response.json()
        assert set(data.keys()) == {"products", "suggestions", "total"}
        top = data["products"][0]
        assert top["id"] == "1"
        assert top["name"] == "Wireless Bluetooth Headphones"
        assert top["score"] >= 3.0
        assert top["in_stock"] is True
        assert top["highlights"]["name"] == [[0, 29]]

    @pytest.mark.integration
    def test_empty_query(self, client):
        response = client.get("/api/search")

        assert response.status_code == 200
        assert response.json() == {"products": [], "suggestions": [], "total": 0}

    @pytest.mark.integration
    def test_price_filters(self, client):
        response = client.get("/api/search", params={"q": "o", "priceMin": 30, "priceMax": 149.99})

        assert response.status_code == 200
        data = response.json()
        assert {product["id"] for product in data["products"]} == {"4", "5", "6"}
        assert data["total"] == 3

    @pytest.mark.integration
    def test_browse_category(self, client):
        response = client.get("/api/search", params={"category": "electronics", "sort": "price_desc"})

        assert response.status_code == 200
        assert [product["id"] for product in response.json()["products"]] == ["3", "1"]

    @pytest.mark.integration
    def test_featured_and_in_stock(self, client):
        response = client.get("/api/search", params={"q": "o", "featured": "true", "inStock": "true"})

        assert response.status_code == 200
        assert {product["id"] for product in response.json()["products"]} == {"1", "3", "6"}

    @pytest.mark.integration
    def test_pagination(self, client):
        response = client.get("/api/search", params={"q": "o", "limit": 4, "offset": 4})

        data = response.json()
        assert len(data["products"]) == 2
        assert data["total"] == 6

    @pytest.mark.integration
    def test_arabic_locale(self, client):
        response = client.get("/api/search", params={"q": "بلوتوث", "locale": "ar"})

        assert response.status_code == 200
        top = response.json()["products"][0]
        assert top["id"] == "1"
        assert top["name"] == "سماعات بلوتوث لاسلكية"

    @pytest.mark.integration
    def test_inverted_price_range(self, client):
        response = client.get("/api/search", params={"q": "phone", "priceMin": 50, "priceMax": 10})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "InvalidFilterError"
        assert data["detail"]

    @pytest.mark.integration
    @pytest.mark.parametrize("params", [
        {"q": "phone", "sort": "popularity"},
        {"q": "phone", "offset": -1},
        {"q": "phone", "priceMin": -5},
        {"q": "phone", "locale": "fr"},
    ])
    def test_invalid_filters(self, client, params):
        response = client.get("/api/search", params=params)

        assert response.status_code == 400

    @pytest.mark.integration
    def test_page_size_cap(self, client):
        response = client.get("/api/search", params={"q": "phone", "limit": 1000})

        assert response.status_code == 422

    @pytest.mark.integration
    def test_catalog_unavailable(self, failing_client):
        response = failing_client.get("/api/search", params={"q": "phone"})

        assert response.status_code == 503
        data = response.json()
        assert data["error"] == "CatalogUnavailableError"
        assert data["source"] == "database"

    @pytest.mark.integration
    def test_request_id_header(self, client):
        response = client.get("/api/search", params={"q": "phone"}, headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.integration
    def test_request_id_bound_during_search(self, sample_products):
        seen = []

        class RecordingCatalog(InMemoryCatalog):
            async def fetch_catalog(self, filters=None):
                seen.append(structlog.contextvars.get_contextvars().get("request_id"))
                return await super().fetch_catalog(filters)

        app.state.search_engine = SearchEngine(InProcessSearchBackend(RecordingCatalog(sample_products)))
        response = TestClient(app).get("/api/search", params={"q": "phone"}, headers={"X-Request-ID": "abc123"})

        assert response.status_code == 200
        assert seen and set(seen) == {"abc123"}
        assert get_request_id() == ""


class TestSuggestionsEndpoint:
    """Tests for GET /api/search/suggestions"""

    @pytest.mark.integration
    def test_suggestions(self, client):
        response = client.get("/api/search/suggestions", params={"q": "phone"})

        assert response.status_code == 200
        assert response.json() == {
            "suggestions": ["Wireless Bluetooth Headphones", "home", "mobile", "smartphone", "cell"]
        }

    @pytest.mark.integration
    def test_short_query(self, client):
        response = client.get("/api/search/suggestions", params={"q": "p"})

        assert response.json() == {"suggestions": []}

    @pytest.mark.integration
    def test_catalog_unavailable(self, failing_client):
        response = failing_client.get("/api/search/suggestions", params={"q": "phone"})

        assert response.status_code == 503


class TestHealth:
    """Tests for service endpoints"""

    @pytest.mark.integration
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers
