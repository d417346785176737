"""
Integration tests for the merchant search HTTP surface.

Tests verify:
- Header-based tenant/user context and the error envelope
- GET query-string parsing and POST body validation (extra="forbid")
- camelCase wire format and relevance field presence
- History and suggestion routes
- Health and metrics endpoints
"""

import pytest
from fastapi.testclient import TestClient

from conftest import TENANT

from merchant_search.api.server import app, get_facet_cache
from merchant_search.data.database import get_db, get_session_factory

SEARCH_URL = "/api/merchant/search"
HEADERS = {"X-Tenant-Id": TENANT, "X-User-Id": "user-1"}


@pytest.fixture
def client(session_factory, seed):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_facet_cache] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


#
# Context headers
#

def test_search_without_user_is_401(client):
    response = client.get(SEARCH_URL, headers={"X-Tenant-Id": TENANT})
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": "UnauthorizedError",
        "message": "User not authenticated",
    }


def test_search_without_tenant_is_400(client):
    response = client.get(SEARCH_URL, headers={"X-User-Id": "user-1"})
    assert response.status_code == 400
    assert response.json()["error"] == "ClientError"
    assert response.json()["message"] == "Tenant ID is required"


#
# GET search
#

def test_get_search_defaults(client):
    response = client.get(SEARCH_URL, headers=HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert set(data["results"]) == {"product", "order", "customer"}
    assert data["totalResults"] == 10
    assert data["page"] == 1
    assert data["limit"] == 20
    assert data["totalPages"] == 1
    assert "relevanceScore" not in data["results"]["product"]["items"][0]


def test_get_search_with_query(client):
    response = client.get(SEARCH_URL, params={"q": "gift card", "entities": "products"}, headers=HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert list(data["results"]) == ["product"]
    assert data["totalResults"] == 2
    items = data["results"]["product"]["items"]
    assert [item["id"] for item in items] == ["p2", "p1"]
    assert all(item["relevanceScore"] >= 0.8 for item in items)
    assert all("name" in item["matchedFields"] for item in items)
    assert items[1]["category"] == {"id": "cat-cards", "name": "Gift Cards"}
    assert data["aggregations"]["product"]["priceRange"] == {"min": 10.0, "max": 100.0}


def test_get_search_drops_unknown_entities(client):
    response = client.get(SEARCH_URL, params={"entities": "products,bogus"}, headers=HEADERS)
    assert response.status_code == 200
    assert list(response.json()["results"]) == ["product"]


def test_get_search_flat_filters_and_sort(client):
    params = {
        "entities": "product",
        "productPriceMin": 20,
        "productPriceMax": 50,
        "sortBy": "price",
        "sortOrder": "desc",
    }
    response = client.get(SEARCH_URL, params=params, headers=HEADERS)
    assert response.status_code == 200
    items = response.json()["results"]["product"]["items"]
    assert [item["id"] for item in items] == ["p1", "p3"]


def test_get_search_order_status_filter(client):
    params = [("entities", "orders"), ("orderStatus", "completed"), ("orderStatus", "pending")]
    response = client.get(SEARCH_URL, params=params, headers=HEADERS)
    data = response.json()
    assert {item["id"] for item in data["results"]["order"]["items"]} == {"o1", "o2"}
    assert data["results"]["order"]["items"][0]["orderCode"].startswith("ORD-")
    # statuses facet ignores the status filter
    assert len(data["aggregations"]["order"]["statuses"]) == 3


def test_get_search_clamps_pagination(client):
    response = client.get(SEARCH_URL, params={"page": 0, "limit": 1000}, headers=HEADERS)
    data = response.json()
    assert (data["page"], data["limit"]) == (1, 100)


def test_get_search_invalid_sort_is_422(client):
    response = client.get(SEARCH_URL, params={"sortBy": "popularity"}, headers=HEADERS)
    assert response.status_code == 422


#
# POST search
#

def test_post_search_body(client):
    body = {
        "query": "alice",
        "entities": ["orders", "customers"],
        "filters": {"orders": {"paymentStatus": ["paid"]}},
        "pagination": {"page": 1, "limit": 10},
        "sorting": {"by": "relevance"},
    }
    response = client.post(SEARCH_URL, json=body, headers=HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert [item["id"] for item in data["results"]["order"]["items"]] == ["o1"]
    customer = data["results"]["customer"]["items"][0]
    assert customer["totalOrders"] == 2
    assert customer["totalSpent"] == 160.0
    assert customer["matchedFields"] == ["name", "email"]


def test_post_search_task(client):
    response = client.post(SEARCH_URL, json={"entities": ["task"]}, headers=HEADERS)
    assert response.status_code == 200
    data = response.json()
    assert data["results"] == {"task": {"count": 0, "items": []}}
    assert data["totalResults"] == 0
    assert data["totalPages"] == 0


def test_post_search_rejects_unknown_fields(client):
    response = client.post(SEARCH_URL, json={"query": "x", "unexpected": True}, headers=HEADERS)
    assert response.status_code == 422


def test_post_search_rejects_unknown_entity(client):
    response = client.post(SEARCH_URL, json={"entities": ["invoices"]}, headers=HEADERS)
    assert response.status_code == 422


#
# History
#

def test_history_round_trip(client):
    saved = client.post(
        f"{SEARCH_URL}/history",
        json={"query": "gift card", "entities": ["products"], "resultCount": 2},
        headers=HEADERS,
    )
    assert saved.status_code == 200
    record = saved.json()["searchHistory"]
    assert record["entity"] == "product"
    assert record["resultCount"] == 2

    listed = client.get(f"{SEARCH_URL}/history", headers=HEADERS).json()
    assert listed["total"] == 1
    assert listed["items"][0]["id"] == record["id"]

    deleted = client.delete(f"{SEARCH_URL}/history", params={"id": record["id"]}, headers=HEADERS)
    assert deleted.status_code == 200
    assert deleted.json()["deletedCount"] == 1


def test_history_clear_all_via_body(client):
    for query in ("a1", "a2"):
        client.post(f"{SEARCH_URL}/history", json={"query": query}, headers=HEADERS)
    response = client.request("DELETE", f"{SEARCH_URL}/history", json={"clearAll": True}, headers=HEADERS)
    assert response.json()["deletedCount"] == 2


def test_history_delete_without_selector_is_400(client):
    response = client.delete(f"{SEARCH_URL}/history", headers=HEADERS)
    assert response.status_code == 400
    assert response.json()["error"] == "ClientError"


def test_history_requires_user(client):
    response = client.get(f"{SEARCH_URL}/history", headers={"X-Tenant-Id": TENANT})
    assert response.status_code == 401


#
# Suggestions
#

def test_suggestions_need_only_tenant(client):
    response = client.get(f"{SEARCH_URL}/suggestions", params={"q": "ip"}, headers={"X-Tenant-Id": TENANT})
    assert response.status_code == 200
    suggestions = response.json()["suggestions"]
    assert suggestions[0]["text"] == "iPhone Game Pass"
    assert suggestions[0]["type"] == "product"
    assert suggestions[0]["entityId"] == "p3"


def test_suggestions_short_query_is_400(client):
    response = client.get(f"{SEARCH_URL}/suggestions", params={"q": "a"}, headers=HEADERS)
    assert response.status_code == 400


def test_suggestions_entity_filter(client):
    response = client.get(
        f"{SEARCH_URL}/suggestions", params={"q": "ord", "entities": "orders", "limit": 2}, headers=HEADERS,
    )
    assert [s["text"] for s in response.json()["suggestions"]] == ["ORD-1001", "ORD-1002"]


#
# Health / metrics
#

def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"] == "healthy"
    assert response.json()["cache"] == "disabled"


def test_metrics_record_search(client):
    client.get(SEARCH_URL, headers=HEADERS)
    data = client.get("/metrics").json()
    assert "search" in data["operations"]
    assert data["operations"]["search"]["total_requests"] >= 1
