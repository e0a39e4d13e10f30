from unittest.mock import patch

import pytest
from catalog.tests.factories import ProductFactory, StaffUserFactory
from django.core.cache import cache
from rest_framework.test import APIClient
from rest_framework.throttling import ScopedRateThrottle


@pytest.fixture
def throttled_client():
    cache.clear()
    client = APIClient()
    client.force_authenticate(user=StaffUserFactory())
    yield client
    cache.clear()


@pytest.mark.django_db
def test_inventory_read_scope_throttles(throttled_client):
    with patch.dict(ScopedRateThrottle.THROTTLE_RATES, {"inventory": "2/min"}):
        assert throttled_client.get("/api/v1/inventory/stats/").status_code == 200
        assert throttled_client.get("/api/v1/inventory/stats/").status_code == 200
        assert throttled_client.get("/api/v1/inventory/stats/").status_code == 429
        # Writes are counted under their own scope
        p = ProductFactory()
        resp = throttled_client.post("/api/v1/inventory/add-stock/", {"product": p.id, "quantity": 1}, format="json")
        assert resp.status_code == 201


@pytest.mark.django_db
def test_inventory_write_scope_throttles(throttled_client):
    p = ProductFactory()
    with patch.dict(ScopedRateThrottle.THROTTLE_RATES, {"inventory_write": "1/min"}):
        first = throttled_client.post("/api/v1/inventory/add-stock/", {"product": p.id, "quantity": 1}, format="json")
        second = throttled_client.post("/api/v1/inventory/add-stock/", {"product": p.id, "quantity": 1}, format="json")
    assert first.status_code == 201
    assert second.status_code == 429
