import pytest
from rest_framework.test import APIClient


@pytest.mark.django_db
def test_inventory_and_global_health_are_public():
    client = APIClient()
    resp_health = client.get("/api/v1/inventory/health/")
    assert resp_health.status_code == 200
    assert resp_health.json()["app"] == "inventory"

    resp_global = client.get("/health/")
    assert resp_global.status_code == 200
    assert resp_global.json() == {"status": "ok", "database": "ok"}


# EOF
