"""Integration tests for throttling on the order API."""

from __future__ import annotations

import pytest
from rest_framework.throttling import ScopedRateThrottle

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def tight_rates(monkeypatch):
    monkeypatch.setattr(
        ScopedRateThrottle,
        "THROTTLE_RATES",
        {"order_placement": "2/minute", "order_reconciliation": "2/minute"},
    )


def test_order_placement_is_throttled(tight_rates, auth_client, medicine_x):
    payload = {
        "supplier_name": "Apex Distributors",
        "items": [{"medicine_id": str(medicine_x.id), "quantity": 1}],
    }

    for _ in range(2):
        assert auth_client.post(URL, payload, format="json").status_code == 201

    assert auth_client.post(URL, payload, format="json").status_code == 429


def test_reconciliation_is_throttled(tight_rates, auth_client, place_order, medicine_x):
    order = place_order((medicine_x, 10))
    url = f"{URL}{order.id}/partial-accept/"
    body = {"quantities": {str(medicine_x.id): 1}}

    for _ in range(2):
        assert auth_client.post(url, body, format="json").status_code == 200

    assert auth_client.post(url, body, format="json").status_code == 429


def test_reads_are_not_scoped(tight_rates, auth_client):
    for _ in range(5):
        assert auth_client.get(URL).status_code == 200
