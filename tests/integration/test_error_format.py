"""Integration tests for standardized error responses."""

import pytest

pytestmark = pytest.mark.integration


class TestStandardizedErrors:
    def test_auth_error_has_standard_format(self, api_client):
        response = api_client.get("/api/v1/orders/")
        assert response.status_code == 401
        data = response.json()
        assert data["type"] == "client_error"
        assert isinstance(data["errors"], list)
        assert data["errors"]
        assert data["errors"][0]["code"] == "not_authenticated"
        assert "detail" in data["errors"][0]

    def test_malformed_json_has_standard_format(self, auth_client):
        response = auth_client.post("/api/v1/orders/", data="{", content_type="application/json")
        assert response.status_code == 400
        data = response.json()
        assert data["type"] == "client_error"
        assert data["errors"][0]["code"] == "parse_error"

    def test_validation_error_lists_every_field(self, auth_client):
        response = auth_client.post("/api/v1/orders/", {}, format="json")
        assert response.status_code == 400
        data = response.json()
        assert data["type"] == "validation_error"
        assert {error["attr"] for error in data["errors"]} == {"supplier_name", "items"}

    def test_nested_validation_error_attr(self, auth_client):
        response = auth_client.post(
            "/api/v1/orders/",
            {"supplier_name": "Apex", "items": [{"medicine_id": "nope", "quantity": 1}]},
            format="json",
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "items.medicine_id"

    def test_domain_error_has_detail(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 1))
        auth_client.post(f"/api/v1/orders/{order.id}/cancel/")

        response = auth_client.post(f"/api/v1/orders/{order.id}/accept/")

        assert response.status_code == 409
        assert "CANCELLED" in response.json()["detail"]

    def test_method_not_allowed(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 1))
        response = auth_client.delete(f"/api/v1/orders/{order.id}/")
        assert response.status_code == 405
        assert response.json()["errors"][0]["code"] == "method_not_allowed"
