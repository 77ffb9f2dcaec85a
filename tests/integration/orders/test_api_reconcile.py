"""Integration tests for the reconciliation endpoints.

Covers:
- accept, cancel, partial-accept, partial-cancel, accept-rest, cancel-rest.
- Stock is received on acceptance only.
- Error mapping: 400 for bad or unusable requests, 404 for unknown or
  foreign orders, 409 for closed orders.
- Status history and outbox rows written per request.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.core.models import OutboxEvent
from modules.orders.constants import Operation, OrderStatus
from modules.orders.models import Order, ReconciliationEntry
from tests.conftest import SHOP

pytestmark = pytest.mark.integration


def action_url(order, action: str) -> str:
    return f"/api/v1/orders/{order.id}/{action}/"


def quantities(**by_medicine):
    return {"quantities": by_medicine}


def stock(medicine) -> int:
    medicine.refresh_from_db()
    return medicine.quantity


class TestAccept:
    def test_accepts_everything(self, auth_client, place_order, medicine_x, medicine_y):
        order = place_order((medicine_x, 10), (medicine_y, 5))

        response = auth_client.post(action_url(order, "accept"))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.ACCEPTED
        assert [(e["name"], e["quantity"]) for e in data["accepted_rest"]] == [
            ("Paracetamol 500mg", 10),
            ("Amoxicillin 250mg", 5),
        ]
        assert stock(medicine_x) == 10
        assert stock(medicine_y) == 5

    def test_closed_order_is_409(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 1))
        auth_client.post(action_url(order, "cancel"))

        response = auth_client.post(action_url(order, "accept"))

        assert response.status_code == 409
        assert stock(medicine_x) == 0


class TestCancel:
    def test_cancels_pending_order(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 10))

        response = auth_client.post(action_url(order, "cancel"))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.CANCELLED
        assert data["cancelled_rest"] == []
        assert stock(medicine_x) == 0

    def test_accepted_order_is_409(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 1))
        auth_client.post(action_url(order, "accept"))

        response = auth_client.post(action_url(order, "cancel"))

        assert response.status_code == 409
        assert Order.objects.get(pk=order.pk).status == OrderStatus.ACCEPTED

    def test_cancel_twice_is_200(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 1))
        auth_client.post(action_url(order, "cancel"))

        response = auth_client.post(action_url(order, "cancel"))

        assert response.status_code == 200
        assert response.json()["status"] == OrderStatus.CANCELLED


class TestPartialAccept:
    def test_accepts_requested_quantities(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 10))

        response = auth_client.post(
            action_url(order, "partial-accept"),
            quantities(**{str(medicine_x.id): 4}),
            format="json",
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.PARTIALLY_ACCEPTED
        assert [e["quantity"] for e in data["partial_accepted"]] == [4]
        assert data["remaining"] == {str(medicine_x.id): 6}
        assert stock(medicine_x) == 4

    def test_over_allowance_is_400_and_changes_nothing(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 5))

        response = auth_client.post(
            action_url(order, "partial-accept"),
            quantities(**{str(medicine_x.id): 8}),
            format="json",
        )

        assert response.status_code == 400
        assert "detail" in response.json()
        assert not ReconciliationEntry.objects.exists()
        assert Order.objects.get(pk=order.pk).version == 1
        assert stock(medicine_x) == 0

    def test_negative_quantity_is_400(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 5))

        response = auth_client.post(
            action_url(order, "partial-accept"),
            quantities(**{str(medicine_x.id): -1}),
            format="json",
        )

        assert response.status_code == 400

    def test_non_integer_quantity_is_400(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 5))

        response = auth_client.post(
            action_url(order, "partial-accept"),
            quantities(**{str(medicine_x.id): "two"}),
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_empty_quantities_is_400(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 5))

        response = auth_client.post(action_url(order, "partial-accept"), quantities(), format="json")

        assert response.status_code == 400

    def test_missing_body_is_400(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 5))

        response = auth_client.post(action_url(order, "partial-accept"), {}, format="json")

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "quantities"

    def test_unknown_medicine_only_is_400(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 5))

        response = auth_client.post(
            action_url(order, "partial-accept"),
            quantities(**{str(uuid4()): 1}),
            format="json",
        )

        assert response.status_code == 400

    def test_closed_order_is_409(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 5))
        auth_client.post(action_url(order, "accept"))

        response = auth_client.post(
            action_url(order, "partial-accept"),
            quantities(**{str(medicine_x.id): 1}),
            format="json",
        )

        assert response.status_code == 409


class TestPartialCancel:
    def test_cancels_without_touching_stock(self, auth_client, place_order, medicine_x, medicine_y):
        order = place_order((medicine_x, 10), (medicine_y, 5))

        response = auth_client.post(
            action_url(order, "partial-cancel"),
            quantities(**{str(medicine_y.id): 5}),
            format="json",
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.PARTIALLY_CANCELLED
        assert data["refund"] == {"amount": "40.00", "type": "Partial Refund"}
        assert stock(medicine_y) == 0


class TestRestEndpoints:
    def test_partial_accept_then_accept_rest(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 10))
        auth_client.post(
            action_url(order, "partial-accept"),
            quantities(**{str(medicine_x.id): 4}),
            format="json",
        )

        response = auth_client.post(action_url(order, "accept-rest"))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.ACCEPTED
        assert [e["quantity"] for e in data["accepted_rest"]] == [6]
        assert stock(medicine_x) == 10

    def test_mixed_flow_completes(self, auth_client, place_order, medicine_x, medicine_y):
        order = place_order((medicine_x, 10), (medicine_y, 5))
        auth_client.post(
            action_url(order, "partial-accept"),
            quantities(**{str(medicine_x.id): 7}),
            format="json",
        )
        auth_client.post(
            action_url(order, "partial-cancel"),
            quantities(**{str(medicine_y.id): 5}),
            format="json",
        )

        response = auth_client.post(action_url(order, "accept-rest"))

        data = response.json()
        assert data["status"] == OrderStatus.COMPLETED
        assert [(e["name"], e["quantity"]) for e in data["accepted_rest"]] == [
            ("Paracetamol 500mg", 3)
        ]
        assert stock(medicine_x) == 10

    def test_cancel_rest(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 10))
        auth_client.post(
            action_url(order, "partial-accept"),
            quantities(**{str(medicine_x.id): 4}),
            format="json",
        )

        response = auth_client.post(action_url(order, "cancel-rest"))

        data = response.json()
        assert data["status"] == OrderStatus.COMPLETED
        assert [e["quantity"] for e in data["cancelled_rest"]] == [6]
        assert data["refund"] == {"amount": "15.00", "type": "Refund"}
        assert stock(medicine_x) == 4

    @pytest.mark.parametrize("action", ["accept-rest", "cancel-rest"])
    def test_replay_on_closed_order_is_200_noop(self, auth_client, place_order, medicine_x, action):
        order = place_order((medicine_x, 5))
        auth_client.post(action_url(order, "accept-rest"))
        version = Order.objects.get(pk=order.pk).version

        response = auth_client.post(action_url(order, action))

        assert response.status_code == 200
        assert response.json()["version"] == version
        assert ReconciliationEntry.objects.filter(order_id=order.id).count() == 1
        assert stock(medicine_x) == 5

    def test_medicine_deleted_after_placement(
        self, auth_client, place_order, medicine_x, medicine_y
    ):
        order = place_order((medicine_x, 10), (medicine_y, 5))
        assert auth_client.delete(f"/api/v1/medicines/{medicine_y.id}/").status_code == 204
        auth_client.post(
            action_url(order, "partial-accept"),
            quantities(**{str(medicine_x.id): 10}),
            format="json",
        )

        response = auth_client.post(action_url(order, "accept-rest"))

        assert response.status_code == 200
        assert response.json()["status"] == OrderStatus.ACCEPTED
        assert stock(medicine_y) == 5


class TestScopingAndAudit:
    @pytest.mark.parametrize(
        "action", ["accept", "cancel", "accept-rest", "cancel-rest"]
    )
    def test_other_shop_is_404(self, other_client, place_order, medicine_x, action):
        order = place_order((medicine_x, 5))

        response = other_client.post(action_url(order, action))

        assert response.status_code == 404
        assert Order.objects.get(pk=order.pk).status == OrderStatus.PENDING

    def test_unknown_order_is_404(self, auth_client):
        response = auth_client.post(f"/api/v1/orders/{uuid4()}/accept/")
        assert response.status_code == 404

    def test_history_and_outbox(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 5))

        auth_client.post(action_url(order, "cancel-rest"))

        history = Order.objects.get(pk=order.pk).status_history.first()
        assert (history.old_status, history.new_status, history.operation) == (
            OrderStatus.PENDING,
            OrderStatus.CANCELLED,
            Operation.CANCEL_REST,
        )
        types = set(
            OutboxEvent.objects.filter(aggregate_id=str(order.id)).values_list("event_type", flat=True)
        )
        assert types == {"OrderPlaced", "OrderReconciled", "OrderStatusChanged"}

    def test_anonymous_is_401(self, api_client, place_order, medicine_x):
        order = place_order((medicine_x, 5))

        assert api_client.post(action_url(order, "accept")).status_code == 401
        assert Order.objects.get(pk=order.pk).status == OrderStatus.PENDING
