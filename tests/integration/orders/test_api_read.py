"""Integration tests for reading orders.

Covers:
- Detail representation: buckets, subtotals, remaining, refund summary, history.
- Shop scoping: another shop's order is 404.
- List: newest first, filters, pagination.
- ``actionable``: open orders plus closed ones awaiting a refund.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from freezegun import freeze_time

from modules.orders.constants import OrderStatus
from modules.orders.models import Order
from tests.conftest import SHOP

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


def detail_url(order) -> str:
    return f"{URL}{order.id}/"


class TestRetrieve:
    def test_reconciled_order_representation(
        self, auth_client, reconciliation_service, place_order, medicine_x, medicine_y
    ):
        order = place_order((medicine_x, 10), (medicine_y, 5))
        reconciliation_service.partial_accept(order.id, SHOP, {str(medicine_x.id): 7})
        reconciliation_service.partial_cancel(order.id, SHOP, {str(medicine_y.id): 5})
        reconciliation_service.accept_rest(order.id, SHOP)

        response = auth_client.get(detail_url(order))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.COMPLETED
        assert [(e["name"], e["quantity"]) for e in data["partial_accepted"]] == [
            ("Paracetamol 500mg", 7)
        ]
        assert [(e["name"], e["quantity"]) for e in data["accepted_rest"]] == [
            ("Paracetamol 500mg", 3)
        ]
        assert [(e["name"], e["quantity"]) for e in data["partial_cancelled"]] == [
            ("Amoxicillin 250mg", 5)
        ]
        assert data["cancelled_rest"] == []
        assert data["subtotals"] == {
            "partial_accepted": "17.50",
            "accepted_rest": "7.50",
            "partial_cancelled": "40.00",
            "cancelled_rest": "0.00",
        }
        assert data["remaining"] == {str(medicine_x.id): 0, str(medicine_y.id): 0}
        assert data["refund"] == {"amount": "40.00", "type": "Partial Refund"}
        assert [h["new_status"] for h in data["status_history"]] == [
            OrderStatus.COMPLETED,
            OrderStatus.PARTIALLY_ACCEPTED,
            OrderStatus.PENDING,
        ]

    def test_other_shop_is_404(self, other_client, place_order, medicine_x):
        order = place_order((medicine_x, 1))

        response = other_client.get(detail_url(order))

        assert response.status_code == 404

    def test_unknown_is_404(self, auth_client):
        assert auth_client.get(f"{URL}{uuid4()}/").status_code == 404

    def test_malformed_id_is_404(self, auth_client):
        assert auth_client.get(f"{URL}not-a-uuid/").status_code == 404


class TestList:
    def test_newest_first_and_scoped(self, auth_client, other_client, place_order, medicine_x):
        with freeze_time("2026-03-01 09:00:00"):
            older = place_order((medicine_x, 1))
        with freeze_time("2026-03-02 09:00:00"):
            newer = place_order((medicine_x, 1))

        data = auth_client.get(URL).json()

        assert data["count"] == 2
        assert [row["id"] for row in data["results"]] == [str(newer.id), str(older.id)]
        assert "lines" not in data["results"][0]
        assert other_client.get(URL).json()["count"] == 0

    def test_filter_by_status(self, auth_client, reconciliation_service, place_order, medicine_x):
        place_order((medicine_x, 1))
        cancelled = place_order((medicine_x, 1))
        reconciliation_service.cancel_all(cancelled.id, SHOP)

        data = auth_client.get(URL, {"status": "cancelled"}).json()

        assert [row["id"] for row in data["results"]] == [str(cancelled.id)]

    def test_filter_by_supplier(self, auth_client, place_order, medicine_x):
        place_order((medicine_x, 1), supplier_name="Apex Distributors")
        northwind = place_order((medicine_x, 1), supplier_name="Northwind Pharma")

        data = auth_client.get(URL, {"supplier": "north"}).json()

        assert [row["id"] for row in data["results"]] == [str(northwind.id)]

    def test_filter_by_date_range(self, auth_client, place_order, medicine_x):
        with freeze_time("2026-02-10 12:00:00"):
            place_order((medicine_x, 1))
        with freeze_time("2026-03-10 12:00:00"):
            march = place_order((medicine_x, 1))

        data = auth_client.get(URL, {"start_date": "2026-03-01", "end_date": "2026-03-31"}).json()

        assert [row["id"] for row in data["results"]] == [str(march.id)]

    def test_pagination(self, auth_client, place_order, medicine_x):
        for _ in range(3):
            place_order((medicine_x, 1))

        data = auth_client.get(URL, {"page_size": 2}).json()

        assert data["count"] == 3
        assert len(data["results"]) == 2
        assert data["next"] is not None

    def test_deleted_orders_hidden(self, auth_client, place_order, medicine_x):
        order = place_order((medicine_x, 1))
        Order.objects.get(pk=order.pk).delete()

        assert auth_client.get(URL).json()["count"] == 0
        assert auth_client.get(detail_url(order)).status_code == 404


class TestActionable:
    def test_open_and_awaiting_refund(
        self, auth_client, order_service, reconciliation_service, place_order, medicine_x
    ):
        open_order = place_order((medicine_x, 2))
        accepted = place_order((medicine_x, 2))
        reconciliation_service.accept_all(accepted.id, SHOP)
        cancelled = place_order((medicine_x, 2))
        reconciliation_service.cancel_all(cancelled.id, SHOP)
        settled = place_order((medicine_x, 2))
        reconciliation_service.cancel_all(settled.id, SHOP)
        order_service.mark_partial_refund_received(str(settled.id), SHOP)
        order_service.mark_full_refund_received(str(settled.id), SHOP)

        data = auth_client.get(f"{URL}actionable/").json()

        ids = {row["id"] for row in data["results"]}
        assert ids == {str(open_order.id), str(cancelled.id)}
