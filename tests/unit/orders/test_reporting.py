"""Unit tests for refund reporting."""

from decimal import Decimal

import pytest

from modules.orders.reporting import FULL_REFUND, PARTIAL_REFUND, REFUND, refund_summary
from tests.conftest import SHOP

pytestmark = pytest.mark.unit


@pytest.fixture()
def order(place_order, medicine_x, medicine_y):
    return place_order((medicine_x, 10), (medicine_y, 5))


def test_nothing_cancelled(order):
    summary = refund_summary(order)
    assert summary.amount == Decimal("0.00")
    assert summary.type == REFUND


def test_partial_cancel_only(reconciliation_service, order, medicine_y):
    order = reconciliation_service.partial_cancel(order.id, SHOP, {str(medicine_y.id): 2})

    summary = refund_summary(order)

    assert summary.amount == Decimal("16.00")
    assert summary.type == PARTIAL_REFUND


def test_both_cancel_buckets(reconciliation_service, order, medicine_x, medicine_y):
    reconciliation_service.partial_cancel(order.id, SHOP, {str(medicine_y.id): 5})
    order = reconciliation_service.cancel_rest(order.id, SHOP)

    summary = refund_summary(order)

    assert summary.amount == Decimal("65.00")
    assert summary.type == FULL_REFUND


def test_cancel_rest_only(reconciliation_service, order):
    order = reconciliation_service.cancel_rest(order.id, SHOP)

    summary = refund_summary(order)

    assert summary.amount == Decimal("65.00")
    assert summary.type == REFUND


def test_accepted_quantities_are_not_refunded(reconciliation_service, order, medicine_x):
    reconciliation_service.partial_accept(order.id, SHOP, {str(medicine_x.id): 10})
    order = reconciliation_service.cancel_rest(order.id, SHOP)

    assert refund_summary(order).amount == Decimal("40.00")
