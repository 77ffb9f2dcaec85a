"""Order event handlers are subscribed on the global bus and log each event."""

import logging
from uuid import uuid4

import pytest

from modules.orders.events import (
    OrderCancelled,
    OrderPlaced,
    OrderReconciled,
    OrderStatusChanged,
    RefundRecorded,
)
from shared.infrastructure.bus import event_bus

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "event,log_event",
    [
        (OrderPlaced(aggregate_id=uuid4(), order_number="PO-20260301-ABCDEF"), "order.event.placed"),
        (
            OrderReconciled(aggregate_id=uuid4(), operation="ACCEPT_REST", bucket="ACCEPTED_REST"),
            "order.event.reconciled",
        ),
        (
            OrderStatusChanged(aggregate_id=uuid4(), old_status="PENDING", new_status="CANCELLED"),
            "order.event.status_changed",
        ),
        (OrderCancelled(aggregate_id=uuid4()), "order.event.cancelled"),
        (RefundRecorded(aggregate_id=uuid4(), flag="refund_received"), "order.event.refund_recorded"),
    ],
)
def test_published_event_is_logged(event, log_event, caplog):
    with caplog.at_level(logging.INFO):
        event_bus.publish(event)

    messages = [record.getMessage() for record in caplog.records]
    matching = [m for m in messages if log_event in m]
    assert len(matching) == 1
    assert str(event.aggregate_id) in matching[0]


def test_every_order_event_can_be_rebuilt():
    for event_class in (OrderPlaced, OrderReconciled, OrderStatusChanged, OrderCancelled, RefundRecorded):
        event = event_bus.rebuild(event_class.__name__, {"aggregate_id": str(uuid4())})
        assert isinstance(event, event_class)
