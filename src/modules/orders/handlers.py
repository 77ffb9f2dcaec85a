"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderPlaced,
    OrderReconciled,
    OrderStatusChanged,
    RefundRecorded,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderPlacedHandler(IEventHandler[OrderPlaced]):
    def handle(self, event: OrderPlaced) -> None:
        logger.info(
            "order.event.placed",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            shop=event.username,
        )


class OrderReconciledHandler(IEventHandler[OrderReconciled]):
    def handle(self, event: OrderReconciled) -> None:
        logger.info(
            "order.event.reconciled",
            order_id=str(event.aggregate_id),
            operation=event.operation,
            bucket=event.bucket,
            quantities=event.quantities,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info("order.event.cancelled", order_id=str(event.aggregate_id))


class RefundRecordedHandler(IEventHandler[RefundRecorded]):
    def handle(self, event: RefundRecorded) -> None:
        logger.info(
            "order.event.refund_recorded",
            order_id=str(event.aggregate_id),
            flag=event.flag,
        )


order_placed_handler = OrderPlacedHandler()
order_reconciled_handler = OrderReconciledHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()
refund_recorded_handler = RefundRecordedHandler()
