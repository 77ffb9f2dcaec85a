from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            OrderCancelled,
            OrderPlaced,
            OrderReconciled,
            OrderStatusChanged,
            RefundRecorded,
        )
        from modules.orders.handlers import (
            order_cancelled_handler,
            order_placed_handler,
            order_reconciled_handler,
            order_status_changed_handler,
            refund_recorded_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderPlaced, order_placed_handler)
        event_bus.subscribe(OrderReconciled, order_reconciled_handler)
        event_bus.subscribe(OrderStatusChanged, order_status_changed_handler)
        event_bus.subscribe(OrderCancelled, order_cancelled_handler)
        event_bus.subscribe(RefundRecorded, refund_recorded_handler)
