"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders.models import Order, OrderLine, OrderStatusHistory, ReconciliationEntry
from modules.orders.reconciliation import remaining_allowance
from modules.orders.reporting import refund_summary

BUCKET_FIELDS = ("partial_accepted", "accepted_rest", "partial_cancelled", "cancelled_rest")

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class PlaceOrderItemSerializer(serializers.Serializer):
    """Validates a single line in an order placement request."""

    medicine_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class PlaceOrderSerializer(serializers.Serializer):
    """Validates the order placement request payload."""

    supplier_name = serializers.CharField(max_length=255)
    items = PlaceOrderItemSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class ReconcileQuantitiesSerializer(serializers.Serializer):
    """``{"quantities": {"<medicine_id>": <int>, ...}}``.

    Zero and negative values pass through; the reconciliation rules decide
    what to do with them.
    """

    quantities = serializers.DictField(
        child=serializers.IntegerField(), allow_empty=False
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderLineSerializer(serializers.ModelSerializer):
    """Read serializer for order lines with the medicine snapshot."""

    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderLine
        fields = ["medicine_id", "name", "quantity", "price", "subtotal"]
        read_only_fields = fields


class ReconciliationEntrySerializer(serializers.ModelSerializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = ReconciliationEntry
        fields = ["medicine_id", "name", "quantity", "price", "subtotal", "created_at"]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "operation",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with lines, buckets and history.

    Each bucket is rendered as its own list (empty when nothing was
    classified into it); ``subtotals`` holds the money value per bucket.
    """

    lines = OrderLineSerializer(many=True, read_only=True)
    partial_accepted = ReconciliationEntrySerializer(many=True, read_only=True)
    accepted_rest = ReconciliationEntrySerializer(many=True, read_only=True)
    partial_cancelled = ReconciliationEntrySerializer(many=True, read_only=True)
    cancelled_rest = ReconciliationEntrySerializer(many=True, read_only=True)
    subtotals = serializers.SerializerMethodField()
    remaining = serializers.SerializerMethodField()
    refund = serializers.SerializerMethodField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "supplier_name",
            "status",
            "version",
            "total_amount",
            "refund_received",
            "partial_refund_received",
            "full_refund_received",
            "notes",
            "created_at",
            "updated_at",
            "lines",
            *BUCKET_FIELDS,
            "subtotals",
            "remaining",
            "refund",
            "status_history",
        ]
        read_only_fields = fields

    def get_subtotals(self, order: Order) -> dict[str, str]:
        return {
            name: str(sum((e.subtotal for e in getattr(order, name)), Decimal("0.00")))
            for name in BUCKET_FIELDS
        }

    def get_remaining(self, order: Order) -> dict[str, int]:
        return remaining_allowance(list(order.lines.all()), order.entries.all())

    def get_refund(self, order: Order) -> dict[str, str]:
        summary = refund_summary(order)
        return {"amount": str(summary.amount), "type": summary.type}


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "supplier_name",
            "status",
            "version",
            "total_amount",
            "refund_received",
            "partial_refund_received",
            "full_refund_received",
            "created_at",
        ]
        read_only_fields = fields
