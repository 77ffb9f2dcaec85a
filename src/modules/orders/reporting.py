"""Refund figures for transaction reporting."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from modules.orders.models import Order


FULL_REFUND = "Full Refund"
PARTIAL_REFUND = "Partial Refund"
REFUND = "Refund"


class RefundSummary(NamedTuple):
    amount: Decimal
    type: str


def refund_summary(order: Order) -> RefundSummary:
    """Money owed back by the supplier for the cancelled quantities.

    The label is "Full Refund" only when both cancel buckets hold entries,
    "Partial Refund" when only the partial one does, and "Refund" otherwise.
    """
    partial = order.partial_cancelled
    rest = order.cancelled_rest
    amount = sum((entry.subtotal for entry in partial + rest), Decimal("0.00"))

    if partial and rest:
        kind = FULL_REFUND
    elif partial:
        kind = PARTIAL_REFUND
    else:
        kind = REFUND
    return RefundSummary(amount=amount, type=kind)
