"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    """Raised when a supplier order is placed."""

    order_number: str = ""
    username: str = ""


@dataclass(frozen=True)
class OrderReconciled(DomainEvent):
    """Raised when a reconciliation request appends entries to the ledger."""

    operation: str = ""
    bucket: str = ""
    quantities: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order status changes."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when the whole order is cancelled."""


@dataclass(frozen=True)
class RefundRecorded(DomainEvent):
    """Raised when one of the refund flags is set."""

    flag: str = ""
