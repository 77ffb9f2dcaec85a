"""Order repository interface.

Extends ``IRepository[Order]`` with the methods required by the Order
aggregate: atomic placement with lines, shop-scoped and locked look-ups,
the append-only reconciliation ledger, status history tracking and
idempotency-key look-up.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import (
        Order,
        OrderStatusHistory,
        ReconciliationEntry,
        ReconciliationRequest,
    )
    from modules.orders.reconciliation import Selection


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes OrderLine children, the reconciliation ledger
    and OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its lines atomically.

        ``data`` must include ``username``, ``supplier_name`` and ``lines``
        (list of dicts with ``medicine_id``, ``name``, ``quantity``,
        ``price``), and optionally ``notes``.
        """

    @abstractmethod
    def get_for_shop(self, id: str, username: str) -> Optional[Order]:
        """Retrieve a live order of the given shop with its relations."""

    @abstractmethod
    def get_for_update(self, id: str, username: str) -> Optional[Order]:
        """Same as ``get_for_shop`` but holding a row lock on the order."""

    @abstractmethod
    def list_for_shop(self, username: str) -> QuerySet[Order]:
        """All live orders of a shop, newest first."""

    @abstractmethod
    def list_actionable(self, username: str) -> QuerySet[Order]:
        """Orders that still need a reconciliation or a refund."""

    @abstractmethod
    def add_history(
        self,
        order_id: Any,
        old_status: Optional[str],
        new_status: str,
        operation: str,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""

    @abstractmethod
    def record_request(
        self,
        order_id: Any,
        operation: str,
        idempotency_key: Optional[str] = None,
    ) -> Optional[ReconciliationRequest]:
        """Store an applied reconciliation request.

        Returns ``None`` if another request already holds ``idempotency_key``.
        """

    @abstractmethod
    def get_request_by_idempotency_key(self, key: str) -> Optional[ReconciliationRequest]:
        """Retrieve a previously applied request by its idempotency key."""

    @abstractmethod
    def append_entries(
        self,
        order: Order,
        request: ReconciliationRequest,
        bucket: str,
        selections: Iterable[Selection],
    ) -> List[ReconciliationEntry]:
        """Append one ledger entry per selection to ``bucket``."""
