"""Order service layer (Use Cases).

Orchestrates supplier order placement, reconciliation of delivered goods
and refund tracking.  All write operations are atomic: the service
defines the unit-of-work boundary, so a failed stock movement rolls the
order mutation back with it.

Business rules enforced:
- Orders are placed only for medicines of the caller's shop; each line
  snapshots the medicine name and price.
- Per medicine, accepted + cancelled never exceeds the ordered quantity.
- Accepted quantities are added to stock through the Inventory Ledger;
  cancelled quantities never touch stock.
- Closed orders (ACCEPTED, CANCELLED, COMPLETED) take no further entries.
- Every status change is recorded in the order history.
- Every mutation bumps ``Order.version``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional

import structlog
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction

from modules.medicines.ledger import InventoryLedger
from modules.orders.constants import (
    ACCEPT_BUCKETS,
    OPERATION_BUCKET,
    PARTIAL_OPERATIONS,
    Operation,
    OrderStatus,
    StatusPolicy,
)
from modules.orders.events import (
    OrderCancelled,
    OrderPlaced,
    OrderReconciled,
    OrderStatusChanged,
    RefundRecorded,
)
from modules.orders.exceptions import (
    ConcurrencyConflict,
    InvalidOrder,
    InvalidOrderStatus,
    InvalidReconciliationRequest,
    OrderNotFound,
)
from modules.orders.reconciliation import (
    check_invariant,
    clean_quantities,
    derive_status,
    remaining_allowance,
    rest_of,
    select_within_allowance,
)

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.medicines.repositories.interfaces import IMedicineRepository
    from modules.orders.dtos import PlaceOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for placing, reading and refunding orders.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        medicine_repository: IMedicineRepository,
    ) -> None:
        self._order_repo = order_repository
        self._medicine_repo = medicine_repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def place_order(self, dto: PlaceOrderDTO) -> Order:
        """Place a supplier order.

        Stock is untouched until goods are accepted.

        Raises:
            InvalidOrder: a medicine does not exist in the caller's shop.
        """
        log = logger.bind(shop=dto.username, supplier=dto.supplier_name)
        log.info("order.placement_started", line_count=len(dto.items))

        lines = []
        for item in dto.items:
            medicine = self._medicine_repo.get_for_shop(str(item.medicine_id), dto.username)
            if not medicine:
                raise InvalidOrder(f"Medicine {item.medicine_id} not found.")
            lines.append(
                {
                    "medicine_id": medicine.id,
                    "name": medicine.name,
                    "quantity": item.quantity,
                    "price": medicine.price,
                }
            )

        order = self._order_repo.create(
            {
                "username": dto.username,
                "supplier_name": dto.supplier_name,
                "lines": lines,
                "notes": dto.notes or "",
            }
        )
        order.add_domain_event(
            OrderPlaced(
                aggregate_id=order.id,
                order_number=order.order_number,
                username=order.username,
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            old_status=None,
            new_status=OrderStatus.PENDING,
            operation=Operation.PLACE,
            notes="Order placed",
        )

        log.info("order.placed", order_id=str(order.id), order_number=order.order_number)
        return self._order_repo.get_for_shop(str(order.id), dto.username) or order

    def mark_refund_received(self, order_id: str, username: str) -> Order:
        return self._set_refund_flag(order_id, username, "refund_received")

    def mark_partial_refund_received(self, order_id: str, username: str) -> Order:
        return self._set_refund_flag(order_id, username, "partial_refund_received")

    def mark_full_refund_received(self, order_id: str, username: str) -> Order:
        return self._set_refund_flag(order_id, username, "full_refund_received")

    @transaction.atomic
    def _set_refund_flag(self, order_id: str, username: str, flag: str) -> Order:
        """Set one refund flag.  Allowed in any status; a flag that is
        already set is left alone and nothing is written."""
        order = self._order_repo.get_for_update(str(order_id), username)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), flag=flag)
        if getattr(order, flag):
            log.info("order.refund_already_recorded")
            return order

        setattr(order, flag, True)
        order.version += 1
        order.add_domain_event(RefundRecorded(aggregate_id=order.id, flag=flag))
        self._order_repo.save(order)
        log.info("order.refund_recorded")
        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str, username: str) -> Order:
        """Retrieve a single order of the caller's shop.

        Raises:
            OrderNotFound: if the order does not exist or is not the shop's.
        """
        order = self._order_repo.get_for_shop(str(order_id), username)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, username: str) -> QuerySet[Order]:
        return self._order_repo.list_for_shop(username)

    def list_actionable(self, username: str) -> QuerySet[Order]:
        """Orders the acceptance screen still has to show."""
        return self._order_repo.list_actionable(username)


class ReconciliationService:
    """Classifies delivered and undelivered goods of supplier orders.

    Each public method is one unit of work:

    1. Lock the order row (``SELECT ... FOR UPDATE``).
    2. Answer idempotent replays from the current state.
    3. Check the optional ``expected_version`` and the order status.
    4. Select quantities within the remaining allowance.
    5. Add accepted quantities to stock, append ledger entries.
    6. Recompute the status, bump the version, record history and events.

    ``status_policy`` (default ``settings.ORDER_STATUS_POLICY``) decides how
    partial operations label the order; rest operations and ``accept_all``
    always derive the status from all four buckets.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        medicine_repository: IMedicineRepository,
        status_policy: Optional[str] = None,
    ) -> None:
        self._order_repo = order_repository
        self._ledger = InventoryLedger(medicine_repository)
        policy = status_policy or getattr(settings, "ORDER_STATUS_POLICY", StatusPolicy.DERIVED)
        if policy not in StatusPolicy.values:
            raise ImproperlyConfigured(f"Unknown ORDER_STATUS_POLICY {policy!r}.")
        self._status_policy = policy

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def accept_all(
        self,
        order_id: str,
        username: str,
        *,
        idempotency_key: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Accept everything not yet classified and receive it into stock."""
        return self._reconcile(
            order_id,
            username,
            Operation.ACCEPT_ALL,
            idempotency_key=idempotency_key,
            expected_version=expected_version,
        )

    def partial_accept(
        self,
        order_id: str,
        username: str,
        quantities: Mapping[Any, Any],
        *,
        idempotency_key: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Accept the requested quantities that fit, drop the rest.

        Raises:
            InvalidReconciliationRequest: malformed, negative or empty request.
            NoValidSelection: no requested line fits the remaining quantity.
        """
        return self._reconcile(
            order_id,
            username,
            Operation.PARTIAL_ACCEPT,
            quantities=quantities,
            idempotency_key=idempotency_key,
            expected_version=expected_version,
        )

    def partial_cancel(
        self,
        order_id: str,
        username: str,
        quantities: Mapping[Any, Any],
        *,
        idempotency_key: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        return self._reconcile(
            order_id,
            username,
            Operation.PARTIAL_CANCEL,
            quantities=quantities,
            idempotency_key=idempotency_key,
            expected_version=expected_version,
        )

    def accept_rest(
        self,
        order_id: str,
        username: str,
        *,
        idempotency_key: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Accept every remaining quantity.  A no-op on a closed order."""
        return self._reconcile(
            order_id,
            username,
            Operation.ACCEPT_REST,
            idempotency_key=idempotency_key,
            expected_version=expected_version,
        )

    def cancel_rest(
        self,
        order_id: str,
        username: str,
        *,
        idempotency_key: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Cancel every remaining quantity.  A no-op on a closed order."""
        return self._reconcile(
            order_id,
            username,
            Operation.CANCEL_REST,
            idempotency_key=idempotency_key,
            expected_version=expected_version,
        )

    @transaction.atomic
    def cancel_all(
        self,
        order_id: str,
        username: str,
        *,
        idempotency_key: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Cancel the whole order in one step.

        No ledger entries are written and stock is untouched, whatever was
        classified before.  An already cancelled order is returned as is.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is ACCEPTED or COMPLETED.
            ConcurrencyConflict: ``expected_version`` is stale.
        """
        order = self._lock(order_id, username)
        log = logger.bind(order_id=str(order.id), operation=Operation.CANCEL_ALL)

        if self._is_replay(order, Operation.CANCEL_ALL, idempotency_key):
            log.info("order.idempotency_hit", key=idempotency_key)
            return order
        self._check_version(order, expected_version)

        if order.status == OrderStatus.CANCELLED:
            log.info("order.already_cancelled")
            return order
        if order.is_closed:
            log.warning("order.cancel_not_allowed", current_status=order.status)
            raise InvalidOrderStatus(f"Cannot cancel order in status {order.status}.")

        self._record_request(order, Operation.CANCEL_ALL, idempotency_key)
        order.add_domain_event(OrderCancelled(aggregate_id=order.id))
        self._apply_status(order, OrderStatus.CANCELLED, Operation.CANCEL_ALL)

        log.info("order.cancelled")
        return self._reload(order, username)

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @transaction.atomic
    def _reconcile(
        self,
        order_id: str,
        username: str,
        operation: str,
        quantities: Optional[Mapping[Any, Any]] = None,
        idempotency_key: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        order = self._lock(order_id, username)
        log = logger.bind(order_id=str(order.id), operation=operation)

        if self._is_replay(order, operation, idempotency_key):
            log.info("order.idempotency_hit", key=idempotency_key)
            return order
        self._check_version(order, expected_version)

        if order.is_closed:
            if operation in (Operation.ACCEPT_REST, Operation.CANCEL_REST):
                log.info("order.already_closed", current_status=order.status)
                return order
            log.warning("order.reconcile_not_allowed", current_status=order.status)
            raise InvalidOrderStatus(
                f"Cannot apply {operation} to order in status {order.status}."
            )

        lines = list(order.lines.all())
        entries = list(order.entries.all())
        allowance = remaining_allowance(lines, entries)

        if operation in PARTIAL_OPERATIONS:
            requested = clean_quantities(quantities or {})
            selections = select_within_allowance(lines, requested, allowance)
            policy = self._status_policy
        else:
            selections = rest_of(lines, allowance)
            policy = StatusPolicy.DERIVED

        bucket = OPERATION_BUCKET[operation]
        request = self._record_request(order, operation, idempotency_key)
        new_entries = []
        if selections:
            if bucket in ACCEPT_BUCKETS:
                self._ledger.receive(
                    (selection.line.medicine_id, selection.quantity)
                    for selection in selections
                )
            new_entries = self._order_repo.append_entries(order, request, bucket, selections)
            check_invariant(lines, entries + new_entries)
            order.add_domain_event(
                OrderReconciled(
                    aggregate_id=order.id,
                    operation=operation,
                    bucket=bucket,
                    quantities={s.medicine_id: s.quantity for s in selections},
                )
            )

        new_status = derive_status(lines, entries + new_entries, policy)
        self._apply_status(order, new_status, operation)

        log.info(
            "order.reconciled",
            bucket=bucket,
            line_count=len(selections),
            status=new_status,
        )
        return self._reload(order, username)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, order_id: str, username: str) -> Order:
        order = self._order_repo.get_for_update(str(order_id), username)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def _is_replay(self, order: Order, operation: str, idempotency_key: Optional[str]) -> bool:
        """``True`` if this key was already applied to the same order and
        operation.  A key reused for anything else is rejected."""
        if not idempotency_key:
            return False
        previous = self._order_repo.get_request_by_idempotency_key(idempotency_key)
        if previous is None:
            return False
        if previous.order_id != order.id or previous.operation != operation:
            raise InvalidReconciliationRequest(
                "Idempotency key was already used for a different request."
            )
        return True

    def _record_request(
        self, order: Order, operation: str, idempotency_key: Optional[str]
    ) -> ReconciliationRequest:
        # Keys are global, so a request on another order can claim the key
        # between the replay check and this insert.
        request = self._order_repo.record_request(order.id, operation, idempotency_key)
        if request is None:
            raise InvalidReconciliationRequest(
                "Idempotency key was already used for a different request."
            )
        return request

    @staticmethod
    def _check_version(order: Order, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != order.version:
            logger.warning(
                "order.version_conflict",
                order_id=str(order.id),
                expected=expected_version,
                actual=order.version,
            )
            raise ConcurrencyConflict(
                f"Order {order.order_number} is at version {order.version}, "
                f"not {expected_version}."
            )

    def _apply_status(self, order: Order, new_status: str, operation: str) -> None:
        old_status = order.status
        order.status = new_status
        order.version += 1
        if old_status != new_status:
            order.add_domain_event(
                OrderStatusChanged(
                    aggregate_id=order.id,
                    old_status=old_status,
                    new_status=new_status,
                )
            )
        self._order_repo.save(order)
        if old_status != new_status:
            self._order_repo.add_history(
                order_id=order.id,
                old_status=old_status,
                new_status=new_status,
                operation=operation,
            )

    def _reload(self, order: Order, username: str) -> Order:
        return self._order_repo.get_for_shop(str(order.id), username) or order
