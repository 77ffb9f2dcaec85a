"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` to ensure
the Order aggregate (Order + lines + ledger entries) is persisted
atomically.

Reconciliation reads the order with ``select_for_update()`` so that two
requests against the same order are applied one after the other.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import QuerySet

from modules.core.models import OutboxEvent
from modules.orders.models import (
    Order,
    OrderLine,
    OrderStatusHistory,
    ReconciliationEntry,
    ReconciliationRequest,
)
from modules.orders.reconciliation import Selection
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_RELATIONS = ("lines", "entries", "status_history")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its lines atomically.

        ``data`` keys:
        - ``username``, ``supplier_name`` (required)
        - ``lines`` (required): list of dicts with ``medicine_id``,
          ``name``, ``quantity``, ``price``
        - ``notes`` (optional)
        """
        order = Order(
            username=data["username"],
            supplier_name=data["supplier_name"],
            notes=data.get("notes", ""),
        )
        order.save()

        lines = data.get("lines", [])
        OrderLine.objects.bulk_create(
            [
                OrderLine(
                    order=order,
                    medicine_id=line["medicine_id"],
                    name=line["name"],
                    quantity=line["quantity"],
                    price=line["price"],
                    position=position,
                )
                for position, line in enumerate(lines)
            ]
        )

        logger.info("order.created", order_id=str(order.id), line_count=len(lines))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_for_shop(self, id: str, username: str) -> Optional[Order]:
        try:
            return (
                Order.objects.for_shop(username)
                .prefetch_related(*_RELATIONS)
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str, username: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Lines and ledger entries are loaded while the row is locked, so
        the caller works on a consistent snapshot.  Returns ``None`` for
        non-existent, foreign or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .for_shop(username)
                .prefetch_related(*_RELATIONS)
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list_for_shop(self, username: str) -> QuerySet[Order]:
        return Order.objects.for_shop(username).prefetch_related(*_RELATIONS)

    def list_actionable(self, username: str) -> QuerySet[Order]:
        return self.list_for_shop(username).actionable()

    # ------------------------------------------------------------------
    # Save (IRepository contract)
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and move its pending domain events to the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=_serialize_event_payload(event),
                topic="orders",
            )
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    # ------------------------------------------------------------------
    # Order-specific writes
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        order_id: Any,
        old_status: Optional[str],
        new_status: str,
        operation: str,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            operation=operation,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
            operation=operation,
        )
        return history

    def record_request(
        self,
        order_id: Any,
        operation: str,
        idempotency_key: Optional[str] = None,
    ) -> Optional[ReconciliationRequest]:
        """Returns ``None`` when ``idempotency_key`` is already taken."""
        try:
            with transaction.atomic():
                return ReconciliationRequest.objects.create(
                    order_id=order_id,
                    operation=operation,
                    idempotency_key=idempotency_key,
                )
        except IntegrityError:
            logger.warning("order.idempotency_key_taken", key=idempotency_key)
            return None

    def get_request_by_idempotency_key(self, key: str) -> Optional[ReconciliationRequest]:
        return ReconciliationRequest.objects.filter(idempotency_key=key).first()

    @transaction.atomic
    def append_entries(
        self,
        order: Order,
        request: ReconciliationRequest,
        bucket: str,
        selections: Iterable[Selection],
    ) -> List[ReconciliationEntry]:
        entries = [
            ReconciliationEntry(
                order=order,
                request=request,
                bucket=bucket,
                medicine_id=selection.line.medicine_id,
                name=selection.line.name,
                quantity=selection.quantity,
                price=selection.line.price,
            )
            for selection in selections
        ]
        for entry in entries:
            entry.save()
        logger.info(
            "order.entries_appended",
            order_id=str(order.id),
            bucket=bucket,
            entry_count=len(entries),
        )
        return entries


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
