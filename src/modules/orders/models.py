"""Order, OrderLine, reconciliation ledger and status history models.

Business rules implemented:
- An order belongs to exactly one shop (``username``) and one supplier.
- ``OrderLine`` snapshots the medicine name and price at placement time and
  is never changed afterwards; one line per medicine per order.
- Accepted and cancelled quantities live in one append-only ledger of
  ``ReconciliationEntry`` rows tagged with a bucket.  The four buckets are
  read as filters of that ledger.
- Every applied reconciliation request is recorded once
  (``ReconciliationRequest``), keyed by the optional idempotency key.
- Each status change generates an ``OrderStatusHistory`` record.
- ``version`` is bumped on every mutation (optimistic concurrency token).
- Order number auto-generated as human-readable identifier.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any, List

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, SoftDeleteModel, SoftDeleteQuerySet
from modules.orders.constants import (
    CLOSED_STATES,
    OPEN_STATES,
    ORDER_NUMBER_MAX_RETRIES,
    Bucket,
    Operation,
    OrderStatus,
)
from shared.domain.events import DomainEventMixin


class OrderQuerySet(SoftDeleteQuerySet):
    def for_shop(self, username: str) -> OrderQuerySet:
        return self.alive().filter(username=username)

    def actionable(self) -> OrderQuerySet:
        """Open orders, plus cancelled or completed orders still waiting for
        the partial or the full refund."""
        refund_outstanding = models.Q(partial_refund_received=False) | models.Q(
            full_refund_received=False
        )
        return self.filter(
            models.Q(status__in=OPEN_STATES)
            | (
                models.Q(status__in=[OrderStatus.CANCELLED, OrderStatus.COMPLETED])
                & refund_outstanding
            )
        )


class Order(DomainEventMixin, SoftDeleteModel):
    """Supplier order aggregate root.

    ``order_number`` is a human-readable identifier auto-generated on first
    save (format: ``PO-YYYYMMDD-XXXXXX``).  The UUIDv7 ``id`` is used for
    all internal references and API lookups.
    """

    order_number: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    username: models.CharField = models.CharField(max_length=150, db_index=True)
    supplier_name: models.CharField = models.CharField(max_length=255)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    refund_received: models.BooleanField = models.BooleanField(default=False)
    partial_refund_received: models.BooleanField = models.BooleanField(default=False)
    full_refund_received: models.BooleanField = models.BooleanField(default=False)
    notes: models.TextField = models.TextField(blank=True, default="")
    version: models.PositiveIntegerField = models.PositiveIntegerField(default=1)

    objects = OrderQuerySet.as_manager()

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["username", "status"], name="orders_shop_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    @property
    def is_closed(self) -> bool:
        """``True`` once no further quantity can be classified."""
        return self.status in CLOSED_STATES

    # ------------------------------------------------------------------
    # Buckets (filters over the prefetched ledger)
    # ------------------------------------------------------------------

    def bucket(self, bucket: str) -> List[ReconciliationEntry]:
        return [entry for entry in self.entries.all() if entry.bucket == bucket]

    @property
    def partial_accepted(self) -> List[ReconciliationEntry]:
        return self.bucket(Bucket.PARTIAL_ACCEPTED)

    @property
    def accepted_rest(self) -> List[ReconciliationEntry]:
        return self.bucket(Bucket.ACCEPTED_REST)

    @property
    def partial_cancelled(self) -> List[ReconciliationEntry]:
        return self.bucket(Bucket.PARTIAL_CANCELLED)

    @property
    def cancelled_rest(self) -> List[ReconciliationEntry]:
        return self.bucket(Bucket.CANCELLED_REST)

    @property
    def total_amount(self) -> Decimal:
        return sum((line.subtotal for line in self.lines.all()), Decimal("0.00"))

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``PO-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"PO-{now:%Y%m%d}-{suffix}"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _attempt in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderLine(BaseModel):
    """One medicine requested from the supplier.

    ``name`` and ``price`` are **snapshots** of the medicine at the time the
    order was placed.  ``position`` keeps the order in which lines were
    entered.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="lines",
    )
    medicine: models.ForeignKey = models.ForeignKey(
        "medicines.Medicine",
        on_delete=models.PROTECT,
        related_name="order_lines",
    )
    name: models.CharField = models.CharField(max_length=255)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
    )
    price: models.DecimalField = models.DecimalField(max_digits=10, decimal_places=2)
    position: models.PositiveIntegerField = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "order_lines"
        ordering = ["position", "created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_lines_quantity_positive",
            ),
            models.UniqueConstraint(
                fields=["order", "medicine"],
                name="order_lines_unique_medicine",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.price

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"


class ReconciliationRequest(BaseModel):
    """One applied reconciliation request.

    ``idempotency_key`` is nullable: only requests sent with an
    ``Idempotency-Key`` header carry one.  A replayed key is answered from
    the current order state instead of being applied again.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="requests",
    )
    operation: models.CharField = models.CharField(
        max_length=20,
        choices=Operation.choices,
    )
    idempotency_key: models.CharField = models.CharField(  # noqa: DJ01
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "order_reconciliation_requests"
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.order_id} {self.operation}"


class ReconciliationEntry(BaseModel):
    """A quantity of one medicine classified into one bucket.

    Entries are append-only: saving an existing entry is rejected.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="entries",
    )
    request: models.ForeignKey = models.ForeignKey(
        "orders.ReconciliationRequest",
        on_delete=models.CASCADE,
        related_name="entries",
    )
    bucket: models.CharField = models.CharField(max_length=20, choices=Bucket.choices)
    medicine: models.ForeignKey = models.ForeignKey(
        "medicines.Medicine",
        on_delete=models.PROTECT,
        related_name="reconciliation_entries",
    )
    name: models.CharField = models.CharField(max_length=255)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
    )
    price: models.DecimalField = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = "order_reconciliation_entries"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "bucket"], name="ore_order_bucket_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="ore_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise ValidationError("Reconciliation entries cannot be modified.")
        super().save(*args, **kwargs)

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.price

    def __str__(self) -> str:
        return f"{self.bucket}: {self.name} x{self.quantity}"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status changes.

    Inherits ``BaseModel`` (not ``SoftDeleteModel``): audit records are
    never edited or soft-deleted.  ``old_status`` is ``None`` for the
    record written when the order is placed.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    operation: models.CharField = models.CharField(
        max_length=20,
        choices=Operation.choices,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
