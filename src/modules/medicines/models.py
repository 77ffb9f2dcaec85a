"""Medicine model: one stock counter per medicine per shop.

Business rules implemented:
- A medicine belongs to exactly one shop (``username``).
- ``quantity`` is never negative; it changes only through the
  ``InventoryLedger`` (atomic increment / conditional decrement).
- ``price`` is non-negative; orders snapshot it at placement time, so later
  price changes never alter past order lines.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)


class Medicine(SoftDeleteModel):
    """Medicine stocked by a shop."""

    username = models.CharField(max_length=150, db_index=True)
    name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=0)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    class Meta:
        db_table = "medicines"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["username", "name"], name="medicines_shop_name_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="medicines_price_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name="medicines_quantity_non_negative",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.name:
            self.name = self.name.strip()
        if self.price is not None and self.price < 0:
            raise ValidationError({"price": "Price cannot be negative."})

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.name:
            self.name = self.name.strip()
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "medicine_created",
                medicine_id=str(self.id),
                shop=self.username,
                name=self.name,
            )

    def __str__(self) -> str:
        return f"{self.name} ({self.quantity})"
