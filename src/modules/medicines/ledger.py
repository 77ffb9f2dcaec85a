"""Inventory Ledger.

Owns every change to ``Medicine.quantity``:

- ``increment``: goods physically received from a supplier.
- ``decrement``: stock consumed (dispensing / billing); rejected with
  ``InsufficientStock`` when it would go below zero.
- ``receive``: many increments at once, aggregated per medicine and
  applied in medicine-id order so concurrent requests lock rows in the
  same sequence.

The ledger never opens its own transaction: callers (the reconciliation
service) wrap it together with the order write in ``transaction.atomic``,
so a failed movement rolls the whole request back.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Iterable, Tuple
from uuid import UUID

import structlog

from modules.medicines.exceptions import (
    InsufficientStock,
    InvalidQuantity,
    MedicineNotFound,
)

if TYPE_CHECKING:
    from modules.medicines.repositories.interfaces import IMedicineRepository

logger = structlog.get_logger(__name__)


class InventoryLedger:
    def __init__(self, repository: IMedicineRepository) -> None:
        self._repo = repository

    def increment(self, medicine_id: UUID | str, quantity: int) -> None:
        """Add ``quantity`` units to stock.

        Raises:
            InvalidQuantity: ``quantity`` is below 1.
            MedicineNotFound: no medicine row with this id.
        """
        _require_positive(quantity)
        if not self._repo.increment_stock(str(medicine_id), quantity):
            raise MedicineNotFound(f"Medicine {medicine_id} not found.")
        logger.info(
            "inventory.stock_incremented",
            medicine_id=str(medicine_id),
            quantity=quantity,
        )

    def decrement(self, medicine_id: UUID | str, quantity: int) -> None:
        """Remove ``quantity`` units from stock.

        Raises:
            InvalidQuantity: ``quantity`` is below 1.
            MedicineNotFound: no live medicine with this id.
            InsufficientStock: fewer than ``quantity`` units in stock.
        """
        _require_positive(quantity)
        if self._repo.decrement_stock(str(medicine_id), quantity):
            logger.info(
                "inventory.stock_decremented",
                medicine_id=str(medicine_id),
                quantity=quantity,
            )
            return

        medicine = self._repo.get_by_id(str(medicine_id))
        if medicine is None:
            raise MedicineNotFound(f"Medicine {medicine_id} not found.")
        logger.warning(
            "inventory.insufficient_stock",
            medicine_id=str(medicine_id),
            requested=quantity,
            available=medicine.quantity,
        )
        raise InsufficientStock(
            f"{medicine.name}: requested {quantity}, available {medicine.quantity}."
        )

    def receive(self, items: Iterable[Tuple[UUID | str, int]]) -> None:
        """Increment stock for every ``(medicine_id, quantity)`` pair."""
        totals: Counter = Counter()
        for medicine_id, quantity in items:
            _require_positive(quantity)
            totals[str(medicine_id)] += quantity
        for medicine_id in sorted(totals):
            self.increment(medicine_id, totals[medicine_id])


def _require_positive(quantity: int) -> None:
    if quantity < 1:
        raise InvalidQuantity(f"Stock movements need a quantity of at least 1, got {quantity}.")
