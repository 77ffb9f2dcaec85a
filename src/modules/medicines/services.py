"""Medicine service layer (Use Cases).

Catalogue maintenance for a shop's medicines, delegating persistence to
the injected ``IMedicineRepository`` and stock movements to the
``InventoryLedger``.  Every look-up is scoped to the calling shop: a
medicine of another shop is reported as ``MedicineNotFound``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from django.db import transaction

from modules.medicines.exceptions import MedicineNotFound
from modules.medicines.ledger import InventoryLedger
from modules.medicines.models import Medicine

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.medicines.dtos import (
        CreateMedicineDTO,
        StockMovementDTO,
        UpdateMedicineDTO,
    )
    from modules.medicines.repositories.interfaces import IMedicineRepository

logger = structlog.get_logger(__name__)


class MedicineService:
    """Application service for Medicine use-cases."""

    def __init__(self, repository: IMedicineRepository) -> None:
        self._repo = repository
        self._ledger = InventoryLedger(repository)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_medicine(self, dto: CreateMedicineDTO) -> Medicine:
        medicine = Medicine(
            username=dto.username,
            name=dto.name,
            price=dto.price,
            quantity=dto.quantity,
        )
        medicine = self._repo.save(medicine)
        logger.info("medicine.created", medicine_id=str(medicine.id), shop=dto.username)
        return medicine

    @transaction.atomic
    def update_medicine(self, id: str, username: str, dto: UpdateMedicineDTO) -> Medicine:
        """Update name and/or price.

        Orders already placed keep their snapshot of the old values.

        Raises:
            MedicineNotFound: missing or owned by another shop.
        """
        medicine = self.get_medicine(id, username)
        for field in ("name", "price"):
            value = getattr(dto, field)
            if value is not None:
                setattr(medicine, field, value)
        medicine = self._repo.save(medicine)
        logger.info("medicine.updated", medicine_id=str(id))
        return medicine

    @transaction.atomic
    def consume(self, id: str, username: str, dto: StockMovementDTO) -> Medicine:
        """Take units out of stock (e.g. dispensed against a bill).

        Raises:
            MedicineNotFound: missing or owned by another shop.
            InsufficientStock: not enough units on hand.
        """
        self.get_medicine(id, username)
        self._ledger.decrement(id, dto.quantity)
        return self.get_medicine(id, username)

    @transaction.atomic
    def delete_medicine(self, id: str, username: str) -> None:
        self.get_medicine(id, username)
        self._repo.delete(id)
        logger.info("medicine.deleted", medicine_id=str(id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_medicine(self, id: str, username: str) -> Medicine:
        """Raises ``MedicineNotFound`` if missing or owned by another shop."""
        medicine = self._repo.get_for_shop(id, username)
        if not medicine:
            raise MedicineNotFound(f"Medicine {id} not found.")
        return medicine

    def list_medicines(self, username: str) -> "QuerySet[Medicine]":
        return self._repo.list_for_shop(username)
