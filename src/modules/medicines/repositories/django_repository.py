"""Django ORM implementation of the Medicine repository.

Error handling follows the Null Object pattern: look-ups return ``None``
(and stock movements return ``False``) instead of raising; the ledger
and services decide how to translate a miss into a domain exception.

Stock movements are single ``UPDATE`` statements built on ``F()``
expressions, so concurrent increments of the same medicine never lose an
update and a decrement can never drive the counter below zero.
"""

from __future__ import annotations

from typing import Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from modules.medicines.models import Medicine
from modules.medicines.repositories.interfaces import IMedicineRepository

logger = structlog.get_logger(__name__)


class MedicineDjangoRepository(IMedicineRepository):
    """Concrete Medicine repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Medicine]:
        """Retrieve a live medicine by primary key.

        Returns ``None`` for non-existent, deleted or invalid IDs.
        """
        try:
            return Medicine.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_shop(self, id: str, username: str) -> Optional[Medicine]:
        try:
            return Medicine.objects.alive().filter(id=id, username=username).first()
        except (ValueError, ValidationError):
            return None

    def list_for_shop(self, username: str) -> "QuerySet[Medicine]":
        return Medicine.objects.alive().filter(username=username)

    @transaction.atomic
    def save(self, entity: Medicine) -> Medicine:
        entity.save()
        logger.info("medicine.saved", medicine_id=str(entity.id), shop=entity.username)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Soft-delete a medicine by ID."""
        medicine = self.get_by_id(id)
        if not medicine:
            return False
        medicine.delete()
        logger.info("medicine.soft_deleted", medicine_id=str(id))
        return True

    # ------------------------------------------------------------------
    # Stock movements
    # ------------------------------------------------------------------

    def increment_stock(self, id: str, quantity: int) -> bool:
        # Receipts also land on retired medicines: open orders may still list them.
        try:
            updated = Medicine.objects.filter(id=id).update(
                quantity=F("quantity") + quantity,
                updated_at=timezone.now(),
            )
        except (ValueError, ValidationError):
            return False
        return updated == 1

    def decrement_stock(self, id: str, quantity: int) -> bool:
        try:
            updated = (
                Medicine.objects.alive()
                .filter(id=id, quantity__gte=quantity)
                .update(
                    quantity=F("quantity") - quantity,
                    updated_at=timezone.now(),
                )
            )
        except (ValueError, ValidationError):
            return False
        return updated == 1
