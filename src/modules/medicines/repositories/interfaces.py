"""Medicine repository interface.

Extends ``IRepository[Medicine]`` with look-ups, soft delete and the two
atomic stock movements the Inventory Ledger is built on.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from django.db import models

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.medicines.models import Medicine


class IMedicineRepository(IRepository["Medicine"]):
    """Repository contract for the Medicine aggregate."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Medicine]:
        """Retrieve a live medicine by primary key, whatever its shop."""

    @abstractmethod
    def get_for_shop(self, id: str, username: str) -> Optional[Medicine]:
        """Retrieve a live medicine only if it belongs to ``username``."""

    @abstractmethod
    def list_for_shop(self, username: str) -> "models.QuerySet[Medicine]":
        """Live medicines of one shop, as a queryset so views can filter it."""

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Soft-delete a medicine.  Returns ``False`` if it was not found."""

    @abstractmethod
    def increment_stock(self, id: str, quantity: int) -> bool:
        """Atomically add ``quantity`` units.

        Soft-deleted medicines are still credited.  Returns ``False`` if no
        medicine row matched.
        """

    @abstractmethod
    def decrement_stock(self, id: str, quantity: int) -> bool:
        """Atomically remove ``quantity`` units if at least that many exist.

        Returns ``False`` if no live medicine matched or stock was short.
        """
