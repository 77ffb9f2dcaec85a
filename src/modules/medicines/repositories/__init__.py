"""Medicine repositories package."""

from modules.medicines.repositories.django_repository import MedicineDjangoRepository
from modules.medicines.repositories.interfaces import IMedicineRepository

__all__ = ["IMedicineRepository", "MedicineDjangoRepository"]
