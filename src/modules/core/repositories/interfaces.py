"""Generic repository interface (Dependency Inversion Principle).

``IRepository[T]`` is the contract shared by the medicine and order
repositories; each module's interface adds the look-ups its services
need.  Service-layer code depends on these abstractions, never on the
Django ORM directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract.

    ``T`` is the aggregate managed by the repository (``Medicine``,
    ``Order``).
    """

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist (create or update) an entity."""
