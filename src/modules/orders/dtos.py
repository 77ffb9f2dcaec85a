"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``PlaceOrderItemDTO``: a single medicine line of a new supplier order.
- ``PlaceOrderDTO``: input for order placement (nested items).
- ``ReconcileQuantitiesDTO``: the ``{medicine_id: quantity}`` map of a
  partial accept / partial cancel request.
"""

from __future__ import annotations

from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, StrictInt, field_validator, model_validator

# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class PlaceOrderItemDTO(BaseModel):
    """Immutable DTO for a single line in a placement request.

    The client sends ``medicine_id`` and ``quantity``; name and price are
    snapshotted by the Service Layer from the shop's catalogue.
    """

    model_config = ConfigDict(frozen=True)

    medicine_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class PlaceOrderDTO(BaseModel):
    """Immutable DTO for order placement requests.

    Validates:
    - ``supplier_name`` must not be blank.
    - ``items`` must contain at least one item.
    - No medicine appears twice.
    """

    model_config = ConfigDict(frozen=True)

    username: str
    supplier_name: str
    items: List[PlaceOrderItemDTO]
    notes: Optional[str] = ""

    @field_validator("supplier_name")
    @classmethod
    def supplier_name_must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Supplier name must not be empty.")
        return v.strip()

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[PlaceOrderItemDTO]
    ) -> List[PlaceOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_medicines(self):
        """Prevent duplicate medicine IDs in the same order."""
        medicine_ids = [item.medicine_id for item in self.items]
        if len(medicine_ids) != len(set(medicine_ids)):
            raise ValueError("Duplicate medicine IDs are not allowed in the same order.")
        return self


class ReconcileQuantitiesDTO(BaseModel):
    """Requested quantity per medicine id.

    Only the shape is checked here (integer values, keyed by medicine id);
    zero, negative and unknown entries are judged by the reconciliation
    rules against the order itself.
    """

    model_config = ConfigDict(frozen=True)

    quantities: Dict[str, StrictInt]
