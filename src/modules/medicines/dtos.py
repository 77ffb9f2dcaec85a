"""Medicine DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2, immutable
(``frozen=True``).

- ``CreateMedicineDTO``: input for adding a medicine to a shop.
- ``UpdateMedicineDTO``: partial update of catalogue fields.  Stock is not
  editable here; it moves only through the Inventory Ledger.
- ``StockMovementDTO``: quantity for a ledger movement.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator


class CreateMedicineDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    name: str
    price: Decimal
    quantity: int = 0

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip()

    @field_validator("price")
    @classmethod
    def price_must_not_be_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Price cannot be negative.")
        return v

    @field_validator("quantity")
    @classmethod
    def quantity_must_not_be_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Quantity cannot be negative.")
        return v


class UpdateMedicineDTO(BaseModel):
    """All fields are optional: only supplied fields are updated."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    price: Decimal | None = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Name must not be empty.")
        return v.strip() if v is not None else v

    @field_validator("price")
    @classmethod
    def price_must_not_be_negative(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative.")
        return v


class StockMovementDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v
