"""Medicine / inventory domain exceptions.

Raised by the Service Layer and the Inventory Ledger.  The API layer
(Views) catches these and translates them into HTTP responses.
"""

from __future__ import annotations


class MedicineNotFound(Exception):
    """The medicine does not exist, was soft-deleted, or belongs to another shop."""


class InsufficientStock(Exception):
    """A decrement asked for more units than are currently in stock."""


class InvalidQuantity(ValueError):
    """A ledger movement was requested with a quantity below 1."""
