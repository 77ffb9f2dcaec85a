"""Order domain exceptions.

Raised by the Service Layer and the reconciliation rules when business
rules are violated.  The API layer (Views) catches these and translates
them into appropriate HTTP responses.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The order does not exist, was soft-deleted, or belongs to another shop."""


class InvalidOrder(Exception):
    """An order could not be placed (unknown medicine, bad supplier...)."""


class InvalidOrderStatus(Exception):
    """The operation is not allowed in the order's current status."""


class InvalidReconciliationRequest(Exception):
    """The quantities map is malformed, negative or empty, or an
    idempotency key was reused for a different request."""


class NoValidSelection(Exception):
    """Every requested line was dropped: unknown medicine, zero quantity or
    above the remaining allowance."""


class ConcurrencyConflict(Exception):
    """The order version does not match the version the caller last read."""


class ReconciliationInvariantError(Exception):
    """A medicine would be classified beyond its ordered quantity."""
