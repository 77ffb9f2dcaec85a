"""Reconciliation rules for supplier orders.

Pure functions over an order's lines and its reconciliation ledger; no
database access.  Lines need ``medicine_id`` and ``quantity``; entries
additionally carry a ``bucket``.  Medicine ids are compared as strings so
that request payloads (JSON keys) and model instances (UUIDs) match.

For every medicine ``m``::

    accepted(m) + cancelled(m) <= ordered(m)

where ``accepted`` sums the PARTIAL_ACCEPTED and ACCEPTED_REST buckets and
``cancelled`` sums PARTIAL_CANCELLED and CANCELLED_REST.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Sequence
from uuid import UUID

from modules.orders.constants import (
    ACCEPT_BUCKETS,
    ALL_BUCKETS,
    CANCEL_BUCKETS,
    Bucket,
    OrderStatus,
    StatusPolicy,
)
from modules.orders.exceptions import (
    InvalidReconciliationRequest,
    NoValidSelection,
    ReconciliationInvariantError,
)


class Selection(NamedTuple):
    """``quantity`` units of ``line`` picked for one bucket."""

    line: Any
    quantity: int

    @property
    def medicine_id(self) -> str:
        return str(self.line.medicine_id)


@dataclass(frozen=True)
class Totals:
    ordered: int
    accepted: int
    cancelled: int

    @property
    def classified(self) -> int:
        return self.accepted + self.cancelled

    @property
    def remaining(self) -> int:
        return self.ordered - self.classified


def ordered_by_medicine(lines: Iterable[Any]) -> Counter:
    ordered: Counter = Counter()
    for line in lines:
        ordered[str(line.medicine_id)] += line.quantity
    return ordered


def sum_by_medicine(entries: Iterable[Any], buckets: Iterable[str] = ALL_BUCKETS) -> Counter:
    """Total quantity per medicine across the given buckets."""
    wanted = set(buckets)
    sums: Counter = Counter()
    for entry in entries:
        if entry.bucket in wanted:
            sums[str(entry.medicine_id)] += entry.quantity
    return sums


def remaining_allowance(lines: Sequence[Any], entries: Iterable[Any]) -> Dict[str, int]:
    """Ordered quantity minus everything already classified, per medicine."""
    classified = sum_by_medicine(entries)
    return {
        medicine_id: ordered - classified[medicine_id]
        for medicine_id, ordered in ordered_by_medicine(lines).items()
    }


def totals(lines: Iterable[Any], entries: Iterable[Any]) -> Totals:
    entries = list(entries)
    return Totals(
        ordered=sum(line.quantity for line in lines),
        accepted=sum(sum_by_medicine(entries, ACCEPT_BUCKETS).values()),
        cancelled=sum(sum_by_medicine(entries, CANCEL_BUCKETS).values()),
    )


def derive_status(
    lines: Sequence[Any],
    entries: Iterable[Any],
    policy: str = StatusPolicy.DERIVED,
) -> str:
    """Status implied by the ledger.

    With ``StatusPolicy.PARTIAL_BUCKETS_ONLY`` only the two partial buckets
    are looked at and the order is never closed; this is the labelling used
    after partial operations by older deployments.
    """
    entries = list(entries)
    if policy == StatusPolicy.PARTIAL_BUCKETS_ONLY:
        buckets = {entry.bucket for entry in entries}
        if Bucket.PARTIAL_ACCEPTED in buckets:
            return OrderStatus.PARTIALLY_ACCEPTED
        if Bucket.PARTIAL_CANCELLED in buckets:
            return OrderStatus.PARTIALLY_CANCELLED
        return OrderStatus.PENDING

    t = totals(lines, entries)
    if t.classified < t.ordered:
        if t.accepted > 0:
            return OrderStatus.PARTIALLY_ACCEPTED
        if t.cancelled > 0:
            return OrderStatus.PARTIALLY_CANCELLED
        return OrderStatus.PENDING
    if t.accepted == t.ordered:
        return OrderStatus.ACCEPTED
    if t.cancelled == t.ordered:
        return OrderStatus.CANCELLED
    return OrderStatus.COMPLETED


def clean_quantities(requested: Mapping[Any, Any]) -> Dict[str, int]:
    """Validate a ``{medicine_id: quantity}`` request.

    Zero quantities are dropped.  Negative or non-integer quantities, and a
    request with nothing left, raise ``InvalidReconciliationRequest``.
    """
    if not isinstance(requested, Mapping):
        raise InvalidReconciliationRequest("Quantities must be a mapping of medicine id to quantity.")

    cleaned: Dict[str, int] = {}
    for medicine_id, raw in requested.items():
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise InvalidReconciliationRequest(
                f"Quantity for medicine {medicine_id} must be an integer."
            )
        if raw < 0:
            raise InvalidReconciliationRequest(
                f"Quantity for medicine {medicine_id} cannot be negative."
            )
        if raw == 0:
            continue
        key = _medicine_key(medicine_id)
        cleaned[key] = cleaned.get(key, 0) + raw

    if not cleaned:
        raise InvalidReconciliationRequest("At least one positive quantity is required.")
    return cleaned


def _medicine_key(medicine_id: Any) -> str:
    try:
        return str(UUID(str(medicine_id)))
    except ValueError:
        return str(medicine_id)


def select_within_allowance(
    lines: Sequence[Any],
    requested: Mapping[str, int],
    allowance: Mapping[str, int],
) -> List[Selection]:
    """Keep the requested lines that fit in the remaining allowance.

    Medicines not on the order, zero requests and requests above the
    allowance are dropped.  Raises ``NoValidSelection`` when nothing is
    left.  Selections follow line order.
    """
    selected = []
    for line in lines:
        medicine_id = str(line.medicine_id)
        quantity = requested.get(medicine_id, 0)
        if quantity <= 0 or quantity > allowance.get(medicine_id, 0):
            continue
        selected.append(Selection(line=line, quantity=quantity))

    if not selected:
        raise NoValidSelection("No requested quantity fits the remaining order quantity.")
    return selected


def rest_of(lines: Sequence[Any], allowance: Mapping[str, int]) -> List[Selection]:
    """Every line with something left, at its full remaining quantity."""
    return [
        Selection(line=line, quantity=allowance[str(line.medicine_id)])
        for line in lines
        if allowance.get(str(line.medicine_id), 0) > 0
    ]


def check_invariant(lines: Sequence[Any], entries: Iterable[Any]) -> None:
    """Raise ``ReconciliationInvariantError`` if any medicine is over-classified."""
    ordered = ordered_by_medicine(lines)
    for medicine_id, classified in sum_by_medicine(entries).items():
        if classified > ordered.get(medicine_id, 0):
            raise ReconciliationInvariantError(
                f"Medicine {medicine_id}: {classified} classified, "
                f"{ordered.get(medicine_id, 0)} ordered."
            )
