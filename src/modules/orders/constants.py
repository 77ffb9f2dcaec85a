"""Order domain constants.

Defines the order statuses, the four reconciliation buckets, the
reconciliation operations and the status policies applied after partial
operations.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PARTIALLY_ACCEPTED = "PARTIALLY_ACCEPTED", "Partially accepted"
    ACCEPTED = "ACCEPTED", "Accepted"
    CANCELLED = "CANCELLED", "Cancelled"
    PARTIALLY_CANCELLED = "PARTIALLY_CANCELLED", "Partially cancelled"
    COMPLETED = "COMPLETED", "Completed"


class Bucket(models.TextChoices):
    PARTIAL_ACCEPTED = "PARTIAL_ACCEPTED", "Partially accepted"
    ACCEPTED_REST = "ACCEPTED_REST", "Accepted rest"
    PARTIAL_CANCELLED = "PARTIAL_CANCELLED", "Partially cancelled"
    CANCELLED_REST = "CANCELLED_REST", "Cancelled rest"


class Operation(models.TextChoices):
    PLACE = "PLACE", "Place order"
    ACCEPT_ALL = "ACCEPT_ALL", "Accept all"
    CANCEL_ALL = "CANCEL_ALL", "Cancel all"
    PARTIAL_ACCEPT = "PARTIAL_ACCEPT", "Partial accept"
    PARTIAL_CANCEL = "PARTIAL_CANCEL", "Partial cancel"
    ACCEPT_REST = "ACCEPT_REST", "Accept rest"
    CANCEL_REST = "CANCEL_REST", "Cancel rest"


class StatusPolicy(models.TextChoices):
    DERIVED = "derived", "Derived from all buckets"
    PARTIAL_BUCKETS_ONLY = "partial_buckets_only", "Partial buckets only"


OPEN_STATES: set[str] = {
    OrderStatus.PENDING,
    OrderStatus.PARTIALLY_ACCEPTED,
    OrderStatus.PARTIALLY_CANCELLED,
}

CLOSED_STATES: set[str] = {
    OrderStatus.ACCEPTED,
    OrderStatus.CANCELLED,
    OrderStatus.COMPLETED,
}

ACCEPT_BUCKETS: frozenset[str] = frozenset({Bucket.PARTIAL_ACCEPTED, Bucket.ACCEPTED_REST})
CANCEL_BUCKETS: frozenset[str] = frozenset({Bucket.PARTIAL_CANCELLED, Bucket.CANCELLED_REST})
ALL_BUCKETS: frozenset[str] = ACCEPT_BUCKETS | CANCEL_BUCKETS

OPERATION_BUCKET: dict[str, str] = {
    Operation.ACCEPT_ALL: Bucket.ACCEPTED_REST,
    Operation.PARTIAL_ACCEPT: Bucket.PARTIAL_ACCEPTED,
    Operation.PARTIAL_CANCEL: Bucket.PARTIAL_CANCELLED,
    Operation.ACCEPT_REST: Bucket.ACCEPTED_REST,
    Operation.CANCEL_REST: Bucket.CANCELLED_REST,
}

PARTIAL_OPERATIONS: set[str] = {Operation.PARTIAL_ACCEPT, Operation.PARTIAL_CANCEL}

ORDER_NUMBER_MAX_RETRIES = 5
