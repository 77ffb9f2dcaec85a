"""Shared model bases and the transactional outbox.

``BaseModel`` gives every table a time-ordered UUIDv7 key plus
``created_at`` / ``updated_at``.  ``SoftDeleteModel`` hides retired rows
(medicines, orders) behind a ``deleted_at`` stamp; ``objects`` stays
unfiltered, so reads that must skip retired rows go through ``.alive()``.

``OutboxEvent`` rows are written by the order repository inside the same
transaction as the mutation that raised them and drained by
``core.publish_outbox_events``.
"""

from __future__ import annotations

import uuid6
from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        # auto_now is skipped by Django when update_fields omits it.
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Soft delete
# ---------------------------------------------------------------------------


class SoftDeleteQuerySet(models.QuerySet):
    def alive(self) -> SoftDeleteQuerySet:
        return self.filter(deleted_at__isnull=True)

    def delete(self) -> tuple[int, dict[str, int]]:
        """Stamp ``deleted_at`` on every live row instead of removing it."""
        now = timezone.now()
        count = self.alive().update(deleted_at=now, updated_at=now)
        return count, {self.model._meta.label: count}


class SoftDeleteManager(models.Manager.from_queryset(SoftDeleteQuerySet)):
    pass


class SoftDeleteModel(BaseModel):
    """Row that is retired rather than removed.

    Retired medicines stay referenced by order lines and reconciliation
    entries, which keep their own name/price snapshots.
    """

    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        default=None,
        db_index=True,
    )

    objects = SoftDeleteManager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def delete(self, using=None, keep_parents=False) -> tuple[int, dict[str, int]]:
        if self.is_deleted:
            return 0, {}
        self.deleted_at = timezone.now()
        self.save(update_fields=["deleted_at"])
        return 1, {self._meta.label: 1}


# ---------------------------------------------------------------------------
# Transactional outbox
# ---------------------------------------------------------------------------


class EventStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PUBLISHED = "PUBLISHED", "Published"
    FAILED = "FAILED", "Failed"


class OutboxQuerySet(models.QuerySet):
    def pending(self) -> OutboxQuerySet:
        return self.filter(status=EventStatus.PENDING).order_by("created_at")

    def deliverable(self, max_retries: int) -> OutboxQuerySet:
        """Pending rows plus failed rows that still have retries left, oldest first."""
        return self.filter(
            models.Q(status=EventStatus.PENDING)
            | models.Q(status=EventStatus.FAILED, retry_count__lt=max_retries)
        ).order_by("created_at")


class OutboxEvent(BaseModel):
    """Domain event waiting to be dispatched.

    ``aggregate_id`` is the order id; ``topic`` groups events per module
    (``orders``).  A failed dispatch keeps the row with its error and bumps
    ``retry_count``; the publisher stops retrying at ``OUTBOX_MAX_RETRIES``.
    """

    event_type = models.CharField(max_length=100)
    payload = models.JSONField()
    aggregate_id = models.CharField(max_length=255)
    topic = models.CharField(max_length=100)
    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.PENDING,
    )
    processed_at = models.DateTimeField(null=True, blank=True, default=None)
    error_message = models.TextField(null=True, blank=True, default=None)  # noqa: DJ01
    retry_count = models.PositiveIntegerField(default=0)

    objects = OutboxQuerySet.as_manager()

    class Meta:
        db_table = "outbox_events"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["event_type"], name="outbox_event_type_idx"),
            models.Index(fields=["aggregate_id"], name="outbox_aggregate_id_idx"),
            models.Index(fields=["status", "created_at"], name="outbox_status_created_idx"),
        ]

    def mark_as_published(self) -> None:
        self.status = EventStatus.PUBLISHED
        self.processed_at = timezone.now()
        self.error_message = None
        self.save(update_fields=["status", "processed_at", "error_message"])

    def mark_as_failed(self, error: str) -> None:
        self.status = EventStatus.FAILED
        self.error_message = error
        self.retry_count += 1
        self.save(update_fields=["status", "error_message", "retry_count"])

    def __str__(self) -> str:
        return f"{self.event_type} [{self.status}] ({self.aggregate_id})"
