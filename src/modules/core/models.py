"""Abstract bases shared by catalog, cart and order tables, plus the outbox.

Every table gets a time-ordered UUIDv7 key so rows sort by insertion even
when two of them share a ``created_at`` value (order history relies on it).
Catalog rows and orders are never physically removed by the storefront:
``delete()`` only stamps ``deleted_at`` and readers go through ``alive()``.
"""

from __future__ import annotations

from datetime import datetime

import uuid6
from django.db import models
from django.utils import timezone


class BaseModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        # auto_now is skipped by partial saves unless named explicitly.
        fields = kwargs.get("update_fields")
        if fields is not None and "updated_at" not in fields:
            kwargs["update_fields"] = [*fields, "updated_at"]
        super().save(*args, **kwargs)


class SoftDeleteQuerySet(models.QuerySet):
    def alive(self) -> SoftDeleteQuerySet:
        return self.filter(deleted_at__isnull=True)

    def dead(self) -> SoftDeleteQuerySet:
        return self.filter(deleted_at__isnull=False)

    def deleted_before(self, cutoff: datetime) -> SoftDeleteQuerySet:
        """Rows marked deleted before *cutoff*, for the external purge job."""
        return self.dead().filter(deleted_at__lt=cutoff)

    def delete(self) -> tuple[int, dict[str, int]]:
        """Stamp ``deleted_at`` on every live row of the queryset."""
        stamp = timezone.now()
        marked = self.alive().update(deleted_at=stamp, updated_at=stamp)
        return marked, {self.model._meta.label: marked}


class SoftDeleteModel(BaseModel):
    """Base for rows that are retired instead of removed.

    The default manager is unfiltered, so snapshots and admin
    look-ups can still reach retired rows; storefront reads call
    ``objects.alive()``.  ``hard_delete()`` is the only physical removal.
    """

    deleted_at = models.DateTimeField(null=True, blank=True, default=None, db_index=True)

    objects = models.Manager.from_queryset(SoftDeleteQuerySet)()

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

    def hard_delete(self, using=None, keep_parents=False) -> tuple[int, dict[str, int]]:
        return super().delete(using=using, keep_parents=keep_parents)


class EventStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PUBLISHED = "PUBLISHED", "Published"
    FAILED = "FAILED", "Failed"


class OutboxQuerySet(models.QuerySet):
    def deliverable(self, max_retries: int) -> OutboxQuerySet:
        """Oldest first: pending rows and failed rows with attempts left."""
        retryable = models.Q(status=EventStatus.FAILED, retry_count__lt=max_retries)
        return self.filter(models.Q(status=EventStatus.PENDING) | retryable).order_by(
            "created_at"
        )


class OutboxEvent(BaseModel):
    """Serialized order event awaiting relay to the in-process bus.

    Written by the order repository inside the checkout or status-change
    transaction; a rollback therefore discards the event with the change.
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
