"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int | None = None) -> dict:
    """Publish deliverable outbox rows on the in-process event bus.

    Rows are locked (``skip_locked``) so two workers never relay the same
    event.  A failing event is marked and retried on a later run until
    ``OUTBOX_MAX_RETRIES`` is reached.
    """
    batch_size = batch_size or settings.OUTBOX_RELAY_BATCH_SIZE
    published = failed = 0

    with transaction.atomic():
        rows = list(
            OutboxEvent.objects.deliverable(settings.OUTBOX_MAX_RETRIES)
            .select_for_update(skip_locked=True)[:batch_size]
        )
        for row in rows:
            log = logger.bind(outbox_id=str(row.id), event_type=row.event_type)
            try:
                event = DomainEvent.from_payload(row.event_type, row.payload)
                event_bus.publish(event)
            except Exception as exc:
                row.mark_as_failed(str(exc))
                failed += 1
                log.warning("outbox.relay_failed", error=str(exc))
                continue
            row.mark_as_published()
            published += 1

    logger.info("outbox.relay_completed", published=published, failed=failed)
    return {"published": published, "failed": failed}
