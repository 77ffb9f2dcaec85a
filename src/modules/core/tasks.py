"""Outbox publisher."""

import structlog
from celery import shared_task
from django.conf import settings

from modules.core.models import OutboxEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int = 100):
    """Dispatch deliverable outbox rows on the in-process event bus.

    Rows that cannot be rebuilt, or whose handlers raise, are marked failed
    and picked up again on a later run until ``OUTBOX_MAX_RETRIES`` is spent.
    """
    published = 0
    failed = 0

    batch = OutboxEvent.objects.deliverable(settings.OUTBOX_MAX_RETRIES)[:batch_size]
    for outbox_event in list(batch):
        log = logger.bind(
            outbox_id=str(outbox_event.id),
            event_type=outbox_event.event_type,
            order_id=outbox_event.aggregate_id,
        )
        try:
            event = event_bus.rebuild(outbox_event.event_type, outbox_event.payload)
            event_bus.publish(event)
        except Exception as exc:
            outbox_event.mark_as_failed(str(exc))
            log.error("outbox.publish_failed", error=str(exc), retry_count=outbox_event.retry_count)
            failed += 1
            continue
        outbox_event.mark_as_published()
        log.info("outbox.published")
        published += 1

    logger.info("outbox.batch_finished", published=published, failed=failed)
    return {"published": published, "failed": failed}
