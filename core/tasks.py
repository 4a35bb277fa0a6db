import logging
import time

from celery import shared_task

from core.garmin_events import dispatch_event
from core.integration_models import GarminWebhookEvent
from core.utils.logging import safe_extra

logger = logging.getLogger(__name__)


@shared_task
def process_garmin_webhook(event_id: int):
    """
    Procesa un GarminWebhookEvent ya persistido.

    Fire-and-forget: sin reintentos ni orden garantizado. El resultado
    (contadores del handler) queda en `event.result` para auditoría.
    """
    t0 = time.monotonic()
    event = GarminWebhookEvent.objects.filter(pk=event_id).first()
    if event is None:
        logger.warning("garmin.webhook.task.event_missing", extra=safe_extra({"event_id": event_id}))
        return "MISSING"

    try:
        result = dispatch_event(event.event_type, event.payload_raw or {})
    except Exception as exc:
        event.mark_failed(str(exc))
        logger.exception("garmin.webhook.task.failed", extra=safe_extra({
            "event_id": event.pk,
            "event_type": event.event_type,
        }))
        return "FAILED"

    duration_ms = int((time.monotonic() - t0) * 1000)

    if result is None:
        event.mark_ignored(reason=f"no_handler:{event.event_type}")
        status = "ignored"
    else:
        event.mark_processed(result)
        status = "processed"

    logger.info("garmin.webhook.task.outcome", extra=safe_extra({
        "event_id": event.pk,
        "event_type": event.event_type,
        "garmin_user_id": event.garmin_user_id,
        "status": status,
        "result": result,
        "duration_ms": duration_ms,
    }))
    return status.upper()
