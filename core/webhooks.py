import hashlib
import json
import logging
import time

from django.conf import settings
from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from core.garmin_events import UNKNOWN, detect_event_type, extract_garmin_user_id
from core.integration_models import GarminWebhookEvent
from core.tasks import process_garmin_webhook
from core.utils.jsonable import to_jsonable
from core.utils.logging import safe_extra

logger = logging.getLogger(__name__)


def _body_preview(raw: bytes, limit: int = 2048) -> str:
    """Preview para logs: utf-8 con reemplazo."""
    if not raw:
        return ""
    return raw[:limit].decode("utf-8", errors="replace")


class GarminWebhookView(APIView):
    """
    Receptor único de eventos Garmin (POST /api/garmin/webhook).

    Garmin exige respuesta rápida: siempre respondemos 200 {"success": true}
    y el procesamiento ocurre en Celery. Un JSON inválido también se
    reconoce con 200 (queda en logs).
    """

    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        t0 = time.monotonic()
        ack = Response({"success": True}, status=200)
        raw = request.body or b""
        debug = bool(getattr(settings, "GARMIN_DEBUG", False))

        try:
            body = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            logger.warning("garmin.webhook.invalid_payload", extra=safe_extra({
                "error": str(exc),
                "raw_len": len(raw),
                "raw_sha256": hashlib.sha256(raw).hexdigest() if raw else None,
                "raw_body_preview": _body_preview(raw) if debug else None,
            }))
            return ack

        if not isinstance(body, dict):
            logger.warning("garmin.webhook.invalid_payload", extra=safe_extra({
                "error": "payload_not_object",
                "raw_len": len(raw),
            }))
            return ack

        event_type = detect_event_type(body)
        garmin_user_id = extract_garmin_user_id(body)

        logger.info("garmin.webhook.received", extra=safe_extra({
            "event_type": event_type,
            "garmin_user_id": garmin_user_id,
            "keys": sorted(body.keys()),
            "parsed_payload": body if debug else None,
        }))

        try:
            event = GarminWebhookEvent.objects.create(
                event_type=event_type,
                garmin_user_id=garmin_user_id,
                payload_raw=to_jsonable(body),
            )
            if event_type == UNKNOWN:
                event.mark_ignored(reason="unknown_event_type")
                status = "ignored"
            else:
                event.mark_queued()
                process_garmin_webhook.delay(event.pk)
                status = "enqueued"
        except Exception:
            # Garmin only needs the ack; the failure stays in the logs.
            logger.exception("garmin.webhook.enqueue_failed", extra=safe_extra({
                "event_type": event_type,
                "garmin_user_id": garmin_user_id,
            }))
            return ack

        logger.info("garmin.webhook.outcome", extra=safe_extra({
            "event_id": event.pk,
            "event_type": event_type,
            "garmin_user_id": garmin_user_id,
            "status": status,
            "duration_ms": int((time.monotonic() - t0) * 1000),
        }))
        return ack
