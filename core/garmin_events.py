"""
Garmin webhook payload processing.

Each handler looks things up first and then upserts. Handlers never raise
for a single bad item: they count it and move on.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Any, Optional

from django.db import IntegrityError
from django.utils import timezone

from core.integration_models import GarminConnection, PENDING_GARMIN_USER_ID
from core.models import Activity
from core.utils.jsonable import to_jsonable
from core.utils.logging import safe_extra

logger = logging.getLogger(__name__)

ACTIVITY_SUMMARY = "ACTIVITY_SUMMARY"
ACTIVITY_DETAIL = "ACTIVITY_DETAIL"
ACTIVITY_FILE = "ACTIVITY_FILE"
USER_PERMISSION_CHANGED = "USER_PERMISSION_CHANGED"
USER_DEREGISTER = "USER_DEREGISTER"
MOVEIQ = "MOVEIQ"
MANUALLY_UPDATED = "MANUALLY_UPDATED"
UNKNOWN = "UNKNOWN"

KNOWN_EVENT_TYPES = frozenset(
    {
        ACTIVITY_SUMMARY,
        ACTIVITY_DETAIL,
        ACTIVITY_FILE,
        USER_PERMISSION_CHANGED,
        USER_DEREGISTER,
        MOVEIQ,
        MANUALLY_UPDATED,
    }
)


def detect_event_type(body: Any) -> str:
    """
    Explicit `eventType` wins when it is a known type; otherwise the type is
    inferred from which keys the payload carries.
    """
    if not isinstance(body, dict):
        return UNKNOWN

    explicit = body.get("eventType")
    if isinstance(explicit, str) and explicit.upper() in KNOWN_EVENT_TYPES:
        return explicit.upper()

    if isinstance(body.get("activities"), list):
        return ACTIVITY_SUMMARY
    if isinstance(body.get("activityDetails"), list):
        return ACTIVITY_DETAIL
    if isinstance(body.get("activityFiles"), list):
        return ACTIVITY_FILE
    if body.get("permissions") or body.get("scopes"):
        return USER_PERMISSION_CHANGED
    if body.get("reason") == "USER_DEREGISTER" or body.get("action") == "deregister":
        return USER_DEREGISTER
    return UNKNOWN


def extract_garmin_user_id(body: Any) -> str:
    """Top-level userId, or the first item's userId for list payloads."""
    if not isinstance(body, dict):
        return ""
    if body.get("userId"):
        return str(body["userId"])
    for key in ("activities", "activityDetails", "activityFiles"):
        items = body.get(key)
        if isinstance(items, list) and items and isinstance(items[0], dict) and items[0].get("userId"):
            return str(items[0]["userId"])
    return ""


def get_athlete_by_garmin_user_id(garmin_user_id: Optional[str]):
    if not garmin_user_id or garmin_user_id == PENDING_GARMIN_USER_ID:
        return None
    connection = (
        GarminConnection.objects
        .select_related("athlete")
        .filter(garmin_user_id=str(garmin_user_id))
        .order_by("-is_connected", "-updated_at")
        .first()
    )
    return connection.athlete if connection else None


# ==============================================================================
#  Mapping Garmin summary -> Activity fields
# ==============================================================================
def _as_int(value) -> Optional[int]:
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return None


def _as_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def activity_fields_from_summary(summary: dict) -> dict:
    start_seconds = summary.get("startTimeInSeconds")
    start_time = None
    if start_seconds is not None:
        try:
            start_time = datetime.fromtimestamp(int(start_seconds), tz=dt_timezone.utc)
        except (TypeError, ValueError, OverflowError):
            start_time = None

    return {
        "activity_type": str(summary.get("activityType") or ""),
        "activity_name": str(summary.get("activityName") or ""),
        "start_time": start_time,
        "duration": _as_int(summary.get("durationInSeconds")),
        "distance": _as_float(summary.get("distanceInMeters")),
        "calories": _as_int(summary.get("activeKilocalories")),
        "average_speed": _as_float(summary.get("averageSpeedInMetersPerSecond")),
        "average_heart_rate": _as_int(summary.get("averageHeartRateInBeatsPerMinute")),
        "max_heart_rate": _as_int(summary.get("maxHeartRateInBeatsPerMinute")),
        "elevation_gain": _as_float(summary.get("totalElevationGainInMeters")),
        "steps": _as_int(summary.get("steps")),
        "summary_data": to_jsonable(summary),
    }


def _source_activity_id(item: dict) -> str:
    value = item.get("activityId") or item.get("summaryId")
    return str(value) if value not in (None, "") else ""


def save_activity_summary(athlete, summary: dict) -> bool:
    """
    Create the Activity for a Garmin summary unless it already exists.
    Returns True when a row was created.
    """
    source_activity_id = _source_activity_id(summary)
    if not source_activity_id:
        return False
    if Activity.objects.filter(source_activity_id=source_activity_id).exists():
        return False
    try:
        Activity.objects.create(
            athlete=athlete,
            source=Activity.Source.GARMIN,
            source_activity_id=source_activity_id,
            **activity_fields_from_summary(summary),
        )
    except IntegrityError:
        # Same activity arrived through a concurrent delivery.
        return False
    return True


def _counts() -> dict:
    return {"processed": 0, "skipped": 0, "errors": 0}


# ==============================================================================
#  Handlers
# ==============================================================================
def handle_activity_summary(activities: list, user_id: Optional[str] = None) -> dict:
    result = _counts()
    for summary in activities or []:
        try:
            if not isinstance(summary, dict):
                result["skipped"] += 1
                continue
            athlete = get_athlete_by_garmin_user_id(user_id or summary.get("userId"))
            if athlete is None:
                result["skipped"] += 1
                continue
            if save_activity_summary(athlete, summary):
                result["processed"] += 1
            else:
                result["skipped"] += 1
        except Exception:
            result["errors"] += 1
            logger.exception("garmin.events.activity_summary_error")
    return result


def handle_activity_detail(details: list, user_id: Optional[str] = None) -> dict:
    result = _counts()
    for detail in details or []:
        try:
            if not isinstance(detail, dict):
                result["skipped"] += 1
                continue
            athlete = get_athlete_by_garmin_user_id(user_id or detail.get("userId"))
            source_activity_id = _source_activity_id(detail)
            if athlete is None or not source_activity_id:
                result["skipped"] += 1
                continue

            activity = Activity.objects.filter(source_activity_id=source_activity_id, athlete=athlete).first()
            if activity is None:
                logger.info("garmin.events.activity_detail_unknown_activity", extra=safe_extra({
                    "source_activity_id": source_activity_id,
                }))
                result["skipped"] += 1
                continue

            detail_data = dict(activity.detail_data or {})
            detail_data["detail"] = to_jsonable(detail)
            activity.detail_data = detail_data
            activity.save(update_fields=["detail_data", "updated_at"])
            result["processed"] += 1
        except Exception:
            result["errors"] += 1
            logger.exception("garmin.events.activity_detail_error")
    return result


def handle_activity_file(files: list, user_id: Optional[str] = None) -> dict:
    result = _counts()
    for file_item in files or []:
        try:
            if not isinstance(file_item, dict):
                result["skipped"] += 1
                continue
            athlete = get_athlete_by_garmin_user_id(user_id or file_item.get("userId"))
            source_activity_id = _source_activity_id(file_item)
            if athlete is None or not source_activity_id:
                result["skipped"] += 1
                continue

            activity = Activity.objects.filter(source_activity_id=source_activity_id, athlete=athlete).first()
            if activity is None:
                result["skipped"] += 1
                continue

            file_type = str(file_item.get("fileType") or "unknown")
            detail_data = dict(activity.detail_data or {})
            processed_files = list(detail_data.get("processedFiles") or [])
            if file_type in processed_files:
                result["skipped"] += 1
                continue

            files_list = list(detail_data.get("files") or [])
            files_list.append(
                {
                    "type": file_type,
                    "url": file_item.get("fileUrl") or file_item.get("callbackURL"),
                    "data": to_jsonable(file_item.get("fileData")),
                    "processedAt": timezone.now().isoformat(),
                }
            )
            processed_files.append(file_type)
            detail_data["files"] = files_list
            detail_data["processedFiles"] = processed_files
            activity.detail_data = detail_data
            activity.save(update_fields=["detail_data", "updated_at"])
            result["processed"] += 1
        except Exception:
            result["errors"] += 1
            logger.exception("garmin.events.activity_file_error")
    return result


def handle_permission_change(body: dict) -> dict:
    user_id = body.get("userId")
    if not user_id:
        return {"success": False, "error": "No userId in permission change event"}

    athlete = get_athlete_by_garmin_user_id(user_id)
    if athlete is None:
        return {"success": False, "error": "Athlete not found"}

    scopes = body.get("scopes") or []
    connection = athlete.garmin_connection
    connection.permissions = {
        "permissions": to_jsonable(body.get("permissions") or {}),
        "scopes": to_jsonable(scopes),
        "updatedAt": timezone.now().isoformat(),
    }
    if isinstance(scopes, list) and scopes:
        connection.scope = " ".join(str(s) for s in scopes)
    connection.save(update_fields=["permissions", "scope", "updated_at"])
    return {"success": True}


def handle_deregistration(body: dict) -> dict:
    user_id = body.get("userId")
    if not user_id:
        return {"success": False, "error": "No userId in deregistration event"}

    athlete = get_athlete_by_garmin_user_id(user_id)
    if athlete is None:
        return {"success": False, "error": "Athlete not found"}

    athlete.garmin_connection.mark_disconnected()
    logger.info("garmin.events.deregistered", extra=safe_extra({
        "athlete_id": athlete.pk,
        "reason": body.get("reason"),
    }))
    return {"success": True}


def dispatch_event(event_type: str, body: dict) -> Optional[dict]:
    """
    Route a payload to its handler. Returns the handler result, or None
    when the event type has no handler (MOVEIQ, UNKNOWN).
    """
    user_id = body.get("userId")

    if event_type == ACTIVITY_SUMMARY:
        return handle_activity_summary(body.get("activities") or [], user_id)
    if event_type == ACTIVITY_DETAIL:
        return handle_activity_detail(body.get("activityDetails") or [], user_id)
    if event_type == ACTIVITY_FILE:
        return handle_activity_file(body.get("activityFiles") or [], user_id)
    if event_type == USER_PERMISSION_CHANGED:
        return handle_permission_change(body)
    if event_type == USER_DEREGISTER:
        return handle_deregistration(body)
    if event_type == MANUALLY_UPDATED:
        if isinstance(body.get("activities"), list):
            return handle_activity_summary(body["activities"], user_id)
        return None
    return None
