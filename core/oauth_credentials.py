"""
Persistence of Garmin OAuth credentials.

Security:
    - Tokens NEVER logged (only flags: has_access_token, has_refresh_token)
    - Credential bound to a single Athlete
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.integration_models import GarminConnection, PENDING_GARMIN_USER_ID
from core.providers.garmin import DEFAULT_EXPIRES_IN
from core.utils.logging import safe_extra

logger = logging.getLogger(__name__)


@dataclass
class PersistResult:
    """Result of persist_garmin_connection"""
    success: bool
    error_reason: str = ""
    error_message: str = ""
    connection: Optional[GarminConnection] = None


def persist_garmin_connection(
    *,
    athlete,
    token_data: dict,
    garmin_user_id: str,
) -> PersistResult:
    """
    Upsert the athlete's GarminConnection from a token response.

    Tokens, expiry and scope are written unconditionally; `connected_at`
    is reset so the expiry window starts now.

    Args:
        athlete:        persisted Athlete
        token_data:     dict with 'access_token' and optionally
                        'refresh_token', 'expires_in', 'scope'
        garmin_user_id: Garmin user id, or "pending" if the lookup failed

    Returns:
        PersistResult(success=True/False, error_reason=..., connection=...)
    """
    if athlete is None or not getattr(athlete, "pk", None):
        return PersistResult(False, "invalid_athlete", "Athlete must be persisted")

    if not isinstance(token_data, dict):
        return PersistResult(False, "invalid_token_data", "token_data must be a dict")

    access_token = token_data.get("access_token") or ""
    if not access_token:
        return PersistResult(False, "invalid_access_token", "token_data must contain a non-empty 'access_token'")

    garmin_user_id = str(garmin_user_id or PENDING_GARMIN_USER_ID)
    defaults = {
        "garmin_user_id": garmin_user_id,
        "access_token": access_token,
        "refresh_token": token_data.get("refresh_token") or "",
        "expires_in": token_data.get("expires_in") or DEFAULT_EXPIRES_IN,
        "scope": token_data.get("scope") or "",
        "connected_at": timezone.now(),
        "is_connected": True,
        "disconnected_at": None,
    }

    try:
        with transaction.atomic():
            if garmin_user_id != PENDING_GARMIN_USER_ID:
                # A Garmin account follows the athlete that linked it last.
                released = (
                    GarminConnection.objects
                    .filter(garmin_user_id=garmin_user_id)
                    .exclude(athlete=athlete)
                    .update(
                        garmin_user_id="",
                        access_token="",
                        refresh_token="",
                        is_connected=False,
                        disconnected_at=timezone.now(),
                    )
                )
                if released:
                    logger.warning("garmin.credentials.user_id_released", extra=safe_extra({
                        "athlete_id": athlete.pk,
                        "garmin_user_id": garmin_user_id,
                        "released": released,
                    }))

            connection, created = GarminConnection.objects.update_or_create(
                athlete=athlete,
                defaults=defaults,
            )
    except IntegrityError:
        # Concurrent callback for the same athlete already created the row.
        with transaction.atomic():
            connection = GarminConnection.objects.select_for_update().get(athlete=athlete)
            for field, value in defaults.items():
                setattr(connection, field, value)
            connection.save()
        created = False

    logger.info("garmin.credentials.persist_success", extra=safe_extra({
        "athlete_id": athlete.pk,
        "garmin_user_id": garmin_user_id,
        "created": created,
        "has_access_token": True,
        "has_refresh_token": bool(defaults["refresh_token"]),
        "expires_in": defaults["expires_in"],
    }))
    return PersistResult(success=True, connection=connection)
