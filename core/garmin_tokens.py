"""
Lazy Garmin access-token renewal.

There is no background refresher: callers ask for a valid token right before
calling Garmin and the refresh happens on demand.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import requests
from django.utils import timezone

from core.integration_models import GarminConnection
from core.providers import get_provider
from core.utils.logging import safe_extra

logger = logging.getLogger(__name__)

# Treat the token as expired this long before it actually expires.
EXPIRY_BUFFER = timedelta(minutes=5)


@dataclass
class RefreshResult:
    success: bool
    access_token: str = ""
    error: str = ""


def is_token_expired(expires_in: Optional[int], connected_at: Optional[datetime], *, now: Optional[datetime] = None) -> bool:
    """Missing data counts as expired."""
    if not expires_in or not connected_at:
        return True
    now = now or timezone.now()
    expiration = connected_at + timedelta(seconds=int(expires_in))
    return (expiration - now) < EXPIRY_BUFFER


def refresh_garmin_token(connection: GarminConnection) -> RefreshResult:
    if not connection.refresh_token:
        return RefreshResult(False, error="No refresh token found")

    provider = get_provider("garmin")
    if provider is None or not provider.enabled:
        return RefreshResult(False, error="Garmin OAuth credentials not configured")

    try:
        token_data = provider.refresh_token(connection.refresh_token)
    except (requests.exceptions.RequestException, ValueError) as exc:
        return RefreshResult(False, error=f"Token refresh failed: {exc}")

    if not token_data.get("access_token"):
        return RefreshResult(False, error="Token refresh response without access_token")

    connection.access_token = token_data["access_token"]
    connection.refresh_token = token_data["refresh_token"]
    connection.expires_in = token_data["expires_in"]
    connection.connected_at = timezone.now()
    connection.save(update_fields=["access_token", "refresh_token", "expires_in", "connected_at", "updated_at"])

    logger.info("garmin.token_refresh.success", extra=safe_extra({
        "athlete_id": connection.athlete_id,
        "expires_in": connection.expires_in,
    }))
    return RefreshResult(True, access_token=connection.access_token)


def get_valid_access_token(athlete) -> Optional[str]:
    """
    Return a usable access token for `athlete`, refreshing it if needed.
    None when there is no connection or the refresh failed.
    """
    connection = GarminConnection.objects.filter(athlete=athlete).first()
    if connection is None or not connection.access_token:
        return None

    if not is_token_expired(connection.expires_in, connection.connected_at):
        return connection.access_token

    result = refresh_garmin_token(connection)
    if not result.success:
        logger.error("garmin.token_refresh.failed", extra=safe_extra({
            "athlete_id": getattr(athlete, "pk", None),
            "error": result.error,
        }))
        return None
    return result.access_token
