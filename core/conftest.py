"""
Fixtures for the Garmin integration tests.
"""
from datetime import timedelta
from unittest.mock import Mock

import pytest
from django.utils import timezone


@pytest.fixture(autouse=True)
def garmin_settings(settings):
    settings.GARMIN_CLIENT_ID = "test-client-id"
    settings.GARMIN_CLIENT_SECRET = "test-client-secret"
    settings.GARMIN_REDIRECT_URI = "http://testserver/api/auth/garmin/callback"
    settings.GARMIN_DEBUG = False
    return settings


@pytest.fixture
def garmin_connection(athlete):
    """Connected athlete with a fresh token (garmin_user_id=garmin-user-1)."""
    from core.integration_models import GarminConnection

    return GarminConnection.objects.create(
        athlete=athlete,
        garmin_user_id="garmin-user-1",
        access_token="access-1",
        refresh_token="refresh-1",
        expires_in=3600,
        connected_at=timezone.now(),
        is_connected=True,
    )


@pytest.fixture
def expired_garmin_connection(garmin_connection):
    garmin_connection.connected_at = timezone.now() - timedelta(hours=2)
    garmin_connection.save(update_fields=["connected_at"])
    return garmin_connection


@pytest.fixture
def fake_response():
    """Factory: mock de requests.Response con raise_for_status coherente."""
    import requests

    def _make(payload=None, status_code=200, text=""):
        response = Mock()
        response.status_code = status_code
        response.ok = status_code < 400
        response.text = text
        response.json.return_value = payload
        if status_code >= 400:
            response.raise_for_status.side_effect = requests.exceptions.HTTPError(
                f"{status_code} Error", response=response
            )
        else:
            response.raise_for_status.return_value = None
        return response

    return _make
