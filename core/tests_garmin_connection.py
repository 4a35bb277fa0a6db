from unittest.mock import patch

import pytest

from core.integration_models import GarminConnection
from core.models import Activity
from core.oauth_credentials import persist_garmin_connection

STATUS = "/api/garmin/status"
SYNC = "/api/garmin/sync"
DISCONNECT = "/api/garmin/disconnect"


# ==============================================================================
#  persist_garmin_connection
# ==============================================================================
@pytest.mark.django_db
class TestPersistGarminConnection:
    def test_creates_connection_with_defaults(self, athlete):
        result = persist_garmin_connection(
            athlete=athlete,
            token_data={"access_token": "a"},
            garmin_user_id="g-1",
        )

        assert result.success is True
        connection = result.connection
        assert connection.garmin_user_id == "g-1"
        assert connection.expires_in == 3600
        assert connection.connected_at is not None
        assert connection.is_connected is True

    def test_overwrites_existing_tokens_unconditionally(self, athlete, garmin_connection):
        persist_garmin_connection(
            athlete=athlete,
            token_data={"access_token": "new-a", "refresh_token": "new-r", "expires_in": 60, "scope": "X"},
            garmin_user_id="garmin-user-1",
        )

        garmin_connection.refresh_from_db()
        assert garmin_connection.access_token == "new-a"
        assert garmin_connection.refresh_token == "new-r"
        assert garmin_connection.expires_in == 60
        assert garmin_connection.scope == "X"
        assert GarminConnection.objects.count() == 1

    def test_garmin_account_moves_to_latest_athlete(self, athlete, garmin_connection, make_athlete):
        other = make_athlete()

        persist_garmin_connection(athlete=other, token_data={"access_token": "b"}, garmin_user_id="garmin-user-1")

        garmin_connection.refresh_from_db()
        assert garmin_connection.is_connected is False
        assert garmin_connection.garmin_user_id == ""
        assert GarminConnection.objects.get(athlete=other).garmin_user_id == "garmin-user-1"

    def test_pending_ids_do_not_release_each_other(self, athlete, make_athlete):
        other = make_athlete()
        persist_garmin_connection(athlete=athlete, token_data={"access_token": "a"}, garmin_user_id="pending")
        persist_garmin_connection(athlete=other, token_data={"access_token": "b"}, garmin_user_id="pending")

        assert GarminConnection.objects.filter(garmin_user_id="pending", is_connected=True).count() == 2

    @pytest.mark.parametrize("token_data,reason", [
        ({}, "invalid_access_token"),
        ("nope", "invalid_token_data"),
    ])
    def test_rejects_bad_token_data(self, athlete, token_data, reason):
        result = persist_garmin_connection(athlete=athlete, token_data=token_data, garmin_user_id="g")
        assert result.success is False
        assert result.error_reason == reason


# ==============================================================================
#  Endpoints
# ==============================================================================
@pytest.mark.django_db
class TestGarminStatus:
    def test_not_connected(self, auth_client):
        response = auth_client.get(STATUS)
        assert response.status_code == 200
        assert response.json()["connected"] is False

    def test_connected_never_exposes_tokens(self, auth_client, garmin_connection):
        body = auth_client.get(STATUS).json()

        assert body["connected"] is True
        assert body["connection"]["garmin_user_id"] == "garmin-user-1"
        assert "access_token" not in body["connection"]
        assert "refresh_token" not in body["connection"]


@pytest.mark.django_db
class TestGarminSync:
    def test_not_connected_is_400(self, auth_client):
        response = auth_client.post(SYNC)
        assert response.status_code == 400
        assert response.json() == {"error": "Garmin not connected"}

    @patch("core.providers.garmin.requests.post")
    def test_no_valid_token_is_500(self, mock_post, auth_client, expired_garmin_connection, fake_response):
        mock_post.return_value = fake_response({}, status_code=401)

        response = auth_client.post(SYNC)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to get valid access token"}

    @patch("core.providers.garmin.requests.get")
    def test_sync_saves_new_activities(self, mock_get, auth_client, athlete, garmin_connection, fake_response):
        Activity.objects.create(athlete=athlete, source_activity_id="1")
        mock_get.return_value = fake_response([
            {"activityId": 1, "activityName": "Already here"},
            {"activityId": 2, "activityName": "New run", "durationInSeconds": 600},
            {"activityName": "No id"},
        ])

        response = auth_client.post(SYNC)

        assert response.status_code == 200
        assert response.json()["summary"] == {"fetched": 3, "saved": 1, "skipped": 2, "errors": 0}
        assert mock_get.call_args.kwargs["headers"]["Authorization"] == "Bearer access-1"
        assert "startDate" in mock_get.call_args.kwargs["params"]
        assert Activity.objects.filter(athlete=athlete).count() == 2
        garmin_connection.refresh_from_db()
        assert garmin_connection.last_sync_at is not None

    @patch("core.providers.garmin.requests.get")
    def test_upstream_error_is_forwarded(self, mock_get, auth_client, garmin_connection, fake_response):
        mock_get.return_value = fake_response({}, status_code=403)

        response = auth_client.post(SYNC)

        assert response.status_code == 403
        assert "error" in response.json()


@pytest.mark.django_db
class TestGarminDisconnect:
    def test_disconnect_clears_tokens(self, auth_client, garmin_connection):
        response = auth_client.post(DISCONNECT)

        assert response.status_code == 200
        garmin_connection.refresh_from_db()
        assert garmin_connection.is_connected is False
        assert garmin_connection.access_token == ""

    def test_disconnect_without_connection(self, auth_client):
        assert auth_client.post(DISCONNECT).status_code == 400
