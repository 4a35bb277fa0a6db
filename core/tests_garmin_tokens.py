from datetime import timedelta
from unittest.mock import patch

import pytest
import requests
from django.utils import timezone

from core.garmin_tokens import get_valid_access_token, is_token_expired, refresh_garmin_token


class TestIsTokenExpired:
    def test_missing_data_counts_as_expired(self):
        now = timezone.now()
        assert is_token_expired(None, now, now=now) is True
        assert is_token_expired(3600, None, now=now) is True

    def test_fresh_token(self):
        now = timezone.now()
        assert is_token_expired(3600, now, now=now) is False

    def test_inside_five_minute_buffer(self):
        now = timezone.now()
        assert is_token_expired(299, now, now=now) is True
        assert is_token_expired(301, now, now=now) is False

    def test_past_expiry(self):
        now = timezone.now()
        assert is_token_expired(3600, now - timedelta(hours=2), now=now) is True


@pytest.mark.django_db
class TestGetValidAccessToken:
    def test_no_connection_returns_none(self, athlete):
        assert get_valid_access_token(athlete) is None

    @patch("core.providers.garmin.requests.post")
    def test_fresh_token_is_returned_without_refresh(self, mock_post, athlete, garmin_connection):
        assert get_valid_access_token(athlete) == "access-1"
        mock_post.assert_not_called()

    @patch("core.providers.garmin.requests.post")
    def test_expired_token_is_refreshed(self, mock_post, athlete, expired_garmin_connection, fake_response):
        mock_post.return_value = fake_response({"access_token": "access-2", "expires_in": 7200})
        before = timezone.now()

        assert get_valid_access_token(athlete) == "access-2"

        mock_post.assert_called_once()
        assert mock_post.call_args.kwargs["data"]["grant_type"] == "refresh_token"
        assert mock_post.call_args.kwargs["data"]["refresh_token"] == "refresh-1"

        expired_garmin_connection.refresh_from_db()
        assert expired_garmin_connection.access_token == "access-2"
        # Garmin did not rotate the refresh token: the old one stays
        assert expired_garmin_connection.refresh_token == "refresh-1"
        assert expired_garmin_connection.expires_in == 7200
        assert expired_garmin_connection.connected_at >= before

    @patch("core.providers.garmin.requests.post")
    def test_refresh_failure_returns_none(self, mock_post, athlete, expired_garmin_connection, fake_response):
        mock_post.return_value = fake_response({"error": "invalid_grant"}, status_code=400)

        assert get_valid_access_token(athlete) is None

        expired_garmin_connection.refresh_from_db()
        assert expired_garmin_connection.access_token == "access-1"

    @patch("core.providers.garmin.requests.post")
    def test_refresh_timeout_returns_none(self, mock_post, athlete, expired_garmin_connection):
        mock_post.side_effect = requests.exceptions.Timeout("slow")
        assert get_valid_access_token(athlete) is None


@pytest.mark.django_db
def test_refresh_without_refresh_token(garmin_connection):
    garmin_connection.refresh_token = ""
    garmin_connection.save()

    result = refresh_garmin_token(garmin_connection)

    assert result.success is False
    assert result.error == "No refresh token found"


@pytest.mark.django_db
class TestGarminTokenDoctorCommand:
    def test_reports_without_refreshing(self, expired_garmin_connection):
        from io import StringIO

        from django.core.management import call_command

        out = StringIO()
        call_command("garmin_token_doctor", stdout=out)

        assert "expired=1" in out.getvalue()
        assert "refreshed=0" in out.getvalue()

    @patch("core.providers.garmin.requests.post")
    def test_refresh_flag(self, mock_post, expired_garmin_connection, fake_response):
        from io import StringIO

        from django.core.management import call_command

        mock_post.return_value = fake_response({"access_token": "access-2", "expires_in": 7200})
        out = StringIO()

        call_command("garmin_token_doctor", "--refresh", stdout=out)

        assert "refreshed=1" in out.getvalue()
        expired_garmin_connection.refresh_from_db()
        assert expired_garmin_connection.access_token == "access-2"
        assert expired_garmin_connection.refresh_token == "refresh-1"
