"""
Garmin OAuth 2.0 PKCE flow: /api/auth/garmin/authorize -> Garmin -> /api/auth/garmin/callback.

Tests cover:
- Authorize: config checks, popup vs redirect, signed cookies
- Callback: every error branch renders the popup page with garmin-oauth-error
- Callback success: single token POST, user-id lookup (with "pending" fallback), persistence
"""
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from core import oauth_state
from core.integration_models import GarminConnection
from core.oauth_state import ATHLETE_COOKIE, VERIFIER_COOKIE, generate_code_challenge
from core.providers.garmin import AUTHORIZE_URL

AUTHORIZE = "/api/auth/garmin/authorize"
CALLBACK = "/api/auth/garmin/callback"

TOKEN_PAYLOAD = {
    "access_token": "garmin-access",
    "refresh_token": "garmin-refresh",
    "expires_in": 86400,
    "scope": "CONNECT_READ",
}


def _start_flow(client):
    response = client.get(AUTHORIZE, {"popup": "true"})
    assert response.status_code == 200
    return response.json()["url"]


@pytest.mark.django_db
class TestGarminAuthorize:
    def test_requires_authentication(self, anon_client):
        assert anon_client.get(AUTHORIZE).status_code == 401

    def test_popup_returns_url_with_pkce_and_state(self, auth_client, athlete):
        response = auth_client.get(AUTHORIZE, {"popup": "true"})

        assert response.status_code == 200
        url = response.json()["url"]
        assert url.startswith(AUTHORIZE_URL)
        params = parse_qs(urlparse(url).query)
        assert params["state"] == [str(athlete.pk)]
        assert params["code_challenge_method"] == ["S256"]
        assert params["client_id"] == ["test-client-id"]
        assert params["redirect_uri"] == ["http://testserver/api/auth/garmin/callback"]
        assert VERIFIER_COOKIE in response.cookies
        assert ATHLETE_COOKIE in response.cookies
        assert response.cookies[VERIFIER_COOKIE]["httponly"] is True

    def test_default_is_redirect(self, auth_client):
        response = auth_client.get(AUTHORIZE)

        assert response.status_code == 302
        assert response["Location"].startswith(AUTHORIZE_URL)
        assert VERIFIER_COOKIE in response.cookies

    def test_missing_client_id_is_500(self, auth_client, settings):
        settings.GARMIN_CLIENT_ID = ""

        response = auth_client.get(AUTHORIZE)

        assert response.status_code == 500
        assert "error" in response.json()

    def test_missing_redirect_uri_is_500(self, auth_client, settings):
        settings.GARMIN_REDIRECT_URI = ""
        assert auth_client.get(AUTHORIZE).status_code == 500

    def test_user_without_athlete_profile_is_404(self, client_for, db):
        from django.contrib.auth.models import User

        user = User.objects.create_user(username="no-profile", password="x")
        response = client_for(user).get(AUTHORIZE)

        assert response.status_code == 404
        assert response.json() == {"error": "Athlete not found"}


@pytest.mark.django_db
class TestGarminCallback:
    @patch("core.providers.garmin.requests.get")
    @patch("core.providers.garmin.requests.post")
    def test_success_persists_connection(self, mock_post, mock_get, auth_client, athlete, fake_response):
        mock_post.return_value = fake_response(TOKEN_PAYLOAD)
        mock_get.return_value = fake_response({"userId": "g-123"})
        url = _start_flow(auth_client)

        response = auth_client.get(CALLBACK, {"code": "auth-code", "state": str(athlete.pk)})

        assert response.status_code == 200
        assert response.context["post_message"] == "garmin-oauth-success"
        assert b"Garmin Connected Successfully" in response.content

        # Single POST, carrying the verifier whose challenge went to Garmin
        mock_post.assert_called_once()
        sent = mock_post.call_args.kwargs["data"]
        assert sent["grant_type"] == "authorization_code"
        assert sent["code"] == "auth-code"
        challenge = parse_qs(urlparse(url).query)["code_challenge"][0]
        assert generate_code_challenge(sent["code_verifier"]) == challenge

        connection = GarminConnection.objects.get(athlete=athlete)
        assert connection.garmin_user_id == "g-123"
        assert connection.access_token == "garmin-access"
        assert connection.refresh_token == "garmin-refresh"
        assert connection.expires_in == 86400
        assert connection.scope == "CONNECT_READ"
        assert connection.is_connected is True

        # Cookies are cleared
        assert response.cookies[VERIFIER_COOKIE].value == ""
        assert response.cookies[ATHLETE_COOKIE].value == ""

    @patch("core.providers.garmin.requests.get")
    @patch("core.providers.garmin.requests.post")
    def test_user_id_lookup_failure_stores_pending(self, mock_post, mock_get, auth_client, athlete, fake_response):
        mock_post.return_value = fake_response(TOKEN_PAYLOAD)
        mock_get.side_effect = requests.exceptions.ConnectionError("down")
        _start_flow(auth_client)

        response = auth_client.get(CALLBACK, {"code": "auth-code", "state": str(athlete.pk)})

        assert response.context["post_message"] == "garmin-oauth-success"
        assert GarminConnection.objects.get(athlete=athlete).garmin_user_id == "pending"

    @patch("core.providers.garmin.requests.post")
    def test_token_exchange_failure(self, mock_post, auth_client, athlete, fake_response):
        mock_post.return_value = fake_response({"error": "invalid_grant"}, status_code=400, text="invalid_grant")
        _start_flow(auth_client)

        response = auth_client.get(CALLBACK, {"code": "bad", "state": str(athlete.pk)})

        assert response.status_code == 200
        assert response.context["post_message"] == "garmin-oauth-error"
        mock_post.assert_called_once()
        assert not GarminConnection.objects.exists()

    @patch("core.providers.garmin.requests.post")
    def test_provider_error_param(self, mock_post, auth_client, athlete):
        _start_flow(auth_client)

        response = auth_client.get(CALLBACK, {"error": "access_denied"})

        assert response.context["post_message"] == "garmin-oauth-error"
        assert "access_denied" in response.context["message"]
        mock_post.assert_not_called()

    @patch("core.providers.garmin.requests.post")
    def test_missing_code(self, mock_post, auth_client, athlete):
        _start_flow(auth_client)

        response = auth_client.get(CALLBACK, {"state": str(athlete.pk)})

        assert response.context["post_message"] == "garmin-oauth-error"
        mock_post.assert_not_called()

    @patch("core.providers.garmin.requests.post")
    def test_missing_cookies(self, mock_post, anon_client, athlete):
        response = anon_client.get(CALLBACK, {"code": "c", "state": str(athlete.pk)})

        assert response.context["post_message"] == "garmin-oauth-error"
        assert response.context["fallback_url"].startswith("/settings/garmin?error=")
        mock_post.assert_not_called()

    @patch("core.providers.garmin.requests.post")
    def test_expired_cookies(self, mock_post, auth_client, athlete, monkeypatch):
        _start_flow(auth_client)
        monkeypatch.setattr(oauth_state, "OAUTH_COOKIE_MAX_AGE_SECONDS", -1)

        response = auth_client.get(CALLBACK, {"code": "c", "state": str(athlete.pk)})

        assert response.context["post_message"] == "garmin-oauth-error"
        mock_post.assert_not_called()

    @patch("core.providers.garmin.requests.post")
    def test_state_must_match_cookie_athlete(self, mock_post, auth_client, athlete, make_athlete):
        other = make_athlete()
        _start_flow(auth_client)

        response = auth_client.get(CALLBACK, {"code": "c", "state": str(other.pk)})

        assert response.context["post_message"] == "garmin-oauth-error"
        mock_post.assert_not_called()
        assert not GarminConnection.objects.exists()

    @patch("core.providers.garmin.requests.post")
    def test_token_body_that_is_not_an_object(self, mock_post, auth_client, athlete, fake_response):
        mock_post.return_value = fake_response(["unexpected"])
        _start_flow(auth_client)

        response = auth_client.get(CALLBACK, {"code": "auth-code", "state": str(athlete.pk)})

        assert response.status_code == 200
        assert response.context["post_message"] == "garmin-oauth-error"
        assert not GarminConnection.objects.exists()

    @patch("core.providers.garmin.requests.get")
    @patch("core.providers.garmin.requests.post")
    def test_user_id_body_that_is_not_an_object(self, mock_post, mock_get, auth_client, athlete, fake_response):
        mock_post.return_value = fake_response(TOKEN_PAYLOAD)
        mock_get.return_value = fake_response(["g-123"])
        _start_flow(auth_client)

        response = auth_client.get(CALLBACK, {"code": "auth-code", "state": str(athlete.pk)})

        assert response.context["post_message"] == "garmin-oauth-success"
        assert GarminConnection.objects.get(athlete=athlete).garmin_user_id == "pending"
