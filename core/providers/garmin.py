"""
Garmin Connect OAuth 2.0 (PKCE) integration provider.

Endpoints:
- authorize:  https://connect.garmin.com/oauthConfirm
- token:      https://diauth.garmin.com/di-oauth2-service/oauth/token
- wellness:   https://apis.garmin.com/wellness-api/rest/...
"""
import logging
import requests
from urllib.parse import urlencode
from django.conf import settings
from typing import Dict, List
from datetime import datetime

from core.utils.logging import safe_extra

from .base import IntegrationProvider

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://connect.garmin.com/oauthConfirm"
TOKEN_URL = "https://diauth.garmin.com/di-oauth2-service/oauth/token"
USER_ID_URL = "https://apis.garmin.com/wellness-api/rest/user/id"
ACTIVITIES_URL = "https://apis.garmin.com/wellness-api/rest/activities"

DEFAULT_SCOPES = "CONNECT_READ CONNECT_WRITE PARTNER_READ PARTNER_WRITE"
DEFAULT_EXPIRES_IN = 3600


def _timeout() -> int:
    return int(getattr(settings, "GARMIN_HTTP_TIMEOUT_S", 15))


def _json_object(response, what: str) -> dict:
    """Body JSON de Garmin; si no es un objeto se trata como respuesta inválida."""
    body = response.json()
    if not isinstance(body, dict):
        raise ValueError(f"Invalid {what} response format from Garmin")
    return body


class GarminProvider(IntegrationProvider):
    """
    Garmin Connect integration provider.

    No retries anywhere: a failed exchange or refresh surfaces to the caller,
    which decides what to show the user.
    """

    provider_id = "garmin"
    display_name = "Garmin Connect"

    @property
    def enabled(self) -> bool:
        return bool(getattr(settings, "GARMIN_CLIENT_ID", ""))

    def get_oauth_authorize_url(self, state: str, callback_uri: str, code_challenge: str) -> str:
        if not code_challenge:
            raise ValueError("Garmin requires a PKCE code_challenge")

        params = {
            "client_id": settings.GARMIN_CLIENT_ID,
            "response_type": "code",
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
            "state": state,
            "scope": DEFAULT_SCOPES,
            "redirect_uri": callback_uri,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code_for_token(self, code: str, callback_uri: str, code_verifier: str) -> Dict:
        """
        Single POST to the token endpoint (form encoded).

        Raises:
            requests.HTTPError: If Garmin answers 4xx/5xx
        """
        data = {
            "grant_type": "authorization_code",
            "client_id": settings.GARMIN_CLIENT_ID,
            "client_secret": settings.GARMIN_CLIENT_SECRET,
            "code": code,
            "code_verifier": code_verifier or "",
            "redirect_uri": callback_uri,
        }

        if getattr(settings, "GARMIN_DEBUG", False):
            logger.info("garmin.token_exchange.request", extra=safe_extra({
                "url": TOKEN_URL,
                "redirect_uri": callback_uri,
                "has_code_verifier": bool(code_verifier),
            }))

        response = requests.post(TOKEN_URL, data=data, timeout=_timeout())

        if not response.ok:
            logger.warning("garmin.token_exchange.failed", extra=safe_extra({
                "status_code": response.status_code,
                "body": response.text[:300],
            }))
        response.raise_for_status()

        token_data = _json_object(response, "token")
        logger.info("garmin.token_exchange.success", extra=safe_extra({
            "has_access_token": bool(token_data.get("access_token")),
            "has_refresh_token": bool(token_data.get("refresh_token")),
            "expires_in": token_data.get("expires_in"),
        }))
        return token_data

    def get_external_user_id(self, access_token: str) -> str:
        response = requests.get(
            USER_ID_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=_timeout(),
        )
        response.raise_for_status()

        user_id = _json_object(response, "user id").get("userId")
        if not user_id:
            raise ValueError("Missing userId in Garmin user id response")
        return str(user_id)

    def refresh_token(self, refresh_token: str) -> Dict:
        """
        grant_type=refresh_token POST.

        Missing fields are filled the way Garmin documents them: the old
        refresh token stays valid and expires_in defaults to one hour.
        """
        data = {
            "grant_type": "refresh_token",
            "client_id": settings.GARMIN_CLIENT_ID,
            "client_secret": settings.GARMIN_CLIENT_SECRET,
            "refresh_token": refresh_token,
        }

        try:
            response = requests.post(TOKEN_URL, data=data, timeout=_timeout())
            response.raise_for_status()
        except requests.exceptions.Timeout:
            logger.error("garmin.token_refresh.timeout")
            raise
        except requests.exceptions.RequestException as e:
            response_obj = getattr(e, "response", None)
            logger.error("garmin.token_refresh.error", extra=safe_extra({
                "error": str(e),
                "status_code": response_obj.status_code if response_obj is not None else None,
            }))
            raise

        token_data = _json_object(response, "token refresh")
        return {
            "access_token": token_data.get("access_token"),
            "refresh_token": token_data.get("refresh_token") or refresh_token,
            "expires_in": token_data.get("expires_in") or DEFAULT_EXPIRES_IN,
        }

    def fetch_activities(self, access_token: str, after: datetime) -> List[Dict]:
        """
        GET /wellness-api/rest/activities?startDate=YYYY-MM-DD

        Raises:
            requests.HTTPError: If Garmin answers 4xx/5xx
            ValueError: If the body is not a list
        """
        response = requests.get(
            ACTIVITIES_URL,
            params={"startDate": after.strftime("%Y-%m-%d")},
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            timeout=_timeout(),
        )
        response.raise_for_status()

        activities = response.json()
        if not isinstance(activities, list):
            raise ValueError("Invalid response format from Garmin")

        logger.info("garmin.fetch_activities.success", extra=safe_extra({
            "count": len(activities),
            "start_date": after.strftime("%Y-%m-%d"),
        }))
        return activities
