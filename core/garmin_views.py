"""
Garmin OAuth 2.0 (PKCE) flow + connection management endpoints.

    GET  /api/auth/garmin/authorize   (auth)    -> 302 to Garmin, or {"url"} with ?popup=true
    GET  /api/auth/garmin/callback    (public)  -> HTML page that posts the result to window.opener
    GET  /api/garmin/status           (auth)
    POST /api/garmin/sync             (auth)    -> pull last N days of activities
    POST /api/garmin/disconnect       (auth)
"""
import logging
import time
from datetime import timedelta

import requests
from django.conf import settings
from django.http import HttpResponse, HttpResponseRedirect
from django.template.loader import render_to_string
from django.utils import timezone
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.garmin_events import save_activity_summary
from core.garmin_tokens import get_valid_access_token
from core.integration_models import GarminConnection, PENDING_GARMIN_USER_ID
from core.models import Athlete
from core.oauth_credentials import persist_garmin_connection
from core.oauth_state import (
    clear_oauth_cookies,
    generate_pkce_pair,
    read_oauth_cookies,
    set_oauth_cookies,
)
from core.providers import get_provider
from core.serializers import GarminConnectionStatusSerializer
from core.tenancy import CallerAthleteMixin
from core.utils.logging import safe_extra

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "garmin-oauth-success"
ERROR_MESSAGE = "garmin-oauth-error"


def _garmin():
    return get_provider("garmin")


def _oauth_result_page(*, success: bool, message: str = "", status_code: int = 200) -> HttpResponse:
    fallback = "/settings?connected=garmin" if success else "/settings/garmin?error=1"
    html = render_to_string(
        "core/garmin_oauth_result.html",
        {
            "success": success,
            "message": message,
            "post_message": SUCCESS_MESSAGE if success else ERROR_MESSAGE,
            "target_origin": "" if getattr(settings, "FRONTEND_URL", "*") == "*" else settings.FRONTEND_URL,
            "fallback_url": fallback,
        },
    )
    return HttpResponse(html, content_type="text/html", status=status_code)


def _callback_error(reason: str, message: str, **extra) -> HttpResponse:
    logger.warning("garmin.oauth.callback_failed", extra=safe_extra({"reason": reason, **extra}))
    response = _oauth_result_page(success=False, message=message)
    clear_oauth_cookies(response)
    return response


# ==============================================================================
#  1. AUTHORIZE
# ==============================================================================
class GarminAuthorizeView(CallerAthleteMixin, APIView):
    def get(self, request):
        athlete = self.require_caller(request)

        client_id = getattr(settings, "GARMIN_CLIENT_ID", "")
        redirect_uri = getattr(settings, "GARMIN_REDIRECT_URI", "")
        if not client_id or not redirect_uri:
            logger.error("garmin.oauth.missing_config", extra=safe_extra({
                "has_client_id": bool(client_id),
                "has_redirect_uri": bool(redirect_uri),
            }))
            return Response(
                {"error": "Garmin OAuth is not configured"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        code_verifier, code_challenge = generate_pkce_pair()
        # The athlete id travels as `state` and is checked against the signed cookie.
        auth_url = _garmin().get_oauth_authorize_url(
            state=str(athlete.pk),
            callback_uri=redirect_uri,
            code_challenge=code_challenge,
        )

        if str(request.query_params.get("popup", "")).lower() == "true":
            response = Response({"success": True, "url": auth_url})
        else:
            response = HttpResponseRedirect(auth_url)

        set_oauth_cookies(response, code_verifier=code_verifier, athlete_id=athlete.pk)
        logger.info("garmin.oauth.authorize", extra=safe_extra({
            "athlete_id": athlete.pk,
            "popup": isinstance(response, Response),
        }))
        return response


# ==============================================================================
#  2. CALLBACK
# ==============================================================================
class GarminCallbackView(APIView):
    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        t0 = time.monotonic()
        params = request.query_params

        oauth_error = params.get("error")
        if oauth_error:
            return _callback_error("provider_error", f"OAuth error: {oauth_error}", error=oauth_error)

        code = params.get("code")
        state = params.get("state")
        if not code or not state:
            return _callback_error(
                "missing_params",
                "Missing required parameters",
                has_code=bool(code),
                has_state=bool(state),
            )

        code_verifier, cookie_athlete_id, cookie_error = read_oauth_cookies(request)
        if cookie_error:
            return _callback_error(cookie_error, "Session expired. Please try again.")

        if str(state) != str(cookie_athlete_id):
            return _callback_error("state_mismatch", "Invalid OAuth state. Please try again.")

        athlete = Athlete.objects.filter(pk=cookie_athlete_id).first()
        if athlete is None:
            return _callback_error("athlete_not_found", "Athlete not found")

        redirect_uri = getattr(settings, "GARMIN_REDIRECT_URI", "")
        if not redirect_uri:
            return _callback_error("missing_redirect_uri", "Garmin redirect URI not configured")

        provider = _garmin()
        try:
            token_data = provider.exchange_code_for_token(code, redirect_uri, code_verifier=code_verifier)
        except (requests.exceptions.RequestException, ValueError) as exc:
            return _callback_error(
                "token_exchange_failed",
                "Token exchange failed. Please try again.",
                athlete_id=athlete.pk,
                error=str(exc),
            )

        access_token = token_data.get("access_token")
        if not access_token:
            return _callback_error("missing_access_token", "Token exchange failed. Please try again.")

        # Best effort: the webhook can still match the athlete later once this resolves.
        garmin_user_id = PENDING_GARMIN_USER_ID
        try:
            garmin_user_id = provider.get_external_user_id(access_token)
        except (requests.exceptions.RequestException, ValueError) as exc:
            logger.warning("garmin.oauth.user_id_lookup_failed", extra=safe_extra({
                "athlete_id": athlete.pk,
                "error": str(exc),
            }))

        result = persist_garmin_connection(
            athlete=athlete,
            token_data=token_data,
            garmin_user_id=garmin_user_id,
        )
        if not result.success:
            return _callback_error(result.error_reason, "Could not save Garmin connection", athlete_id=athlete.pk)

        response = _oauth_result_page(success=True)
        clear_oauth_cookies(response)
        logger.info("garmin.oauth.callback.outcome", extra=safe_extra({
            "athlete_id": athlete.pk,
            "garmin_user_id": garmin_user_id,
            "status": "connected",
            "duration_ms": int((time.monotonic() - t0) * 1000),
        }))
        return response


# ==============================================================================
#  3. STATUS / SYNC / DISCONNECT
# ==============================================================================
class GarminStatusView(CallerAthleteMixin, APIView):
    def get(self, request):
        athlete = self.require_caller(request)
        connection = GarminConnection.objects.filter(athlete=athlete).first()
        if connection is None:
            return Response({"success": True, "connected": False, "connection": None})
        return Response({
            "success": True,
            "connected": connection.is_connected,
            "connection": GarminConnectionStatusSerializer(connection).data,
        })


class GarminSyncView(CallerAthleteMixin, APIView):
    def post(self, request):
        athlete = self.require_caller(request)
        connection = GarminConnection.objects.filter(athlete=athlete).first()
        if connection is None or not connection.is_connected or not connection.garmin_user_id:
            return Response({"error": "Garmin not connected"}, status=status.HTTP_400_BAD_REQUEST)

        access_token = get_valid_access_token(athlete)
        if not access_token:
            return Response(
                {"error": "Failed to get valid access token"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        days = int(getattr(settings, "GARMIN_SYNC_DAYS", 30))
        start = timezone.now() - timedelta(days=days)
        try:
            activities = _garmin().fetch_activities(access_token, after=start)
        except requests.exceptions.HTTPError as exc:
            upstream = exc.response.status_code if exc.response is not None else 502
            logger.error("garmin.sync.fetch_failed", extra=safe_extra({
                "athlete_id": athlete.pk,
                "status_code": upstream,
            }))
            return Response({"error": f"Failed to fetch activities: {upstream}"}, status=upstream)
        except (requests.exceptions.RequestException, ValueError) as exc:
            logger.error("garmin.sync.fetch_failed", extra=safe_extra({
                "athlete_id": athlete.pk,
                "error": str(exc),
            }))
            return Response({"error": "Sync failed"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        saved = skipped = errors = 0
        for summary in activities:
            try:
                if isinstance(summary, dict) and save_activity_summary(athlete, summary):
                    saved += 1
                else:
                    skipped += 1
            except Exception:
                errors += 1
                logger.exception("garmin.sync.activity_failed", extra=safe_extra({"athlete_id": athlete.pk}))

        connection.last_sync_at = timezone.now()
        connection.save(update_fields=["last_sync_at", "updated_at"])

        summary = {"fetched": len(activities), "saved": saved, "skipped": skipped, "errors": errors}
        logger.info("garmin.sync.outcome", extra=safe_extra({"athlete_id": athlete.pk, **summary}))
        return Response({
            "success": True,
            "summary": summary,
            "message": f"Synced {saved} new activities",
        })


class GarminDisconnectView(CallerAthleteMixin, APIView):
    def post(self, request):
        athlete = self.require_caller(request)
        connection = GarminConnection.objects.filter(athlete=athlete).first()
        if connection is None:
            return Response({"error": "Garmin not connected"}, status=status.HTTP_400_BAD_REQUEST)
        connection.mark_disconnected()
        logger.info("garmin.disconnected", extra=safe_extra({"athlete_id": athlete.pk}))
        return Response({"success": True})
