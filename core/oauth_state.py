"""
PKCE pair generation and the short-lived signed cookies that carry the
code verifier and athlete id from /authorize to /callback.
"""
import base64
import hashlib
import logging
import secrets
from typing import Optional

from django.conf import settings
from django.core.signing import BadSignature, SignatureExpired

logger = logging.getLogger(__name__)

VERIFIER_COOKIE = "garmin_code_verifier"
ATHLETE_COOKIE = "garmin_athlete_id"
COOKIE_SALT = "core.oauth_state.garmin"

# Cookies (and therefore the whole authorize -> callback round trip) live 10 minutes
OAUTH_COOKIE_MAX_AGE_SECONDS = int(getattr(settings, "OAUTH_COOKIE_MAX_AGE_SECONDS", 600))


def generate_code_verifier() -> str:
    """32 random bytes, base64url without padding (43 chars)."""
    return base64.urlsafe_b64encode(secrets.token_bytes(32)).decode("utf-8").rstrip("=")


def generate_code_challenge(verifier: str) -> str:
    """S256: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")


def generate_pkce_pair() -> tuple[str, str]:
    verifier = generate_code_verifier()
    return verifier, generate_code_challenge(verifier)


def set_oauth_cookies(response, *, code_verifier: str, athlete_id) -> None:
    """Attach signed HttpOnly cookies to the authorize response."""
    secure = not settings.DEBUG
    for name, value in ((VERIFIER_COOKIE, code_verifier), (ATHLETE_COOKIE, str(athlete_id))):
        response.set_signed_cookie(
            name,
            value,
            salt=COOKIE_SALT,
            max_age=OAUTH_COOKIE_MAX_AGE_SECONDS,
            httponly=True,
            secure=secure,
            samesite="Lax",
            path="/",
        )


def read_oauth_cookies(request) -> tuple[Optional[str], Optional[str], Optional[str]]:
    """
    Read and verify the cookies set by set_oauth_cookies().

    Returns:
        (code_verifier, athlete_id, error_reason). error_reason is one of
        "missing_cookies", "expired_cookies", "invalid_cookies" or None.
    """
    if VERIFIER_COOKIE not in request.COOKIES or ATHLETE_COOKIE not in request.COOKIES:
        return None, None, "missing_cookies"

    try:
        verifier = request.get_signed_cookie(
            VERIFIER_COOKIE, salt=COOKIE_SALT, max_age=OAUTH_COOKIE_MAX_AGE_SECONDS
        )
        athlete_id = request.get_signed_cookie(
            ATHLETE_COOKIE, salt=COOKIE_SALT, max_age=OAUTH_COOKIE_MAX_AGE_SECONDS
        )
    except SignatureExpired:
        return None, None, "expired_cookies"
    except BadSignature:
        logger.warning("garmin.oauth.cookie_bad_signature")
        return None, None, "invalid_cookies"

    return verifier, athlete_id, None


def clear_oauth_cookies(response) -> None:
    response.delete_cookie(VERIFIER_COOKIE, path="/")
    response.delete_cookie(ATHLETE_COOKIE, path="/")
