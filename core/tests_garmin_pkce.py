"""
PKCE helpers and the signed cookies that carry the verifier to the callback.
"""
import base64
import hashlib
import re

import pytest
from django.http import HttpResponse
from django.test import RequestFactory

from core import oauth_state
from core.oauth_state import (
    ATHLETE_COOKIE,
    VERIFIER_COOKIE,
    generate_code_challenge,
    generate_code_verifier,
    generate_pkce_pair,
    read_oauth_cookies,
    set_oauth_cookies,
)


def test_code_verifier_is_base64url_without_padding():
    verifier = generate_code_verifier()
    assert len(verifier) == 43
    assert re.fullmatch(r"[A-Za-z0-9_-]+", verifier)


def test_code_verifier_is_random():
    assert generate_code_verifier() != generate_code_verifier()


def test_code_challenge_is_s256_base64url():
    verifier = "dBjftJeZ4CVP-mJ92K27uhbUJU1p1r_wW1gFWFOEjXk"
    expected = base64.urlsafe_b64encode(hashlib.sha256(verifier.encode("ascii")).digest()).rstrip(b"=").decode("ascii")

    challenge = generate_code_challenge(verifier)

    assert challenge == expected
    assert challenge == "ngF5GsXcbwljx6u133FFr3Xht9xooA_DuaX_3QwODtc"
    assert len(challenge) == 43
    assert re.fullmatch(r"[A-Za-z0-9_-]+", challenge)


def test_pkce_pair_is_consistent():
    verifier, challenge = generate_pkce_pair()
    assert challenge == generate_code_challenge(verifier)
    assert "=" not in challenge


def _request_with_cookies_from(response):
    request = RequestFactory().get("/api/auth/garmin/callback")
    request.COOKIES = {name: morsel.value for name, morsel in response.cookies.items()}
    return request


def test_cookies_round_trip():
    response = HttpResponse()
    set_oauth_cookies(response, code_verifier="verifier-123", athlete_id=42)

    cookie = response.cookies[VERIFIER_COOKIE]
    assert cookie["httponly"] is True
    assert cookie["samesite"] == "Lax"
    assert int(cookie["max-age"]) == 600

    verifier, athlete_id, error = read_oauth_cookies(_request_with_cookies_from(response))
    assert (verifier, athlete_id, error) == ("verifier-123", "42", None)


def test_missing_cookies():
    request = RequestFactory().get("/")
    request.COOKIES = {}
    assert read_oauth_cookies(request) == (None, None, "missing_cookies")


def test_tampered_cookie_is_invalid():
    response = HttpResponse()
    set_oauth_cookies(response, code_verifier="verifier-123", athlete_id=42)
    request = _request_with_cookies_from(response)
    request.COOKIES[ATHLETE_COOKIE] = "43:forged:signature"

    assert read_oauth_cookies(request)[2] == "invalid_cookies"


def test_expired_cookies(monkeypatch):
    response = HttpResponse()
    set_oauth_cookies(response, code_verifier="verifier-123", athlete_id=42)
    monkeypatch.setattr(oauth_state, "OAUTH_COOKIE_MAX_AGE_SECONDS", -1)

    assert read_oauth_cookies(_request_with_cookies_from(response))[2] == "expired_cookies"


@pytest.mark.parametrize("debug,secure", [(True, False), (False, True)])
def test_cookies_are_secure_outside_debug(settings, debug, secure):
    settings.DEBUG = debug
    response = HttpResponse()
    set_oauth_cookies(response, code_verifier="v", athlete_id=1)
    assert bool(response.cookies[VERIFIER_COOKIE]["secure"]) is secure
