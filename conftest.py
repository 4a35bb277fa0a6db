"""
Shared pytest fixtures.

Provides:
- make_athlete: User + Athlete factory
- client_for: APIClient authenticated with a simplejwt bearer token
"""
import itertools

import pytest

_seq = itertools.count(1)


@pytest.fixture
def make_athlete(db):
    """
    Factory: make_athlete(first_name="Ana", gofast_handle="ana") -> Athlete
    """
    from django.contrib.auth.models import User

    from core.models import Athlete

    def _make(**fields):
        n = next(_seq)
        user = User.objects.create_user(username=f"runner{n}", password="testpass", email=f"runner{n}@example.com")
        fields.setdefault("first_name", f"Runner{n}")
        fields.setdefault("email", user.email)
        return Athlete.objects.create(user=user, **fields)

    return _make


@pytest.fixture
def client_for():
    """
    Factory: client_for(user_or_athlete) -> APIClient with Authorization: Bearer <access>
    """
    from rest_framework.test import APIClient
    from rest_framework_simplejwt.tokens import RefreshToken

    def _client(owner):
        user = getattr(owner, "user", owner)
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {RefreshToken.for_user(user).access_token}")
        return client

    return _client


@pytest.fixture
def athlete(make_athlete):
    return make_athlete(first_name="Test", last_name="Athlete")


@pytest.fixture
def auth_client(client_for, athlete):
    return client_for(athlete)


@pytest.fixture
def anon_client():
    from rest_framework.test import APIClient

    return APIClient()
