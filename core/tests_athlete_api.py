from datetime import timedelta

import pytest
from django.contrib.auth.models import User
from django.utils import timezone

from core.models import Activity, Athlete


@pytest.mark.django_db
class TestAthleteCreate:
    def test_creates_profile_once(self, client_for):
        user = User.objects.create_user(username="new-runner", password="x", email="new@example.com")
        client = client_for(user)

        first = client.post("/api/athlete/create", {"firstName": "Nora"}, format="json")
        second = client.post("/api/athlete/create", {"firstName": "Other"}, format="json")

        assert first.status_code == 201
        assert first.json()["athlete"]["first_name"] == "Nora"
        assert first.json()["athlete"]["email"] == "new@example.com"
        assert second.status_code == 200
        assert second.json()["created"] is False
        assert Athlete.objects.filter(user=user).count() == 1

    def test_requires_authentication(self, anon_client):
        assert anon_client.post("/api/athlete/create", {}, format="json").status_code == 401


@pytest.mark.django_db
class TestAthleteHydrate:
    def test_returns_crews_and_weekly_totals(self, auth_client, athlete):
        from runcrews.models import RunCrew, RunCrewMembership

        crew = RunCrew.objects.create(name="Dawn Patrol")
        RunCrewMembership.objects.create(run_crew=crew, athlete=athlete, role=RunCrewMembership.Role.ADMIN)
        now = timezone.now()
        Activity.objects.create(athlete=athlete, source_activity_id="a", start_time=now, distance=5000, duration=1500)
        Activity.objects.create(
            athlete=athlete, source_activity_id="b", start_time=now - timedelta(days=2), distance=3000, duration=900,
        )
        Activity.objects.create(athlete=athlete, source_activity_id="old", start_time=now - timedelta(days=30))

        response = auth_client.get("/api/athlete/hydrate")

        assert response.status_code == 200
        body = response.json()
        assert body["athlete"]["id"] == athlete.pk
        assert body["run_crews"][0]["name"] == "Dawn Patrol"
        assert body["run_crews"][0]["role"] == "admin"
        assert "joined_at" in body["run_crews"][0]
        assert len(body["weekly_activities"]) == 2
        assert body["weekly_totals"] == {"distance": 8000.0, "duration": 2400, "activities": 2}

    def test_post_is_accepted(self, auth_client):
        assert auth_client.post("/api/athlete/hydrate").status_code == 200

    def test_user_without_profile_is_404(self, client_for):
        user = User.objects.create_user(username="ghost", password="x")
        response = client_for(user).get("/api/athlete/hydrate")
        assert response.status_code == 404
        assert response.json() == {"error": "Athlete not found"}


@pytest.mark.django_db
class TestAthleteDetail:
    def test_anyone_authenticated_can_read(self, client_for, athlete, make_athlete):
        other = make_athlete()
        response = client_for(other).get(f"/api/athlete/{athlete.pk}")

        assert response.status_code == 200
        assert response.json()["athlete"]["id"] == athlete.pk

    def test_owner_can_update(self, auth_client, athlete):
        response = auth_client.put(
            f"/api/athlete/{athlete.pk}",
            {"city": "Boulder", "gofastHandle": "  FastFeet "},
            format="json",
        )

        assert response.status_code == 200
        athlete.refresh_from_db()
        assert athlete.city == "Boulder"
        assert athlete.gofast_handle == "fastfeet"

    def test_other_user_cannot_update(self, client_for, athlete, make_athlete):
        other = make_athlete()

        response = client_for(other).put(f"/api/athlete/{athlete.pk}", {"city": "Nope"}, format="json")

        assert response.status_code == 403
        assert response.json() == {"error": "You can only update your own profile"}

    def test_taken_handle_is_rejected(self, auth_client, athlete, make_athlete):
        make_athlete(gofast_handle="taken")

        response = auth_client.put(f"/api/athlete/{athlete.pk}", {"gofast_handle": "TAKEN"}, format="json")

        assert response.status_code == 400
        assert "details" in response.json()

    def test_unknown_athlete_is_404(self, auth_client):
        assert auth_client.get("/api/athlete/999999").status_code == 404


@pytest.mark.django_db
class TestCheckHandle:
    def test_missing_handle_is_400(self, auth_client):
        assert auth_client.get("/api/athlete/check-handle").status_code == 400

    def test_available_and_normalised(self, auth_client):
        body = auth_client.get("/api/athlete/check-handle", {"handle": "  NewName "}).json()
        assert body == {"success": True, "available": True, "handle": "newname"}

    def test_taken_by_someone_else(self, auth_client, make_athlete):
        make_athlete(gofast_handle="speedy")
        assert auth_client.get("/api/athlete/check-handle", {"handle": "Speedy"}).json()["available"] is False

    def test_own_handle_counts_as_available(self, auth_client, athlete):
        athlete.gofast_handle = "mine"
        athlete.save()
        assert auth_client.get("/api/athlete/check-handle", {"handle": "MINE"}).json()["available"] is True
