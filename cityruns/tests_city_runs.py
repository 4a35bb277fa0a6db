import datetime

import pytest

from cityruns.models import CityRun, CityRunRSVP, day_name

LIST = "/api/runs/public"

MONDAY = datetime.date(2026, 3, 2)
WEDNESDAY = datetime.date(2026, 3, 4)


@pytest.fixture
def runs(db):
    return {
        "recurring_monday": CityRun.objects.create(
            title="Monday Social", city_slug="austin", is_recurring=True,
            day_of_week=CityRun.DayOfWeek.MONDAY, start_date=WEDNESDAY,
        ),
        "single_monday": CityRun.objects.create(
            title="Moonlight 5K", slug="moonlight-5k", city_slug="austin", start_date=MONDAY,
        ),
        "single_wednesday": CityRun.objects.create(
            title="Hump Day Hills", city_slug="austin", start_date=WEDNESDAY,
        ),
        "other_city": CityRun.objects.create(
            title="Lakefront Loop", city_slug="chicago", start_date=MONDAY,
        ),
    }


def _titles(response):
    return [run["title"] for run in response.json()["runs"]]


def test_day_name():
    assert day_name(MONDAY) == "Monday"
    assert day_name(WEDNESDAY) == "Wednesday"


@pytest.mark.django_db
class TestPublicList:
    def test_city_filter_and_ordering(self, anon_client, runs):
        response = anon_client.get(LIST, {"city": "AUSTIN"})

        assert response.status_code == 200
        assert _titles(response) == ["Moonlight 5K", "Monday Social", "Hump Day Hills"]

    def test_gofast_city_alias(self, anon_client, runs):
        assert _titles(anon_client.get(LIST, {"gofastCity": "chicago"})) == ["Lakefront Loop"]

    def test_day_matches_recurring_and_single_runs(self, anon_client, runs):
        response = anon_client.get(LIST, {"city": "austin", "day": "monday"})

        assert sorted(_titles(response)) == ["Monday Social", "Moonlight 5K"]
        assert {run["weekday"] for run in response.json()["runs"]} == {"Monday"}

    def test_recurring_run_ignores_start_date_weekday(self, anon_client, runs):
        assert _titles(anon_client.get(LIST, {"city": "austin", "day": "Wednesday"})) == ["Hump Day Hills"]

    @pytest.mark.parametrize("day", ["All Days", "Someday", ""])
    def test_all_days_or_unknown_does_not_filter(self, anon_client, runs, day):
        assert len(anon_client.get(LIST, {"city": "austin", "day": day}).json()["runs"]) == 3

    def test_creator_is_not_exposed(self, anon_client, runs, athlete):
        runs["single_monday"].created_by = athlete
        runs["single_monday"].save()

        run = anon_client.get(LIST, {"city": "austin"}).json()["runs"][0]

        assert "created_by" not in run

    def test_bearer_token_is_ignored(self, auth_client, runs):
        assert auth_client.get(LIST).status_code == 200


@pytest.mark.django_db
class TestPublicDetail:
    def test_by_id_with_going_count(self, anon_client, runs, make_athlete):
        run = runs["single_monday"]
        CityRunRSVP.objects.create(run=run, athlete=make_athlete(), status="going")
        CityRunRSVP.objects.create(run=run, athlete=make_athlete(), status="going")
        CityRunRSVP.objects.create(run=run, athlete=make_athlete(), status="not-going")

        response = anon_client.get(f"{LIST}/{run.pk}")

        assert response.status_code == 200
        assert response.json()["run"]["going_count"] == 2

    def test_by_slug(self, anon_client, runs):
        body = anon_client.get(f"{LIST}/moonlight-5k").json()
        assert body["run"]["id"] == runs["single_monday"].pk
        assert body["run"]["going_count"] == 0

    def test_unknown_is_404(self, anon_client, db):
        response = anon_client.get(f"{LIST}/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"error": "CityRun not found"}

    def test_empty_slug_is_stored_as_null(self, runs):
        assert runs["single_wednesday"].slug is None

    def test_timezone_field_and_created_at_default(self, anon_client, db):
        run = CityRun.objects.create(
            title="Sunrise Miles", city_slug="denver", start_date=MONDAY, timezone="America/Denver",
        )

        body = anon_client.get(f"{LIST}/{run.pk}").json()

        assert run.created_at is not None
        assert body["run"]["timezone"] == "America/Denver"


@pytest.mark.django_db
class TestRSVP:
    def _url(self, run):
        return f"/api/runs/{run.pk}/rsvp"

    def test_requires_authentication(self, anon_client, runs):
        assert anon_client.post(self._url(runs["single_monday"]), {"status": "going"}, format="json").status_code == 401

    def test_invalid_status(self, auth_client, runs):
        response = auth_client.post(self._url(runs["single_monday"]), {"status": "maybe"}, format="json")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid status. Must be going or not-going"}

    def test_unknown_run_is_404(self, auth_client, db):
        assert auth_client.post("/api/runs/999999/rsvp", {"status": "going"}, format="json").status_code == 404

    def test_upsert_per_athlete(self, auth_client, athlete, runs):
        run = runs["recurring_monday"]

        first = auth_client.post(
            self._url(run),
            {"status": "going", "occurrenceDate": "2026-03-09", "rsvpPhotoUrls": ["https://img.example.com/a.jpg"]},
            format="json",
        )
        second = auth_client.post(self._url(run), {"status": "not-going"}, format="json")

        assert first.status_code == 201
        assert first.json()["rsvp"]["occurrence_date"] == "2026-03-09"
        assert second.status_code == 200
        rsvp = CityRunRSVP.objects.get(run=run, athlete=athlete)
        assert rsvp.status == "not-going"
        assert CityRunRSVP.objects.filter(run=run).count() == 1

    def test_photo_urls_must_be_a_list(self, auth_client, runs):
        response = auth_client.post(
            self._url(runs["single_monday"]), {"status": "going", "rsvpPhotoUrls": "nope"}, format="json",
        )
        assert response.status_code == 400
