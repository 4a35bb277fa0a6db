import pytest

from runcrews.models import (
    RunCrew,
    RunCrewAnnouncement,
    RunCrewMembership,
    RunCrewMessage,
    RunCrewRun,
    RunCrewRunRSVP,
)

Role = RunCrewMembership.Role


@pytest.fixture
def crew_with_admin(db, athlete):
    crew = RunCrew.objects.create(name="Trail Rats", join_code="rats01", city="Boulder", state="CO")
    RunCrewMembership.objects.create(run_crew=crew, athlete=athlete, role=Role.ADMIN)
    return crew


@pytest.fixture
def member(crew_with_admin, make_athlete):
    return RunCrewMembership.objects.create(run_crew=crew_with_admin, athlete=make_athlete(), role=Role.MEMBER).athlete


# ==============================================================================
#  Create / join / hydrate
# ==============================================================================
@pytest.mark.django_db
class TestCreateAndJoin:
    def test_creator_becomes_admin(self, auth_client, athlete):
        response = auth_client.post(
            "/api/runcrew/create/",
            {"name": "Sunrise Striders", "description": "6am club", "city": "Denver"},
            format="json",
        )

        assert response.status_code == 201
        body = response.json()
        assert body["membership"]["role"] == "admin"
        crew = RunCrew.objects.get(pk=body["run_crew"]["id"])
        assert crew.handle == "sunrise-striders"
        assert len(crew.join_code) == 6
        assert crew.join_code == crew.join_code.upper()

    def test_explicit_join_code_is_normalised(self, auth_client):
        response = auth_client.post("/api/runcrew/create/", {"name": "X", "joinCode": " abc123 "}, format="json")
        assert response.status_code == 201
        assert response.json()["run_crew"]["join_code"] == "ABC123"

    def test_duplicate_join_code_is_400(self, auth_client, crew_with_admin):
        response = auth_client.post("/api/runcrew/create/", {"name": "Copycats", "joinCode": "RATS01"}, format="json")
        assert response.status_code == 400

    def test_join_by_code_is_case_insensitive(self, client_for, crew_with_admin, make_athlete):
        runner = make_athlete()

        response = client_for(runner).post("/api/runcrew/join/", {"joinCode": "rats01"}, format="json")

        assert response.status_code == 201
        assert response.json()["membership"]["role"] == "member"
        assert RunCrewMembership.objects.filter(run_crew=crew_with_admin, athlete=runner).exists()

    def test_join_is_idempotent(self, client_for, crew_with_admin, member):
        response = client_for(member).post("/api/runcrew/join/", {"joinCode": "RATS01"}, format="json")

        assert response.status_code == 200
        assert response.json()["already_member"] is True
        assert RunCrewMembership.objects.filter(run_crew=crew_with_admin, athlete=member).count() == 1

    def test_invalid_code_is_404(self, auth_client):
        response = auth_client.post("/api/runcrew/join/", {"joinCode": "NOPE99"}, format="json")
        assert response.status_code == 404
        assert response.json() == {"error": "Invalid join code"}

    def test_hydrate_for_member(self, auth_client, crew_with_admin):
        RunCrewAnnouncement.objects.create(run_crew=crew_with_admin, title="Hi", content="Welcome")

        response = auth_client.post("/api/runcrew/hydrate/", {"runCrewId": crew_with_admin.pk}, format="json")

        assert response.status_code == 200
        data = response.json()["run_crew"]
        assert data["user_role"] == "admin"
        assert len(data["memberships"]) == 1
        assert data["announcements"][0]["title"] == "Hi"
        for key in ("messages", "runs", "events"):
            assert data[key] == []

    def test_hydrate_requires_membership(self, client_for, crew_with_admin, make_athlete):
        response = client_for(make_athlete()).post(
            "/api/runcrew/hydrate/", {"runCrewId": crew_with_admin.pk}, format="json",
        )
        assert response.status_code == 403

    def test_hydrate_requires_crew_id(self, auth_client):
        assert auth_client.post("/api/runcrew/hydrate/", {}, format="json").status_code == 400


# ==============================================================================
#  Detail / settings
# ==============================================================================
@pytest.mark.django_db
class TestCrewDetail:
    def test_member_sees_join_code(self, auth_client, crew_with_admin):
        body = auth_client.get(f"/api/runcrew/{crew_with_admin.pk}/").json()
        assert body["run_crew"]["join_code"] == "RATS01"
        assert body["user_role"] == "admin"

    def test_non_member_gets_public_view(self, client_for, crew_with_admin, make_athlete):
        body = client_for(make_athlete()).get(f"/api/runcrew/{crew_with_admin.pk}/").json()
        assert "join_code" not in body["run_crew"]
        assert body["run_crew"]["member_count"] == 1
        assert body["user_role"] is None

    def test_admin_updates_settings(self, auth_client, crew_with_admin):
        response = auth_client.put(
            f"/api/runcrew/{crew_with_admin.pk}/", {"description": "Dirt only"}, format="json",
        )
        assert response.status_code == 200
        crew_with_admin.refresh_from_db()
        assert crew_with_admin.description == "Dirt only"

    def test_member_cannot_update(self, client_for, crew_with_admin, member):
        response = client_for(member).put(f"/api/runcrew/{crew_with_admin.pk}/", {"name": "Mine"}, format="json")
        assert response.status_code == 403

    def test_join_code_taken_by_case_is_400(self, auth_client, crew_with_admin):
        RunCrew.objects.create(name="Other Crew", join_code="TAKEN1")

        response = auth_client.put(f"/api/runcrew/{crew_with_admin.pk}/", {"join_code": "taken1"}, format="json")

        assert response.status_code == 400
        assert response.json()["details"]["join_code"] == ["Join code already in use"]
        crew_with_admin.refresh_from_db()
        assert crew_with_admin.join_code == "RATS01"

    def test_join_code_update_is_normalised(self, auth_client, crew_with_admin):
        response = auth_client.put(f"/api/runcrew/{crew_with_admin.pk}/", {"joinCode": " new777 "}, format="json")

        assert response.status_code == 200
        assert response.json()["run_crew"]["join_code"] == "NEW777"

    def test_keeping_own_join_code_is_allowed(self, auth_client, crew_with_admin):
        response = auth_client.put(f"/api/runcrew/{crew_with_admin.pk}/", {"join_code": "rats01"}, format="json")
        assert response.status_code == 200

    def test_blank_join_code_is_400(self, auth_client, crew_with_admin):
        response = auth_client.put(f"/api/runcrew/{crew_with_admin.pk}/", {"join_code": "   "}, format="json")
        assert response.status_code == 400

    def test_admin_deletes_crew(self, auth_client, crew_with_admin):
        assert auth_client.delete(f"/api/runcrew/{crew_with_admin.pk}/").status_code == 200
        assert not RunCrew.objects.filter(pk=crew_with_admin.pk).exists()


# ==============================================================================
#  Content: announcements, messages, runs, events
# ==============================================================================
@pytest.mark.django_db
class TestCrewContent:
    def test_member_cannot_post_announcement(self, client_for, crew_with_admin, member):
        response = client_for(member).post(
            f"/api/runcrew/{crew_with_admin.pk}/announcements/", {"title": "t", "content": "c"}, format="json",
        )
        assert response.status_code == 403

    def test_archived_announcements_are_hidden(self, auth_client, crew_with_admin):
        created = auth_client.post(
            f"/api/runcrew/{crew_with_admin.pk}/announcements/", {"title": "Race day", "content": "Go"}, format="json",
        )
        announcement_id = created.json()["announcement"]["id"]

        archived = auth_client.delete(f"/api/runcrew/{crew_with_admin.pk}/announcements/{announcement_id}/")
        listed = auth_client.get(f"/api/runcrew/{crew_with_admin.pk}/announcements/")

        assert archived.status_code == 200
        assert RunCrewAnnouncement.objects.get(pk=announcement_id).archived_at is not None
        assert listed.json()["announcements"] == []

    def test_member_cannot_edit_or_archive_others_announcement(self, client_for, athlete, crew_with_admin, member):
        announcement = RunCrewAnnouncement.objects.create(
            run_crew=crew_with_admin, author=athlete, title="Race day", content="Go",
        )
        url = f"/api/runcrew/{crew_with_admin.pk}/announcements/{announcement.pk}/"

        assert client_for(member).put(url, {"title": "Hijacked"}, format="json").status_code == 403
        assert client_for(member).delete(url).status_code == 403
        announcement.refresh_from_db()
        assert announcement.title == "Race day"
        assert announcement.archived_at is None

    def test_manager_edits_admin_announcement(self, client_for, athlete, crew_with_admin, make_athlete):
        manager = make_athlete()
        RunCrewMembership.objects.create(run_crew=crew_with_admin, athlete=manager, role=Role.MANAGER)
        announcement = RunCrewAnnouncement.objects.create(
            run_crew=crew_with_admin, author=athlete, title="Race day", content="Go",
        )

        response = client_for(manager).put(
            f"/api/runcrew/{crew_with_admin.pk}/announcements/{announcement.pk}/", {"content": "Moved to 7am"}, format="json",
        )

        assert response.status_code == 200
        announcement.refresh_from_db()
        assert announcement.content == "Moved to 7am"

    def test_archived_announcement_cannot_be_edited(self, auth_client, athlete, crew_with_admin):
        announcement = RunCrewAnnouncement.objects.create(
            run_crew=crew_with_admin, author=athlete, title="Old", content="Gone",
        )
        announcement.archive()

        response = auth_client.put(
            f"/api/runcrew/{crew_with_admin.pk}/announcements/{announcement.pk}/", {"title": "Back"}, format="json",
        )

        assert response.status_code == 404

    def test_member_posts_message(self, client_for, crew_with_admin, member):
        response = client_for(member).post(
            f"/api/runcrew/{crew_with_admin.pk}/messages/", {"content": "See you at 6"}, format="json",
        )
        assert response.status_code == 201
        assert response.json()["message"]["athlete"]["id"] == member.pk

    def test_non_member_cannot_post_message(self, client_for, crew_with_admin, make_athlete):
        response = client_for(make_athlete()).post(
            f"/api/runcrew/{crew_with_admin.pk}/messages/", {"content": "spam"}, format="json",
        )
        assert response.status_code == 403
        assert not RunCrewMessage.objects.exists()

    def test_empty_message_is_400(self, auth_client, crew_with_admin):
        response = auth_client.post(f"/api/runcrew/{crew_with_admin.pk}/messages/", {"content": "  "}, format="json")
        assert response.status_code == 400

    def test_only_author_or_admin_edits_message(self, client_for, auth_client, crew_with_admin, member, make_athlete):
        other = make_athlete()
        RunCrewMembership.objects.create(run_crew=crew_with_admin, athlete=other)
        message = RunCrewMessage.objects.create(run_crew=crew_with_admin, athlete=member, content="orig")
        url = f"/api/runcrew/{crew_with_admin.pk}/messages/{message.pk}/"

        assert client_for(other).put(url, {"content": "hacked"}, format="json").status_code == 403
        assert client_for(member).put(url, {"content": "edited"}, format="json").status_code == 200
        assert auth_client.delete(url).status_code == 200
        assert not RunCrewMessage.objects.filter(pk=message.pk).exists()

    def test_runs_and_rsvp(self, client_for, auth_client, crew_with_admin, member):
        created = auth_client.post(
            f"/api/runcrew/{crew_with_admin.pk}/runs/",
            {"title": "Tempo Tuesday", "date": "2026-03-03", "start_time": "6:00 AM", "total_miles": 5},
            format="json",
        )
        assert created.status_code == 201
        run_id = created.json()["run"]["id"]

        rsvp_url = f"/api/runcrew/{crew_with_admin.pk}/runs/{run_id}/rsvp/"
        assert client_for(member).post(rsvp_url, {"status": "maybe"}, format="json").status_code == 200
        assert client_for(member).post(rsvp_url, {"status": "going"}, format="json").status_code == 200
        assert client_for(member).post(rsvp_url, {"status": "yes"}, format="json").status_code == 400

        rsvp = RunCrewRunRSVP.objects.get(run_id=run_id, athlete=member)
        assert rsvp.status == "going"

        detail = client_for(member).get(f"/api/runcrew/{crew_with_admin.pk}/runs/{run_id}/").json()
        assert detail["run"]["rsvps"][0]["status"] == "going"

    def test_member_cannot_edit_someone_elses_run(self, client_for, crew_with_admin, member, athlete):
        run = RunCrewRun.objects.create(run_crew=crew_with_admin, created_by=athlete, title="Long", date="2026-03-08")
        url = f"/api/runcrew/{crew_with_admin.pk}/runs/{run.pk}/"

        assert client_for(member).put(url, {"title": "Short"}, format="json").status_code == 403
        assert client_for(member).delete(url).status_code == 403

    def test_events_accept_event_type_alias(self, auth_client, crew_with_admin):
        response = auth_client.post(
            f"/api/runcrew/{crew_with_admin.pk}/events/",
            {"title": "Potluck", "date": "2026-04-01", "time": "7 PM", "location": "Park", "eventType": "social"},
            format="json",
        )
        assert response.status_code == 201
        assert response.json()["event"]["event_type"] == "social"


# ==============================================================================
#  Public / discover / me
# ==============================================================================
@pytest.mark.django_db
class TestPublicEndpoints:
    def test_public_by_handle_hides_join_code(self, anon_client, crew_with_admin):
        response = anon_client.get(f"/api/runcrew/public/handle/{crew_with_admin.handle.upper()}/")

        assert response.status_code == 200
        body = response.json()["run_crew"]
        assert body["name"] == "Trail Rats"
        assert "join_code" not in body

    def test_public_by_unknown_handle(self, anon_client, db):
        assert anon_client.get("/api/runcrew/public/handle/nope/").status_code == 404

    def test_discover_filters(self, anon_client, crew_with_admin):
        RunCrew.objects.create(name="City Sprinters", city="Denver", state="CO")
        RunCrew.objects.create(name="Beach Joggers", city="Miami", state="FL", description="sand and sun")

        by_state = anon_client.get("/api/runcrew/discover/", {"state": "co"}).json()
        by_search = anon_client.get("/api/runcrew/discover/", {"search": "SAND"}).json()
        limited = anon_client.get("/api/runcrew/discover/", {"limit": 1}).json()

        assert by_state["count"] == 2
        assert [c["name"] for c in by_search["run_crews"]] == ["Beach Joggers"]
        assert limited["count"] == 1
        assert all("join_code" not in c for c in by_state["run_crews"])

    def test_my_crews(self, auth_client, crew_with_admin):
        body = auth_client.get("/api/me/run-crews/").json()
        assert body["run_crews"][0]["id"] == crew_with_admin.pk
        assert body["run_crews"][0]["role"] == "admin"


@pytest.mark.django_db
class TestEnsureCrewAdminsCommand:
    def _orphan_crew(self, make_athlete):
        crew = RunCrew.objects.create(name="Headless")
        first = RunCrewMembership.objects.create(run_crew=crew, athlete=make_athlete(), role=Role.MEMBER)
        RunCrewMembership.objects.create(run_crew=crew, athlete=make_athlete(), role=Role.MANAGER)
        return crew, first

    def test_dry_run_changes_nothing(self, make_athlete, crew_with_admin):
        from io import StringIO

        from django.core.management import call_command

        crew, first = self._orphan_crew(make_athlete)
        out = StringIO()

        call_command("ensure_crew_admins", stdout=out)

        first.refresh_from_db()
        assert first.role == Role.MEMBER
        assert f"crew={crew.pk}" in out.getvalue()
        assert f"crew={crew_with_admin.pk}" not in out.getvalue()
        assert "crews_sin_admin=1 promovidos=0" in out.getvalue()

    def test_apply_promotes_earliest_member(self, make_athlete):
        from io import StringIO

        from django.core.management import call_command

        crew, first = self._orphan_crew(make_athlete)

        call_command("ensure_crew_admins", "--apply", stdout=StringIO())

        first.refresh_from_db()
        assert first.role == Role.ADMIN
        assert crew.memberships.filter(role=Role.ADMIN).count() == 1
