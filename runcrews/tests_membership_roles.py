"""
Role-gated membership operations.

Tests cover:
- Guard chain: 404 unknown crew, 403 non-member, 403 wrong role
- Self-demotion / self-removal -> 400
- Last admin protection -> 400
- Leave rules (admins and last member)
- Ownership transfer (both role updates in one transaction)
"""
from unittest.mock import patch

import pytest
from rest_framework.exceptions import ValidationError

from runcrews.access import require_crew_access
from runcrews.models import RunCrew, RunCrewMembership
from runcrews.services import change_member_role, remove_member

Role = RunCrewMembership.Role


@pytest.fixture
def crew(db):
    return RunCrew.objects.create(name="Morning Milers", city="Austin", state="TX")


@pytest.fixture
def members(crew, make_athlete):
    """admin + manager + member del mismo crew."""
    admin = make_athlete(first_name="Ada")
    manager = make_athlete(first_name="Max")
    member = make_athlete(first_name="Mia")
    return {
        "admin": RunCrewMembership.objects.create(run_crew=crew, athlete=admin, role=Role.ADMIN),
        "manager": RunCrewMembership.objects.create(run_crew=crew, athlete=manager, role=Role.MANAGER),
        "member": RunCrewMembership.objects.create(run_crew=crew, athlete=member, role=Role.MEMBER),
    }


def _url(crew, suffix=""):
    return f"/api/runcrew/{crew.pk}/{suffix}"


@pytest.mark.django_db
class TestGuardChain:
    def test_unknown_crew_is_404(self, auth_client):
        response = auth_client.get("/api/runcrew/999999/members/")
        assert response.status_code == 404
        assert response.json() == {"error": "RunCrew not found"}

    def test_non_member_is_403(self, auth_client, crew, members):
        response = auth_client.get(_url(crew, "members/"))
        assert response.status_code == 403
        assert response.json() == {"error": "You are not a member of this RunCrew"}

    def test_member_cannot_change_roles(self, client_for, crew, members):
        response = client_for(members["member"].athlete).put(
            _url(crew, f"members/{members['manager'].pk}/"), {"role": "member"}, format="json",
        )
        assert response.status_code == 403
        assert response.json() == {"error": "Forbidden - admin only"}

    def test_manager_cannot_delete_crew(self, client_for, crew, members):
        assert client_for(members["manager"].athlete).delete(_url(crew)).status_code == 403
        assert RunCrew.objects.filter(pk=crew.pk).exists()

    def test_unauthenticated_is_401(self, anon_client, crew):
        assert anon_client.get(_url(crew, "members/")).status_code == 401


@pytest.mark.django_db
class TestChangeRole:
    def test_admin_promotes_member(self, client_for, crew, members):
        response = client_for(members["admin"].athlete).put(
            _url(crew, f"members/{members['member'].pk}/"), {"role": "manager"}, format="json",
        )

        assert response.status_code == 200
        assert response.json()["membership"]["role"] == "manager"
        members["member"].refresh_from_db()
        assert members["member"].role == Role.MANAGER

    def test_invalid_role_is_400(self, client_for, crew, members):
        response = client_for(members["admin"].athlete).put(
            _url(crew, f"members/{members['member'].pk}/"), {"role": "owner"}, format="json",
        )
        assert response.status_code == 400

    def test_self_demotion_is_400(self, client_for, crew, members):
        response = client_for(members["admin"].athlete).put(
            _url(crew, f"members/{members['admin'].pk}/"), {"role": "member"}, format="json",
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot demote yourself. Transfer ownership first."
        members["admin"].refresh_from_db()
        assert members["admin"].role == Role.ADMIN

    def test_one_of_two_admins_can_be_demoted(self, client_for, crew, members, make_athlete):
        second = RunCrewMembership.objects.create(run_crew=crew, athlete=make_athlete(), role=Role.ADMIN)

        response = client_for(second.athlete).put(
            _url(crew, f"members/{members['admin'].pk}/"), {"role": "member"}, format="json",
        )

        assert response.status_code == 200
        assert RunCrewMembership.objects.filter(run_crew=crew, role=Role.ADMIN).count() == 1

    def test_last_admin_cannot_be_demoted(self, crew, members):
        # Snapshot desactualizado (demociones concurrentes): el caller ya no es admin
        # y el target es el único admin que queda.
        access = require_crew_access(user=members["admin"].athlete.user, crew_id=crew.pk)
        access.membership = members["manager"]

        with pytest.raises(ValidationError):
            change_member_role(access, members["admin"].pk, Role.MEMBER)

        members["admin"].refresh_from_db()
        assert members["admin"].role == Role.ADMIN

    def test_unknown_membership_is_404(self, client_for, crew, members):
        response = client_for(members["admin"].athlete).put(
            _url(crew, "members/999999/"), {"role": "manager"}, format="json",
        )
        assert response.status_code == 404


@pytest.mark.django_db
class TestRemoveMember:
    def test_admin_removes_member(self, client_for, crew, members):
        target = members["member"]

        response = client_for(members["admin"].athlete).delete(_url(crew, f"members/{target.pk}/"))

        assert response.status_code == 200
        assert response.json() == {"success": True, "removed_membership_id": target.pk}
        assert not RunCrewMembership.objects.filter(pk=target.pk).exists()

    def test_self_removal_is_400(self, client_for, crew, members):
        response = client_for(members["admin"].athlete).delete(_url(crew, f"members/{members['admin'].pk}/"))
        assert response.status_code == 400
        assert RunCrewMembership.objects.filter(pk=members["admin"].pk).exists()

    def test_admin_removes_other_admin(self, client_for, crew, members, make_athlete):
        second = RunCrewMembership.objects.create(run_crew=crew, athlete=make_athlete(), role=Role.ADMIN)

        response = client_for(second.athlete).delete(_url(crew, f"members/{members['admin'].pk}/"))

        assert response.status_code == 200

    def test_cannot_remove_last_admin(self, crew, members):
        access = require_crew_access(user=members["admin"].athlete.user, crew_id=crew.pk)
        access.membership = members["manager"]

        with pytest.raises(ValidationError):
            remove_member(access, members["admin"].pk)

        assert RunCrewMembership.objects.filter(pk=members["admin"].pk).exists()


@pytest.mark.django_db
class TestLeave:
    def test_member_can_leave(self, client_for, crew, members):
        response = client_for(members["member"].athlete).post(_url(crew, "leave/"))
        assert response.status_code == 200
        assert not RunCrewMembership.objects.filter(pk=members["member"].pk).exists()

    def test_admin_cannot_leave(self, client_for, crew, members):
        response = client_for(members["admin"].athlete).post(_url(crew, "leave/"))
        assert response.status_code == 400
        assert "Transfer ownership" in response.json()["error"]

    def test_last_member_cannot_leave(self, client_for, crew, make_athlete):
        only = RunCrewMembership.objects.create(run_crew=crew, athlete=make_athlete(), role=Role.MEMBER)
        response = client_for(only.athlete).post(_url(crew, "leave/"))
        assert response.status_code == 400

    def test_non_member_leave_is_403(self, auth_client, crew, members):
        assert auth_client.post(_url(crew, "leave/")).status_code == 403


@pytest.mark.django_db
class TestTransferOwnership:
    def test_transfer_swaps_roles(self, client_for, crew, members):
        response = client_for(members["admin"].athlete).post(
            _url(crew, "transfer-ownership/"),
            {"newOwnerMembershipId": members["member"].pk},
            format="json",
        )

        assert response.status_code == 200
        body = response.json()
        assert body["new_owner"]["role"] == "admin"
        assert body["previous_owner"]["role"] == "member"
        members["admin"].refresh_from_db()
        members["member"].refresh_from_db()
        assert members["admin"].role == Role.MEMBER
        assert members["member"].role == Role.ADMIN

    def test_transfer_to_self_is_400(self, client_for, crew, members):
        response = client_for(members["admin"].athlete).post(
            _url(crew, "transfer-ownership/"), {"newOwnerMembershipId": members["admin"].pk}, format="json",
        )
        assert response.status_code == 400

    def test_missing_target_is_400(self, client_for, crew, members):
        response = client_for(members["admin"].athlete).post(_url(crew, "transfer-ownership/"), {}, format="json")
        assert response.status_code == 400

    def test_only_admin_can_transfer(self, client_for, crew, members):
        response = client_for(members["manager"].athlete).post(
            _url(crew, "transfer-ownership/"), {"newOwnerMembershipId": members["member"].pk}, format="json",
        )
        assert response.status_code == 403

    def test_transfer_is_atomic(self, client_for, crew, members):
        """If the caller's demotion fails, the promotion is rolled back."""
        from django.db.models.query import QuerySet

        original_update = QuerySet.update
        calls = {"n": 0}

        def flaky_update(qs, **kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise RuntimeError("db went away")
            return original_update(qs, **kwargs)

        with patch.object(QuerySet, "update", flaky_update):
            response = client_for(members["admin"].athlete).post(
                _url(crew, "transfer-ownership/"),
                {"newOwnerMembershipId": members["member"].pk},
                format="json",
            )

        assert response.status_code == 500
        members["member"].refresh_from_db()
        members["admin"].refresh_from_db()
        assert members["member"].role == Role.MEMBER
        assert members["admin"].role == Role.ADMIN
