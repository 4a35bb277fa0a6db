"""
RunCrew membership mutations.

Every function expects an already-authorized CrewAccess (see access.py) and
raises DRF exceptions for rule violations, so views stay thin.

Known race: two concurrent demotions of different admins can both pass the
last-admin check. Only transfer_ownership() runs inside a transaction.
"""
from __future__ import annotations

import logging

from django.db import IntegrityError, transaction
from rest_framework.exceptions import NotFound, ValidationError

from core.utils.logging import safe_extra

from .access import CrewAccess
from .models import RunCrew, RunCrewMembership, normalize_join_code

logger = logging.getLogger(__name__)

Role = RunCrewMembership.Role

VALID_ROLES = frozenset(Role.values)


def _membership_or_404(access: CrewAccess, membership_id) -> RunCrewMembership:
    target = access.find_membership(membership_id)
    if target is None:
        raise NotFound("Membership not found")
    return target


def _is_last_admin(access: CrewAccess, target: RunCrewMembership) -> bool:
    return target.role == Role.ADMIN and len(access.admins) <= 1


# ==============================================================================
#  Create / join
# ==============================================================================
def create_crew(*, athlete, data: dict) -> tuple[RunCrew, RunCrewMembership]:
    """Create a crew; the creator becomes its first admin."""
    join_code = normalize_join_code(data.get("join_code"))
    if join_code and RunCrew.objects.filter(join_code=join_code).exists():
        raise ValidationError({"join_code": ["Join code already in use"]})

    try:
        with transaction.atomic():
            crew = RunCrew.objects.create(**{**data, "join_code": join_code})
            membership = RunCrewMembership.objects.create(
                run_crew=crew,
                athlete=athlete,
                role=Role.ADMIN,
            )
    except IntegrityError as exc:
        raise ValidationError("Join code or handle already in use") from exc

    logger.info("runcrew.created", extra=safe_extra({
        "run_crew_id": crew.pk,
        "athlete_id": athlete.pk,
        "handle": crew.handle,
    }))
    return crew, membership


def join_crew(*, athlete, join_code) -> tuple[RunCrew, RunCrewMembership, bool]:
    """
    Join by code. Idempotent: an existing member gets their membership back.

    Returns:
        (crew, membership, created)
    """
    code = normalize_join_code(join_code)
    if not code:
        raise ValidationError("joinCode is required")

    crew = RunCrew.objects.filter(join_code=code).first()
    if crew is None:
        raise NotFound("Invalid join code")

    try:
        membership, created = RunCrewMembership.objects.get_or_create(
            run_crew=crew,
            athlete=athlete,
            defaults={"role": Role.MEMBER},
        )
    except IntegrityError:
        membership, created = RunCrewMembership.objects.get(run_crew=crew, athlete=athlete), False

    if created:
        logger.info("runcrew.joined", extra=safe_extra({
            "run_crew_id": crew.pk,
            "athlete_id": athlete.pk,
        }))
    return crew, membership, created


# ==============================================================================
#  Role changes / removal
# ==============================================================================
def change_member_role(access: CrewAccess, membership_id, role) -> RunCrewMembership:
    if role not in VALID_ROLES:
        raise ValidationError("Invalid role. Must be member, manager, or admin")

    target = _membership_or_404(access, membership_id)

    if target.pk == access.membership.pk and role != Role.ADMIN:
        raise ValidationError("Cannot demote yourself. Transfer ownership first.")
    if role != Role.ADMIN and _is_last_admin(access, target):
        raise ValidationError("Cannot demote the last admin of a RunCrew")

    previous = target.role
    if previous != role:
        target.role = role
        target.save(update_fields=["role"])

    logger.info("runcrew.member.role_changed", extra=safe_extra({
        "run_crew_id": access.crew.pk,
        "membership_id": target.pk,
        "actor_athlete_id": access.athlete.pk,
        "from_role": previous,
        "to_role": role,
    }))
    return target


def remove_member(access: CrewAccess, membership_id) -> int:
    """Delete a membership; returns the removed membership id."""
    target = _membership_or_404(access, membership_id)

    if target.pk == access.membership.pk:
        raise ValidationError("Cannot remove yourself. Transfer ownership first.")
    if _is_last_admin(access, target):
        raise ValidationError("Cannot remove the last admin of a RunCrew")

    removed_id = target.pk
    target.delete()

    logger.info("runcrew.member.removed", extra=safe_extra({
        "run_crew_id": access.crew.pk,
        "membership_id": removed_id,
        "actor_athlete_id": access.athlete.pk,
    }))
    return removed_id


def leave_crew(access: CrewAccess) -> None:
    if access.membership.role == Role.ADMIN:
        raise ValidationError(
            "Admins cannot leave. Transfer ownership to another member or delete the crew instead."
        )
    if len(access.memberships) <= 1:
        raise ValidationError("Cannot leave as the last member. Delete the crew instead.")

    access.membership.delete()
    logger.info("runcrew.member.left", extra=safe_extra({
        "run_crew_id": access.crew.pk,
        "athlete_id": access.athlete.pk,
    }))


def transfer_ownership(access: CrewAccess, new_owner_membership_id) -> RunCrewMembership:
    """
    Promote the target to admin and demote the caller to member, both
    updates in a single transaction.
    """
    if new_owner_membership_id in (None, ""):
        raise ValidationError("newOwnerMembershipId is required")

    target = access.find_membership(new_owner_membership_id)
    if target is None:
        raise NotFound("New owner membership not found")
    if target.athlete_id == access.athlete.pk:
        raise ValidationError("Cannot transfer ownership to yourself")

    with transaction.atomic():
        RunCrewMembership.objects.filter(pk=target.pk).update(role=Role.ADMIN)
        RunCrewMembership.objects.filter(pk=access.membership.pk).update(role=Role.MEMBER)

    target.role = Role.ADMIN
    access.membership.role = Role.MEMBER

    logger.info("runcrew.ownership_transferred", extra=safe_extra({
        "run_crew_id": access.crew.pk,
        "from_athlete_id": access.athlete.pk,
        "to_athlete_id": target.athlete_id,
    }))
    return target


# ==============================================================================
#  Queries
# ==============================================================================
def crews_for_athlete(athlete) -> list[dict]:
    """Crews the athlete belongs to, with the athlete's role and join date."""
    memberships = (
        RunCrewMembership.objects
        .filter(athlete=athlete)
        .select_related("run_crew")
        .order_by("-joined_at")
    )
    return [
        {
            "membership_id": m.pk,
            "role": m.role,
            "joined_at": m.joined_at,
            "run_crew": m.run_crew,
        }
        for m in memberships
    ]
