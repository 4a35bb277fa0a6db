"""
Role gate for RunCrew endpoints.

Guard chain, in order:
    1. caller's Athlete (401 from DRF auth, 404 without profile)
    2. crew + full membership list in one fetch (404)
    3. caller's membership (403)
    4. caller's role against the allowed set (403)

Membership-destructive checks (self-target, last admin) are in services.py.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from rest_framework.exceptions import NotFound, PermissionDenied

from core.models import Athlete
from core.tenancy import require_caller_athlete

from .models import RunCrew, RunCrewMembership

Role = RunCrewMembership.Role

ADMIN_ONLY = frozenset({Role.ADMIN})
ADMIN_OR_MANAGER = frozenset({Role.ADMIN, Role.MANAGER})

CREW_NOT_FOUND = "RunCrew not found"
NOT_A_MEMBER = "You are not a member of this RunCrew"


@dataclass
class CrewAccess:
    athlete: Athlete
    crew: RunCrew
    membership: RunCrewMembership
    memberships: list[RunCrewMembership]

    @property
    def role(self) -> str:
        return self.membership.role

    def has_role(self, roles: Iterable[str]) -> bool:
        return self.membership.role in roles

    @property
    def admins(self) -> list[RunCrewMembership]:
        return [m for m in self.memberships if m.role == Role.ADMIN]

    def find_membership(self, membership_id) -> Optional[RunCrewMembership]:
        try:
            membership_id = int(membership_id)
        except (TypeError, ValueError):
            return None
        return next((m for m in self.memberships if m.pk == membership_id), None)


def get_crew_or_404(crew_id) -> RunCrew:
    try:
        return RunCrew.objects.get(pk=int(crew_id))
    except (TypeError, ValueError, RunCrew.DoesNotExist) as exc:
        raise NotFound(CREW_NOT_FOUND) from exc


def require_crew_access(*, user, crew_id, roles: Optional[Iterable[str]] = None) -> CrewAccess:
    """
    Resolve caller + crew + membership, enforcing `roles` when given.

    Raises:
        NotFound: caller has no Athlete, or the crew does not exist
        PermissionDenied: caller is not a member, or the role is not allowed
    """
    athlete = require_caller_athlete(user=user)
    crew = get_crew_or_404(crew_id)

    memberships = list(
        RunCrewMembership.objects
        .filter(run_crew=crew)
        .select_related("athlete")
        .order_by("joined_at", "id")
    )
    membership = next((m for m in memberships if m.athlete_id == athlete.pk), None)
    if membership is None:
        raise PermissionDenied(NOT_A_MEMBER)

    if roles is not None and membership.role not in roles:
        allowed = " or ".join(sorted(str(r) for r in roles))
        raise PermissionDenied(f"Forbidden - {allowed} only")

    return CrewAccess(athlete=athlete, crew=crew, membership=membership, memberships=memberships)


class CrewAccessMixin:
    """APIView mixin: `self.crew_access(request, crew_id, roles=...)`."""

    def crew_access(self, request, crew_id, roles: Optional[Iterable[str]] = None) -> CrewAccess:
        return require_crew_access(user=request.user, crew_id=crew_id, roles=roles)
