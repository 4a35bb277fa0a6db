from rest_framework.exceptions import NotFound

from core.models import Athlete


_NOT_FOUND_MESSAGE = "Athlete not found"


def require_caller_athlete(*, user) -> Athlete:
    """
    Athlete bound to the authenticated user.

    Authenticated users that never created a profile get 404, not 403:
    the client is expected to send them through /api/athlete/create.
    """
    if not user or not getattr(user, "is_authenticated", False):
        raise NotFound(_NOT_FOUND_MESSAGE)

    try:
        return Athlete.objects.get(user=user)
    except Athlete.DoesNotExist as exc:
        raise NotFound(_NOT_FOUND_MESSAGE) from exc


def require_athlete(*, athlete_id) -> Athlete:
    try:
        athlete_id_int = int(athlete_id)
    except (TypeError, ValueError) as exc:
        raise NotFound(_NOT_FOUND_MESSAGE) from exc

    try:
        return Athlete.objects.get(id=athlete_id_int)
    except Athlete.DoesNotExist as exc:
        raise NotFound(_NOT_FOUND_MESSAGE) from exc


class CallerAthleteMixin:
    """APIView mixin: `self.require_caller(request)` -> caller's Athlete."""

    def require_caller(self, request) -> Athlete:
        if getattr(self, "swagger_fake_view", False):
            return Athlete(id=0)
        return require_caller_athlete(user=request.user)
