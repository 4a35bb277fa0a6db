import logging

from django.db.models import Count
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, permissions, status
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from core.tenancy import CallerAthleteMixin
from core.utils.logging import safe_extra

from . import services
from .access import ADMIN_ONLY, ADMIN_OR_MANAGER, CrewAccessMixin, get_crew_or_404
from .filters import RunCrewDiscoverFilter
from .models import (
    RunCrew,
    RunCrewAnnouncement,
    RunCrewMembership,
    RunCrewMessage,
    RunCrewRun,
    RunCrewRunRSVP,
)
from .serializers import (
    MembershipSerializer,
    RunCrewAnnouncementSerializer,
    RunCrewEventSerializer,
    RunCrewHydratedSerializer,
    RunCrewMessageSerializer,
    RunCrewPublicSerializer,
    RunCrewRunRSVPSerializer,
    RunCrewRunSerializer,
    RunCrewSerializer,
)

logger = logging.getLogger(__name__)

DISCOVER_DEFAULT_LIMIT = 50
DISCOVER_MAX_LIMIT = 100


def _pick(data, *keys, default=None):
    """First present key among camelCase / snake_case aliases."""
    for key in keys:
        if key in data:
            return data.get(key)
    return default


def _with_aliases(data, aliases: dict) -> dict:
    body = dict(data.items()) if hasattr(data, "items") else {}
    for alias, field in aliases.items():
        if alias in body and field not in body:
            body[field] = body.pop(alias)
    return body


# ==============================================================================
#  1. CREATE / JOIN / HYDRATE
# ==============================================================================
class RunCrewCreateView(CallerAthleteMixin, APIView):
    """POST /api/runcrew/create/: el creador queda como admin."""

    def post(self, request):
        athlete = self.require_caller(request)
        serializer = RunCrewSerializer(data=_with_aliases(request.data, {"joinCode": "join_code"}))
        serializer.is_valid(raise_exception=True)
        crew, membership = services.create_crew(athlete=athlete, data=dict(serializer.validated_data))
        return Response(
            {
                "success": True,
                "run_crew": RunCrewSerializer(crew).data,
                "membership": MembershipSerializer(membership).data,
            },
            status=status.HTTP_201_CREATED,
        )


class RunCrewJoinView(CallerAthleteMixin, APIView):
    """POST /api/runcrew/join/ {joinCode}"""

    def post(self, request):
        athlete = self.require_caller(request)
        crew, membership, created = services.join_crew(
            athlete=athlete,
            join_code=_pick(request.data, "joinCode", "join_code"),
        )
        return Response(
            {
                "success": True,
                "already_member": not created,
                "run_crew": RunCrewSerializer(crew).data,
                "membership": MembershipSerializer(membership).data,
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class RunCrewHydrateView(CrewAccessMixin, APIView):
    """POST /api/runcrew/hydrate/ {runCrewId}: payload completo de la página del crew."""

    def post(self, request):
        crew_id = _pick(request.data, "runCrewId", "run_crew_id")
        if crew_id in (None, ""):
            raise ValidationError("runCrewId is required")
        access = self.crew_access(request, crew_id)
        data = RunCrewHydratedSerializer(access.crew, context={"user_role": access.role}).data
        return Response({"success": True, "run_crew": data})


# ==============================================================================
#  2. CREW DETAIL / SETTINGS
# ==============================================================================
class RunCrewDetailView(CallerAthleteMixin, CrewAccessMixin, APIView):
    """
    GET    /api/runcrew/<id>/  (authenticated; join code only for members)
    PUT    /api/runcrew/<id>/  (admin)
    DELETE /api/runcrew/<id>/  (admin)
    """

    def get(self, request, crew_id):
        athlete = self.require_caller(request)
        crew = get_crew_or_404(crew_id)
        membership = RunCrewMembership.objects.filter(run_crew=crew, athlete=athlete).first()
        if membership is None:
            crew = RunCrew.objects.annotate(member_count=Count("memberships")).get(pk=crew.pk)
            return Response({"success": True, "run_crew": RunCrewPublicSerializer(crew).data, "user_role": None})
        return Response({"success": True, "run_crew": RunCrewSerializer(crew).data, "user_role": membership.role})

    def put(self, request, crew_id):
        access = self.crew_access(request, crew_id, roles=ADMIN_ONLY)
        serializer = RunCrewSerializer(
            access.crew,
            data=_with_aliases(request.data, {"joinCode": "join_code"}),
            partial=True,
        )
        serializer.is_valid(raise_exception=True)
        crew = serializer.save()
        return Response({"success": True, "run_crew": RunCrewSerializer(crew).data})

    def delete(self, request, crew_id):
        access = self.crew_access(request, crew_id, roles=ADMIN_ONLY)
        crew_pk = access.crew.pk
        access.crew.delete()
        logger.info("runcrew.deleted", extra=safe_extra({
            "run_crew_id": crew_pk,
            "actor_athlete_id": access.athlete.pk,
        }))
        return Response({"success": True})


# ==============================================================================
#  3. MEMBERS
# ==============================================================================
class RunCrewMembersView(CrewAccessMixin, APIView):
    def get(self, request, crew_id):
        access = self.crew_access(request, crew_id)
        return Response({
            "success": True,
            "members": MembershipSerializer(access.memberships, many=True).data,
        })


class RunCrewMemberDetailView(CrewAccessMixin, APIView):
    """
    PUT    /api/runcrew/<id>/members/<membership_id>/ {role}
    DELETE /api/runcrew/<id>/members/<membership_id>/
    """

    def put(self, request, crew_id, membership_id):
        access = self.crew_access(request, crew_id, roles=ADMIN_ONLY)
        membership = services.change_member_role(access, membership_id, request.data.get("role"))
        return Response({"success": True, "membership": MembershipSerializer(membership).data})

    def delete(self, request, crew_id, membership_id):
        access = self.crew_access(request, crew_id, roles=ADMIN_ONLY)
        removed_id = services.remove_member(access, membership_id)
        return Response({"success": True, "removed_membership_id": removed_id})


class RunCrewLeaveView(CrewAccessMixin, APIView):
    def post(self, request, crew_id):
        access = self.crew_access(request, crew_id)
        services.leave_crew(access)
        return Response({"success": True})


class RunCrewTransferOwnershipView(CrewAccessMixin, APIView):
    def post(self, request, crew_id):
        access = self.crew_access(request, crew_id, roles=ADMIN_ONLY)
        new_owner = services.transfer_ownership(
            access,
            _pick(request.data, "newOwnerMembershipId", "new_owner_membership_id"),
        )
        return Response({
            "success": True,
            "new_owner": MembershipSerializer(new_owner).data,
            "previous_owner": MembershipSerializer(access.membership).data,
        })


# ==============================================================================
#  4. ANNOUNCEMENTS
# ==============================================================================
class RunCrewAnnouncementsView(CrewAccessMixin, APIView):
    def get(self, request, crew_id):
        access = self.crew_access(request, crew_id)
        qs = (
            RunCrewAnnouncement.objects
            .filter(run_crew=access.crew, archived_at__isnull=True)
            .select_related("author")
        )
        return Response({"success": True, "announcements": RunCrewAnnouncementSerializer(qs, many=True).data})

    def post(self, request, crew_id):
        access = self.crew_access(request, crew_id, roles=ADMIN_OR_MANAGER)
        serializer = RunCrewAnnouncementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        announcement = serializer.save(run_crew=access.crew, author=access.athlete)
        return Response(
            {"success": True, "announcement": RunCrewAnnouncementSerializer(announcement).data},
            status=status.HTTP_201_CREATED,
        )


class RunCrewAnnouncementDetailView(CrewAccessMixin, APIView):
    """PUT edita, DELETE archiva (archived_at). Autor o admin/manager."""

    def _load(self, request, crew_id, announcement_id):
        access = self.crew_access(request, crew_id)
        announcement = get_object_or_404(
            RunCrewAnnouncement, pk=announcement_id, run_crew=access.crew, archived_at__isnull=True
        )
        if announcement.author_id != access.athlete.pk and not access.has_role(ADMIN_OR_MANAGER):
            raise PermissionDenied("Only the author or a crew admin/manager can modify this announcement")
        return access, announcement

    def put(self, request, crew_id, announcement_id):
        _, announcement = self._load(request, crew_id, announcement_id)
        serializer = RunCrewAnnouncementSerializer(announcement, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        announcement = serializer.save()
        return Response({"success": True, "announcement": RunCrewAnnouncementSerializer(announcement).data})

    def delete(self, request, crew_id, announcement_id):
        _, announcement = self._load(request, crew_id, announcement_id)
        announcement.archive()
        return Response({"success": True, "announcement": RunCrewAnnouncementSerializer(announcement).data})


# ==============================================================================
#  5. MESSAGES
# ==============================================================================
class RunCrewMessagesView(CrewAccessMixin, APIView):
    def get(self, request, crew_id):
        access = self.crew_access(request, crew_id)
        qs = RunCrewMessage.objects.filter(run_crew=access.crew).select_related("athlete")
        return Response({"success": True, "messages": RunCrewMessageSerializer(qs, many=True).data})

    def post(self, request, crew_id):
        access = self.crew_access(request, crew_id)
        serializer = RunCrewMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = serializer.save(run_crew=access.crew, athlete=access.athlete)
        return Response(
            {"success": True, "message": RunCrewMessageSerializer(message).data},
            status=status.HTTP_201_CREATED,
        )


class RunCrewMessageDetailView(CrewAccessMixin, APIView):
    """Autor o admin."""

    def _load(self, request, crew_id, message_id):
        access = self.crew_access(request, crew_id)
        message = get_object_or_404(RunCrewMessage, pk=message_id, run_crew=access.crew)
        if message.athlete_id != access.athlete.pk and not access.has_role(ADMIN_ONLY):
            raise PermissionDenied("Only the author or a crew admin can modify this message")
        return message

    def put(self, request, crew_id, message_id):
        message = self._load(request, crew_id, message_id)
        serializer = RunCrewMessageSerializer(message, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        message = serializer.save()
        return Response({"success": True, "message": RunCrewMessageSerializer(message).data})

    def delete(self, request, crew_id, message_id):
        message = self._load(request, crew_id, message_id)
        message.delete()
        return Response({"success": True})


# ==============================================================================
#  6. RUNS + RSVPs
# ==============================================================================
def _runs_queryset(crew):
    return (
        RunCrewRun.objects
        .filter(run_crew=crew)
        .select_related("created_by")
        .prefetch_related("rsvps__athlete")
    )


class RunCrewRunsView(CrewAccessMixin, APIView):
    def get(self, request, crew_id):
        access = self.crew_access(request, crew_id)
        return Response({"success": True, "runs": RunCrewRunSerializer(_runs_queryset(access.crew), many=True).data})

    def post(self, request, crew_id):
        access = self.crew_access(request, crew_id, roles=ADMIN_OR_MANAGER)
        serializer = RunCrewRunSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        run = serializer.save(run_crew=access.crew, created_by=access.athlete)
        return Response({"success": True, "run": RunCrewRunSerializer(run).data}, status=status.HTTP_201_CREATED)


class RunCrewRunDetailView(CrewAccessMixin, APIView):
    def _get_run(self, access, run_id) -> RunCrewRun:
        try:
            return _runs_queryset(access.crew).get(pk=int(run_id))
        except (TypeError, ValueError, RunCrewRun.DoesNotExist) as exc:
            raise NotFound("Run not found") from exc

    def _require_editor(self, access, run):
        if run.created_by_id != access.athlete.pk and not access.has_role(ADMIN_OR_MANAGER):
            raise PermissionDenied("Only the run creator or a crew admin/manager can modify this run")

    def get(self, request, crew_id, run_id):
        access = self.crew_access(request, crew_id)
        run = self._get_run(access, run_id)
        return Response({"success": True, "run": RunCrewRunSerializer(run).data})

    def put(self, request, crew_id, run_id):
        access = self.crew_access(request, crew_id)
        run = self._get_run(access, run_id)
        self._require_editor(access, run)
        serializer = RunCrewRunSerializer(run, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        run = serializer.save()
        return Response({"success": True, "run": RunCrewRunSerializer(run).data})

    def delete(self, request, crew_id, run_id):
        access = self.crew_access(request, crew_id)
        run = self._get_run(access, run_id)
        self._require_editor(access, run)
        run.delete()
        return Response({"success": True})


class RunCrewRunRSVPView(CrewAccessMixin, APIView):
    """POST /api/runcrew/<id>/runs/<run_id>/rsvp/ {status}: upsert por (run, athlete)."""

    def post(self, request, crew_id, run_id):
        access = self.crew_access(request, crew_id)
        run = get_object_or_404(RunCrewRun, pk=run_id, run_crew=access.crew)

        rsvp_status = request.data.get("status")
        if rsvp_status not in RunCrewRunRSVP.Status.values:
            raise ValidationError("Invalid status. Must be going, maybe, or not-going")

        rsvp, _ = RunCrewRunRSVP.objects.update_or_create(
            run=run,
            athlete=access.athlete,
            defaults={"status": rsvp_status},
        )
        return Response({"success": True, "rsvp": RunCrewRunRSVPSerializer(rsvp).data})


# ==============================================================================
#  7. EVENTS
# ==============================================================================
class RunCrewEventsView(CrewAccessMixin, APIView):
    def get(self, request, crew_id):
        access = self.crew_access(request, crew_id)
        qs = access.crew.events.select_related("organizer")
        return Response({"success": True, "events": RunCrewEventSerializer(qs, many=True).data})

    def post(self, request, crew_id):
        access = self.crew_access(request, crew_id, roles=ADMIN_OR_MANAGER)
        serializer = RunCrewEventSerializer(data=_with_aliases(request.data, {"eventType": "event_type"}))
        serializer.is_valid(raise_exception=True)
        event = serializer.save(run_crew=access.crew, organizer=access.athlete)
        return Response({"success": True, "event": RunCrewEventSerializer(event).data}, status=status.HTTP_201_CREATED)


# ==============================================================================
#  8. PUBLIC / DISCOVERY / ME
# ==============================================================================
def _public_crews():
    return RunCrew.objects.annotate(member_count=Count("memberships"))


class RunCrewPublicByHandleView(APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, handle):
        crew = _public_crews().filter(handle=(handle or "").strip().lower()).first()
        if crew is None:
            raise NotFound("RunCrew not found")
        return Response({"success": True, "run_crew": RunCrewPublicSerializer(crew).data})


class RunCrewDiscoverView(generics.ListAPIView):
    """
    GET /api/runcrew/discover/?search=&city=&state=&limit=
    """

    permission_classes = [permissions.AllowAny]
    serializer_class = RunCrewPublicSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = RunCrewDiscoverFilter

    def get_queryset(self):
        return _public_crews().order_by("-created_at")

    def _limit(self) -> int:
        try:
            limit = int(self.request.query_params.get("limit", DISCOVER_DEFAULT_LIMIT))
        except (TypeError, ValueError):
            limit = DISCOVER_DEFAULT_LIMIT
        return max(1, min(limit, DISCOVER_MAX_LIMIT))

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())[: self._limit()]
        data = self.get_serializer(queryset, many=True).data
        return Response({"success": True, "count": len(data), "run_crews": data})


class MyRunCrewsView(CallerAthleteMixin, APIView):
    """GET /api/me/run-crews/"""

    def get(self, request):
        athlete = self.require_caller(request)
        crews = [
            {
                **RunCrewSerializer(entry["run_crew"]).data,
                "role": entry["role"],
                "membership_id": entry["membership_id"],
                "joined_at": entry["joined_at"],
            }
            for entry in services.crews_for_athlete(athlete)
        ]
        return Response({"success": True, "run_crews": crews})
