import logging
from datetime import timedelta

from django.db.models import Count, Sum
from django.utils import timezone
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from runcrews.serializers import RunCrewSerializer
from runcrews.services import crews_for_athlete

from .models import Activity, Athlete, normalize_handle
from .permissions import IsOwnAthleteOrReadOnly
from .serializers import ActivitySerializer, AthleteSerializer
from .tenancy import CallerAthleteMixin, require_athlete
from .utils.logging import safe_extra

logger = logging.getLogger(__name__)

HYDRATE_ACTIVITY_DAYS = 7


# ==============================================================================
#  1. ALTA DEL PERFIL
# ==============================================================================
class AthleteCreateView(APIView):
    """
    POST /api/athlete/create

    Idempotente: si el usuario ya tiene perfil se devuelve el existente (200).
    """

    def post(self, request):
        user = request.user
        athlete, created = Athlete.objects.get_or_create(
            user=user,
            defaults={
                "email": request.data.get("email") or getattr(user, "email", "") or "",
                "first_name": request.data.get("firstName") or request.data.get("first_name")
                or getattr(user, "first_name", "") or "",
                "last_name": request.data.get("lastName") or request.data.get("last_name")
                or getattr(user, "last_name", "") or "",
                "photo_url": request.data.get("photoURL") or request.data.get("photo_url") or "",
            },
        )
        logger.info("athlete.create", extra=safe_extra({
            "athlete_id": athlete.pk,
            "user_id": user.pk,
            "created": created,
        }))
        return Response(
            {"success": True, "created": created, "athlete": AthleteSerializer(athlete).data},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


# ==============================================================================
#  2. HYDRATE (perfil + crews + actividad de la semana)
# ==============================================================================
class AthleteHydrateView(CallerAthleteMixin, APIView):
    """GET|POST /api/athlete/hydrate"""

    def get(self, request):
        athlete = self.require_caller(request)

        crews = [
            {
                **RunCrewSerializer(entry["run_crew"]).data,
                "role": entry["role"],
                "membership_id": entry["membership_id"],
                "joined_at": entry["joined_at"],
            }
            for entry in crews_for_athlete(athlete)
        ]

        since = timezone.now() - timedelta(days=HYDRATE_ACTIVITY_DAYS)
        recent = Activity.objects.filter(athlete=athlete, start_time__gte=since).order_by("-start_time")
        totals = recent.aggregate(
            distance=Sum("distance"),
            duration=Sum("duration"),
            activities=Count("id"),
        )

        return Response({
            "success": True,
            "athlete": AthleteSerializer(athlete).data,
            "run_crews": crews,
            "weekly_activities": ActivitySerializer(recent, many=True).data,
            "weekly_totals": {
                "distance": totals["distance"] or 0,
                "duration": totals["duration"] or 0,
                "activities": totals["activities"] or 0,
            },
        })

    def post(self, request):
        return self.get(request)


# ==============================================================================
#  3. PERFIL
# ==============================================================================
class AthleteDetailView(APIView):
    """GET|PUT /api/athlete/<athlete_id>"""

    permission_classes = [permissions.IsAuthenticated, IsOwnAthleteOrReadOnly]

    def get_object(self, athlete_id):
        athlete = require_athlete(athlete_id=athlete_id)
        self.check_object_permissions(self.request, athlete)
        return athlete

    def get(self, request, athlete_id):
        athlete = self.get_object(athlete_id)
        return Response({"success": True, "athlete": AthleteSerializer(athlete).data})

    def put(self, request, athlete_id):
        athlete = self.get_object(athlete_id)
        data = dict(request.data.items())
        if "gofastHandle" in data and "gofast_handle" not in data:
            data["gofast_handle"] = data.pop("gofastHandle")
        serializer = AthleteSerializer(athlete, data=data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info("athlete.updated", extra=safe_extra({
            "athlete_id": athlete.pk,
            "fields": sorted(serializer.validated_data.keys()),
        }))
        return Response({"success": True, "athlete": serializer.data})


class CheckHandleView(CallerAthleteMixin, APIView):
    """GET /api/athlete/check-handle?handle=..."""

    def get(self, request):
        handle = normalize_handle(request.query_params.get("handle"))
        if not handle:
            return Response({"error": "Handle is required"}, status=status.HTTP_400_BAD_REQUEST)

        athlete = self.require_caller(request)
        taken = Athlete.objects.filter(gofast_handle=handle).exclude(pk=athlete.pk).exists()
        return Response({"success": True, "available": not taken, "handle": handle})
