import logging

from django.db.models import Count, Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, permissions, status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from core.tenancy import CallerAthleteMixin
from core.utils.logging import safe_extra

from .filters import CityRunPublicFilter
from .models import CityRun, CityRunRSVP
from .serializers import CityRunDetailSerializer, CityRunPublicSerializer, CityRunRSVPSerializer

logger = logging.getLogger(__name__)


def _runs_with_going_count():
    return CityRun.objects.annotate(
        going_count=Count("rsvps", filter=Q(rsvps__status=CityRunRSVP.Status.GOING)),
    )


def _get_run_or_404(run_ref) -> CityRun:
    """Resuelve por id y, si no, por slug (URLs compartibles)."""
    ref = str(run_ref or "").strip()
    qs = _runs_with_going_count()
    run = None
    if ref.isdigit():
        run = qs.filter(pk=int(ref)).first()
    if run is None and ref:
        run = qs.filter(slug=ref).first()
    if run is None:
        raise NotFound("CityRun not found")
    return run


# ==============================================================================
#  1. PÚBLICO
# ==============================================================================
class CityRunPublicListView(generics.ListAPIView):
    """GET /api/runs/public?city=<slug>&day=<Monday|...|All Days>"""

    authentication_classes = []
    permission_classes = [permissions.AllowAny]
    serializer_class = CityRunPublicSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = CityRunPublicFilter

    def get_queryset(self):
        return CityRun.objects.order_by("start_date", "id")

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        data = self.get_serializer(queryset, many=True).data
        return Response({"success": True, "runs": data})


class CityRunPublicDetailView(APIView):
    """GET /api/runs/public/<id|slug>"""

    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def get(self, request, run_ref):
        run = _get_run_or_404(run_ref)
        return Response({"success": True, "run": CityRunDetailSerializer(run).data})


# ==============================================================================
#  2. RSVP
# ==============================================================================
class CityRunRSVPView(CallerAthleteMixin, APIView):
    """POST /api/runs/<id>/rsvp {status, occurrenceDate?, rsvpPhotoUrls?}"""

    def post(self, request, run_id):
        rsvp_status = request.data.get("status")
        if rsvp_status not in CityRunRSVP.Status.values:
            raise ValidationError("Invalid status. Must be going or not-going")

        athlete = self.require_caller(request)
        run = CityRun.objects.filter(pk=run_id).first()
        if run is None:
            raise NotFound("CityRun not found")

        photo_urls = request.data.get("rsvpPhotoUrls", request.data.get("rsvp_photo_urls"))
        serializer = CityRunRSVPSerializer(data={
            "status": rsvp_status,
            "occurrence_date": request.data.get("occurrenceDate") or request.data.get("occurrence_date"),
            "rsvp_photo_urls": photo_urls,
        })
        serializer.is_valid(raise_exception=True)

        rsvp, created = CityRunRSVP.objects.update_or_create(
            run=run,
            athlete=athlete,
            defaults=serializer.validated_data,
        )
        logger.info("cityrun.rsvp", extra=safe_extra({
            "run_id": run.pk,
            "athlete_id": athlete.pk,
            "status": rsvp.status,
            "created": created,
        }))
        return Response(
            {"success": True, "rsvp": CityRunRSVPSerializer(rsvp).data},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )
