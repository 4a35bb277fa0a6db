from django.db import models
from django.utils import timezone as dj_timezone

from core.models import Athlete


# Orden de datetime.weekday(): 0 = lunes
DAYS_OF_WEEK = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)
ALL_DAYS = "All Days"


def day_name(value) -> str:
    """English weekday name of a date ("Monday" ... "Sunday")."""
    return DAYS_OF_WEEK[value.weekday()]


# ==============================================================================
#  1. CITY RUN (carrera grupal pública de una ciudad)
# ==============================================================================
class CityRun(models.Model):
    """
    Run publicado para una ciudad.

    Puede ser único (`start_date` fija el día) o recurrente (`day_of_week`
    indica el día de la semana en que se repite).
    """

    class DayOfWeek(models.TextChoices):
        MONDAY = "Monday", "Monday"
        TUESDAY = "Tuesday", "Tuesday"
        WEDNESDAY = "Wednesday", "Wednesday"
        THURSDAY = "Thursday", "Thursday"
        FRIDAY = "Friday", "Friday"
        SATURDAY = "Saturday", "Saturday"
        SUNDAY = "Sunday", "Sunday"

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True, null=True, blank=True)
    city_slug = models.SlugField(max_length=100, db_index=True)

    is_recurring = models.BooleanField(default=False)
    day_of_week = models.CharField(max_length=10, choices=DayOfWeek.choices, blank=True, default="")
    start_date = models.DateField(db_index=True)
    end_date = models.DateField(null=True, blank=True)

    start_time_hour = models.PositiveSmallIntegerField(null=True, blank=True)
    start_time_minute = models.PositiveSmallIntegerField(null=True, blank=True)
    start_time_period = models.CharField(max_length=2, blank=True, default="", help_text="AM / PM")
    timezone = models.CharField(max_length=64, blank=True, default="")

    meet_up_point = models.CharField(max_length=255, blank=True, default="")
    meet_up_street_address = models.CharField(max_length=255, blank=True, default="")
    meet_up_city = models.CharField(max_length=100, blank=True, default="")
    meet_up_state = models.CharField(max_length=50, blank=True, default="")
    meet_up_zip = models.CharField(max_length=20, blank=True, default="")
    meet_up_lat = models.FloatField(null=True, blank=True)
    meet_up_lng = models.FloatField(null=True, blank=True)

    total_miles = models.FloatField(null=True, blank=True)
    pace = models.CharField(max_length=50, blank=True, default="")
    description = models.TextField(blank=True, default="")
    strava_map_url = models.URLField(max_length=500, blank=True, default="")

    created_by = models.ForeignKey(
        Athlete,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_city_runs",
    )
    created_at = models.DateTimeField(default=dj_timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_date", "id"]

    def save(self, *args, **kwargs):
        # Sin slug explícito queda NULL (la constraint unique ignora NULLs).
        self.slug = (self.slug or "").strip() or None
        super().save(*args, **kwargs)

    @property
    def weekday(self) -> str:
        if self.is_recurring and self.day_of_week:
            return self.day_of_week
        return day_name(self.start_date) if self.start_date else ""

    def __str__(self):
        return f"{self.title} ({self.city_slug})"


# ==============================================================================
#  2. RSVP
# ==============================================================================
class CityRunRSVP(models.Model):
    class Status(models.TextChoices):
        GOING = "going", "Going"
        NOT_GOING = "not-going", "Not going"

    run = models.ForeignKey(CityRun, on_delete=models.CASCADE, related_name="rsvps")
    athlete = models.ForeignKey(Athlete, on_delete=models.CASCADE, related_name="city_run_rsvps")
    status = models.CharField(max_length=20, choices=Status.choices)
    # Para runs recurrentes: a qué ocurrencia apunta el RSVP
    occurrence_date = models.DateField(null=True, blank=True)
    rsvp_photo_urls = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["run", "athlete"], name="uniq_cityrun_rsvp"),
        ]

    def __str__(self):
        return f"{self.athlete_id} -> {self.run_id}: {self.status}"
