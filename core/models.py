from django.conf import settings
from django.db import models
from django.utils import timezone

# Garmin connection and webhook audit models live in integration_models.py
from .integration_models import GarminConnection, GarminWebhookEvent  # noqa: F401


def normalize_handle(value) -> str:
    """Handles are stored trimmed and lower-cased (same rule for athletes and crews)."""
    return str(value or "").strip().lower()


# ==============================================================================
#  1. ATHLETE
# ==============================================================================
class Athlete(models.Model):
    """
    Perfil público del usuario de la plataforma.

    Uno a uno con el `User` de Django: el sujeto del bearer token resuelve
    directamente el atleta que hace la request.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="athlete",
    )
    first_name = models.CharField(max_length=100, blank=True, default="")
    last_name = models.CharField(max_length=100, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    photo_url = models.URLField(max_length=500, blank=True, default="")
    gofast_handle = models.CharField(max_length=60, unique=True, null=True, blank=True)
    city = models.CharField(max_length=100, blank=True, default="")
    state = models.CharField(max_length=50, blank=True, default="")
    primary_sport = models.CharField(max_length=50, blank=True, default="")
    bio = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def save(self, *args, **kwargs):
        # Empty handle is stored as NULL so the unique constraint ignores it.
        self.gofast_handle = normalize_handle(self.gofast_handle) or None
        super().save(*args, **kwargs)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.full_name or self.gofast_handle or f"athlete:{self.pk}"


# ==============================================================================
#  2. ACTIVITY (workouts synced from a device or entered manually)
# ==============================================================================
class Activity(models.Model):
    class Source(models.TextChoices):
        GARMIN = "garmin", "Garmin"
        MANUAL = "manual", "Manual"

    athlete = models.ForeignKey(
        Athlete,
        on_delete=models.CASCADE,
        related_name="activities",
    )
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.GARMIN, db_index=True)
    source_activity_id = models.CharField(max_length=120, unique=True)

    activity_type = models.CharField(max_length=60, blank=True, default="")
    activity_name = models.CharField(max_length=255, blank=True, default="")
    start_time = models.DateTimeField(null=True, blank=True, db_index=True)
    duration = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds")
    distance = models.FloatField(null=True, blank=True, help_text="Meters")
    calories = models.PositiveIntegerField(null=True, blank=True)
    average_speed = models.FloatField(null=True, blank=True, help_text="m/s")
    average_heart_rate = models.PositiveIntegerField(null=True, blank=True)
    max_heart_rate = models.PositiveIntegerField(null=True, blank=True)
    elevation_gain = models.FloatField(null=True, blank=True, help_text="Meters")
    steps = models.PositiveIntegerField(null=True, blank=True)

    # Raw payloads as received from the provider
    summary_data = models.JSONField(default=dict, blank=True)
    # Detail payload + processed files: {"detail": {...}, "files": [...], "processedFiles": [...]}
    detail_data = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-start_time"]
        indexes = [
            models.Index(fields=["athlete", "-start_time"], name="activity_athlete_start_idx"),
        ]

    def __str__(self):
        return f"{self.activity_name or self.activity_type or 'activity'} ({self.source_activity_id})"
