"""
Garmin connection state per athlete and the webhook audit trail.
"""
from datetime import timedelta

from django.db import models
from django.utils import timezone

PENDING_GARMIN_USER_ID = "pending"


class GarminConnection(models.Model):
    """
    OAuth 2.0 credentials and sync state of an athlete's Garmin account.

    At most one row per athlete. `garmin_user_id` may hold the placeholder
    "pending" when the user-id lookup failed during the callback, so it is
    indexed rather than unique; persist_garmin_connection() keeps real ids
    bound to a single connected row.
    """

    athlete = models.OneToOneField(
        "Athlete",
        on_delete=models.CASCADE,
        related_name="garmin_connection",
    )
    garmin_user_id = models.CharField(max_length=120, blank=True, default="", db_index=True)

    # Tokens are never logged nor returned by the API.
    access_token = models.TextField(blank=True, default="")
    refresh_token = models.TextField(blank=True, default="")
    expires_in = models.PositiveIntegerField(null=True, blank=True, help_text="Seconds, from connected_at")
    connected_at = models.DateTimeField(null=True, blank=True)
    scope = models.CharField(max_length=255, blank=True, default="")
    permissions = models.JSONField(default=dict, blank=True)

    is_connected = models.BooleanField(default=False, db_index=True)
    last_sync_at = models.DateTimeField(null=True, blank=True)
    disconnected_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "core"
        verbose_name = "Garmin Connection"
        indexes = [
            models.Index(fields=["is_connected", "-updated_at"], name="garmin_conn_connected_idx"),
        ]

    def __str__(self):
        state = "connected" if self.is_connected else "disconnected"
        return f"[{state}] {self.athlete} → garmin:{self.garmin_user_id or '-'}"

    @property
    def expires_at(self):
        if not self.connected_at or not self.expires_in:
            return None
        return self.connected_at + timedelta(seconds=self.expires_in)

    def mark_disconnected(self):
        """Clear credentials; the row stays for auditing."""
        self.access_token = ""
        self.refresh_token = ""
        self.expires_in = None
        self.is_connected = False
        self.disconnected_at = timezone.now()
        self.save(
            update_fields=[
                "access_token",
                "refresh_token",
                "expires_in",
                "is_connected",
                "disconnected_at",
                "updated_at",
            ]
        )


class GarminWebhookEvent(models.Model):
    """
    Auditoría de cada entrega del webhook de Garmin.

    El endpoint crea este registro y encola el procesamiento. No es una clave
    de idempotencia: la deduplicación se hace por `source_activity_id`.
    """

    class Status(models.TextChoices):
        RECEIVED = "received", "received"
        QUEUED = "queued", "queued"
        PROCESSED = "processed", "processed"
        IGNORED = "ignored", "ignored"
        FAILED = "failed", "failed"

    event_type = models.CharField(max_length=40, db_index=True)
    garmin_user_id = models.CharField(max_length=120, blank=True, default="", db_index=True)
    payload_raw = models.JSONField(default=dict, blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.RECEIVED, db_index=True)
    result = models.JSONField(default=dict, blank=True)
    error_message = models.TextField(blank=True, default="")

    received_at = models.DateTimeField(default=timezone.now, db_index=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "core"
        indexes = [
            models.Index(fields=["status", "-received_at"], name="garmin_event_status_idx"),
            models.Index(fields=["event_type", "-received_at"], name="garmin_event_type_idx"),
        ]

    def __str__(self):
        return f"[{self.status}] {self.event_type} ({self.garmin_user_id or '-'})"

    def mark_queued(self):
        self.status = self.Status.QUEUED
        self.save(update_fields=["status"])

    def mark_processed(self, result=None):
        self.status = self.Status.PROCESSED
        self.result = result or {}
        self.processed_at = timezone.now()
        self.save(update_fields=["status", "result", "processed_at"])

    def mark_ignored(self, *, reason: str):
        self.status = self.Status.IGNORED
        self.error_message = str(reason or "")
        self.processed_at = timezone.now()
        self.save(update_fields=["status", "error_message", "processed_at"])

    def mark_failed(self, error_message: str):
        self.status = self.Status.FAILED
        self.error_message = str(error_message or "")[:2000]
        self.processed_at = timezone.now()
        self.save(update_fields=["status", "error_message", "processed_at"])
