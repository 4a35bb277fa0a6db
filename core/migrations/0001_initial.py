from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Athlete",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("first_name", models.CharField(blank=True, default="", max_length=100)),
                ("last_name", models.CharField(blank=True, default="", max_length=100)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("photo_url", models.URLField(blank=True, default="", max_length=500)),
                ("gofast_handle", models.CharField(blank=True, max_length=60, null=True, unique=True)),
                ("city", models.CharField(blank=True, default="", max_length=100)),
                ("state", models.CharField(blank=True, default="", max_length=50)),
                ("primary_sport", models.CharField(blank=True, default="", max_length=50)),
                ("bio", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="athlete",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Activity",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "source",
                    models.CharField(
                        choices=[("garmin", "Garmin"), ("manual", "Manual")],
                        db_index=True,
                        default="garmin",
                        max_length=20,
                    ),
                ),
                ("source_activity_id", models.CharField(max_length=120, unique=True)),
                ("activity_type", models.CharField(blank=True, default="", max_length=60)),
                ("activity_name", models.CharField(blank=True, default="", max_length=255)),
                ("start_time", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("duration", models.PositiveIntegerField(blank=True, help_text="Seconds", null=True)),
                ("distance", models.FloatField(blank=True, help_text="Meters", null=True)),
                ("calories", models.PositiveIntegerField(blank=True, null=True)),
                ("average_speed", models.FloatField(blank=True, help_text="m/s", null=True)),
                ("average_heart_rate", models.PositiveIntegerField(blank=True, null=True)),
                ("max_heart_rate", models.PositiveIntegerField(blank=True, null=True)),
                ("elevation_gain", models.FloatField(blank=True, help_text="Meters", null=True)),
                ("steps", models.PositiveIntegerField(blank=True, null=True)),
                ("summary_data", models.JSONField(blank=True, default=dict)),
                ("detail_data", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "athlete",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="activities",
                        to="core.athlete",
                    ),
                ),
            ],
            options={
                "ordering": ["-start_time"],
                "indexes": [models.Index(fields=["athlete", "-start_time"], name="activity_athlete_start_idx")],
            },
        ),
        migrations.CreateModel(
            name="GarminConnection",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("garmin_user_id", models.CharField(blank=True, db_index=True, default="", max_length=120)),
                ("access_token", models.TextField(blank=True, default="")),
                ("refresh_token", models.TextField(blank=True, default="")),
                ("expires_in", models.PositiveIntegerField(blank=True, help_text="Seconds, from connected_at", null=True)),
                ("connected_at", models.DateTimeField(blank=True, null=True)),
                ("scope", models.CharField(blank=True, default="", max_length=255)),
                ("permissions", models.JSONField(blank=True, default=dict)),
                ("is_connected", models.BooleanField(db_index=True, default=False)),
                ("last_sync_at", models.DateTimeField(blank=True, null=True)),
                ("disconnected_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "athlete",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="garmin_connection",
                        to="core.athlete",
                    ),
                ),
            ],
            options={
                "verbose_name": "Garmin Connection",
                "indexes": [models.Index(fields=["is_connected", "-updated_at"], name="garmin_conn_connected_idx")],
            },
        ),
        migrations.CreateModel(
            name="GarminWebhookEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(db_index=True, max_length=40)),
                ("garmin_user_id", models.CharField(blank=True, db_index=True, default="", max_length=120)),
                ("payload_raw", models.JSONField(blank=True, default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("received", "received"),
                            ("queued", "queued"),
                            ("processed", "processed"),
                            ("ignored", "ignored"),
                            ("failed", "failed"),
                        ],
                        db_index=True,
                        default="received",
                        max_length=20,
                    ),
                ),
                ("result", models.JSONField(blank=True, default=dict)),
                ("error_message", models.TextField(blank=True, default="")),
                ("received_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status", "-received_at"], name="garmin_event_status_idx"),
                    models.Index(fields=["event_type", "-received_at"], name="garmin_event_type_idx"),
                ],
            },
        ),
    ]
