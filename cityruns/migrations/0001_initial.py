from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CityRun",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("slug", models.SlugField(blank=True, max_length=200, null=True, unique=True)),
                ("city_slug", models.SlugField(max_length=100)),
                ("is_recurring", models.BooleanField(default=False)),
                (
                    "day_of_week",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("Monday", "Monday"),
                            ("Tuesday", "Tuesday"),
                            ("Wednesday", "Wednesday"),
                            ("Thursday", "Thursday"),
                            ("Friday", "Friday"),
                            ("Saturday", "Saturday"),
                            ("Sunday", "Sunday"),
                        ],
                        default="",
                        max_length=10,
                    ),
                ),
                ("start_date", models.DateField(db_index=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("start_time_hour", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("start_time_minute", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("start_time_period", models.CharField(blank=True, default="", help_text="AM / PM", max_length=2)),
                ("timezone", models.CharField(blank=True, default="", max_length=64)),
                ("meet_up_point", models.CharField(blank=True, default="", max_length=255)),
                ("meet_up_street_address", models.CharField(blank=True, default="", max_length=255)),
                ("meet_up_city", models.CharField(blank=True, default="", max_length=100)),
                ("meet_up_state", models.CharField(blank=True, default="", max_length=50)),
                ("meet_up_zip", models.CharField(blank=True, default="", max_length=20)),
                ("meet_up_lat", models.FloatField(blank=True, null=True)),
                ("meet_up_lng", models.FloatField(blank=True, null=True)),
                ("total_miles", models.FloatField(blank=True, null=True)),
                ("pace", models.CharField(blank=True, default="", max_length=50)),
                ("description", models.TextField(blank=True, default="")),
                ("strava_map_url", models.URLField(blank=True, default="", max_length=500)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_city_runs",
                        to="core.athlete",
                    ),
                ),
            ],
            options={
                "ordering": ["start_date", "id"],
            },
        ),
        migrations.CreateModel(
            name="CityRunRSVP",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(choices=[("going", "Going"), ("not-going", "Not going")], max_length=20),
                ),
                ("occurrence_date", models.DateField(blank=True, null=True)),
                ("rsvp_photo_urls", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "athlete",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="city_run_rsvps",
                        to="core.athlete",
                    ),
                ),
                (
                    "run",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rsvps",
                        to="cityruns.cityrun",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("run", "athlete"), name="uniq_cityrun_rsvp"),
                ],
            },
        ),
    ]
