import secrets
import string

from django.db import models
from django.utils import timezone
from django.utils.text import slugify

from core.models import normalize_handle

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_join_code(length: int = 6) -> str:
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))


def normalize_join_code(value) -> str:
    return str(value or "").strip().upper()


# ==============================================================================
#  1. RUN CREW
# ==============================================================================
class RunCrew(models.Model):
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True, default="")
    join_code = models.CharField(max_length=20, unique=True)
    handle = models.CharField(max_length=60, unique=True)
    logo_url = models.URLField(max_length=500, blank=True, default="")
    icon = models.CharField(max_length=500, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="", db_index=True)
    state = models.CharField(max_length=50, blank=True, default="", db_index=True)
    pace_min = models.CharField(max_length=20, blank=True, default="")
    pace_max = models.CharField(max_length=20, blank=True, default="")
    primary_meet_up_point = models.CharField(max_length=255, blank=True, default="")
    primary_meet_up_address = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def save(self, *args, **kwargs):
        self.join_code = normalize_join_code(self.join_code) or generate_join_code()
        self.handle = normalize_handle(self.handle) or self._unique_handle_from_name()
        super().save(*args, **kwargs)

    def _unique_handle_from_name(self) -> str:
        base = slugify(self.name or "")[:50] or "crew"
        candidate = base
        suffix = 2
        while RunCrew.objects.filter(handle=candidate).exclude(pk=self.pk).exists():
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    def __str__(self):
        return f"{self.name} (@{self.handle})"


# ==============================================================================
#  2. MEMBERSHIP + ROLE
# ==============================================================================
class RunCrewMembership(models.Model):
    """
    Vínculo atleta ↔ crew con su rol.

    Invariante (aplicado en los handlers, no en el schema): cada crew
    conserva al menos un admin.
    """

    class Role(models.TextChoices):
        MEMBER = "member", "Member"
        MANAGER = "manager", "Manager"
        ADMIN = "admin", "Admin"

    run_crew = models.ForeignKey(RunCrew, on_delete=models.CASCADE, related_name="memberships")
    athlete = models.ForeignKey("core.Athlete", on_delete=models.CASCADE, related_name="run_crew_memberships")
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.MEMBER, db_index=True)
    joined_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["run_crew", "athlete"], name="uniq_runcrew_membership"),
        ]
        indexes = [
            models.Index(fields=["run_crew", "role"], name="runcrew_membership_role_idx"),
        ]

    def __str__(self):
        return f"{self.athlete} @ {self.run_crew.handle} [{self.role}]"


# ==============================================================================
#  3. RUNS + RSVPs
# ==============================================================================
class RunCrewRun(models.Model):
    run_crew = models.ForeignKey(RunCrew, on_delete=models.CASCADE, related_name="runs")
    created_by = models.ForeignKey(
        "core.Athlete",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_crew_runs",
    )
    title = models.CharField(max_length=200)
    date = models.DateField(db_index=True)
    start_time = models.CharField(max_length=20, blank=True, default="")
    meet_up_point = models.CharField(max_length=255, blank=True, default="")
    meet_up_address = models.CharField(max_length=255, blank=True, default="")
    total_miles = models.FloatField(null=True, blank=True)
    pace = models.CharField(max_length=20, blank=True, default="")
    description = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date", "start_time"]

    def __str__(self):
        return f"{self.title} ({self.date})"


class RunCrewRunRSVP(models.Model):
    class Status(models.TextChoices):
        GOING = "going", "Going"
        MAYBE = "maybe", "Maybe"
        NOT_GOING = "not-going", "Not going"

    run = models.ForeignKey(RunCrewRun, on_delete=models.CASCADE, related_name="rsvps")
    athlete = models.ForeignKey("core.Athlete", on_delete=models.CASCADE, related_name="crew_run_rsvps")
    status = models.CharField(max_length=20, choices=Status.choices)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["run", "athlete"], name="uniq_runcrew_run_rsvp"),
        ]

    def __str__(self):
        return f"{self.athlete} → {self.run} [{self.status}]"


# ==============================================================================
#  4. EVENTS, ANNOUNCEMENTS, MESSAGES
# ==============================================================================
class RunCrewEvent(models.Model):
    run_crew = models.ForeignKey(RunCrew, on_delete=models.CASCADE, related_name="events")
    organizer = models.ForeignKey(
        "core.Athlete",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="organized_crew_events",
    )
    title = models.CharField(max_length=200)
    date = models.DateField(db_index=True)
    time = models.CharField(max_length=20)
    location = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True, default="")
    description = models.TextField(blank=True, default="")
    event_type = models.CharField(max_length=50, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date", "time"]

    def __str__(self):
        return f"{self.title} ({self.date})"


class RunCrewAnnouncement(models.Model):
    run_crew = models.ForeignKey(RunCrew, on_delete=models.CASCADE, related_name="announcements")
    author = models.ForeignKey(
        "core.Athlete",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="crew_announcements",
    )
    title = models.CharField(max_length=200)
    content = models.TextField()
    # Archived announcements are hidden from listings instead of deleted.
    archived_at = models.DateTimeField(null=True, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def archive(self):
        self.archived_at = timezone.now()
        self.save(update_fields=["archived_at", "updated_at"])

    def __str__(self):
        return self.title


class RunCrewMessage(models.Model):
    run_crew = models.ForeignKey(RunCrew, on_delete=models.CASCADE, related_name="messages")
    athlete = models.ForeignKey("core.Athlete", on_delete=models.CASCADE, related_name="crew_messages")
    content = models.TextField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.athlete}: {self.content[:40]}"
