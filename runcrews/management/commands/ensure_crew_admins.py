from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import Count, Q

from runcrews.models import RunCrew, RunCrewMembership


class Command(BaseCommand):
    help = (
        "Detecta crews sin admin (p.ej. tras una doble democión concurrente) y, con --apply, "
        "promueve al miembro más antiguo. Por defecto es dry-run."
    )

    def add_arguments(self, parser):
        parser.add_argument("--apply", action="store_true", help="Aplica los cambios (default: dry-run)")

    def handle(self, *args, **options):
        apply_changes = options["apply"]
        orphaned = (
            RunCrew.objects
            .annotate(
                admin_count=Count("memberships", filter=Q(memberships__role=RunCrewMembership.Role.ADMIN)),
                member_count=Count("memberships"),
            )
            .filter(admin_count=0, member_count__gt=0)
            .order_by("id")
        )

        mode = "APPLY" if apply_changes else "DRY-RUN"
        self.stdout.write(self.style.MIGRATE_HEADING(f"ensure_crew_admins [{mode}]"))

        promoted = 0
        for crew in orphaned:
            oldest = crew.memberships.select_related("athlete").order_by("joined_at", "id").first()
            self.stdout.write(f"- crew={crew.pk} @{crew.handle}: sin admin, candidato membership={oldest.pk}")
            if not apply_changes:
                continue
            with transaction.atomic():
                oldest.role = RunCrewMembership.Role.ADMIN
                oldest.save(update_fields=["role"])
            promoted += 1
            self.stdout.write(self.style.SUCCESS(f"  OK: {oldest.athlete} promovido a admin"))

        self.stdout.write("")
        self.stdout.write(f"crews_sin_admin={len(orphaned)} promovidos={promoted}")
