from django.core.management.base import BaseCommand
from django.utils import timezone

from core.garmin_tokens import is_token_expired, refresh_garmin_token
from core.integration_models import GarminConnection


class Command(BaseCommand):
    help = (
        "Diagnostica las conexiones Garmin: tokens faltantes, vencidos o por vencer.\n"
        "Uso típico: python3 manage.py garmin_token_doctor --refresh"
    )

    def add_arguments(self, parser):
        parser.add_argument("--athlete-id", type=int, help="Limita el diagnóstico a un atleta")
        parser.add_argument(
            "--refresh",
            action="store_true",
            help="Renueva los tokens vencidos que tengan refresh_token",
        )

    def handle(self, *args, **options):
        qs = GarminConnection.objects.filter(is_connected=True).select_related("athlete").order_by("id")
        if options.get("athlete_id"):
            qs = qs.filter(athlete_id=options["athlete_id"])

        now = timezone.now()
        self.stdout.write(self.style.MIGRATE_HEADING("Garmin token doctor"))
        self.stdout.write(f"- Conexiones activas: {qs.count()}")
        self.stdout.write("")

        counts = {"ok": 0, "expired": 0, "missing": 0, "refreshed": 0, "refresh_failed": 0}
        for connection in qs:
            label = f"athlete={connection.athlete_id} garmin_user_id={connection.garmin_user_id or '-'}"

            if not connection.access_token:
                counts["missing"] += 1
                self.stdout.write(self.style.WARNING(f"WARN: {label} sin access_token"))
                continue

            if not is_token_expired(connection.expires_in, connection.connected_at, now=now):
                counts["ok"] += 1
                self.stdout.write(self.style.SUCCESS(f"OK: {label} expira {connection.expires_at:%Y-%m-%d %H:%M}"))
                continue

            counts["expired"] += 1
            self.stdout.write(self.style.WARNING(f"WARN: {label} token vencido o por vencer"))
            if not options["refresh"]:
                continue

            result = refresh_garmin_token(connection)
            if result.success:
                counts["refreshed"] += 1
                self.stdout.write(self.style.SUCCESS(f"  OK: {label} token renovado"))
            else:
                counts["refresh_failed"] += 1
                self.stdout.write(self.style.ERROR(f"  ERROR: {label} {result.error}"))

        self.stdout.write("")
        self.stdout.write(" ".join(f"{key}={value}" for key, value in counts.items()))
