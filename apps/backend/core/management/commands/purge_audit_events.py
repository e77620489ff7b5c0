from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from core.models import AuditEvent


class Command(BaseCommand):
    help = "Purge audit trail events older than N days, optionally for a single organization."

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=180, help="Retention window in days (default: 180).")
        parser.add_argument("--organization", type=int, default=None, help="Only purge events of this organization id.")
        parser.add_argument("--dry-run", action="store_true", help="Only show how many rows would be deleted.")

    def handle(self, *args, **options):
        days = max(1, int(options["days"]))
        dry_run = bool(options["dry_run"])
        organization_id = options.get("organization")

        cutoff = timezone.now() - timedelta(days=days)
        queryset = AuditEvent.objects.filter(created_at__lt=cutoff)
        scope = "all organizations"
        if organization_id is not None:
            queryset = queryset.filter(organization_id=organization_id)
            scope = f"organization {organization_id}"
        count = queryset.count()

        if dry_run:
            self.stdout.write(f"[dry-run] {count} audit events older than {days} days would be deleted ({scope}).")
            return

        deleted_count, _ = queryset.delete()
        self.stdout.write(self.style.SUCCESS(f"Deleted {deleted_count} audit events older than {days} days ({scope})."))
