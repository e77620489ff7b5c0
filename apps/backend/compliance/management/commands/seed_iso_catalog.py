from django.core.management.base import BaseCommand
from django.db import transaction

from compliance.catalog import seed_iso_catalog
from compliance.models import IsoControl, IsoDomain


class Command(BaseCommand):
    help = "Load the ISO/IEC 27001:2022 Annex A domains and controls. Safe to run repeatedly."

    def handle(self, *args, **options):
        with transaction.atomic():
            domains_created, controls_created = seed_iso_catalog(IsoDomain, IsoControl)
        self.stdout.write(
            self.style.SUCCESS(
                f"ISO catalog seeded: {domains_created} domains and {controls_created} controls created "
                f"({IsoControl.objects.count()} controls in catalog)."
            )
        )
