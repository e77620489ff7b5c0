from django.core.management.base import BaseCommand

from risk.catalog import OWASP_TOP_10_2021, seed_vulnerability_catalog
from risk.models import Vulnerability


class Command(BaseCommand):
    help = "Load the OWASP Top 10 (2021) entries into the vulnerability catalog. Safe to run repeatedly."

    def handle(self, *args, **options):
        created = seed_vulnerability_catalog(Vulnerability)
        updated = len(OWASP_TOP_10_2021) - created
        self.stdout.write(self.style.SUCCESS(f"Vulnerability catalog seeded: {created} created, {updated} updated."))
