from django.core.management.base import BaseCommand, CommandError

from core.models import Organization
from reporting.services.findings import auto_generate


class Command(BaseCommand):
    help = "Create findings for high/critical risks and non-compliant controls not yet covered by a finding."

    def add_arguments(self, parser):
        parser.add_argument("organization_id", type=int)

    def handle(self, *args, **options):
        organization_id = options["organization_id"]
        if not Organization.objects.filter(id=organization_id).exists():
            raise CommandError(f"Organization not found: {organization_id}")

        count = auto_generate(organization_id=organization_id)
        if count:
            self.stdout.write(self.style.SUCCESS(f"Generated {count} new findings for organization {organization_id}."))
        else:
            self.stdout.write("No new findings to generate.")
