import json

from django.core.management.base import BaseCommand, CommandError

from compliance.services.aggregator import compute_compliance_stats
from core.models import Organization


class Command(BaseCommand):
    help = "Print the ISO 27001 compliance score, coverage and maturity of one organization."

    def add_arguments(self, parser):
        parser.add_argument("organization_id", type=int)
        parser.add_argument("--format", choices=["text", "json"], default="text")

    def handle(self, *args, **options):
        organization_id = options["organization_id"]
        try:
            organization = Organization.objects.get(id=organization_id)
        except Organization.DoesNotExist as exc:
            raise CommandError(f"Organization not found: {organization_id}") from exc

        stats = compute_compliance_stats(organization.id)

        if options["format"] == "json":
            self.stdout.write(json.dumps(stats, ensure_ascii=False, indent=2))
            return

        self.stdout.write(
            f"{organization.name}: score {stats['score']}% - coverage {stats['coverage']}% "
            f"- maturity {stats['maturity']['label']}"
        )
        self.stdout.write(
            f"Controls: {stats['total']} total, {stats['assessed']} assessed, {stats['unassessed']} unassessed"
        )
        for domain in stats["domains"]:
            self.stdout.write(
                f"- {domain['code']} {domain['name']} | score {domain['score']}% | "
                f"compliant {domain['compliant']} / partial {domain['partial']} / "
                f"non-compliant {domain['non_compliant']} / n.a. {domain['not_applicable']}"
            )
