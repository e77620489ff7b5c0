import json
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import TestCase

from core.models import Organization

from .models import ControlAssessment, IsoControl, IsoDomain
from .services.aggregator import assess_control, checklist, compute_compliance_stats


def make_domain(code, count, sort_order=1):
    domain = IsoDomain.objects.create(code=code, name=f"Domain {code}", sort_order=sort_order)
    controls = [
        IsoControl.objects.create(domain=domain, control_id=f"{code}.{index}", name=f"Control {index}", sort_order=index)
        for index in range(1, count + 1)
    ]
    return domain, controls


class ComplianceAggregatorTests(TestCase):
    def setUp(self) -> None:
        self.organization = Organization.objects.create(name="Acme")
        self.other_organization = Organization.objects.create(name="Globex")
        self.reviewer = get_user_model().objects.create_user(username="reviewer", password="pass1234")
        self.domain, self.controls = make_domain("A.5", 10)
        self.empty_domain, self.empty_controls = make_domain("A.6", 2, sort_order=2)

    def _assess(self, control, status, organization=None):
        return assess_control(
            organization_id=(organization or self.organization).id,
            control_id=control.id,
            status=status,
            reviewer=self.reviewer,
        )

    def test_partial_counts_half_and_unassessed_stay_effective(self) -> None:
        statuses = ["compliant"] * 4 + ["partial"] * 2 + ["not_applicable"] * 2
        for control, status in zip(self.controls, statuses):
            self._assess(control, status)

        stats = compute_compliance_stats(self.organization.id)
        domain = stats["domains"][0]

        self.assertEqual(domain["code"], "A.5")
        self.assertEqual(domain["total"], 10)
        self.assertEqual(domain["assessed"], 8)
        self.assertEqual(domain["unassessed"], 2)
        self.assertEqual(domain["compliant"], 4)
        self.assertEqual(domain["partial"], 2)
        self.assertEqual(domain["non_compliant"], 0)
        self.assertEqual(domain["not_applicable"], 2)
        self.assertEqual(domain["score"], 63)
        self.assertEqual(domain["coverage"], 80)

        empty = stats["domains"][1]
        self.assertEqual((empty["total"], empty["assessed"], empty["score"], empty["coverage"]), (2, 0, 0, 0))

        # 4 + 1 over 12 - 2 effective controls.
        self.assertEqual(stats["total"], 12)
        self.assertEqual(stats["unassessed"], 4)
        self.assertEqual(stats["score"], 50)
        self.assertEqual(stats["coverage"], 67)
        self.assertEqual(stats["maturity"]["label"], "Defined")

    def test_domain_with_only_not_applicable_controls_scores_zero(self) -> None:
        for control in self.empty_controls:
            self._assess(control, "not_applicable")

        stats = compute_compliance_stats(self.organization.id)
        self.assertEqual(stats["domains"][1]["score"], 0)
        self.assertEqual(stats["domains"][1]["coverage"], 100)

    def test_other_organizations_assessments_are_ignored(self) -> None:
        for control in self.controls:
            self._assess(control, "compliant", organization=self.other_organization)

        stats = compute_compliance_stats(self.organization.id)
        self.assertEqual(stats["assessed"], 0)
        self.assertEqual(stats["score"], 0)
        self.assertEqual(stats["maturity"]["key"], "initial")
        self.assertEqual(compute_compliance_stats(self.other_organization.id)["score"], 83)

    def test_assess_control_upserts_per_organization_and_control(self) -> None:
        first, created = self._assess(self.controls[0], "non_compliant")
        self.assertTrue(created)
        self.assertIsNotNone(first.reviewed_at)

        second_reviewer = get_user_model().objects.create_user(username="second", password="pass1234")
        second, created = assess_control(
            organization_id=self.organization.id,
            control_id=self.controls[0].id,
            status="compliant",
            notes="Policy approved",
            reviewer=second_reviewer,
        )

        self.assertFalse(created)
        self.assertEqual(first.id, second.id)
        self.assertEqual(ControlAssessment.objects.count(), 1)
        stored = ControlAssessment.objects.get(id=first.id)
        self.assertEqual(stored.status, "compliant")
        self.assertEqual(stored.notes, "Policy approved")
        self.assertEqual(stored.reviewed_by, second_reviewer)
        self.assertEqual(stored.created_by, self.reviewer)

    def test_unknown_status_is_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self._assess(self.controls[0], "mostly")
        self.assertIn("status", ctx.exception.message_dict)
        self.assertFalse(ControlAssessment.objects.exists())

    def test_unknown_control_is_not_found(self) -> None:
        with self.assertRaises(ObjectDoesNotExist):
            assess_control(organization_id=self.organization.id, control_id=999999, status="compliant")

    def test_failed_read_propagates_instead_of_zeroing(self) -> None:
        self._assess(self.controls[0], "compliant")
        with patch.object(ControlAssessment.objects, "filter", side_effect=DatabaseError("connection lost")):
            with self.assertRaises(DatabaseError):
                compute_compliance_stats(self.organization.id)

    def test_checklist_pairs_controls_with_assessments(self) -> None:
        self._assess(self.controls[1], "partial")
        self._assess(self.controls[1], "compliant", organization=self.other_organization)

        domains = checklist(self.organization.id)

        self.assertEqual([entry["domain"].code for entry in domains], ["A.5", "A.6"])
        controls = domains[0]["controls"]
        self.assertEqual(len(controls), 10)
        self.assertIsNone(controls[0]["assessment"])
        self.assertEqual(controls[1]["assessment"].status, "partial")


class ComplianceCommandTests(TestCase):
    def test_seed_iso_catalog_loads_annex_a_once(self) -> None:
        call_command("seed_iso_catalog", stdout=StringIO())
        call_command("seed_iso_catalog", stdout=StringIO())

        self.assertEqual(IsoDomain.objects.count(), 4)
        self.assertEqual(IsoControl.objects.count(), 93)
        self.assertEqual(IsoControl.objects.filter(domain__code="A.8").count(), 34)
        self.assertTrue(IsoControl.objects.filter(control_id="A.5.1", name="Policies for information security").exists())

    def test_compliance_stats_json_output(self) -> None:
        organization = Organization.objects.create(name="Acme")
        _, controls = make_domain("A.5", 4)
        assess_control(organization_id=organization.id, control_id=controls[0].id, status="compliant")
        assess_control(organization_id=organization.id, control_id=controls[1].id, status="partial")

        out = StringIO()
        call_command("compliance_stats", str(organization.id), "--format", "json", stdout=out)
        payload = json.loads(out.getvalue())

        self.assertEqual(payload["score"], 38)
        self.assertEqual(payload["coverage"], 50)
        self.assertEqual(payload["maturity"]["label"], "Developing")

    def test_compliance_stats_unknown_organization(self) -> None:
        with self.assertRaises(CommandError):
            call_command("compliance_stats", "424242", stdout=StringIO())
