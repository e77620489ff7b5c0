from datetime import date
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.core.management import call_command
from django.db import DatabaseError
from django.test import TestCase

from asset.models import Asset
from compliance.models import ControlAssessment, IsoControl, IsoDomain
from compliance.services.aggregator import assess_control
from core.models import Organization
from risk.models import AssetVulnerability, Vulnerability
from risk.services.assessor import assess

from .models import AuditFinding, AuditReport, ReportSnapshot
from .services.dashboard import dashboard_stats
from .services.findings import (
    CONTROL_RECOMMENDATION_FALLBACK,
    RISK_RECOMMENDATION_FALLBACK,
    auto_generate,
    create_manual,
    delete_finding,
    finding_stats,
    update_finding,
)
from .services.snapshot import build_snapshot, delete_report, generate_report, update_report_narrative

REPORT_CONFIG = {
    "title": "ISO 27001 Surveillance Audit",
    "auditor_name": "Jordan Auditor",
    "audit_date": "2026-03-15",
    "final_opinion": "conditional",
}


class AuditScenarioMixin:
    def build_scenario(self) -> None:
        self.organization = Organization.objects.create(
            name="Acme",
            sector=Organization.SECTOR_FINANCIAL,
            employee_count=250,
            scope_description="Online banking platform",
            audit_period_start=date(2026, 1, 1),
            audit_period_end=date(2026, 12, 31),
        )
        self.user = get_user_model().objects.create_user(username="lead_auditor", password="pass1234")
        self.asset = Asset.objects.create(
            organization=self.organization,
            name="Core banking",
            type=Asset.TYPE_SOFTWARE,
            confidentiality=5,
            integrity=5,
            availability=5,
        )
        self.vulnerability = Vulnerability.objects.create(
            owasp_id="T-03",
            name="Injection",
            remediation_guidance="Use parameterized queries.",
        )
        self.domain = IsoDomain.objects.create(code="A.8", name="Technological controls", sort_order=1)
        self.control = IsoControl.objects.create(domain=self.domain, control_id="A.8.8", name="Vulnerability management")

        self.risk, _ = assess(
            organization_id=self.organization.id,
            asset_id=self.asset.id,
            vulnerability_id=self.vulnerability.id,
            likelihood=4,
            impact=5,
        )
        self.control_assessment, _ = assess_control(
            organization_id=self.organization.id,
            control_id=self.control.id,
            status=ControlAssessment.STATUS_NON_COMPLIANT,
            notes="No patch process",
            responsible_person="IT Ops",
            target_date=date(2026, 6, 30),
        )


class AutoGenerateFindingsTests(AuditScenarioMixin, TestCase):
    def setUp(self) -> None:
        self.build_scenario()

    def test_generates_one_finding_per_origin(self) -> None:
        count = auto_generate(organization_id=self.organization.id, user=self.user)

        self.assertEqual(count, 2)
        risk_finding = AuditFinding.objects.get(source=AuditFinding.SOURCE_RISK_ASSESSMENT)
        self.assertEqual(risk_finding.severity, "critical")
        self.assertEqual(risk_finding.title, "Injection detected on Core banking")
        self.assertEqual(
            risk_finding.description,
            'The asset "Core banking" (software) is exposed to the vulnerability "Injection" (T-03). '
            "Risk score: 20/25 with likelihood 4/5 and impact 5/5.",
        )
        self.assertEqual((risk_finding.risk_score, risk_finding.likelihood, risk_finding.impact), (20, 4, 5))
        self.assertEqual(risk_finding.recommendation, "Use parameterized queries.")
        self.assertEqual(risk_finding.affected_asset, self.asset)
        self.assertEqual(risk_finding.created_by, self.user)

        control_finding = AuditFinding.objects.get(source=AuditFinding.SOURCE_CHECKLIST)
        self.assertEqual(control_finding.severity, "high")
        self.assertEqual(control_finding.title, "Non-compliant: A.8.8 - Vulnerability management")
        self.assertIn("Auditor notes: No patch process", control_finding.description)
        self.assertEqual(control_finding.recommendation, CONTROL_RECOMMENDATION_FALLBACK)
        self.assertEqual(control_finding.remediation_owner, "IT Ops")
        self.assertEqual(control_finding.remediation_deadline, date(2026, 6, 30))

        self.assertEqual(
            sorted(AuditFinding.objects.values_list("finding_number", flat=True)),
            ["F-001", "F-002"],
        )

    def test_second_run_is_a_no_op(self) -> None:
        auto_generate(organization_id=self.organization.id)
        before = list(AuditFinding.objects.order_by("id").values_list("id", "title", "severity"))

        self.assertEqual(auto_generate(organization_id=self.organization.id), 0)
        self.assertEqual(list(AuditFinding.objects.order_by("id").values_list("id", "title", "severity")), before)

    def test_medium_risks_and_compliant_controls_are_ignored(self) -> None:
        assess(
            organization_id=self.organization.id,
            asset_id=self.asset.id,
            vulnerability_id=self.vulnerability.id,
            likelihood=2,
            impact=4,
        )
        assess_control(organization_id=self.organization.id, control_id=self.control.id, status="partial")

        self.assertEqual(auto_generate(organization_id=self.organization.id), 0)
        self.assertFalse(AuditFinding.objects.exists())

    def test_known_vulnerability_on_another_asset_is_not_reported_again(self) -> None:
        auto_generate(organization_id=self.organization.id)
        second_asset = Asset.objects.create(organization=self.organization, name="Mobile API", type=Asset.TYPE_SERVICE)
        assess(
            organization_id=self.organization.id,
            asset_id=second_asset.id,
            vulnerability_id=self.vulnerability.id,
            likelihood=3,
            impact=4,
        )

        self.assertEqual(auto_generate(organization_id=self.organization.id), 0)
        self.assertFalse(AuditFinding.objects.filter(affected_asset=second_asset).exists())

    def test_new_vulnerability_is_reported_for_every_affected_asset_in_one_run(self) -> None:
        auto_generate(organization_id=self.organization.id)
        misconfiguration = Vulnerability.objects.create(owasp_id="T-05", name="Security Misconfiguration")
        second_asset = Asset.objects.create(organization=self.organization, name="Mobile API", type=Asset.TYPE_SERVICE)
        for asset in (self.asset, second_asset):
            assess(
                organization_id=self.organization.id,
                asset_id=asset.id,
                vulnerability_id=misconfiguration.id,
                likelihood=3,
                impact=4,
            )

        self.assertEqual(auto_generate(organization_id=self.organization.id), 2)
        findings = AuditFinding.objects.filter(vulnerability=misconfiguration)
        self.assertEqual({finding.affected_asset_id for finding in findings}, {self.asset.id, second_asset.id})
        self.assertEqual(sorted(finding.finding_number for finding in findings), ["F-003", "F-004"])
        self.assertEqual(auto_generate(organization_id=self.organization.id), 0)

    def test_manual_checklist_finding_cannot_duplicate_a_control_origin(self) -> None:
        auto_generate(organization_id=self.organization.id)

        with self.assertRaises(ValidationError) as ctx:
            create_manual(
                organization_id=self.organization.id,
                title="Patching gap",
                description="Duplicate of the generated finding.",
                source=AuditFinding.SOURCE_CHECKLIST,
                related_control_id=self.control.id,
            )
        self.assertIn("related_control", ctx.exception.message_dict)
        self.assertEqual(AuditFinding.objects.count(), 2)

        other_control = IsoControl.objects.create(domain=self.domain, control_id="A.8.9", name="Configuration management")
        finding = create_manual(
            organization_id=self.organization.id,
            title="Baseline drift",
            description="No configuration baseline.",
            source=AuditFinding.SOURCE_CHECKLIST,
            related_control_id=other_control.id,
        )
        with self.assertRaises(ValidationError):
            update_finding(organization_id=self.organization.id, finding_id=finding.id, related_control_id=self.control.id)
        finding.refresh_from_db()
        self.assertEqual(finding.related_control, other_control)

        renamed = update_finding(organization_id=self.organization.id, finding_id=finding.id, title="Baseline drift (servers)")
        self.assertEqual(renamed.related_control, other_control)

    def test_fallback_recommendation_and_findings_outlive_assessments(self) -> None:
        self.vulnerability.remediation_guidance = ""
        self.vulnerability.save()
        auto_generate(organization_id=self.organization.id)

        finding = AuditFinding.objects.get(source=AuditFinding.SOURCE_RISK_ASSESSMENT)
        self.assertEqual(finding.recommendation, RISK_RECOMMENDATION_FALLBACK)

        self.risk.delete()
        self.assertTrue(AuditFinding.objects.filter(id=finding.id).exists())

    def test_other_organizations_are_untouched(self) -> None:
        other = Organization.objects.create(name="Globex")
        self.assertEqual(auto_generate(organization_id=other.id), 0)
        self.assertFalse(AuditFinding.objects.filter(organization=other).exists())

    def test_command_reports_count(self) -> None:
        out = StringIO()
        call_command("auto_generate_findings", str(self.organization.id), stdout=out)
        self.assertIn("Generated 2 new findings", out.getvalue())

        out = StringIO()
        call_command("auto_generate_findings", str(self.organization.id), stdout=out)
        self.assertIn("No new findings to generate.", out.getvalue())


class ManualFindingTests(TestCase):
    def setUp(self) -> None:
        self.organization = Organization.objects.create(name="Acme")
        self.other_organization = Organization.objects.create(name="Globex")
        self.foreign_asset = Asset.objects.create(
            organization=self.other_organization, name="Globex CRM", type=Asset.TYPE_SOFTWARE
        )

    def test_title_and_description_are_required(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            create_manual(organization_id=self.organization.id, title="  ", description="")
        self.assertEqual(set(ctx.exception.message_dict), {"title", "description"})
        self.assertFalse(AuditFinding.objects.exists())

    def test_manual_finding_with_rating(self) -> None:
        finding = create_manual(
            organization_id=self.organization.id,
            title="Shared admin account",
            description="Admins share one account on the firewall.",
            severity="high",
            likelihood=3,
            impact=4,
        )
        self.assertEqual(finding.source, AuditFinding.SOURCE_MANUAL)
        self.assertEqual(finding.finding_number, "F-001")
        self.assertEqual((finding.risk_score, finding.risk_level), (12, "high"))

    def test_out_of_range_rating_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            create_manual(
                organization_id=self.organization.id,
                title="Bad rating",
                description="Impact out of range",
                likelihood=3,
                impact=7,
            )

    def test_foreign_asset_link_is_not_found(self) -> None:
        with self.assertRaises(ObjectDoesNotExist):
            create_manual(
                organization_id=self.organization.id,
                title="Foreign",
                description="Links another tenant's asset",
                affected_asset_id=self.foreign_asset.id,
            )

    def test_resolving_stamps_and_reopening_clears_resolved_at(self) -> None:
        finding = create_manual(organization_id=self.organization.id, title="Weak TLS", description="TLS 1.0 enabled")

        resolved = update_finding(organization_id=self.organization.id, finding_id=finding.id, status="resolved")
        self.assertIsNotNone(resolved.resolved_at)

        reopened = update_finding(organization_id=self.organization.id, finding_id=finding.id, status="in_progress")
        self.assertIsNone(reopened.resolved_at)

        with self.assertRaises(ValidationError):
            update_finding(organization_id=self.organization.id, finding_id=finding.id, title="")

    def test_update_and_delete_are_scoped(self) -> None:
        finding = create_manual(organization_id=self.organization.id, title="Weak TLS", description="TLS 1.0 enabled")
        with self.assertRaises(ObjectDoesNotExist):
            update_finding(organization_id=self.other_organization.id, finding_id=finding.id, status="closed")
        with self.assertRaises(ObjectDoesNotExist):
            delete_finding(organization_id=self.other_organization.id, finding_id=finding.id)

        delete_finding(organization_id=self.organization.id, finding_id=finding.id)
        self.assertFalse(AuditFinding.objects.exists())

    def test_finding_stats(self) -> None:
        create_manual(organization_id=self.organization.id, title="A", description="a", severity="critical")
        second = create_manual(organization_id=self.organization.id, title="B", description="b", severity="low")
        update_finding(organization_id=self.organization.id, finding_id=second.id, status="resolved")
        create_manual(organization_id=self.other_organization.id, title="C", description="c", severity="critical")

        stats = finding_stats(self.organization.id)
        self.assertEqual(stats["total"], 2)
        self.assertEqual(stats["critical"], 1)
        self.assertEqual(stats["low"], 1)
        self.assertEqual(stats["informational"], 0)
        self.assertEqual(stats["open"], 1)
        self.assertEqual(stats["resolved"], 1)
        self.assertEqual(stats["in_progress"], 0)


class ReportSnapshotTests(AuditScenarioMixin, TestCase):
    def setUp(self) -> None:
        self.build_scenario()

    def test_end_to_end_snapshot(self) -> None:
        self.assertEqual(auto_generate(organization_id=self.organization.id), 2)

        report = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG, user=self.user)
        data = report.snapshot.data

        self.assertEqual(set(data), {"organization", "assets", "risks", "compliance", "findings", "generatedAt"})
        self.assertEqual(data["assets"]["total"], 1)
        self.assertEqual(data["assets"]["critical"], 1)
        self.assertEqual(data["assets"]["byType"], {"software": 1})
        self.assertEqual(data["risks"]["total"], 1)
        self.assertEqual(data["risks"]["critical"], 1)
        self.assertEqual(data["compliance"]["score"], 0)
        self.assertEqual(data["compliance"]["total"], 1)
        self.assertEqual(data["compliance"]["nonCompliant"], 1)
        self.assertEqual(data["findings"]["total"], 2)
        self.assertEqual(data["findings"]["critical"], 1)
        self.assertEqual(data["findings"]["high"], 1)
        self.assertEqual(data["findings"]["open"], 2)
        self.assertEqual(
            set(data["findings"]),
            {"total", "critical", "high", "medium", "low", "informational", "open", "resolved"},
        )
        self.assertEqual(data["organization"]["name"], "Acme")
        self.assertEqual(data["organization"]["audit_period_start"], "2026-01-01")
        self.assertEqual(report.version, 1)
        self.assertEqual(report.scope_description, "Online banking platform")
        self.assertEqual(report.audit_date, date(2026, 3, 15))

    def test_snapshot_keeps_history_after_live_changes(self) -> None:
        report = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)

        Asset.objects.create(organization=self.organization, name="New laptop", type=Asset.TYPE_HARDWARE)
        assess_control(organization_id=self.organization.id, control_id=self.control.id, status="compliant")
        self.asset.confidentiality = 1
        self.asset.save()

        stored = AuditReport.objects.get(id=report.id)
        self.assertEqual(stored.snapshot.data["assets"]["total"], 1)
        self.assertEqual(stored.snapshot.data["assets"]["critical"], 1)
        self.assertEqual(stored.snapshot.data["compliance"]["score"], 0)
        self.assertEqual(build_snapshot(self.organization.id).compliance["score"], 100)

    def test_snapshot_rows_are_write_once(self) -> None:
        report = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)
        snapshot = report.snapshot

        snapshot.data = {"tampered": True}
        with self.assertRaises(ValidationError):
            snapshot.save()
        with self.assertRaises(ValidationError):
            ReportSnapshot.objects.filter(id=snapshot.id).update(data={})
        self.assertEqual(ReportSnapshot.objects.get(id=snapshot.id).data["assets"]["total"], 1)

    def test_failed_aggregate_persists_nothing(self) -> None:
        with patch(
            "reporting.services.snapshot.compute_compliance_stats",
            side_effect=DatabaseError("connection lost"),
        ):
            with self.assertRaises(DatabaseError):
                generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)

        self.assertFalse(AuditReport.objects.exists())
        self.assertFalse(ReportSnapshot.objects.exists())

    def test_versions_increase_per_organization(self) -> None:
        other = Organization.objects.create(name="Globex")
        first = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)
        second = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)
        foreign = generate_report(organization_id=other.id, config=REPORT_CONFIG)

        self.assertEqual((first.version, second.version), (1, 2))
        self.assertEqual(foreign.version, 1)

    def test_deleted_version_is_never_handed_out_again(self) -> None:
        generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)
        second = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)
        delete_report(organization_id=self.organization.id, report_id=second.id)

        third = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)

        self.assertEqual(third.version, 3)
        self.assertEqual(sorted(AuditReport.objects.values_list("version", flat=True)), [1, 3])

    def test_failed_generation_does_not_consume_a_version(self) -> None:
        with patch("reporting.services.snapshot.compute_compliance_stats", side_effect=DatabaseError("read failed")):
            with self.assertRaises(DatabaseError):
                generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)

        report = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)
        self.assertEqual(report.version, 1)

    def test_config_validation(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            generate_report(
                organization_id=self.organization.id,
                config={"title": "", "auditor_name": "A", "audit_date": "soon", "final_opinion": "maybe"},
            )
        self.assertEqual(set(ctx.exception.message_dict), {"title", "audit_date", "final_opinion"})
        self.assertFalse(ReportSnapshot.objects.exists())

    def test_default_methodology_is_applied(self) -> None:
        report = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)
        self.assertIn("ISO/IEC 27001:2022", report.methodology)

    def test_narrative_edit_leaves_snapshot_untouched(self) -> None:
        report = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)
        frozen = dict(report.snapshot.data)

        updated = update_report_narrative(
            organization_id=self.organization.id,
            report_id=report.id,
            executive_summary="Two major gaps.",
            final_opinion="not_certified",
            status="final",
        )
        self.assertEqual(updated.executive_summary, "Two major gaps.")
        self.assertEqual(updated.final_opinion, "not_certified")
        self.assertEqual(AuditReport.objects.get(id=report.id).snapshot.data, frozen)

        with self.assertRaises(ValidationError):
            update_report_narrative(organization_id=self.organization.id, report_id=report.id, snapshot={})
        with self.assertRaises(ValidationError):
            update_report_narrative(organization_id=self.organization.id, report_id=report.id, version=9)

    def test_delete_report_removes_its_snapshot(self) -> None:
        report = generate_report(organization_id=self.organization.id, config=REPORT_CONFIG)
        other = Organization.objects.create(name="Globex")
        with self.assertRaises(ObjectDoesNotExist):
            delete_report(organization_id=other.id, report_id=report.id)

        delete_report(organization_id=self.organization.id, report_id=report.id)
        self.assertFalse(AuditReport.objects.exists())
        self.assertFalse(ReportSnapshot.objects.exists())


class DashboardStatsTests(AuditScenarioMixin, TestCase):
    def setUp(self) -> None:
        self.build_scenario()

    def test_dashboard_counts(self) -> None:
        Asset.objects.create(organization=self.organization, name="Badge reader", type=Asset.TYPE_HARDWARE)
        Asset.objects.create(
            organization=self.organization, name="Retired", type=Asset.TYPE_HARDWARE, is_active=False
        )

        stats = dashboard_stats(self.organization.id)

        self.assertEqual(stats["totalAssets"], 2)
        self.assertEqual(stats["criticalAssets"], 1)
        self.assertEqual(stats["totalVulnerabilities"], 1)
        self.assertEqual(stats["highRisks"], 1)
        self.assertEqual(stats["riskDistribution"][0], {"level": "critical", "count": 1})
        self.assertEqual(
            stats["assetsByType"],
            [{"type": "hardware", "count": 1}, {"type": "software", "count": 1}],
        )
        self.assertEqual(AssetVulnerability.objects.count(), 1)
