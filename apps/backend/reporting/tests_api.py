from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from asset.models import Asset
from compliance.models import IsoControl, IsoDomain
from core.models import AuditEvent, Organization, OrganizationMembership
from risk.models import Vulnerability
from risk.services.assessor import assess

from .models import AuditFinding, AuditReport

REPORT_PAYLOAD = {
    "title": "Annual ISMS audit",
    "auditor_name": "Jordan Auditor",
    "audit_date": "2026-04-01",
    "final_opinion": "certified",
}


class ReportingApiTests(APITestCase):
    def setUp(self):
        user_model = get_user_model()
        self.organization = Organization.objects.create(name="Acme")
        self.other_organization = Organization.objects.create(name="Globex")
        self.auditor = user_model.objects.create_user(username="rep_auditor", password="pass1234")
        self.auditee = user_model.objects.create_user(username="rep_auditee", password="pass1234")
        self.outsider = user_model.objects.create_user(username="rep_outsider", password="pass1234")
        OrganizationMembership.objects.create(
            user=self.auditor, organization=self.organization, role=OrganizationMembership.ROLE_AUDITOR
        )
        OrganizationMembership.objects.create(
            user=self.auditee, organization=self.organization, role=OrganizationMembership.ROLE_AUDITEE
        )
        OrganizationMembership.objects.create(
            user=self.outsider, organization=self.other_organization, role=OrganizationMembership.ROLE_ADMIN
        )

        asset = Asset.objects.create(
            organization=self.organization,
            name="Payments API",
            type=Asset.TYPE_SERVICE,
            confidentiality=5,
            integrity=5,
            availability=4,
        )
        vulnerability = Vulnerability.objects.create(owasp_id="T-07", name="Authentication Failures")
        assess(
            organization_id=self.organization.id,
            asset_id=asset.id,
            vulnerability_id=vulnerability.id,
            likelihood=5,
            impact=5,
        )

    def test_auto_generate_is_idempotent_over_http(self):
        self.client.force_authenticate(self.auditor)
        first = self.client.post(reverse("finding-auto-generate"))
        second = self.client.post(reverse("finding-auto-generate"))

        self.assertEqual(first.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data["count"], 1)
        self.assertEqual(second.data["count"], 0)
        self.assertEqual(second.data["message"], "No new findings to generate.")
        self.assertEqual(AuditFinding.objects.count(), 1)
        self.assertTrue(AuditEvent.objects.filter(action="finding.auto_generate").exists())

        stats = self.client.get(reverse("finding-stats"))
        self.assertEqual(stats.data["total"], 1)
        self.assertEqual(stats.data["critical"], 1)

    def test_manual_finding_requires_title_and_description(self):
        self.client.force_authenticate(self.auditor)
        response = self.client.post(
            reverse("finding-list"), data={"title": "", "description": "Missing title"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("title", response.data)

        response = self.client.post(
            reverse("finding-list"),
            data={"title": "No MFA on VPN", "description": "VPN accepts passwords only.", "severity": "high"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["finding_number"], "F-001")
        self.assertEqual(response.data["source"], "manual")

    def test_resolving_a_finding_over_http(self):
        self.client.force_authenticate(self.auditor)
        created = self.client.post(
            reverse("finding-list"), data={"title": "Open port", "description": "Telnet exposed."}, format="json"
        )
        response = self.client.patch(
            reverse("finding-detail", args=[created.data["id"]]), data={"status": "resolved"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data["resolved_at"])

    def test_full_update_may_echo_source_but_not_change_it(self):
        self.client.force_authenticate(self.auditor)
        created = self.client.post(
            reverse("finding-list"), data={"title": "Weak TLS", "description": "TLS 1.0 enabled."}, format="json"
        )
        url = reverse("finding-detail", args=[created.data["id"]])
        payload = {"title": "Weak TLS", "description": "TLS 1.0 still enabled.", "source": "manual", "severity": "low"}

        response = self.client.put(url, data=payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["severity"], "low")

        response = self.client.put(url, data={**payload, "source": "checklist"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_control_origin_is_a_bad_request(self):
        domain = IsoDomain.objects.create(code="A.5", name="Organizational controls")
        access_control = IsoControl.objects.create(domain=domain, control_id="A.5.15", name="Access control")
        logging_control = IsoControl.objects.create(domain=domain, control_id="A.8.15", name="Logging")
        self.client.force_authenticate(self.auditor)

        def post(control):
            payload = {
                "title": f"Gap in {control.control_id}",
                "description": "Control not implemented.",
                "source": "checklist",
                "related_control": control.id,
            }
            return self.client.post(reverse("finding-list"), data=payload, format="json")

        self.assertEqual(post(access_control).status_code, status.HTTP_201_CREATED)
        duplicate = post(access_control)
        self.assertEqual(duplicate.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("related_control", duplicate.data)

        other = post(logging_control)
        response = self.client.patch(
            reverse("finding-detail", args=[other.data["id"]]),
            data={"related_control": access_control.id},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(AuditFinding.objects.filter(related_control=access_control).count(), 1)

    def test_auditee_cannot_generate_findings(self):
        self.client.force_authenticate(self.auditee)
        response = self.client.post(reverse("finding-auto-generate"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_generate_and_edit_report(self):
        self.client.force_authenticate(self.auditor)
        response = self.client.post(reverse("report-list"), data=REPORT_PAYLOAD, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["version"], 1)
        self.assertEqual(response.data["snapshot"]["risks"]["critical"], 1)
        report_id = response.data["id"]

        response = self.client.patch(
            reverse("report-detail", args=[report_id]),
            data={"executive_summary": "One critical risk."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["executive_summary"], "One critical risk.")

        response = self.client.patch(
            reverse("report-detail", args=[report_id]),
            data={"snapshot": {"risks": {"critical": 0}}},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(AuditReport.objects.get(id=report_id).snapshot.data["risks"]["critical"], 1)

    def test_report_requires_final_opinion(self):
        self.client.force_authenticate(self.auditor)
        payload = {**REPORT_PAYLOAD, "final_opinion": "maybe"}
        response = self.client.post(reverse("report-list"), data=payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(AuditReport.objects.exists())

    def test_reports_are_tenant_scoped(self):
        self.client.force_authenticate(self.auditor)
        created = self.client.post(reverse("report-list"), data=REPORT_PAYLOAD, format="json")

        self.client.force_authenticate(self.outsider)
        self.assertEqual(self.client.get(reverse("report-list")).data["count"], 0)
        response = self.client.get(reverse("report-detail", args=[created.data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.delete(reverse("report-detail", args=[created.data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        self.client.force_authenticate(self.auditor)
        response = self.client.delete(reverse("report-detail", args=[created.data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(AuditReport.objects.exists())

    def test_dashboard(self):
        self.client.force_authenticate(self.auditee)
        response = self.client.get(reverse("dashboard"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["totalAssets"], 1)
        self.assertEqual(response.data["criticalAssets"], 1)
        self.assertEqual(response.data["highRisks"], 1)
