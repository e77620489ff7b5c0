from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.models import AuditEvent, Organization, OrganizationMembership

from .models import ControlAssessment, IsoControl, IsoDomain


class ControlAssessmentApiTests(APITestCase):
    def setUp(self):
        user_model = get_user_model()
        self.organization = Organization.objects.create(name="Acme")
        self.other_organization = Organization.objects.create(name="Globex")
        self.auditor = user_model.objects.create_user(username="ctl_auditor", password="pass1234")
        self.auditee = user_model.objects.create_user(username="ctl_auditee", password="pass1234")
        self.outsider = user_model.objects.create_user(username="ctl_outsider", password="pass1234")
        OrganizationMembership.objects.create(
            user=self.auditor, organization=self.organization, role=OrganizationMembership.ROLE_AUDITOR
        )
        OrganizationMembership.objects.create(
            user=self.auditee, organization=self.organization, role=OrganizationMembership.ROLE_AUDITEE
        )
        OrganizationMembership.objects.create(
            user=self.outsider, organization=self.other_organization, role=OrganizationMembership.ROLE_AUDITOR
        )

        domain = IsoDomain.objects.create(code="A.5", name="Organizational controls", sort_order=1)
        self.control = IsoControl.objects.create(domain=domain, control_id="A.5.1", name="Policies", sort_order=1)
        self.second_control = IsoControl.objects.create(domain=domain, control_id="A.5.2", name="Roles", sort_order=2)

    def test_auditor_upserts_control_assessment(self):
        self.client.force_authenticate(self.auditor)
        response = self.client.post(
            reverse("control-assessment-list"),
            data={"control": self.control.id, "status": "partial", "responsible_person": "CISO"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["control_code"], "A.5.1")

        response = self.client.post(
            reverse("control-assessment-list"),
            data={"control": self.control.id, "status": "compliant"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(ControlAssessment.objects.count(), 1)
        self.assertEqual(ControlAssessment.objects.get().status, "compliant")
        self.assertTrue(AuditEvent.objects.filter(action="control_assessment.update").exists())

    def test_invalid_status_returns_400(self):
        self.client.force_authenticate(self.auditor)
        response = self.client.post(
            reverse("control-assessment-list"),
            data={"control": self.control.id, "status": "almost"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("status", response.data)

    def test_unknown_control_returns_404(self):
        self.client.force_authenticate(self.auditor)
        response = self.client.post(
            reverse("control-assessment-list"),
            data={"control": 987654, "status": "compliant"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_auditee_reads_but_cannot_assess(self):
        self.client.force_authenticate(self.auditee)
        response = self.client.post(
            reverse("control-assessment-list"),
            data={"control": self.control.id, "status": "compliant"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get(reverse("compliance-stats")).status_code, status.HTTP_200_OK)

    def test_stats_and_checklist_are_tenant_scoped(self):
        self.client.force_authenticate(self.outsider)
        self.client.post(
            reverse("control-assessment-list"),
            data={"control": self.control.id, "status": "compliant"},
            format="json",
        )

        self.client.force_authenticate(self.auditor)
        self.client.post(
            reverse("control-assessment-list"),
            data={"control": self.second_control.id, "status": "partial"},
            format="json",
        )
        stats = self.client.get(reverse("compliance-stats"))
        self.assertEqual(stats.status_code, status.HTTP_200_OK)
        self.assertEqual(stats.data["assessed"], 1)
        self.assertEqual(stats.data["score"], 25)
        self.assertEqual(stats.data["maturity"]["label"], "Developing")

        checklist = self.client.get(reverse("compliance-checklist"))
        self.assertEqual(checklist.status_code, status.HTTP_200_OK)
        controls = checklist.data[0]["controls"]
        self.assertIsNone(controls[0]["assessment"])
        self.assertEqual(controls[1]["assessment"]["status"], "partial")

    def test_catalog_is_read_only_for_members(self):
        self.client.force_authenticate(self.auditor)
        self.assertEqual(self.client.get(reverse("iso-control-list")).data["count"], 2)
        self.assertEqual(self.client.get(reverse("iso-domain-list")).data["results"][0]["control_count"], 2)
        response = self.client.post(reverse("iso-domain-list"), data={"code": "A.9", "name": "x"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
