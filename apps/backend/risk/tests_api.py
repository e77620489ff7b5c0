from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from asset.models import Asset
from core.models import AuditEvent, Organization, OrganizationMembership
from risk.models import AssetVulnerability, Vulnerability


class RiskAssessmentApiTests(APITestCase):
    def setUp(self):
        user_model = get_user_model()
        self.organization = Organization.objects.create(name="Acme")
        self.other_organization = Organization.objects.create(name="Globex")

        self.auditor = user_model.objects.create_user(username="api_auditor", password="pass1234")
        self.auditee = user_model.objects.create_user(username="api_auditee", password="pass1234")
        self.outsider = user_model.objects.create_user(username="api_outsider", password="pass1234")
        OrganizationMembership.objects.create(
            user=self.auditor, organization=self.organization, role=OrganizationMembership.ROLE_AUDITOR
        )
        OrganizationMembership.objects.create(
            user=self.auditee, organization=self.organization, role=OrganizationMembership.ROLE_AUDITEE
        )
        OrganizationMembership.objects.create(
            user=self.outsider, organization=self.other_organization, role=OrganizationMembership.ROLE_ADMIN
        )

        self.asset = Asset.objects.create(organization=self.organization, name="Web portal", type=Asset.TYPE_SOFTWARE)
        self.foreign_asset = Asset.objects.create(
            organization=self.other_organization, name="Globex portal", type=Asset.TYPE_SOFTWARE
        )
        self.vulnerability = Vulnerability.objects.create(owasp_id="T-01", name="Injection")

    def _payload(self, **overrides):
        payload = {"asset": self.asset.id, "vulnerability": self.vulnerability.id, "likelihood": 4, "impact": 5}
        payload.update(overrides)
        return payload

    def test_auditor_creates_then_upserts_assessment(self):
        self.client.force_authenticate(self.auditor)
        response = self.client.post(reverse("risk-assessment-list"), data=self._payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["risk_score"], 20)
        self.assertEqual(response.data["risk_level"], "critical")

        response = self.client.post(
            reverse("risk-assessment-list"), data=self._payload(likelihood=2, impact=3), format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["risk_level"], "medium")
        self.assertEqual(AssetVulnerability.objects.count(), 1)
        self.assertTrue(AuditEvent.objects.filter(action="risk_assessment.update").exists())

    def test_out_of_range_rating_returns_400(self):
        self.client.force_authenticate(self.auditor)
        response = self.client.post(reverse("risk-assessment-list"), data=self._payload(impact=6), format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("impact", response.data)
        self.assertFalse(AssetVulnerability.objects.exists())

    def test_foreign_asset_returns_404(self):
        self.client.force_authenticate(self.auditor)
        response = self.client.post(
            reverse("risk-assessment-list"), data=self._payload(asset=self.foreign_asset.id), format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_auditee_cannot_assess(self):
        self.client.force_authenticate(self.auditee)
        response = self.client.post(reverse("risk-assessment-list"), data=self._payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_partial_update_recomputes_rating(self):
        self.client.force_authenticate(self.auditor)
        created = self.client.post(reverse("risk-assessment-list"), data=self._payload(), format="json")

        response = self.client.patch(
            reverse("risk-assessment-detail", args=[created.data["id"]]), data={"likelihood": 1}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["risk_score"], 5)
        self.assertEqual(response.data["risk_level"], "low")

    def test_other_tenant_cannot_see_or_delete(self):
        self.client.force_authenticate(self.auditor)
        created = self.client.post(reverse("risk-assessment-list"), data=self._payload(), format="json")

        self.client.force_authenticate(self.outsider)
        listing = self.client.get(reverse("risk-assessment-list"))
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual(listing.data["count"], 0)

        response = self.client.delete(reverse("risk-assessment-detail", args=[created.data["id"]]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(AssetVulnerability.objects.exists())

    def test_matrix_endpoint(self):
        self.client.force_authenticate(self.auditor)
        self.client.post(reverse("risk-assessment-list"), data=self._payload(), format="json")

        self.client.force_authenticate(self.auditee)
        response = self.client.get(reverse("risk-assessment-matrix"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["matrix"]), 5)
        self.assertEqual(response.data["distribution"]["critical"], 1)

    def test_user_without_organization_is_forbidden(self):
        loner = get_user_model().objects.create_user(username="api_loner", password="pass1234")
        self.client.force_authenticate(loner)
        response = self.client.get(reverse("risk-assessment-list"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class VulnerabilityCatalogApiTests(APITestCase):
    def setUp(self):
        user_model = get_user_model()
        self.member = user_model.objects.create_user(username="catalog_member", password="pass1234")
        self.superuser = user_model.objects.create_superuser(username="catalog_root", password="pass1234")
        Vulnerability.objects.create(owasp_id="T-01", name="Injection")

    def test_members_read_but_only_superusers_write(self):
        self.client.force_authenticate(self.member)
        self.assertEqual(self.client.get(reverse("vulnerability-list")).status_code, status.HTTP_200_OK)
        response = self.client.post(
            reverse("vulnerability-list"), data={"owasp_id": "T-02", "name": "SSRF"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.superuser)
        response = self.client.post(
            reverse("vulnerability-list"), data={"owasp_id": "T-02", "name": "SSRF"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
