from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from asset.access import get_organization_asset, organization_assets
from asset.models import Asset
from core.models import AuditEvent, Organization, OrganizationMembership


class AssetAccessTests(TestCase):
    def setUp(self):
        self.organization = Organization.objects.create(name="Acme")
        self.other_organization = Organization.objects.create(name="Globex")
        self.active = Asset.objects.create(organization=self.organization, name="CRM", type=Asset.TYPE_SOFTWARE)
        self.retired = Asset.objects.create(
            organization=self.organization, name="Old NAS", type=Asset.TYPE_HARDWARE, is_active=False
        )
        self.foreign = Asset.objects.create(organization=self.other_organization, name="ERP", type=Asset.TYPE_SOFTWARE)

    def test_inactive_assets_hidden_by_default(self):
        self.assertEqual(list(organization_assets(self.organization.id)), [self.active])
        self.assertEqual(organization_assets(self.organization.id, include_inactive=True).count(), 2)

    def test_foreign_asset_lookup_raises_does_not_exist(self):
        with self.assertRaises(Asset.DoesNotExist):
            get_organization_asset(self.organization.id, self.foreign.id)

    def test_retired_asset_only_found_when_requested(self):
        with self.assertRaises(Asset.DoesNotExist):
            get_organization_asset(self.organization.id, self.retired.id)
        found = get_organization_asset(self.organization.id, self.retired.id, include_inactive=True)
        self.assertEqual(found, self.retired)

    def test_database_rejects_out_of_range_cia(self):
        with self.assertRaises(IntegrityError):
            Asset.objects.create(organization=self.organization, name="Bad", type=Asset.TYPE_DATA, integrity=9)


class AssetApiTests(APITestCase):
    def setUp(self):
        user_model = get_user_model()
        self.organization = Organization.objects.create(name="Acme")
        self.other_organization = Organization.objects.create(name="Globex")
        self.member = user_model.objects.create_user(username="asset_member", password="pass1234")
        self.outsider = user_model.objects.create_user(username="asset_outsider", password="pass1234")
        self.stranger = user_model.objects.create_user(username="asset_stranger", password="pass1234")
        OrganizationMembership.objects.create(
            user=self.member, organization=self.organization, role=OrganizationMembership.ROLE_AUDITOR
        )
        OrganizationMembership.objects.create(
            user=self.outsider, organization=self.other_organization, role=OrganizationMembership.ROLE_ADMIN
        )

    def _create(self, **overrides):
        payload = {"name": "Customer DB", "type": "data", "confidentiality": 5, "integrity": 4, "availability": 3}
        payload.update(overrides)
        return self.client.post(reverse("asset-list"), data=payload, format="json")

    def test_create_derives_criticality(self):
        self.client.force_authenticate(self.member)
        response = self._create()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["criticality_score"], "4.15")
        self.assertEqual(response.data["criticality"], "critical")
        asset = Asset.objects.get(id=response.data["id"])
        self.assertEqual(asset.organization_id, self.organization.id)
        self.assertEqual(asset.created_by, self.member)
        self.assertTrue(AuditEvent.objects.filter(action="asset.create", entity_id=str(asset.id)).exists())

    def test_client_cannot_set_criticality(self):
        self.client.force_authenticate(self.member)
        response = self._create(confidentiality=1, integrity=1, availability=1, criticality="critical")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["criticality"], "low")

    def test_out_of_range_cia_rejected(self):
        self.client.force_authenticate(self.member)
        response = self._create(availability=0)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("availability", response.data)

    def test_blank_name_rejected(self):
        self.client.force_authenticate(self.member)
        response = self._create(name="   ")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_recomputes_criticality(self):
        asset = Asset.objects.create(organization=self.organization, name="Wiki", type=Asset.TYPE_SOFTWARE)
        self.client.force_authenticate(self.member)

        response = self.client.patch(
            reverse("asset-detail", args=[asset.id]), data={"confidentiality": 1, "integrity": 1}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        asset.refresh_from_db()
        self.assertEqual(asset.criticality_score, Decimal("1.50"))
        self.assertEqual(asset.criticality, "low")

    def test_delete_retires_asset(self):
        asset = Asset.objects.create(organization=self.organization, name="Wiki", type=Asset.TYPE_SOFTWARE)
        self.client.force_authenticate(self.member)

        response = self.client.delete(reverse("asset-detail", args=[asset.id]))

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        asset.refresh_from_db()
        self.assertFalse(asset.is_active)
        self.assertTrue(AuditEvent.objects.filter(action="asset.deactivate").exists())
        listing = self.client.get(reverse("asset-list"))
        self.assertEqual(listing.data["count"], 0)

    def test_foreign_assets_are_invisible(self):
        foreign = Asset.objects.create(organization=self.other_organization, name="ERP", type=Asset.TYPE_SOFTWARE)
        self.client.force_authenticate(self.member)

        self.assertEqual(self.client.get(reverse("asset-list")).data["count"], 0)
        response = self.client.patch(reverse("asset-detail", args=[foreign.id]), data={"name": "Mine"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_filters_by_criticality(self):
        Asset.objects.create(
            organization=self.organization, name="Vault", type=Asset.TYPE_DATA, confidentiality=5, integrity=5, availability=5
        )
        Asset.objects.create(
            organization=self.organization, name="Printer", type=Asset.TYPE_HARDWARE, confidentiality=1, integrity=1, availability=1
        )
        self.client.force_authenticate(self.member)

        response = self.client.get(reverse("asset-list"), {"criticality": "critical"})

        self.assertEqual([row["name"] for row in response.data["results"]], ["Vault"])

    def test_user_without_organization_is_forbidden(self):
        self.client.force_authenticate(self.stranger)
        response = self.client.get(reverse("asset-list"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
