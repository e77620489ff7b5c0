from datetime import timedelta

from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import NotAuthenticated
from rest_framework.test import APITestCase

from core.audit import create_audit_event
from core.exceptions import api_exception_handler
from core.models import AuditEvent, Organization, OrganizationMembership
from core.tasks import purge_old_audit_events


class AuditRetentionCommandTests(TestCase):
    def _age(self, event, days):
        AuditEvent.objects.filter(id=event.id).update(created_at=timezone.now() - timedelta(days=days))

    def test_purge_audit_events_deletes_old_rows(self):
        old_event = AuditEvent.objects.create(action="asset.create", entity_type="asset", entity_id="1")
        recent_event = AuditEvent.objects.create(action="asset.update", entity_type="asset", entity_id="2")

        self._age(old_event, 200)
        call_command("purge_audit_events", days=180)

        self.assertFalse(AuditEvent.objects.filter(id=old_event.id).exists())
        self.assertTrue(AuditEvent.objects.filter(id=recent_event.id).exists())

    def test_purge_audit_events_dry_run_keeps_rows(self):
        old_event = AuditEvent.objects.create(action="asset.create", entity_type="asset", entity_id="3")
        self._age(old_event, 200)

        call_command("purge_audit_events", days=180, dry_run=True)
        self.assertTrue(AuditEvent.objects.filter(id=old_event.id).exists())

    def test_purge_audit_events_can_be_scoped_to_one_organization(self):
        acme = Organization.objects.create(name="Acme")
        globex = Organization.objects.create(name="Globex")
        acme_event = AuditEvent.objects.create(organization=acme, action="report.create", entity_type="report")
        globex_event = AuditEvent.objects.create(organization=globex, action="report.create", entity_type="report")
        self._age(acme_event, 400)
        self._age(globex_event, 400)

        call_command("purge_audit_events", days=180, organization=acme.id)

        self.assertFalse(AuditEvent.objects.filter(id=acme_event.id).exists())
        self.assertTrue(AuditEvent.objects.filter(id=globex_event.id).exists())

    @patch("core.tasks.call_command")
    def test_celery_task_invokes_purge_command(self, mocked_call_command):
        purge_old_audit_events()
        mocked_call_command.assert_called_once_with("purge_audit_events", days=180)

    @patch("core.tasks.call_command")
    def test_celery_task_accepts_explicit_retention(self, mocked_call_command):
        purge_old_audit_events(days=30)
        mocked_call_command.assert_called_once_with("purge_audit_events", days=30)


class AuditEventHelperTests(TestCase):
    def test_organization_defaults_to_actor_membership(self):
        organization = Organization.objects.create(name="Acme")
        user = get_user_model().objects.create_user(username="trail_user", password="pass1234")
        OrganizationMembership.objects.create(user=user, organization=organization)

        event = create_audit_event(action="finding.create", entity_type="finding", entity_id=7, user=user)

        self.assertEqual(event.organization_id, organization.id)
        self.assertEqual(event.entity_id, "7")
        self.assertEqual(event.path, "")

    def test_event_without_actor_has_no_organization(self):
        event = create_audit_event(action="audit.purge", entity_type="audit_event")

        self.assertIsNone(event.organization_id)
        self.assertIsNone(event.user)


class ApiExceptionHandlerTests(TestCase):
    def test_model_validation_error_maps_to_bad_request(self):
        response = api_exception_handler(ValidationError({"impact": ["Must be between 1 and 5."]}), {"view": None})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {"impact": ["Must be between 1 and 5."]})

    def test_plain_validation_error_is_wrapped_in_detail(self):
        response = api_exception_handler(ValidationError("Unknown configuration key."), {"view": None})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data, {"detail": ["Unknown configuration key."]})

    def test_missing_object_maps_to_not_found(self):
        response = api_exception_handler(Organization.DoesNotExist("gone"), {"view": None})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {"detail": "Not found."})

    def test_drf_errors_fall_through_to_default_handler(self):
        response = api_exception_handler(NotAuthenticated(), {"view": None, "request": None})

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_unrelated_exceptions_are_not_handled(self):
        self.assertIsNone(api_exception_handler(RuntimeError("boom"), {"view": None}))


class OrganizationApiTests(APITestCase):
    def setUp(self):
        user_model = get_user_model()
        self.founder = user_model.objects.create_user(username="founder", password="pass1234")
        self.auditee = user_model.objects.create_user(username="org_auditee", password="pass1234")

    def test_first_organization_makes_caller_admin(self):
        self.client.force_authenticate(self.founder)
        response = self.client.post(
            reverse("organization-list"),
            data={"name": "Acme", "sector": "technology", "scope_description": "Customer portal"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        membership = OrganizationMembership.objects.get(user=self.founder)
        self.assertEqual(membership.role, OrganizationMembership.ROLE_ADMIN)
        self.assertEqual(membership.organization.name, "Acme")
        self.assertTrue(AuditEvent.objects.filter(action="organization.create", organization=membership.organization).exists())

    def test_second_organization_is_rejected(self):
        self.client.force_authenticate(self.founder)
        first = self.client.post(reverse("organization-list"), data={"name": "Acme"}, format="json")
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)

        second = self.client.post(reverse("organization-list"), data={"name": "Globex"}, format="json")

        self.assertIn(second.status_code, (status.HTTP_400_BAD_REQUEST, status.HTTP_403_FORBIDDEN))
        self.assertEqual(Organization.objects.count(), 1)

    def test_audit_period_must_be_ordered(self):
        self.client.force_authenticate(self.founder)
        response = self.client.post(
            reverse("organization-list"),
            data={"name": "Acme", "audit_period_start": "2025-06-01", "audit_period_end": "2025-01-01"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("audit_period_end", response.data)

    def test_auditee_cannot_edit_organization(self):
        organization = Organization.objects.create(name="Acme")
        OrganizationMembership.objects.create(
            user=self.auditee, organization=organization, role=OrganizationMembership.ROLE_AUDITEE
        )
        self.client.force_authenticate(self.auditee)

        response = self.client.patch(
            reverse("organization-detail", args=[organization.id]), data={"name": "Renamed"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        organization.refresh_from_db()
        self.assertEqual(organization.name, "Acme")

    def test_listing_only_shows_own_organization(self):
        own = Organization.objects.create(name="Acme")
        Organization.objects.create(name="Globex")
        OrganizationMembership.objects.create(user=self.auditee, organization=own)
        self.client.force_authenticate(self.auditee)

        response = self.client.get(reverse("organization-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["name"] for row in response.data["results"]], ["Acme"])

    def test_members_lists_memberships(self):
        organization = Organization.objects.create(name="Acme")
        OrganizationMembership.objects.create(
            user=self.founder, organization=organization, role=OrganizationMembership.ROLE_ADMIN
        )
        OrganizationMembership.objects.create(user=self.auditee, organization=organization)
        self.client.force_authenticate(self.founder)

        response = self.client.get(reverse("organization-members", args=[organization.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(sorted(row["username"] for row in response.data), ["founder", "org_auditee"])


class AuditEventApiTests(APITestCase):
    def setUp(self):
        user_model = get_user_model()
        self.organization = Organization.objects.create(name="Acme")
        other = Organization.objects.create(name="Globex")
        self.admin = user_model.objects.create_user(username="trail_admin", password="pass1234")
        self.auditor = user_model.objects.create_user(username="trail_auditor", password="pass1234")
        OrganizationMembership.objects.create(
            user=self.admin, organization=self.organization, role=OrganizationMembership.ROLE_ADMIN
        )
        OrganizationMembership.objects.create(
            user=self.auditor, organization=self.organization, role=OrganizationMembership.ROLE_AUDITOR
        )
        AuditEvent.objects.create(organization=self.organization, action="asset.create", entity_type="asset")
        AuditEvent.objects.create(organization=other, action="asset.create", entity_type="asset")

    def test_admin_sees_only_own_trail(self):
        self.client.force_authenticate(self.admin)
        response = self.client.get(reverse("audit-event-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["action"], "asset.create")

    def test_auditor_cannot_read_trail(self):
        self.client.force_authenticate(self.auditor)
        response = self.client.get(reverse("audit-event-list"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
