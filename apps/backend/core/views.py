from django.db import transaction
from rest_framework import decorators, mixins, response, viewsets
from rest_framework.exceptions import ValidationError

from .audit import create_audit_event
from .models import AuditEvent, Organization, OrganizationMembership
from .permissions import ROLE_ADMIN, IsOrganizationAdmin, IsOrganizationAdminOrReadOnly
from .serializers import AuditEventSerializer, OrganizationMembershipSerializer, OrganizationSerializer
from .tenancy import OrganizationScopedMixin, membership_for


class OrganizationViewSet(
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = OrganizationSerializer
    permission_classes = [IsOrganizationAdminOrReadOnly]

    def get_queryset(self):
        membership = membership_for(self.request.user)
        if membership is None:
            return Organization.objects.none()
        return Organization.objects.filter(id=membership.organization_id)

    def perform_create(self, serializer):
        if membership_for(self.request.user) is not None:
            raise ValidationError({"detail": "User already belongs to an organization."})
        with transaction.atomic():
            organization = serializer.save(created_by=self.request.user)
            OrganizationMembership.objects.create(
                user=self.request.user,
                organization=organization,
                role=ROLE_ADMIN,
            )
        create_audit_event(
            action="organization.create",
            entity_type="organization",
            entity_id=organization.id,
            organization_id=organization.id,
            request=self.request,
        )

    def perform_update(self, serializer):
        organization = serializer.save()
        create_audit_event(
            action="organization.update",
            entity_type="organization",
            entity_id=organization.id,
            organization_id=organization.id,
            metadata={"fields": sorted(serializer.validated_data.keys())},
            request=self.request,
        )

    @decorators.action(detail=True, methods=["get"], url_path="members")
    def members(self, request, pk=None):
        organization = self.get_object()
        memberships = organization.memberships.select_related("user")
        return response.Response(OrganizationMembershipSerializer(memberships, many=True).data)


class AuditEventViewSet(OrganizationScopedMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = AuditEventSerializer
    permission_classes = [IsOrganizationAdmin]
    search_fields = ("action", "entity_type", "entity_id", "message")
    ordering_fields = ("created_at", "action", "status")

    def get_queryset(self):
        return AuditEvent.objects.select_related("user").filter(organization_id=self.organization_id).order_by("-created_at")
