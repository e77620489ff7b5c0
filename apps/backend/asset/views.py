from rest_framework import viewsets

from core.audit import create_audit_event
from core.permissions import IsOrganizationMember
from core.tenancy import OrganizationScopedMixin

from .access import organization_assets
from .serializers import AssetSerializer


class AssetViewSet(OrganizationScopedMixin, viewsets.ModelViewSet):
    serializer_class = AssetSerializer
    search_fields = ("name", "owner", "vendor", "location")
    ordering_fields = ("name", "criticality_score", "created_at", "updated_at")
    permission_classes = [IsOrganizationMember]

    def get_queryset(self):
        include_inactive = self.request.query_params.get("include_inactive") == "true"
        qs = organization_assets(self.organization_id, include_inactive=include_inactive).select_related("created_by")

        asset_type = self.request.query_params.get("type")
        criticality = self.request.query_params.get("criticality")
        if asset_type:
            qs = qs.filter(type=asset_type)
        if criticality:
            qs = qs.filter(criticality=criticality)
        return qs.order_by("-created_at")

    def perform_create(self, serializer):
        asset = serializer.save(organization=self.get_organization(), created_by=self.request.user)
        create_audit_event(
            action="asset.create",
            entity_type="asset",
            entity_id=asset.id,
            organization_id=asset.organization_id,
            metadata={"criticality": asset.criticality},
            request=self.request,
        )

    def perform_update(self, serializer):
        asset = serializer.save()
        create_audit_event(
            action="asset.update",
            entity_type="asset",
            entity_id=asset.id,
            organization_id=asset.organization_id,
            metadata={"criticality": asset.criticality},
            request=self.request,
        )

    def perform_destroy(self, instance):
        # Assets stay referenced by risk assessments and findings; retire them instead.
        instance.is_active = False
        instance.save(update_fields=["is_active", "updated_at"])
        create_audit_event(
            action="asset.deactivate",
            entity_type="asset",
            entity_id=instance.id,
            organization_id=instance.organization_id,
            request=self.request,
        )
