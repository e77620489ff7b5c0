from rest_framework import mixins, response, status, views, viewsets

from core.audit import create_audit_event
from core.permissions import IsAuditorOrReadOnly, IsCatalogAdminOrReadOnly, IsOrganizationMember
from core.tenancy import OrganizationScopedMixin

from .models import ControlAssessment, IsoControl, IsoDomain
from .serializers import (
    ChecklistDomainSerializer,
    ControlAssessmentSerializer,
    IsoControlSerializer,
    IsoDomainSerializer,
)
from .services.aggregator import assess_control, checklist, compute_compliance_stats


class IsoDomainViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = IsoDomain.objects.order_by("sort_order", "code")
    serializer_class = IsoDomainSerializer
    permission_classes = [IsCatalogAdminOrReadOnly]
    search_fields = ("code", "name")


class IsoControlViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = IsoControlSerializer
    permission_classes = [IsCatalogAdminOrReadOnly]
    search_fields = ("control_id", "name", "description")
    ordering_fields = ("control_id", "sort_order")

    def get_queryset(self):
        qs = IsoControl.objects.select_related("domain").order_by("domain__sort_order", "sort_order")
        domain = self.request.query_params.get("domain")
        if domain:
            qs = qs.filter(domain__code=domain)
        return qs


class ControlAssessmentViewSet(
    OrganizationScopedMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = ControlAssessmentSerializer
    permission_classes = [IsAuditorOrReadOnly]
    search_fields = ("control__control_id", "control__name", "notes", "responsible_person")
    ordering_fields = ("reviewed_at", "updated_at")

    def get_queryset(self):
        qs = ControlAssessment.objects.select_related("control", "reviewed_by").filter(
            organization_id=self.organization_id
        )
        status_filter = self.request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        return qs

    def _assess(self, *, control_id, data, instance=None):
        def pick(field, default):
            return data.get(field, getattr(instance, field) if instance is not None else default)

        return assess_control(
            organization_id=self.organization_id,
            control_id=control_id,
            status=pick("status", None),
            notes=pick("notes", ""),
            implementation_details=pick("implementation_details", ""),
            responsible_person=pick("responsible_person", ""),
            target_date=pick("target_date", None),
            reviewer=self.request.user,
        )

    def _record(self, assessment, action):
        create_audit_event(
            action=action,
            entity_type="control_assessment",
            entity_id=assessment.id,
            organization_id=assessment.organization_id,
            metadata={"control": assessment.control.control_id, "status": assessment.status},
            request=self.request,
        )

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assessment, created = self._assess(
            control_id=serializer.validated_data["control_id"],
            data=serializer.validated_data,
        )
        self._record(assessment, "control_assessment.create" if created else "control_assessment.update")
        return response.Response(
            self.get_serializer(assessment).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        assessment, _ = self._assess(control_id=instance.control_id, data=serializer.validated_data, instance=instance)
        self._record(assessment, "control_assessment.update")
        return response.Response(self.get_serializer(assessment).data, status=status.HTTP_200_OK)


class ComplianceStatsView(OrganizationScopedMixin, views.APIView):
    permission_classes = [IsOrganizationMember]

    def get(self, request):
        return response.Response(compute_compliance_stats(self.organization_id))


class ChecklistView(OrganizationScopedMixin, views.APIView):
    permission_classes = [IsOrganizationMember]

    def get(self, request):
        domains = checklist(self.organization_id)
        return response.Response(ChecklistDomainSerializer(domains, many=True).data)
