from rest_framework import decorators, response, status, viewsets

from core.audit import create_audit_event
from core.permissions import IsAuditorOrReadOnly, IsCatalogAdminOrReadOnly
from core.tenancy import OrganizationScopedMixin

from .models import Vulnerability
from .serializers import AssetVulnerabilitySerializer, VulnerabilitySerializer
from .services.assessor import assess, list_assessments, remove, risk_level_counts, risk_matrix_for


class VulnerabilityViewSet(viewsets.ModelViewSet):
    serializer_class = VulnerabilitySerializer
    permission_classes = [IsCatalogAdminOrReadOnly]
    search_fields = ("owasp_id", "name", "category")
    ordering_fields = ("owasp_id", "name", "base_likelihood", "base_impact")

    def get_queryset(self):
        qs = Vulnerability.objects.all()
        if self.request.query_params.get("include_inactive") != "true":
            qs = qs.filter(is_active=True)
        return qs.order_by("owasp_id")

    def perform_destroy(self, instance):
        # Assessments reference catalog entries; retire them instead.
        instance.is_active = False
        instance.save(update_fields=["is_active", "updated_at"])


class RiskAssessmentViewSet(OrganizationScopedMixin, viewsets.ModelViewSet):
    serializer_class = AssetVulnerabilitySerializer
    permission_classes = [IsAuditorOrReadOnly]
    search_fields = ("asset__name", "vulnerability__name", "vulnerability__owasp_id")
    ordering_fields = ("risk_score", "assessed_at", "created_at")

    def get_queryset(self):
        return list_assessments(
            self.organization_id,
            risk_level=self.request.query_params.get("risk_level"),
            asset_id=self.request.query_params.get("asset"),
        )

    def _assess(self, *, asset_id, vulnerability_id, data, instance=None):
        def pick(field, default):
            return data.get(field, getattr(instance, field) if instance is not None else default)

        return assess(
            organization_id=self.organization_id,
            asset_id=asset_id,
            vulnerability_id=vulnerability_id,
            likelihood=pick("likelihood", None),
            impact=pick("impact", None),
            assessor=self.request.user,
            treatment_option=pick("treatment_option", ""),
            treatment_notes=pick("treatment_notes", ""),
            is_accepted=pick("is_accepted", False),
        )

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        assessment, created = self._assess(
            asset_id=data["asset_id"],
            vulnerability_id=data["vulnerability_id"],
            data=data,
        )
        create_audit_event(
            action="risk_assessment.create" if created else "risk_assessment.update",
            entity_type="asset_vulnerability",
            entity_id=assessment.id,
            organization_id=assessment.organization_id,
            metadata={"risk_score": assessment.risk_score, "risk_level": assessment.risk_level},
            request=request,
        )
        return response.Response(
            self.get_serializer(assessment).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        # The asset/vulnerability pair identifies the assessment and cannot be re-pointed.
        assessment, _ = self._assess(
            asset_id=instance.asset_id,
            vulnerability_id=instance.vulnerability_id,
            data=serializer.validated_data,
            instance=instance,
        )
        create_audit_event(
            action="risk_assessment.update",
            entity_type="asset_vulnerability",
            entity_id=assessment.id,
            organization_id=assessment.organization_id,
            metadata={"risk_score": assessment.risk_score, "risk_level": assessment.risk_level},
            request=request,
        )
        return response.Response(self.get_serializer(assessment).data, status=status.HTTP_200_OK)

    def destroy(self, request, *args, **kwargs):
        assessment = remove(organization_id=self.organization_id, assessment_id=kwargs["pk"])
        create_audit_event(
            action="risk_assessment.delete",
            entity_type="asset_vulnerability",
            entity_id=kwargs["pk"],
            organization_id=assessment.organization_id,
            request=request,
        )
        return response.Response(status=status.HTTP_204_NO_CONTENT)

    @decorators.action(detail=False, methods=["get"], url_path="matrix")
    def matrix(self, request):
        return response.Response(
            {
                "matrix": risk_matrix_for(self.organization_id),
                "distribution": risk_level_counts(self.organization_id),
            }
        )
