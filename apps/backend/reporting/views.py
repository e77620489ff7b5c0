from rest_framework import decorators, response, status, views, viewsets

from core.audit import create_audit_event
from core.permissions import IsAuditorOrReadOnly, IsOrganizationMember
from core.tenancy import OrganizationScopedMixin

from .models import AuditFinding, AuditReport
from .serializers import AuditFindingSerializer, AuditReportSerializer
from .services.dashboard import dashboard_stats
from .services.findings import auto_generate, create_manual, delete_finding, finding_stats, update_finding
from .services.snapshot import delete_report, generate_report, update_report_narrative

FROZEN_REPORT_FIELDS = ("snapshot", "version", "generated_at")


class AuditFindingViewSet(OrganizationScopedMixin, viewsets.ModelViewSet):
    serializer_class = AuditFindingSerializer
    permission_classes = [IsAuditorOrReadOnly]
    search_fields = ("finding_number", "title", "description", "remediation_owner")
    ordering_fields = ("created_at", "updated_at", "severity", "sequence", "remediation_deadline")

    def get_queryset(self):
        qs = AuditFinding.objects.select_related(
            "affected_asset", "related_control", "vulnerability", "created_by", "assigned_to"
        ).filter(organization_id=self.organization_id)
        for param in ("severity", "status", "source"):
            value = self.request.query_params.get(param)
            if value:
                qs = qs.filter(**{param: value})
        return qs

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        finding = create_manual(organization_id=self.organization_id, user=request.user, **serializer.validated_data)
        create_audit_event(
            action="finding.create",
            entity_type="audit_finding",
            entity_id=finding.id,
            organization_id=finding.organization_id,
            metadata={"finding_number": finding.finding_number, "severity": finding.severity},
            request=request,
        )
        return response.Response(self.get_serializer(finding).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=kwargs.get("partial", False))
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)
        # The origin of a finding is fixed at creation; echoing it back is not a change.
        if changes.get("source") == instance.source:
            changes.pop("source")
        finding = update_finding(organization_id=self.organization_id, finding_id=instance.id, **changes)
        create_audit_event(
            action="finding.update",
            entity_type="audit_finding",
            entity_id=finding.id,
            organization_id=finding.organization_id,
            metadata={"status": finding.status, "severity": finding.severity},
            request=request,
        )
        return response.Response(self.get_serializer(finding).data, status=status.HTTP_200_OK)

    def destroy(self, request, *args, **kwargs):
        delete_finding(organization_id=self.organization_id, finding_id=kwargs["pk"])
        create_audit_event(
            action="finding.delete",
            entity_type="audit_finding",
            entity_id=kwargs["pk"],
            organization_id=self.organization_id,
            request=request,
        )
        return response.Response(status=status.HTTP_204_NO_CONTENT)

    @decorators.action(detail=False, methods=["post"], url_path="auto-generate")
    def auto_generate(self, request):
        count = auto_generate(organization_id=self.organization_id, user=request.user)
        create_audit_event(
            action="finding.auto_generate",
            entity_type="audit_finding",
            organization_id=self.organization_id,
            metadata={"count": count},
            request=request,
        )
        message = f"Generated {count} new findings." if count else "No new findings to generate."
        return response.Response({"count": count, "message": message}, status=status.HTTP_200_OK)

    @decorators.action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        return response.Response(finding_stats(self.organization_id))


class AuditReportViewSet(OrganizationScopedMixin, viewsets.ModelViewSet):
    serializer_class = AuditReportSerializer
    permission_classes = [IsAuditorOrReadOnly]
    search_fields = ("title", "auditor_name")
    ordering_fields = ("version", "audit_date", "generated_at")

    def get_queryset(self):
        return AuditReport.objects.select_related("snapshot", "generated_by").filter(
            organization_id=self.organization_id
        )

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        report = generate_report(
            organization_id=self.organization_id,
            config=dict(serializer.validated_data),
            user=request.user,
        )
        create_audit_event(
            action="report.generate",
            entity_type="audit_report",
            entity_id=report.id,
            organization_id=report.organization_id,
            metadata={"version": report.version},
            request=request,
        )
        return response.Response(self.get_serializer(report).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=kwargs.get("partial", False))
        serializer.is_valid(raise_exception=True)
        frozen = {name: request.data[name] for name in FROZEN_REPORT_FIELDS if name in request.data}
        report = update_report_narrative(
            organization_id=self.organization_id,
            report_id=instance.id,
            **serializer.validated_data,
            **frozen,
        )
        create_audit_event(
            action="report.update",
            entity_type="audit_report",
            entity_id=report.id,
            organization_id=report.organization_id,
            metadata={"version": report.version, "fields": sorted(serializer.validated_data)},
            request=request,
        )
        return response.Response(self.get_serializer(report).data, status=status.HTTP_200_OK)

    def destroy(self, request, *args, **kwargs):
        delete_report(organization_id=self.organization_id, report_id=kwargs["pk"])
        create_audit_event(
            action="report.delete",
            entity_type="audit_report",
            entity_id=kwargs["pk"],
            organization_id=self.organization_id,
            request=request,
        )
        return response.Response(status=status.HTTP_204_NO_CONTENT)


class DashboardView(OrganizationScopedMixin, views.APIView):
    permission_classes = [IsOrganizationMember]

    def get(self, request):
        return response.Response(dashboard_stats(self.organization_id))
