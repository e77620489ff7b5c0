from django.contrib import admin

from .models import AuditFinding, AuditReport, ReportSnapshot


@admin.register(AuditFinding)
class AuditFindingAdmin(admin.ModelAdmin):
    list_display = ("finding_number", "organization", "title", "severity", "status", "source", "created_at")
    list_filter = ("organization", "severity", "status", "source")
    search_fields = ("finding_number", "title", "description", "remediation_owner")
    readonly_fields = ("finding_number", "resolved_at", "created_at", "updated_at")
    list_select_related = ("organization",)


@admin.register(ReportSnapshot)
class ReportSnapshotAdmin(admin.ModelAdmin):
    list_display = ("id", "organization", "generated_at")
    list_filter = ("organization",)
    readonly_fields = ("organization", "data", "generated_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(AuditReport)
class AuditReportAdmin(admin.ModelAdmin):
    list_display = ("title", "organization", "version", "status", "final_opinion", "audit_date", "generated_at")
    list_filter = ("organization", "status", "final_opinion")
    search_fields = ("title", "auditor_name")
    readonly_fields = ("organization", "snapshot", "version", "generated_by", "generated_at")
