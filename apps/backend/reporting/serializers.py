from rest_framework import serializers

from .models import AuditFinding, AuditReport


class AuditFindingSerializer(serializers.ModelSerializer):
    affected_asset = serializers.IntegerField(source="affected_asset_id", required=False, allow_null=True)
    related_control = serializers.IntegerField(source="related_control_id", required=False, allow_null=True)
    vulnerability = serializers.IntegerField(source="vulnerability_id", required=False, allow_null=True)
    affected_asset_name = serializers.CharField(source="affected_asset.name", read_only=True, default=None)
    related_control_code = serializers.CharField(source="related_control.control_id", read_only=True, default=None)
    vulnerability_owasp_id = serializers.CharField(source="vulnerability.owasp_id", read_only=True, default=None)
    created_by_username = serializers.CharField(source="created_by.username", read_only=True, default=None)
    assigned_to_username = serializers.CharField(source="assigned_to.username", read_only=True, default=None)

    class Meta:
        model = AuditFinding
        fields = [
            "id",
            "finding_number",
            "title",
            "description",
            "severity",
            "status",
            "source",
            "affected_asset",
            "affected_asset_name",
            "related_control",
            "related_control_code",
            "vulnerability",
            "vulnerability_owasp_id",
            "risk_level",
            "risk_score",
            "likelihood",
            "impact",
            "recommendation",
            "remediation_deadline",
            "remediation_owner",
            "remediation_notes",
            "ai_generated",
            "ai_explanation",
            "created_by_username",
            "assigned_to_username",
            "resolved_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "finding_number",
            "risk_level",
            "risk_score",
            "ai_generated",
            "resolved_at",
            "created_at",
            "updated_at",
        ]


class AuditReportSerializer(serializers.ModelSerializer):
    snapshot = serializers.SerializerMethodField()
    generated_by_username = serializers.CharField(source="generated_by.username", read_only=True, default=None)

    class Meta:
        model = AuditReport
        fields = [
            "id",
            "version",
            "status",
            "title",
            "auditor_name",
            "audit_date",
            "next_audit_date",
            "executive_summary",
            "scope_description",
            "methodology",
            "final_opinion",
            "opinion_notes",
            "snapshot",
            "generated_by_username",
            "generated_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "version", "generated_at", "created_at", "updated_at"]

    def get_snapshot(self, obj):
        return obj.snapshot.data
