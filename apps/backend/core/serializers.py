from rest_framework import serializers

from .models import AuditEvent, Organization, OrganizationMembership


class OrganizationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Organization
        fields = [
            "id",
            "name",
            "description",
            "sector",
            "employee_count",
            "website",
            "address",
            "country",
            "contact_name",
            "contact_email",
            "contact_phone",
            "system_types",
            "exposure_level",
            "risk_appetite",
            "scope_description",
            "audit_period_start",
            "audit_period_end",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_system_types(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("system_types must be a list of strings.")
        return value

    def validate(self, attrs):
        attrs = super().validate(attrs)
        start = attrs.get("audit_period_start", getattr(self.instance, "audit_period_start", None))
        end = attrs.get("audit_period_end", getattr(self.instance, "audit_period_end", None))
        if start and end and end < start:
            raise serializers.ValidationError({"audit_period_end": "Audit period end must not precede its start."})
        return attrs


class OrganizationMembershipSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = OrganizationMembership
        fields = ["id", "user", "username", "organization", "role", "created_at"]
        read_only_fields = fields


class AuditEventSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "action",
            "entity_type",
            "entity_id",
            "status",
            "message",
            "metadata",
            "username",
            "path",
            "method",
            "created_at",
        ]
        read_only_fields = fields
