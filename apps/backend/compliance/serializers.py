from rest_framework import serializers

from .models import ControlAssessment, IsoControl, IsoDomain


class IsoDomainSerializer(serializers.ModelSerializer):
    control_count = serializers.IntegerField(source="controls.count", read_only=True)

    class Meta:
        model = IsoDomain
        fields = ["id", "code", "name", "description", "sort_order", "control_count"]


class IsoControlSerializer(serializers.ModelSerializer):
    domain_code = serializers.CharField(source="domain.code", read_only=True)

    class Meta:
        model = IsoControl
        fields = [
            "id",
            "domain",
            "domain_code",
            "control_id",
            "name",
            "description",
            "guidance",
            "is_mandatory",
            "sort_order",
        ]


class ControlAssessmentSerializer(serializers.ModelSerializer):
    control = serializers.IntegerField(source="control_id")
    control_code = serializers.CharField(source="control.control_id", read_only=True)
    control_name = serializers.CharField(source="control.name", read_only=True)
    reviewed_by_username = serializers.CharField(source="reviewed_by.username", read_only=True, default=None)

    class Meta:
        model = ControlAssessment
        fields = [
            "id",
            "control",
            "control_code",
            "control_name",
            "status",
            "notes",
            "implementation_details",
            "responsible_person",
            "target_date",
            "reviewed_by_username",
            "reviewed_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "reviewed_at", "created_at", "updated_at"]


class ChecklistControlSerializer(serializers.Serializer):
    def to_representation(self, instance):
        control = instance["control"]
        assessment = instance["assessment"]
        return {
            **IsoControlSerializer(control).data,
            "assessment": ControlAssessmentSerializer(assessment).data if assessment is not None else None,
        }


class ChecklistDomainSerializer(serializers.Serializer):
    def to_representation(self, instance):
        domain = instance["domain"]
        return {
            "id": domain.id,
            "code": domain.code,
            "name": domain.name,
            "description": domain.description,
            "controls": ChecklistControlSerializer(instance["controls"], many=True).data,
        }
