from rest_framework import serializers

from .models import Asset


class AssetSerializer(serializers.ModelSerializer):
    criticality_score = serializers.DecimalField(max_digits=4, decimal_places=2, read_only=True)
    criticality = serializers.CharField(read_only=True)
    created_by_username = serializers.CharField(source="created_by.username", read_only=True)

    class Meta:
        model = Asset
        fields = [
            "id",
            "name",
            "description",
            "type",
            "owner",
            "location",
            "ip_address",
            "version",
            "vendor",
            "confidentiality",
            "integrity",
            "availability",
            "criticality_score",
            "criticality",
            "notes",
            "tags",
            "is_active",
            "created_by_username",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "is_active", "created_at", "updated_at"]

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Asset name is required.")
        return value.strip()

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("tags must be a list of strings.")
        return value
