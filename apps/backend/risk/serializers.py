from rest_framework import serializers

from .models import AssetVulnerability, Vulnerability


class VulnerabilitySerializer(serializers.ModelSerializer):
    class Meta:
        model = Vulnerability
        fields = [
            "id",
            "owasp_id",
            "name",
            "description",
            "category",
            "base_likelihood",
            "base_impact",
            "cwe_ids",
            "remediation_guidance",
            "reference_links",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_cwe_ids(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("cwe_ids must be a list of strings.")
        return value

    def validate_reference_links(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("reference_links must be a list of URLs.")
        return value


class AssetVulnerabilitySerializer(serializers.ModelSerializer):
    # Plain ids: ownership of the asset is checked against the caller's organization by the assessor.
    asset = serializers.IntegerField(source="asset_id")
    vulnerability = serializers.IntegerField(source="vulnerability_id")
    asset_name = serializers.CharField(source="asset.name", read_only=True)
    asset_type = serializers.CharField(source="asset.type", read_only=True)
    vulnerability_name = serializers.CharField(source="vulnerability.name", read_only=True)
    owasp_id = serializers.CharField(source="vulnerability.owasp_id", read_only=True)
    risk_score = serializers.IntegerField(read_only=True)
    risk_level = serializers.CharField(read_only=True)
    assessed_by_username = serializers.CharField(source="assessed_by.username", read_only=True, default=None)

    class Meta:
        model = AssetVulnerability
        fields = [
            "id",
            "asset",
            "asset_name",
            "asset_type",
            "vulnerability",
            "vulnerability_name",
            "owasp_id",
            "likelihood",
            "impact",
            "risk_score",
            "risk_level",
            "treatment_option",
            "treatment_notes",
            "is_accepted",
            "assessed_by_username",
            "assessed_at",
            "created_at",
        ]
        read_only_fields = ["id", "assessed_at", "created_at"]
