from django.contrib import admin

from .models import AssetVulnerability, Vulnerability


@admin.register(Vulnerability)
class VulnerabilityAdmin(admin.ModelAdmin):
    list_display = ("owasp_id", "name", "category", "base_likelihood", "base_impact", "is_active")
    list_filter = ("category", "is_active")
    search_fields = ("owasp_id", "name", "description")


@admin.register(AssetVulnerability)
class AssetVulnerabilityAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "organization",
        "asset",
        "vulnerability",
        "likelihood",
        "impact",
        "risk_score",
        "risk_level",
        "treatment_option",
        "assessed_at",
    )
    list_filter = ("organization", "risk_level", "treatment_option")
    search_fields = ("asset__name", "vulnerability__owasp_id", "vulnerability__name")
    readonly_fields = ("risk_score", "risk_level", "assessed_at", "created_at")
    list_select_related = ("organization", "asset", "vulnerability")
