from django.contrib import admin

from .models import Asset


@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin):
    list_display = ("name", "organization", "type", "criticality", "criticality_score", "is_active")
    search_fields = ("name", "owner", "vendor")
    list_filter = ("type", "criticality", "is_active")
    readonly_fields = ("criticality_score", "criticality")
