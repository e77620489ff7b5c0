from django.contrib import admin

from .models import ControlAssessment, IsoControl, IsoDomain


class IsoControlInline(admin.TabularInline):
    model = IsoControl
    extra = 0
    fields = ("control_id", "name", "is_mandatory", "sort_order")


@admin.register(IsoDomain)
class IsoDomainAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "sort_order")
    search_fields = ("code", "name")
    inlines = [IsoControlInline]


@admin.register(IsoControl)
class IsoControlAdmin(admin.ModelAdmin):
    list_display = ("control_id", "name", "domain", "is_mandatory", "sort_order")
    list_filter = ("domain", "is_mandatory")
    search_fields = ("control_id", "name", "description")


@admin.register(ControlAssessment)
class ControlAssessmentAdmin(admin.ModelAdmin):
    list_display = ("id", "organization", "control", "status", "responsible_person", "target_date", "reviewed_at")
    list_filter = ("organization", "status")
    search_fields = ("control__control_id", "control__name", "notes", "responsible_person")
    list_select_related = ("organization", "control")
