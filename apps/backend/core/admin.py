from django.contrib import admin

from .models import AuditEvent, Organization, OrganizationMembership


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "sector", "exposure_level", "country", "created_at")
    list_filter = ("sector", "exposure_level")
    search_fields = ("name", "contact_name", "contact_email")


@admin.register(OrganizationMembership)
class OrganizationMembershipAdmin(admin.ModelAdmin):
    list_display = ("user", "organization", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("user__username", "organization__name")


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ("created_at", "organization", "action", "entity_type", "entity_id", "status", "user")
    list_filter = ("status", "action", "entity_type", "created_at")
    search_fields = ("action", "entity_type", "entity_id", "message", "user__username")
    ordering = ("-created_at",)
