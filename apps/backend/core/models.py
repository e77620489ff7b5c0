from django.conf import settings
from django.db import models


class Organization(models.Model):
    SECTOR_FINANCIAL = "financial"
    SECTOR_HEALTHCARE = "healthcare"
    SECTOR_GOVERNMENT = "government"
    SECTOR_EDUCATION = "education"
    SECTOR_RETAIL = "retail"
    SECTOR_MANUFACTURING = "manufacturing"
    SECTOR_TECHNOLOGY = "technology"
    SECTOR_TELECOMMUNICATIONS = "telecommunications"
    SECTOR_OTHER = "other"
    SECTOR_CHOICES = [
        (SECTOR_FINANCIAL, "Financial Services"),
        (SECTOR_HEALTHCARE, "Healthcare"),
        (SECTOR_GOVERNMENT, "Government"),
        (SECTOR_EDUCATION, "Education"),
        (SECTOR_RETAIL, "Retail & E-commerce"),
        (SECTOR_MANUFACTURING, "Manufacturing"),
        (SECTOR_TECHNOLOGY, "Technology"),
        (SECTOR_TELECOMMUNICATIONS, "Telecommunications"),
        (SECTOR_OTHER, "Other"),
    ]

    EXPOSURE_INTERNET_FACING = "internet_facing"
    EXPOSURE_INTERNAL = "internal"
    EXPOSURE_RESTRICTED = "restricted"
    EXPOSURE_AIR_GAPPED = "air_gapped"
    EXPOSURE_CHOICES = [
        (EXPOSURE_INTERNET_FACING, "Internet-Facing"),
        (EXPOSURE_INTERNAL, "Internal Only"),
        (EXPOSURE_RESTRICTED, "Restricted"),
        (EXPOSURE_AIR_GAPPED, "Air-Gapped"),
    ]

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    sector = models.CharField(max_length=32, choices=SECTOR_CHOICES, default=SECTOR_OTHER)
    employee_count = models.PositiveIntegerField(null=True, blank=True)
    website = models.CharField(max_length=255, blank=True)
    address = models.TextField(blank=True)
    country = models.CharField(max_length=128, blank=True)
    contact_name = models.CharField(max_length=255, blank=True)
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=64, blank=True)
    system_types = models.JSONField(default=list, blank=True)
    exposure_level = models.CharField(max_length=32, choices=EXPOSURE_CHOICES, default=EXPOSURE_INTERNAL)
    risk_appetite = models.CharField(max_length=32, default="medium")
    scope_description = models.TextField(blank=True)
    audit_period_start = models.DateField(null=True, blank=True)
    audit_period_end = models.DateField(null=True, blank=True)
    # Last report version handed out; never decreases, so deleted versions are not reused.
    report_version_seq = models.PositiveIntegerField(default=0, editable=False)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="organizations_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class OrganizationMembership(models.Model):
    ROLE_ADMIN = "admin"
    ROLE_AUDITOR = "auditor"
    ROLE_AUDITEE = "auditee"
    ROLE_CHOICES = [
        (ROLE_ADMIN, "Admin"),
        (ROLE_AUDITOR, "Auditor"),
        (ROLE_AUDITEE, "Auditee"),
    ]

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="membership")
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="memberships")
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_AUDITEE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["organization__name", "user__username"]

    def __str__(self) -> str:
        return f"{self.user_id}@{self.organization_id} ({self.role})"


class AuditEvent(models.Model):
    STATUS_SUCCESS = "success"
    STATUS_FAILED = "failed"
    STATUS_DENIED = "denied"
    STATUS_CHOICES = [
        (STATUS_SUCCESS, "Success"),
        (STATUS_FAILED, "Failed"),
        (STATUS_DENIED, "Denied"),
    ]

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="audit_events",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_events",
    )
    action = models.CharField(max_length=128)
    entity_type = models.CharField(max_length=64)
    entity_id = models.CharField(max_length=64, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SUCCESS)
    message = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    path = models.CharField(max_length=255, blank=True)
    method = models.CharField(max_length=16, blank=True)
    ip_address = models.CharField(max_length=64, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["created_at"], name="ix_audit_event_created"),
            models.Index(fields=["action", "entity_type"], name="ix_audit_event_action_entity"),
            models.Index(fields=["status"], name="ix_audit_event_status"),
        ]

    def __str__(self) -> str:
        return f"{self.created_at} {self.action} {self.entity_type}:{self.entity_id} {self.status}"
