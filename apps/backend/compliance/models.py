from django.conf import settings
from django.db import models

from core.models import Organization


class IsoDomain(models.Model):
    code = models.CharField(max_length=16, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "code"]

    def __str__(self) -> str:
        return f"{self.code} {self.name}"


class IsoControl(models.Model):
    domain = models.ForeignKey(IsoDomain, on_delete=models.PROTECT, related_name="controls")
    control_id = models.CharField(max_length=16, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    guidance = models.TextField(blank=True)
    is_mandatory = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["domain__sort_order", "sort_order", "control_id"]

    def __str__(self) -> str:
        return f"{self.control_id} {self.name}"


class ControlAssessment(models.Model):
    STATUS_COMPLIANT = "compliant"
    STATUS_PARTIAL = "partial"
    STATUS_NON_COMPLIANT = "non_compliant"
    STATUS_NOT_APPLICABLE = "not_applicable"
    STATUS_CHOICES = [
        (STATUS_COMPLIANT, "Compliant"),
        (STATUS_PARTIAL, "Partially Compliant"),
        (STATUS_NON_COMPLIANT, "Non-Compliant"),
        (STATUS_NOT_APPLICABLE, "Not Applicable"),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="control_assessments")
    control = models.ForeignKey(IsoControl, on_delete=models.PROTECT, related_name="assessments")
    status = models.CharField(max_length=32, choices=STATUS_CHOICES)
    notes = models.TextField(blank=True)
    implementation_details = models.TextField(blank=True)
    responsible_person = models.CharField(max_length=255, blank=True)
    target_date = models.DateField(null=True, blank=True)

    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="control_reviews",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="control_assessments_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["control__domain__sort_order", "control__sort_order"]
        constraints = [
            models.UniqueConstraint(fields=["organization", "control"], name="uq_control_assessment_org_control"),
        ]
        indexes = [
            models.Index(fields=["organization", "status"], name="ix_control_assessment_status"),
        ]

    def __str__(self) -> str:
        return f"{self.control_id}@{self.organization_id}: {self.status}"
