from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from asset.models import Asset
from compliance.models import IsoControl
from core.models import Organization
from risk.models import AssetVulnerability, Vulnerability


class AuditFinding(models.Model):
    SEVERITY_CRITICAL = "critical"
    SEVERITY_HIGH = "high"
    SEVERITY_MEDIUM = "medium"
    SEVERITY_LOW = "low"
    SEVERITY_INFORMATIONAL = "informational"
    SEVERITY_CHOICES = [
        (SEVERITY_CRITICAL, "Critical"),
        (SEVERITY_HIGH, "High"),
        (SEVERITY_MEDIUM, "Medium"),
        (SEVERITY_LOW, "Low"),
        (SEVERITY_INFORMATIONAL, "Informational"),
    ]

    STATUS_OPEN = "open"
    STATUS_IN_PROGRESS = "in_progress"
    STATUS_RESOLVED = "resolved"
    STATUS_ACCEPTED = "accepted"
    STATUS_CLOSED = "closed"
    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_IN_PROGRESS, "In Progress"),
        (STATUS_RESOLVED, "Resolved"),
        (STATUS_ACCEPTED, "Risk Accepted"),
        (STATUS_CLOSED, "Closed"),
    ]

    SOURCE_RISK_ASSESSMENT = "risk_assessment"
    SOURCE_CHECKLIST = "checklist"
    SOURCE_MANUAL = "manual"
    SOURCE_AI_GENERATED = "ai_generated"
    SOURCE_CHOICES = [
        (SOURCE_RISK_ASSESSMENT, "Risk Assessment"),
        (SOURCE_CHECKLIST, "Compliance Checklist"),
        (SOURCE_MANUAL, "Manual"),
        (SOURCE_AI_GENERATED, "AI Generated"),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="findings")
    sequence = models.PositiveIntegerField(editable=False)
    finding_number = models.CharField(max_length=32, editable=False)
    title = models.CharField(max_length=255)
    description = models.TextField()
    severity = models.CharField(max_length=16, choices=SEVERITY_CHOICES, default=SEVERITY_MEDIUM)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_OPEN)
    source = models.CharField(max_length=32, choices=SOURCE_CHOICES, default=SOURCE_MANUAL)

    affected_asset = models.ForeignKey(Asset, on_delete=models.SET_NULL, null=True, blank=True, related_name="findings")
    related_control = models.ForeignKey(
        IsoControl,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="findings",
    )
    vulnerability = models.ForeignKey(
        Vulnerability,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="findings",
    )
    risk_level = models.CharField(max_length=16, choices=AssetVulnerability.LEVEL_CHOICES, blank=True)
    risk_score = models.PositiveSmallIntegerField(null=True, blank=True)
    likelihood = models.PositiveSmallIntegerField(null=True, blank=True)
    impact = models.PositiveSmallIntegerField(null=True, blank=True)

    recommendation = models.TextField(blank=True)
    remediation_deadline = models.DateField(null=True, blank=True)
    remediation_owner = models.CharField(max_length=255, blank=True)
    remediation_notes = models.TextField(blank=True)
    ai_generated = models.BooleanField(default=False)
    ai_explanation = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="findings_created",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="findings_assigned",
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-sequence"]
        constraints = [
            models.UniqueConstraint(fields=["organization", "sequence"], name="uq_finding_sequence"),
            # One checklist finding per control. Not enforced on MySQL, where the organization lock applies.
            models.UniqueConstraint(
                fields=["organization", "related_control"],
                condition=models.Q(source="checklist"),
                name="uq_finding_control_origin",
            ),
        ]
        indexes = [
            models.Index(fields=["organization", "severity"], name="ix_finding_org_severity"),
            models.Index(fields=["organization", "status"], name="ix_finding_org_status"),
        ]

    def __str__(self) -> str:
        return f"{self.finding_number} {self.title}"


class ReportSnapshotQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ValidationError("Report snapshots are write-once and cannot be updated.")


class ReportSnapshot(models.Model):
    """Frozen aggregate of one report. Rows are inserted once and never updated."""

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="report_snapshots")
    data = models.JSONField()
    generated_at = models.DateTimeField()

    objects = ReportSnapshotQuerySet.as_manager()

    class Meta:
        ordering = ["-generated_at"]

    def __str__(self) -> str:
        return f"snapshot {self.id} of organization {self.organization_id} at {self.generated_at}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Report snapshots are write-once and cannot be updated.")
        kwargs["force_insert"] = True
        super().save(*args, **kwargs)


class AuditReport(models.Model):
    STATUS_DRAFT = "draft"
    STATUS_FINAL = "final"
    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_FINAL, "Final"),
    ]

    OPINION_CERTIFIED = "certified"
    OPINION_CONDITIONAL = "conditional"
    OPINION_NOT_CERTIFIED = "not_certified"
    OPINION_CHOICES = [
        (OPINION_CERTIFIED, "Certified"),
        (OPINION_CONDITIONAL, "Conditionally Certified"),
        (OPINION_NOT_CERTIFIED, "Not Certified"),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="reports")
    snapshot = models.OneToOneField(ReportSnapshot, on_delete=models.CASCADE, related_name="report")
    version = models.PositiveIntegerField(editable=False)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_DRAFT)

    title = models.CharField(max_length=255)
    auditor_name = models.CharField(max_length=255)
    audit_date = models.DateField()
    next_audit_date = models.DateField(null=True, blank=True)
    executive_summary = models.TextField(blank=True)
    scope_description = models.TextField(blank=True)
    methodology = models.TextField(blank=True)
    final_opinion = models.CharField(max_length=16, choices=OPINION_CHOICES)
    opinion_notes = models.TextField(blank=True)

    generated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reports_generated",
    )
    generated_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-version"]
        constraints = [
            models.UniqueConstraint(fields=["organization", "version"], name="uq_report_version"),
        ]

    def __str__(self) -> str:
        return f"{self.title} v{self.version}"
