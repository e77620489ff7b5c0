from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from asset.models import Asset
from core.models import Organization

from .scoring import RISK_CRITICAL, RISK_HIGH, RISK_LOW, RISK_MEDIUM, RISK_NEGLIGIBLE, risk_rating

RATING_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]


class Vulnerability(models.Model):
    """Shared OWASP-style catalog entry; reference data owned by no organization."""

    owasp_id = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=128, blank=True)
    base_likelihood = models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)
    base_impact = models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)
    cwe_ids = models.JSONField(default=list, blank=True)
    remediation_guidance = models.TextField(blank=True)
    reference_links = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["owasp_id"]
        verbose_name_plural = "vulnerabilities"

    def __str__(self) -> str:
        return f"{self.owasp_id} - {self.name}"


class AssetVulnerability(models.Model):
    LEVEL_CHOICES = [
        (RISK_CRITICAL, "Critical"),
        (RISK_HIGH, "High"),
        (RISK_MEDIUM, "Medium"),
        (RISK_LOW, "Low"),
        (RISK_NEGLIGIBLE, "Negligible"),
    ]

    TREATMENT_MITIGATE = "mitigate"
    TREATMENT_ACCEPT = "accept"
    TREATMENT_TRANSFER = "transfer"
    TREATMENT_AVOID = "avoid"
    TREATMENT_CHOICES = [
        (TREATMENT_MITIGATE, "Mitigate"),
        (TREATMENT_ACCEPT, "Accept"),
        (TREATMENT_TRANSFER, "Transfer"),
        (TREATMENT_AVOID, "Avoid"),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="risk_assessments")
    asset = models.ForeignKey(Asset, on_delete=models.PROTECT, related_name="risk_assessments")
    vulnerability = models.ForeignKey(Vulnerability, on_delete=models.PROTECT, related_name="risk_assessments")

    likelihood = models.PositiveSmallIntegerField(validators=RATING_VALIDATORS)
    impact = models.PositiveSmallIntegerField(validators=RATING_VALIDATORS)
    risk_score = models.PositiveSmallIntegerField(default=1, editable=False)
    risk_level = models.CharField(max_length=16, choices=LEVEL_CHOICES, default=RISK_NEGLIGIBLE, editable=False)

    treatment_option = models.CharField(max_length=32, choices=TREATMENT_CHOICES, blank=True)
    treatment_notes = models.TextField(blank=True)
    is_accepted = models.BooleanField(default=False)

    assessed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="risk_assessments",
    )
    assessed_at = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-risk_score", "-assessed_at"]
        constraints = [
            models.UniqueConstraint(fields=["asset", "vulnerability"], name="uq_asset_vulnerability"),
            models.CheckConstraint(
                condition=models.Q(likelihood__gte=1, likelihood__lte=5) & models.Q(impact__gte=1, impact__lte=5),
                name="ck_asset_vulnerability_rating_range",
            ),
        ]
        indexes = [
            models.Index(fields=["organization", "risk_level"], name="ix_asset_vuln_org_level"),
        ]

    def __str__(self) -> str:
        return f"asset={self.asset_id}, vulnerability={self.vulnerability_id} ({self.risk_level})"

    def refresh_risk_rating(self) -> None:
        rating = risk_rating(self.likelihood, self.impact)
        self.risk_score = rating.score
        self.risk_level = rating.level

    def save(self, *args, **kwargs):
        self.refresh_risk_rating()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {"risk_score", "risk_level"}
        super().save(*args, **kwargs)
