from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import Organization
from risk.scoring import CRITICALITY_CRITICAL, CRITICALITY_HIGH, CRITICALITY_LOW, CRITICALITY_MEDIUM, criticality_level, criticality_score

CIA_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]


class Asset(models.Model):
    TYPE_HARDWARE = "hardware"
    TYPE_SOFTWARE = "software"
    TYPE_DATA = "data"
    TYPE_SERVICE = "service"
    TYPE_PERSONNEL = "personnel"
    TYPE_FACILITY = "facility"
    TYPE_CHOICES = [
        (TYPE_HARDWARE, "Hardware"),
        (TYPE_SOFTWARE, "Software"),
        (TYPE_DATA, "Data/Information"),
        (TYPE_SERVICE, "Service"),
        (TYPE_PERSONNEL, "Personnel"),
        (TYPE_FACILITY, "Facility"),
    ]

    CRITICALITY_CHOICES = [
        (CRITICALITY_CRITICAL, "Critical"),
        (CRITICALITY_HIGH, "High"),
        (CRITICALITY_MEDIUM, "Medium"),
        (CRITICALITY_LOW, "Low"),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name="assets")
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    owner = models.CharField(max_length=255, blank=True)
    location = models.CharField(max_length=255, blank=True)
    ip_address = models.CharField(max_length=64, blank=True)
    version = models.CharField(max_length=64, blank=True)
    vendor = models.CharField(max_length=128, blank=True)

    confidentiality = models.PositiveSmallIntegerField(default=3, validators=CIA_VALIDATORS)
    integrity = models.PositiveSmallIntegerField(default=3, validators=CIA_VALIDATORS)
    availability = models.PositiveSmallIntegerField(default=3, validators=CIA_VALIDATORS)
    criticality_score = models.DecimalField(max_digits=4, decimal_places=2, default=Decimal("3.00"), editable=False)
    criticality = models.CharField(max_length=16, choices=CRITICALITY_CHOICES, default=CRITICALITY_HIGH, editable=False)

    notes = models.TextField(blank=True)
    tags = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assets_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["organization", "is_active"], name="ix_asset_org_active"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(confidentiality__gte=1, confidentiality__lte=5)
                & models.Q(integrity__gte=1, integrity__lte=5)
                & models.Q(availability__gte=1, availability__lte=5),
                name="ck_asset_cia_range",
            )
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.type})"

    def refresh_criticality(self) -> None:
        score = criticality_score(self.confidentiality, self.integrity, self.availability)
        self.criticality_score = score.quantize(Decimal("0.01"))
        self.criticality = criticality_level(score)

    def save(self, *args, **kwargs):
        self.refresh_criticality()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            kwargs["update_fields"] = set(update_fields) | {"criticality_score", "criticality"}
        super().save(*args, **kwargs)
