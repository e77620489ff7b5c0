import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

RATING_VALIDATORS = [
    django.core.validators.MinValueValidator(1),
    django.core.validators.MaxValueValidator(5),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("asset", "0001_initial"),
        ("core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Vulnerability",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("owasp_id", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("category", models.CharField(blank=True, max_length=128)),
                ("base_likelihood", models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)),
                ("base_impact", models.PositiveSmallIntegerField(default=3, validators=RATING_VALIDATORS)),
                ("cwe_ids", models.JSONField(blank=True, default=list)),
                ("remediation_guidance", models.TextField(blank=True)),
                ("reference_links", models.JSONField(blank=True, default=list)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["owasp_id"],
                "verbose_name_plural": "vulnerabilities",
            },
        ),
        migrations.CreateModel(
            name="AssetVulnerability",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("likelihood", models.PositiveSmallIntegerField(validators=RATING_VALIDATORS)),
                ("impact", models.PositiveSmallIntegerField(validators=RATING_VALIDATORS)),
                ("risk_score", models.PositiveSmallIntegerField(default=1, editable=False)),
                (
                    "risk_level",
                    models.CharField(
                        choices=[
                            ("critical", "Critical"),
                            ("high", "High"),
                            ("medium", "Medium"),
                            ("low", "Low"),
                            ("negligible", "Negligible"),
                        ],
                        default="negligible",
                        editable=False,
                        max_length=16,
                    ),
                ),
                (
                    "treatment_option",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("mitigate", "Mitigate"),
                            ("accept", "Accept"),
                            ("transfer", "Transfer"),
                            ("avoid", "Avoid"),
                        ],
                        max_length=32,
                    ),
                ),
                ("treatment_notes", models.TextField(blank=True)),
                ("is_accepted", models.BooleanField(default=False)),
                ("assessed_at", models.DateTimeField(auto_now=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "asset",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="risk_assessments",
                        to="asset.asset",
                    ),
                ),
                (
                    "assessed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="risk_assessments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="risk_assessments",
                        to="core.organization",
                    ),
                ),
                (
                    "vulnerability",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="risk_assessments",
                        to="risk.vulnerability",
                    ),
                ),
            ],
            options={
                "ordering": ["-risk_score", "-assessed_at"],
                "indexes": [models.Index(fields=["organization", "risk_level"], name="ix_asset_vuln_org_level")],
                "constraints": [
                    models.UniqueConstraint(fields=("asset", "vulnerability"), name="uq_asset_vulnerability"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("likelihood__gte", 1),
                            ("likelihood__lte", 5),
                            ("impact__gte", 1),
                            ("impact__lte", 5),
                        ),
                        name="ck_asset_vulnerability_rating_range",
                    ),
                ],
            },
        ),
    ]
