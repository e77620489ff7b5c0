import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("asset", "0001_initial"),
        ("compliance", "0001_initial"),
        ("core", "0001_initial"),
        ("risk", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditFinding",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sequence", models.PositiveIntegerField(editable=False)),
                ("finding_number", models.CharField(editable=False, max_length=32)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField()),
                (
                    "severity",
                    models.CharField(
                        choices=[
                            ("critical", "Critical"),
                            ("high", "High"),
                            ("medium", "Medium"),
                            ("low", "Low"),
                            ("informational", "Informational"),
                        ],
                        default="medium",
                        max_length=16,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("open", "Open"),
                            ("in_progress", "In Progress"),
                            ("resolved", "Resolved"),
                            ("accepted", "Risk Accepted"),
                            ("closed", "Closed"),
                        ],
                        default="open",
                        max_length=16,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("risk_assessment", "Risk Assessment"),
                            ("checklist", "Compliance Checklist"),
                            ("manual", "Manual"),
                            ("ai_generated", "AI Generated"),
                        ],
                        default="manual",
                        max_length=32,
                    ),
                ),
                (
                    "risk_level",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("critical", "Critical"),
                            ("high", "High"),
                            ("medium", "Medium"),
                            ("low", "Low"),
                            ("negligible", "Negligible"),
                        ],
                        max_length=16,
                    ),
                ),
                ("risk_score", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("likelihood", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("impact", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("recommendation", models.TextField(blank=True)),
                ("remediation_deadline", models.DateField(blank=True, null=True)),
                ("remediation_owner", models.CharField(blank=True, max_length=255)),
                ("remediation_notes", models.TextField(blank=True)),
                ("ai_generated", models.BooleanField(default=False)),
                ("ai_explanation", models.TextField(blank=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "affected_asset",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="findings",
                        to="asset.asset",
                    ),
                ),
                (
                    "assigned_to",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="findings_assigned",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="findings_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="findings",
                        to="core.organization",
                    ),
                ),
                (
                    "related_control",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="findings",
                        to="compliance.isocontrol",
                    ),
                ),
                (
                    "vulnerability",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="findings",
                        to="risk.vulnerability",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-sequence"],
                "indexes": [
                    models.Index(fields=["organization", "severity"], name="ix_finding_org_severity"),
                    models.Index(fields=["organization", "status"], name="ix_finding_org_status"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "sequence"), name="uq_finding_sequence"),
                    models.UniqueConstraint(
                        condition=models.Q(("source", "checklist")),
                        fields=("organization", "related_control"),
                        name="uq_finding_control_origin",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReportSnapshot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("data", models.JSONField()),
                ("generated_at", models.DateTimeField()),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="report_snapshots",
                        to="core.organization",
                    ),
                ),
            ],
            options={
                "ordering": ["-generated_at"],
            },
        ),
        migrations.CreateModel(
            name="AuditReport",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("version", models.PositiveIntegerField(editable=False)),
                (
                    "status",
                    models.CharField(
                        choices=[("draft", "Draft"), ("final", "Final")],
                        default="draft",
                        max_length=16,
                    ),
                ),
                ("title", models.CharField(max_length=255)),
                ("auditor_name", models.CharField(max_length=255)),
                ("audit_date", models.DateField()),
                ("next_audit_date", models.DateField(blank=True, null=True)),
                ("executive_summary", models.TextField(blank=True)),
                ("scope_description", models.TextField(blank=True)),
                ("methodology", models.TextField(blank=True)),
                (
                    "final_opinion",
                    models.CharField(
                        choices=[
                            ("certified", "Certified"),
                            ("conditional", "Conditionally Certified"),
                            ("not_certified", "Not Certified"),
                        ],
                        max_length=16,
                    ),
                ),
                ("opinion_notes", models.TextField(blank=True)),
                ("generated_at", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "generated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reports_generated",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reports",
                        to="core.organization",
                    ),
                ),
                (
                    "snapshot",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="report",
                        to="reporting.reportsnapshot",
                    ),
                ),
            ],
            options={
                "ordering": ["-version"],
                "constraints": [
                    models.UniqueConstraint(fields=("organization", "version"), name="uq_report_version"),
                ],
            },
        ),
    ]
