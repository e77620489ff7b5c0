import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Organization",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "sector",
                    models.CharField(
                        choices=[
                            ("financial", "Financial Services"),
                            ("healthcare", "Healthcare"),
                            ("government", "Government"),
                            ("education", "Education"),
                            ("retail", "Retail & E-commerce"),
                            ("manufacturing", "Manufacturing"),
                            ("technology", "Technology"),
                            ("telecommunications", "Telecommunications"),
                            ("other", "Other"),
                        ],
                        default="other",
                        max_length=32,
                    ),
                ),
                ("employee_count", models.PositiveIntegerField(blank=True, null=True)),
                ("website", models.CharField(blank=True, max_length=255)),
                ("address", models.TextField(blank=True)),
                ("country", models.CharField(blank=True, max_length=128)),
                ("contact_name", models.CharField(blank=True, max_length=255)),
                ("contact_email", models.EmailField(blank=True, max_length=254)),
                ("contact_phone", models.CharField(blank=True, max_length=64)),
                ("system_types", models.JSONField(blank=True, default=list)),
                (
                    "exposure_level",
                    models.CharField(
                        choices=[
                            ("internet_facing", "Internet-Facing"),
                            ("internal", "Internal Only"),
                            ("restricted", "Restricted"),
                            ("air_gapped", "Air-Gapped"),
                        ],
                        default="internal",
                        max_length=32,
                    ),
                ),
                ("risk_appetite", models.CharField(default="medium", max_length=32)),
                ("scope_description", models.TextField(blank=True)),
                ("audit_period_start", models.DateField(blank=True, null=True)),
                ("audit_period_end", models.DateField(blank=True, null=True)),
                ("report_version_seq", models.PositiveIntegerField(default=0, editable=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="organizations_created",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="OrganizationMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "role",
                    models.CharField(
                        choices=[("admin", "Admin"), ("auditor", "Auditor"), ("auditee", "Auditee")],
                        default="auditee",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="core.organization",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="membership",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["organization__name", "user__username"],
            },
        ),
        migrations.CreateModel(
            name="AuditEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=128)),
                ("entity_type", models.CharField(max_length=64)),
                ("entity_id", models.CharField(blank=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[("success", "Success"), ("failed", "Failed"), ("denied", "Denied")],
                        default="success",
                        max_length=16,
                    ),
                ),
                ("message", models.TextField(blank=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("path", models.CharField(blank=True, max_length=255)),
                ("method", models.CharField(blank=True, max_length=16)),
                ("ip_address", models.CharField(blank=True, max_length=64)),
                ("user_agent", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "organization",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="audit_events",
                        to="core.organization",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["created_at"], name="ix_audit_event_created"),
                    models.Index(fields=["action", "entity_type"], name="ix_audit_event_action_entity"),
                    models.Index(fields=["status"], name="ix_audit_event_status"),
                ],
            },
        ),
    ]
