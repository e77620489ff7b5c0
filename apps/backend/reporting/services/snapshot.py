"""Point-in-time report snapshots and versioned report generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from asset.access import organization_assets
from compliance.services.aggregator import compute_compliance_stats
from core.models import Organization
from reporting.models import AuditReport, ReportSnapshot
from reporting.services.findings import finding_stats
from risk.scoring import CRITICALITY_LEVELS
from risk.services.assessor import risk_level_counts

logger = logging.getLogger(__name__)

OPINIONS = [choice for choice, _ in AuditReport.OPINION_CHOICES]
REPORT_STATUSES = [choice for choice, _ in AuditReport.STATUS_CHOICES]
NARRATIVE_FIELDS = (
    "title",
    "status",
    "auditor_name",
    "audit_date",
    "next_audit_date",
    "executive_summary",
    "scope_description",
    "methodology",
    "final_opinion",
    "opinion_notes",
)


@dataclass(frozen=True)
class Snapshot:
    organization: Dict[str, Any]
    assets: Dict[str, Any]
    risks: Dict[str, int]
    compliance: Dict[str, int]
    findings: Dict[str, int]
    generated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organization": dict(self.organization),
            "assets": {**self.assets, "byType": dict(self.assets["byType"])},
            "risks": dict(self.risks),
            "compliance": dict(self.compliance),
            "findings": dict(self.findings),
            "generatedAt": self.generated_at.isoformat(),
        }


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def build_snapshot(organization_id: int) -> Snapshot:
    """Gather every aggregate a report freezes. A failed read fails the whole call."""
    with transaction.atomic():
        organization = Organization.objects.get(id=organization_id)
        asset_rows = list(organization_assets(organization_id).values_list("criticality", "type"))
        risks = risk_level_counts(organization_id)
        compliance = compute_compliance_stats(organization_id)
        findings = finding_stats(organization_id)

    assets: Dict[str, Any] = {"total": len(asset_rows)}
    assets.update({level: 0 for level in CRITICALITY_LEVELS})
    by_type: Dict[str, int] = {}
    for level, asset_type in asset_rows:
        assets[level] += 1
        by_type[asset_type] = by_type.get(asset_type, 0) + 1
    assets["byType"] = by_type

    return Snapshot(
        organization={
            "name": organization.name,
            "sector": organization.sector,
            "employee_count": organization.employee_count,
            "exposure_level": organization.exposure_level,
            "audit_period_start": _iso(organization.audit_period_start),
            "audit_period_end": _iso(organization.audit_period_end),
            "scope_description": organization.scope_description or None,
        },
        assets=assets,
        risks={"total": sum(risks.values()), **risks},
        compliance={
            "score": compliance["score"],
            "coverage": compliance["coverage"],
            "total": compliance["total"],
            "compliant": compliance["compliant"],
            "partial": compliance["partial"],
            "nonCompliant": compliance["non_compliant"],
            "notApplicable": compliance["not_applicable"],
        },
        findings={
            key: findings[key]
            for key in ("total", "critical", "high", "medium", "low", "informational", "open", "resolved")
        },
        generated_at=timezone.now(),
    )


def _coerce_date(value, field: str, errors: Dict[str, str], *, required: bool) -> Optional[date]:
    if value in (None, ""):
        if required:
            errors[field] = f"{field.replace('_', ' ').capitalize()} is required."
        return None
    if isinstance(value, date):
        return value
    parsed = parse_date(str(value)) if isinstance(value, str) else None
    if parsed is None:
        errors[field] = f"Invalid date: {value!r}."
    return parsed


def _clean_narrative(fields: Dict[str, Any], *, partial: bool) -> Dict[str, Any]:
    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}

    for name in ("title", "auditor_name"):
        if partial and name not in fields:
            continue
        value = fields.get(name)
        if not isinstance(value, str) or not value.strip():
            errors[name] = f"{name.replace('_', ' ').capitalize()} is required."
        else:
            cleaned[name] = value.strip()

    if not partial or "final_opinion" in fields:
        if fields.get("final_opinion") not in OPINIONS:
            errors["final_opinion"] = f"Final opinion must be one of {', '.join(OPINIONS)}."
        else:
            cleaned["final_opinion"] = fields["final_opinion"]

    if "status" in fields:
        if fields["status"] not in REPORT_STATUSES:
            errors["status"] = f"Unknown report status: {fields['status']!r}."
        else:
            cleaned["status"] = fields["status"]

    if not partial or "audit_date" in fields:
        cleaned["audit_date"] = _coerce_date(fields.get("audit_date"), "audit_date", errors, required=True)
    if "next_audit_date" in fields:
        cleaned["next_audit_date"] = _coerce_date(
            fields.get("next_audit_date"), "next_audit_date", errors, required=False
        )

    for name in ("executive_summary", "scope_description", "methodology", "opinion_notes"):
        if name in fields:
            cleaned[name] = fields[name] or ""

    if errors:
        raise ValidationError(errors)
    return cleaned


def generate_report(*, organization_id: int, config: Dict[str, Any], user=None) -> AuditReport:
    """Freeze the current aggregates into a new report version.

    Everything happens in one transaction under a lock on the organization
    row: if any aggregate read fails, neither the snapshot nor the report is
    stored.
    """
    unknown = set(config) - set(NARRATIVE_FIELDS)
    if unknown:
        raise ValidationError({name: "This field cannot be set." for name in sorted(unknown)})
    narrative = _clean_narrative(config, partial=False)

    with transaction.atomic():
        organization = Organization.objects.select_for_update().get(id=organization_id)
        snapshot = build_snapshot(organization.id)
        organization.report_version_seq += 1
        organization.save(update_fields=["report_version_seq"])
        version = organization.report_version_seq

        stored = ReportSnapshot.objects.create(
            organization=organization,
            data=snapshot.to_dict(),
            generated_at=snapshot.generated_at,
        )
        narrative.setdefault("scope_description", organization.scope_description)
        narrative.setdefault("methodology", settings.REPORT_DEFAULT_METHODOLOGY)
        report = AuditReport.objects.create(
            organization=organization,
            snapshot=stored,
            version=version,
            generated_by=user,
            generated_at=snapshot.generated_at,
            **narrative,
        )

    logger.info("Generated report %s version %s for organization %s", report.id, version, organization_id)
    return report


def get_report(*, organization_id: int, report_id: int) -> AuditReport:
    return AuditReport.objects.select_related("snapshot").get(id=report_id, organization_id=organization_id)


def update_report_narrative(*, organization_id: int, report_id: int, **fields) -> AuditReport:
    """Edit the narrative of a report. The snapshot and version stay as generated."""
    frozen = set(fields) - set(NARRATIVE_FIELDS)
    if frozen:
        raise ValidationError({name: "Only narrative fields of a report can be edited." for name in sorted(frozen)})
    cleaned = _clean_narrative(fields, partial=True)

    report = get_report(organization_id=organization_id, report_id=report_id)
    for name, value in cleaned.items():
        setattr(report, name, value)
    report.save(update_fields=[*cleaned.keys(), "updated_at"])
    return report


def delete_report(*, organization_id: int, report_id: int) -> None:
    report = get_report(organization_id=organization_id, report_id=report_id)
    # Removing the snapshot cascades to the report row.
    report.snapshot.delete()
    logger.info("Deleted report %s version %s of organization %s", report_id, report.version, organization_id)
