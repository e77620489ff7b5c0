"""Audit findings: manual CRUD and generation from risk and checklist results."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, Max
from django.utils import timezone

from asset.access import get_organization_asset
from compliance.models import IsoControl
from compliance.services.aggregator import non_compliant_assessments
from core.models import Organization
from reporting.models import AuditFinding
from risk.models import AssetVulnerability, Vulnerability
from risk.scoring import RISK_CRITICAL, RISK_HIGH, risk_rating
from risk.services.assessor import validate_ratings

logger = logging.getLogger(__name__)

RISK_RECOMMENDATION_FALLBACK = "Review and implement appropriate security controls to mitigate this vulnerability."
CONTROL_RECOMMENDATION_FALLBACK = "Implement the required controls as specified in ISO 27001 Annex A."

SEVERITIES = [choice for choice, _ in AuditFinding.SEVERITY_CHOICES]
STATUSES = [choice for choice, _ in AuditFinding.STATUS_CHOICES]
SOURCES = [choice for choice, _ in AuditFinding.SOURCE_CHOICES]

EDITABLE_FIELDS = {
    "title",
    "description",
    "severity",
    "status",
    "affected_asset_id",
    "related_control_id",
    "vulnerability_id",
    "likelihood",
    "impact",
    "recommendation",
    "remediation_deadline",
    "remediation_owner",
    "remediation_notes",
    "ai_explanation",
    "assigned_to",
}


def format_finding_number(sequence: int) -> str:
    return f"F-{sequence:03d}"


def _lock_organization(organization_id: int) -> Organization:
    return Organization.objects.select_for_update().get(id=organization_id)


def _next_sequence(organization_id: int) -> int:
    current = AuditFinding.objects.filter(organization_id=organization_id).aggregate(Max("sequence"))["sequence__max"]
    return (current or 0) + 1


def _validate_fields(fields: Dict[str, Any], *, partial: bool) -> None:
    errors: Dict[str, str] = {}
    for name in ("title", "description"):
        if partial and name not in fields:
            continue
        value = fields.get(name)
        if not isinstance(value, str) or not value.strip():
            errors[name] = f"{name.capitalize()} is required."
    if "severity" in fields and fields["severity"] not in SEVERITIES:
        errors["severity"] = f"Unknown severity: {fields['severity']!r}."
    if "status" in fields and fields["status"] not in STATUSES:
        errors["status"] = f"Unknown status: {fields['status']!r}."
    if "source" in fields and fields["source"] not in SOURCES:
        errors["source"] = f"Unknown source: {fields['source']!r}."
    if errors:
        raise ValidationError(errors)


def _apply_links(finding: AuditFinding, organization_id: int, fields: Dict[str, Any]) -> None:
    if fields.get("affected_asset_id") is not None:
        finding.affected_asset = get_organization_asset(
            organization_id, fields["affected_asset_id"], include_inactive=True
        )
    elif "affected_asset_id" in fields:
        finding.affected_asset = None
    if fields.get("related_control_id") is not None:
        finding.related_control = IsoControl.objects.get(id=fields["related_control_id"])
    elif "related_control_id" in fields:
        finding.related_control = None
    if fields.get("vulnerability_id") is not None:
        finding.vulnerability = Vulnerability.objects.get(id=fields["vulnerability_id"])
    elif "vulnerability_id" in fields:
        finding.vulnerability = None


def _apply_rating(finding: AuditFinding) -> None:
    if finding.likelihood is None and finding.impact is None:
        finding.risk_score = None
        finding.risk_level = ""
        return
    validate_ratings(finding.likelihood, finding.impact)
    rating = risk_rating(finding.likelihood, finding.impact)
    finding.risk_score = rating.score
    finding.risk_level = rating.level


def _apply_status(finding: AuditFinding, status: str) -> None:
    if status == AuditFinding.STATUS_RESOLVED and finding.resolved_at is None:
        finding.resolved_at = timezone.now()
    elif status != AuditFinding.STATUS_RESOLVED:
        finding.resolved_at = None
    finding.status = status


CONTROL_CLASH = {"related_control": "This control already has a checklist finding in the organization."}


def _save_checked(finding: AuditFinding) -> None:
    """Save a manual or edited finding; a duplicate checklist origin is a validation error."""
    if finding.source == AuditFinding.SOURCE_CHECKLIST and finding.related_control_id is not None:
        clash = (
            AuditFinding.objects.filter(
                organization_id=finding.organization_id,
                source=AuditFinding.SOURCE_CHECKLIST,
                related_control_id=finding.related_control_id,
            )
            .exclude(pk=finding.pk)
            .exists()
        )
        if clash:
            raise ValidationError(CONTROL_CLASH)
    try:
        with transaction.atomic():
            finding.save()
    except IntegrityError:
        raise ValidationError(CONTROL_CLASH)


def create_manual(*, organization_id: int, user=None, **fields) -> AuditFinding:
    unknown = set(fields) - EDITABLE_FIELDS - {"source"}
    if unknown:
        raise ValidationError({name: "This field cannot be set." for name in sorted(unknown)})
    _validate_fields(fields, partial=False)

    finding = AuditFinding(
        organization_id=organization_id,
        title=fields["title"].strip(),
        description=fields["description"].strip(),
        severity=fields.get("severity", AuditFinding.SEVERITY_MEDIUM),
        source=fields.get("source", AuditFinding.SOURCE_MANUAL),
        likelihood=fields.get("likelihood"),
        impact=fields.get("impact"),
        recommendation=fields.get("recommendation", ""),
        remediation_deadline=fields.get("remediation_deadline"),
        remediation_owner=fields.get("remediation_owner", ""),
        remediation_notes=fields.get("remediation_notes", ""),
        ai_explanation=fields.get("ai_explanation", ""),
        assigned_to=fields.get("assigned_to"),
        created_by=user,
    )
    finding.ai_generated = finding.source == AuditFinding.SOURCE_AI_GENERATED
    _apply_links(finding, organization_id, fields)
    _apply_rating(finding)
    _apply_status(finding, fields.get("status", AuditFinding.STATUS_OPEN))

    with transaction.atomic():
        _lock_organization(organization_id)
        finding.sequence = _next_sequence(organization_id)
        finding.finding_number = format_finding_number(finding.sequence)
        _save_checked(finding)
    logger.info("Created finding %s (%s) for organization %s", finding.finding_number, finding.source, organization_id)
    return finding


def get_finding(*, organization_id: int, finding_id: int) -> AuditFinding:
    return AuditFinding.objects.select_related("affected_asset", "related_control", "vulnerability").get(
        id=finding_id,
        organization_id=organization_id,
    )


def update_finding(*, organization_id: int, finding_id: int, **changes) -> AuditFinding:
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError({name: "This field cannot be changed." for name in sorted(unknown)})
    _validate_fields(changes, partial=True)

    finding = get_finding(organization_id=organization_id, finding_id=finding_id)
    for name in ("title", "description"):
        if name in changes:
            setattr(finding, name, changes[name].strip())
    for name in (
        "severity",
        "likelihood",
        "impact",
        "recommendation",
        "remediation_deadline",
        "remediation_owner",
        "remediation_notes",
        "ai_explanation",
        "assigned_to",
    ):
        if name in changes:
            setattr(finding, name, changes[name])
    _apply_links(finding, organization_id, changes)
    if "likelihood" in changes or "impact" in changes:
        _apply_rating(finding)
    if "status" in changes:
        _apply_status(finding, changes["status"])
    _save_checked(finding)
    return finding


def delete_finding(*, organization_id: int, finding_id: int) -> None:
    finding = get_finding(organization_id=organization_id, finding_id=finding_id)
    finding.delete()
    logger.info("Deleted finding %s of organization %s", finding.finding_number, organization_id)


def _finding_from_risk(item: AssetVulnerability, user) -> AuditFinding:
    asset = item.asset
    vulnerability = item.vulnerability
    return AuditFinding(
        organization_id=item.organization_id,
        title=f"{vulnerability.name} detected on {asset.name}",
        description=(
            f'The asset "{asset.name}" ({asset.type}) is exposed to the vulnerability '
            f'"{vulnerability.name}" ({vulnerability.owasp_id}). Risk score: {item.risk_score}/25 '
            f"with likelihood {item.likelihood}/5 and impact {item.impact}/5."
        ),
        severity=item.risk_level,
        status=AuditFinding.STATUS_OPEN,
        source=AuditFinding.SOURCE_RISK_ASSESSMENT,
        affected_asset=asset,
        vulnerability=vulnerability,
        risk_level=item.risk_level,
        risk_score=item.risk_score,
        likelihood=item.likelihood,
        impact=item.impact,
        recommendation=vulnerability.remediation_guidance or RISK_RECOMMENDATION_FALLBACK,
        created_by=user,
    )


def _finding_from_control(item, user) -> AuditFinding:
    control = item.control
    description = f'ISO 27001 control {control.control_id} "{control.name}" has been assessed as Non-Compliant.'
    if item.notes:
        description += f" Auditor notes: {item.notes}"
    return AuditFinding(
        organization_id=item.organization_id,
        title=f"Non-compliant: {control.control_id} - {control.name}",
        description=description,
        severity=AuditFinding.SEVERITY_HIGH,
        status=AuditFinding.STATUS_OPEN,
        source=AuditFinding.SOURCE_CHECKLIST,
        related_control=control,
        recommendation=control.guidance or CONTROL_RECOMMENDATION_FALLBACK,
        remediation_owner=item.responsible_person,
        remediation_deadline=item.target_date,
        created_by=user,
    )


def auto_generate(*, organization_id: int, user=None) -> int:
    """Create findings for high/critical risks and non-compliant controls not yet represented.

    A risk is skipped once its vulnerability is referenced by any risk finding
    of the organization; every high/critical pair of a vulnerability that is new
    to the findings list is emitted in the same run. A control is skipped once
    it has a checklist finding. Running it again without new origins creates
    nothing and returns 0.
    """
    candidates: List[AuditFinding] = []
    created = 0
    with transaction.atomic():
        _lock_organization(organization_id)
        existing = AuditFinding.objects.filter(
            organization_id=organization_id,
            source__in=[AuditFinding.SOURCE_RISK_ASSESSMENT, AuditFinding.SOURCE_CHECKLIST],
        ).values_list("source", "vulnerability_id", "related_control_id")
        risk_origins = set()
        control_origins = set()
        for source, vulnerability_id, control_id in existing:
            if source == AuditFinding.SOURCE_RISK_ASSESSMENT:
                if vulnerability_id is not None:
                    risk_origins.add(vulnerability_id)
            elif control_id is not None:
                control_origins.add(control_id)

        risk_items = (
            AssetVulnerability.objects.select_related("asset", "vulnerability")
            .filter(organization_id=organization_id, risk_level__in=[RISK_CRITICAL, RISK_HIGH])
            .order_by("-risk_score", "id")
        )
        for item in risk_items:
            if item.vulnerability_id not in risk_origins:
                candidates.append(_finding_from_risk(item, user))

        for item in non_compliant_assessments(organization_id).order_by("control__control_id"):
            if item.control_id not in control_origins:
                candidates.append(_finding_from_control(item, user))

        sequence = _next_sequence(organization_id)
        for finding in candidates:
            finding.sequence = sequence
            finding.finding_number = format_finding_number(sequence)
            try:
                with transaction.atomic():
                    finding.save()
            except IntegrityError:
                logger.warning("Finding for an already represented origin skipped: %s", finding.title)
                continue
            sequence += 1
            created += 1

    logger.info("Generated %s new findings for organization %s", created, organization_id)
    return created


def finding_stats(organization_id: int) -> Dict[str, int]:
    stats = {"total": 0}
    stats.update({severity: 0 for severity in SEVERITIES})
    stats.update({status: 0 for status in STATUSES})

    qs = AuditFinding.objects.filter(organization_id=organization_id)
    for row in qs.values("severity").annotate(count=Count("id")):
        stats[row["severity"]] = row["count"]
        stats["total"] += row["count"]
    for row in qs.values("status").annotate(count=Count("id")):
        stats[row["status"]] = row["count"]
    return stats
