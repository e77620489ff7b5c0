"""Control assessment upserts and the compliance aggregate built on top of them."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from compliance.models import ControlAssessment, IsoControl, IsoDomain
from risk.scoring import compliance_score, coverage, maturity_level

logger = logging.getLogger(__name__)

STATUSES = tuple(choice for choice, _ in ControlAssessment.STATUS_CHOICES)


def assess_control(
    *,
    organization_id: int,
    control_id: int,
    status: str,
    notes: str = "",
    implementation_details: str = "",
    responsible_person: str = "",
    target_date=None,
    reviewer=None,
) -> Tuple[ControlAssessment, bool]:
    if status not in STATUSES:
        raise ValidationError({"status": f"Unknown control status: {status!r}. Expected one of {', '.join(STATUSES)}."})

    control = IsoControl.objects.get(id=control_id)
    assessment, created = ControlAssessment.objects.update_or_create(
        organization_id=organization_id,
        control=control,
        defaults={
            "status": status,
            "notes": notes or "",
            "implementation_details": implementation_details or "",
            "responsible_person": responsible_person or "",
            "target_date": target_date,
            "reviewed_by": reviewer,
            "reviewed_at": timezone.now(),
        },
        create_defaults={
            "status": status,
            "notes": notes or "",
            "implementation_details": implementation_details or "",
            "responsible_person": responsible_person or "",
            "target_date": target_date,
            "reviewed_by": reviewer,
            "reviewed_at": timezone.now(),
            "created_by": reviewer,
        },
    )
    logger.info(
        "%s control assessment %s (%s) for organization %s: %s",
        "Created" if created else "Updated",
        assessment.id,
        control.control_id,
        organization_id,
        status,
    )
    return assessment, created


def _bucket() -> Dict[str, int]:
    return {
        "total": 0,
        "assessed": 0,
        "compliant": 0,
        "partial": 0,
        "non_compliant": 0,
        "not_applicable": 0,
    }


def _finalize(bucket: Dict[str, Any]) -> Dict[str, Any]:
    bucket["unassessed"] = bucket["total"] - bucket["assessed"]
    bucket["score"] = compliance_score(
        compliant=bucket["compliant"],
        partial=bucket["partial"],
        not_applicable=bucket["not_applicable"],
        total=bucket["total"],
    )
    bucket["coverage"] = coverage(bucket["assessed"], bucket["total"])
    return bucket


def compute_compliance_stats(organization_id: int) -> Dict[str, Any]:
    """Per-domain and overall compliance for one organization.

    Every catalog control counts towards ``total``. A control without an
    assessment of this organization is unassessed: it stays in the score's
    denominator but lands in no status bucket. Any failed read propagates.
    """
    with transaction.atomic():
        domains = list(IsoDomain.objects.order_by("sort_order", "code"))
        controls = list(IsoControl.objects.values_list("id", "domain_id"))
        statuses = dict(
            ControlAssessment.objects.filter(organization_id=organization_id).values_list("control_id", "status")
        )

    overall = _bucket()
    per_domain: Dict[int, Dict[str, Any]] = {domain.id: _bucket() for domain in domains}
    for control_pk, domain_pk in controls:
        status = statuses.get(control_pk)
        for bucket in (overall, per_domain[domain_pk]):
            bucket["total"] += 1
            if status is not None:
                bucket["assessed"] += 1
                bucket[status] += 1

    domain_stats: List[Dict[str, Any]] = []
    for domain in domains:
        stats = _finalize(per_domain[domain.id])
        domain_stats.append({"id": domain.id, "code": domain.code, "name": domain.name, **stats})

    result = _finalize(overall)
    level = maturity_level(result["score"])
    result["maturity"] = {
        "key": level.key,
        "label": level.label,
        "description": level.description,
        "min_score": level.min_score,
        "max_score": level.max_score,
    }
    result["domains"] = domain_stats
    return result


def checklist(organization_id: int) -> List[Dict[str, Any]]:
    """Domains with their controls, each paired with this organization's assessment or ``None``."""
    domains = IsoDomain.objects.prefetch_related("controls").order_by("sort_order", "code")
    assessments = {
        assessment.control_id: assessment
        for assessment in ControlAssessment.objects.filter(organization_id=organization_id).select_related(
            "reviewed_by"
        )
    }
    return [
        {
            "domain": domain,
            "controls": [
                {"control": control, "assessment": assessments.get(control.id)}
                for control in sorted(domain.controls.all(), key=lambda item: (item.sort_order, item.control_id))
            ],
        }
        for domain in domains
    ]


def get_control_assessment(*, organization_id: int, assessment_id: int) -> ControlAssessment:
    return ControlAssessment.objects.select_related("control").get(id=assessment_id, organization_id=organization_id)


def non_compliant_assessments(organization_id: int):
    return ControlAssessment.objects.select_related("control").filter(
        organization_id=organization_id,
        status=ControlAssessment.STATUS_NON_COMPLIANT,
    )
