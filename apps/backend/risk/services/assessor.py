from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from django.core.exceptions import ValidationError
from django.db.models import Count

from asset.access import get_organization_asset

from risk.models import AssetVulnerability, Vulnerability
from risk.scoring import RATING_MAX, RATING_MIN, RISK_LEVELS, risk_matrix

logger = logging.getLogger(__name__)

TREATMENT_OPTIONS = {choice for choice, _ in AssetVulnerability.TREATMENT_CHOICES}


def _rating_error(field: str, value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, int):
        return f"{field.capitalize()} must be an integer between {RATING_MIN} and {RATING_MAX}."
    if value < RATING_MIN or value > RATING_MAX:
        return f"{field.capitalize()} must be between {RATING_MIN} and {RATING_MAX}, got {value}."
    return None


def validate_ratings(likelihood: Any, impact: Any) -> None:
    errors: Dict[str, str] = {}
    for field, value in (("likelihood", likelihood), ("impact", impact)):
        message = _rating_error(field, value)
        if message:
            errors[field] = message
    if errors:
        raise ValidationError(errors)


def assess(
    *,
    organization_id: int,
    asset_id: int,
    vulnerability_id: int,
    likelihood: int,
    impact: int,
    assessor=None,
    treatment_option: str = "",
    treatment_notes: str = "",
    is_accepted: bool = False,
) -> Tuple[AssetVulnerability, bool]:
    """Record the assessor's likelihood/impact judgement for one asset/vulnerability pair.

    The pair is the natural key: assessing it again replaces the previous
    judgement instead of adding a second row. Already generated findings and
    reports are left untouched.
    """
    validate_ratings(likelihood, impact)
    if treatment_option and treatment_option not in TREATMENT_OPTIONS:
        raise ValidationError({"treatment_option": f"Unknown treatment option: {treatment_option}."})

    asset = get_organization_asset(organization_id, asset_id)
    vulnerability = Vulnerability.objects.get(id=vulnerability_id, is_active=True)

    assessment, created = AssetVulnerability.objects.update_or_create(
        asset=asset,
        vulnerability=vulnerability,
        defaults={
            "organization_id": organization_id,
            "likelihood": likelihood,
            "impact": impact,
            "assessed_by": assessor,
            "treatment_option": treatment_option,
            "treatment_notes": treatment_notes,
            "is_accepted": is_accepted,
        },
    )
    logger.info(
        "%s risk assessment %s for asset=%s vulnerability=%s: score=%s level=%s",
        "Created" if created else "Updated",
        assessment.id,
        asset.id,
        vulnerability.owasp_id,
        assessment.risk_score,
        assessment.risk_level,
    )
    return assessment, created


def get_assessment(*, organization_id: int, assessment_id: int) -> AssetVulnerability:
    return AssetVulnerability.objects.select_related("asset", "vulnerability").get(
        id=assessment_id,
        organization_id=organization_id,
    )


def remove(*, organization_id: int, assessment_id: int) -> AssetVulnerability:
    """Delete one assessment. Findings derived from it are independent records and stay."""
    assessment = get_assessment(organization_id=organization_id, assessment_id=assessment_id)
    assessment.delete()
    logger.info("Removed risk assessment %s from organization %s", assessment_id, organization_id)
    return assessment


def list_assessments(organization_id: int, *, risk_level: Optional[str] = None, asset_id: Optional[int] = None):
    qs = AssetVulnerability.objects.select_related("asset", "vulnerability", "assessed_by").filter(
        organization_id=organization_id
    )
    if risk_level:
        qs = qs.filter(risk_level=risk_level)
    if asset_id:
        qs = qs.filter(asset_id=asset_id)
    return qs.order_by("-risk_score", "-assessed_at")


def risk_level_counts(organization_id: int) -> Dict[str, int]:
    counts = {level: 0 for level in RISK_LEVELS}
    rows = (
        AssetVulnerability.objects.filter(organization_id=organization_id)
        .values("risk_level")
        .annotate(total=Count("id"))
    )
    for row in rows:
        counts[row["risk_level"]] = row["total"]
    return counts


def risk_matrix_for(organization_id: int) -> List[List[dict]]:
    pairs = AssetVulnerability.objects.filter(organization_id=organization_id).values_list("likelihood", "impact")
    return risk_matrix(pairs)
