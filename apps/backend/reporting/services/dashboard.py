from __future__ import annotations

from typing import Any, Dict

from django.db import transaction

from asset.access import organization_assets
from asset.models import Asset
from risk.scoring import CRITICALITY_CRITICAL, RISK_CRITICAL, RISK_HIGH, RISK_LEVELS
from risk.services.assessor import risk_level_counts


def dashboard_stats(organization_id: int) -> Dict[str, Any]:
    with transaction.atomic():
        assets = list(organization_assets(organization_id).values_list("criticality", "type"))
        risks = risk_level_counts(organization_id)

    type_counts: Dict[str, int] = {}
    for _, asset_type in assets:
        type_counts[asset_type] = type_counts.get(asset_type, 0) + 1

    return {
        "totalAssets": len(assets),
        "criticalAssets": sum(1 for criticality, _ in assets if criticality == CRITICALITY_CRITICAL),
        "totalVulnerabilities": sum(risks.values()),
        "highRisks": risks[RISK_CRITICAL] + risks[RISK_HIGH],
        "riskDistribution": [{"level": level, "count": risks[level]} for level in RISK_LEVELS],
        "assetsByType": [
            {"type": asset_type, "count": type_counts[asset_type]}
            for asset_type, _ in Asset.TYPE_CHOICES
            if type_counts.get(asset_type)
        ],
    }
