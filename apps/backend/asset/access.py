from .models import Asset


def organization_assets(organization_id: int, *, include_inactive: bool = False):
    qs = Asset.objects.filter(organization_id=organization_id)
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return qs


def get_organization_asset(organization_id: int, asset_id: int, *, include_inactive: bool = False) -> Asset:
    """Fetch one asset of the organization; other tenants' ids raise DoesNotExist."""
    return organization_assets(organization_id, include_inactive=include_inactive).get(id=asset_id)
