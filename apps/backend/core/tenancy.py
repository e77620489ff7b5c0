from __future__ import annotations

from rest_framework.exceptions import PermissionDenied

from .models import Organization, OrganizationMembership


def membership_for(user) -> OrganizationMembership | None:
    if not user or not user.is_authenticated:
        return None
    try:
        return user.membership
    except OrganizationMembership.DoesNotExist:
        return None


def organization_for_user(user) -> Organization | None:
    membership = membership_for(user)
    return membership.organization if membership else None


class OrganizationScopedMixin:
    """Resolves the caller's organization for tenant-scoped API views."""

    def get_organization(self) -> Organization:
        if not hasattr(self, "_organization"):
            organization = organization_for_user(self.request.user)
            if organization is None:
                raise PermissionDenied("No organization found. Please set up your organization first.")
            self._organization = organization
        return self._organization

    @property
    def organization_id(self) -> int:
        return self.get_organization().id
