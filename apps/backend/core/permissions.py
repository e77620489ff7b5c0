from rest_framework.permissions import SAFE_METHODS, BasePermission

from .models import OrganizationMembership
from .tenancy import membership_for

ROLE_ADMIN = OrganizationMembership.ROLE_ADMIN
ROLE_AUDITOR = OrganizationMembership.ROLE_AUDITOR
ROLE_AUDITEE = OrganizationMembership.ROLE_AUDITEE


def has_any_role(user, *role_names: str) -> bool:
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    membership = membership_for(user)
    return membership is not None and membership.role in role_names


def is_member(user) -> bool:
    return has_any_role(user, ROLE_ADMIN, ROLE_AUDITOR, ROLE_AUDITEE)


class IsOrganizationMember(BasePermission):
    def has_permission(self, request, view):
        return is_member(request.user)


class IsAuditorOrReadOnly(BasePermission):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return is_member(request.user)
        return has_any_role(request.user, ROLE_ADMIN, ROLE_AUDITOR)


class IsOrganizationAdminOrReadOnly(BasePermission):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        if request.method == "POST" and membership_for(request.user) is None:
            # Creating a first organization is open to any authenticated user.
            return bool(request.user and request.user.is_authenticated)
        return has_any_role(request.user, ROLE_ADMIN)


class IsCatalogAdminOrReadOnly(BasePermission):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return bool(request.user and request.user.is_authenticated and request.user.is_superuser)


class IsOrganizationAdmin(BasePermission):
    def has_permission(self, request, view):
        return has_any_role(request.user, ROLE_ADMIN)
