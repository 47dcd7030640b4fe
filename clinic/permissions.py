"""
Custom permission classes for role and organization based access control.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsOrganizationMember(BasePermission):
    """Authenticated, enabled and bound to an organization."""
    message = "User is not a member of an organization."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(
            user
            and user.is_authenticated
            and getattr(user, "organization_id", None)
            and not getattr(user, "is_disabled", False)
        )


class IsManagerRole(BasePermission):
    """Allow access only to owners, admins and managers."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and user.is_manager)


class IsManagerOrReadOnly(BasePermission):
    """Reads for everyone in the organization, writes for managers."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return True
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and user.is_manager)


class IsClinicalRole(BasePermission):
    """Practitioners of any clinical specialty."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and user.is_clinical)
