"""
Role based permission classes.
"""
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

from core.models import User

STAFF_ROLES = {User.ROLE_SUPER_ADMIN, User.ROLE_ADMIN, User.ROLE_WARDEN}
MANAGER_ROLES = {User.ROLE_SUPER_ADMIN, User.ROLE_ADMIN}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsStaffRole(BasePermission):
    """Hostel office: super admins, admins and wardens."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in STAFF_ROLES


class IsManagerRole(BasePermission):
    """Super admins and admins only."""
    message = "Only administrators can perform this action"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in MANAGER_ROLES


class IsStudentRole(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == User.ROLE_STUDENT


def require_manager(request, message: str = IsManagerRole.message) -> None:
    """Write half of a view whose reads are open to every staff role."""
    if not IsManagerRole().has_permission(request, None):
        raise PermissionDenied(message)


def is_staff_user(user) -> bool:
    return bool(user and user.is_authenticated and getattr(user, "role", None) in STAFF_ROLES)
