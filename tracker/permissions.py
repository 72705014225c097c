"""
Role based access control.

Each route declares which of the three programme roles may call it.
"""
from rest_framework.permissions import BasePermission

from .models import User

EVALUATOR_ROLES = {User.ROLE_FACULTY, User.ROLE_HOD}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsHOD(BasePermission):
    """Only the head of department."""
    message = "Only the HOD may perform this action"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == User.ROLE_HOD


class IsEvaluator(BasePermission):
    """Faculty or HOD: the roles allowed to record evaluations."""
    message = "Only faculty or the HOD may perform this action"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in EVALUATOR_ROLES


class IsIntern(BasePermission):
    message = "Only interns may perform this action"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == User.ROLE_INTERN
