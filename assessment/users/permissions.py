from rest_framework.permissions import BasePermission

from .models import Profile

# ------------------------------------------------------------
# Helper: decides whether the logged in user counts as an exam
# administrator (staff/superuser flag or admin profile role).
# ------------------------------------------------------------


def is_exam_admin(user) -> bool:
    """Returns True if the user may evaluate answers and publish results."""
    if not user or not user.is_authenticated:
        return False
    if user.is_staff or user.is_superuser:
        return True

    try:
        profile = user.profile
    except Profile.DoesNotExist:
        return False
    return profile.is_exam_admin


class IsExamAdmin(BasePermission):
    """Allows access only to admins and super admins. Students are blocked."""

    message = "Insufficient permissions"

    def has_permission(self, request, view):
        return is_exam_admin(request.user)
