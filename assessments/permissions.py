from rest_framework import permissions


class IsGraderOrAdmin(permissions.BasePermission):
    """
    Allows access to Admins, Examiners, and Graders.
    Strictly blocks Candidates.
    """
    def has_permission(self, request, view):
        # 1. User must be logged in
        if not request.user or not request.user.is_authenticated:
            return False

        # 2. Check Role
        return request.user.can_grade

    def has_object_permission(self, request, view, obj):
        # Graders never reach across organizations
        exam = getattr(obj, 'exam', obj)
        return request.user.is_superuser or exam.tenant_id == request.user.tenant_id
