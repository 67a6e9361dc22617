from rest_framework import permissions

class IsTeacherOrAdmin(permissions.BasePermission):
    """
    Allows access to Admins and Teachers.
    Strictly blocks Students and Parents.
    """
    def has_permission(self, request, view):
        # 1. User must be logged in
        if not request.user or not request.user.is_authenticated:
            return False

        # 2. Check Role
        return request.user.can_manage_exams


class IsStudent(permissions.BasePermission):
    message = "Only students can take exams."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return request.user.is_student
