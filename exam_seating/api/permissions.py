from rest_framework.permissions import BasePermission


class IsExamAdmin(BasePermission):
    message = "Only exam administrators can manage imports and seating."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_exam_admin", False))
