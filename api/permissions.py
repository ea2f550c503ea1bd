from rest_framework.permissions import BasePermission


class IsVerified(BasePermission):
    """Authenticated user whose email address has been verified."""
    message = 'Please verify your email account!'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_verified)
