from rest_framework.permissions import BasePermission


class IsAuthenticatedCaller(BasePermission):
    """Allows access only to requests carrying a verified bearer token."""

    message = 'Authentication required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user is not None and getattr(user, 'is_authenticated', False) and getattr(user, 'user_id', None))
