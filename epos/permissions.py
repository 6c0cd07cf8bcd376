from rest_framework.permissions import BasePermission


class APIKeyPermission(BasePermission):
    """
    Allows requests authenticated by APIKeyAuthentication
    """

    def has_permission(self, request, view):
        # request.auth is the api key string when a staff member matched
        return getattr(request, 'auth', None) is not None and request.user is not None


class IsOwner(APIKeyPermission):
    """Restricts an endpoint to staff with the owner role"""

    def has_permission(self, request, view):
        return super().has_permission(request, view) and request.user.role == 'owner'
