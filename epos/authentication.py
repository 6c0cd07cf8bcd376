from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

from .models import StaffMember


class APIKeyAuthentication(BaseAuthentication):
    """
    Staff terminal authentication using the X-API-Key header.

    Each staff member carries their own key, so the resolved member is the
    actor for every service call made by the request.
    """

    def authenticate(self, request):
        api_key = request.META.get('HTTP_X_API_KEY')

        if not api_key:
            return None

        staff = StaffMember.objects.filter(api_key=api_key, is_active=True).first()
        if staff is None:
            raise AuthenticationFailed('Invalid API key')

        return (staff, api_key)

    def authenticate_header(self, request):
        return 'X-API-Key'
