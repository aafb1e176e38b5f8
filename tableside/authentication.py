from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed
from django.conf import settings


class APIKeyAuthentication(BaseAuthentication):
    """
    Operator authentication using the X-API-Key header.

    Diner endpoints send no key and stay anonymous; a wrong key is rejected
    outright so a misconfigured operator console fails loudly.
    """

    def authenticate(self, request):
        api_key = request.META.get('HTTP_X_API_KEY')

        if not api_key:
            return None

        if api_key != getattr(settings, 'API_KEY', 'demo'):
            raise AuthenticationFailed('Invalid API key')

        # No user model behind operator keys
        return (None, api_key)

    def authenticate_header(self, request):
        return 'X-API-Key'
