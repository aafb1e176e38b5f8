from rest_framework.permissions import BasePermission


class IsOperator(BasePermission):
    """
    Allows access only to requests authenticated with the operator API key
    """
    message = 'Operator API key required'

    def has_permission(self, request, view):
        # APIKeyAuthentication returns (None, api_key) on success
        return getattr(request, 'auth', None) is not None
