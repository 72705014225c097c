"""
Bearer token authentication.

The front-end sends ``Authorization: Bearer <token>`` where the token is
an opaque DRF auth token issued at login.  Unknown tokens are rejected
with 401; tokens that belong to a deactivated account are rejected with
403 so that the client can tell the two situations apart.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions


class BearerTokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication using the ``Bearer`` keyword."""

    keyword = 'Bearer'

    def authenticate_credentials(self, key):
        model = self.get_model()
        try:
            token = model.objects.select_related('user').get(key=key)
        except model.DoesNotExist:
            raise exceptions.AuthenticationFailed('Not authorized, token failed')

        if not token.user.is_active:
            raise exceptions.PermissionDenied('User account is deactivated')

        return (token.user, token)
