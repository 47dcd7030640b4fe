"""
Custom authentication backend for token-based auth.

Kept apart from the views so that DRF can import the authentication
classes listed in settings without pulling in view modules.
"""
from __future__ import annotations

from rest_framework import authentication
from rest_framework.exceptions import AuthenticationFailed


class TokenAuthentication(authentication.TokenAuthentication):
    """Token authentication using the ``Token`` keyword.

    Disabled staff accounts are rejected even when their token is still
    valid.
    """

    keyword = 'Token'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        if getattr(user, 'is_disabled', False):
            raise AuthenticationFailed('User account is disabled.')
        return user, token
