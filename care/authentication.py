"""
Token authentication for the portals.

Clients send either ``Authorization: Token <key>`` (the key returned by
the login endpoint) or ``Authorization: Bearer <jwt>`` which is handled
by simplejwt.  Keeping the class in its own module gives settings a
stable import path that does not pull in any views.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions


class TokenAuthentication(authentication.TokenAuthentication):
    """DRF token authentication that also rejects deactivated accounts."""

    keyword = 'Token'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        if not user.is_active:
            raise exceptions.AuthenticationFailed('User inactive or deleted.')
        return user, token
