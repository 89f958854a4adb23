"""
Bearer JWT authentication.

Tokens are plain access tokens signed with ``JWT_SECRET`` and carry the
claims ``sub`` (user id) and ``role``; there is no refresh token and no
revocation. Any decode, signature or expiry failure, and a token whose
user no longer exists, is reported uniformly as an invalid token.
"""
from __future__ import annotations

from rest_framework import exceptions
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import AccessToken

# DRF imports this module while rest_framework.views is still loading,
# so nothing here may import lab.exceptions or rest_framework.views
TOKEN_MISSING = 'Authentication token missing'
TOKEN_INVALID = 'Invalid or expired token'


class BearerJWTAuthentication(JWTAuthentication):
    www_authenticate_realm = 'api'

    def get_validated_token(self, raw_token):
        try:
            return AccessToken(raw_token)
        except TokenError as exc:
            raise exceptions.AuthenticationFailed(TOKEN_INVALID) from exc

    def get_user(self, validated_token):
        try:
            user = super().get_user(validated_token)
        except exceptions.APIException as exc:
            raise exceptions.AuthenticationFailed(TOKEN_INVALID) from exc
        return user


def issue_token(user) -> str:
    token = AccessToken.for_user(user)
    # PyJWT only accepts a string subject
    token['sub'] = str(user.pk)
    token['role'] = user.role
    return str(token)
