"""
JWT utilities for the TaskHub API.

Tokens are issued by the upstream authentication service; this module only
mints tokens for tests and local tooling with the configured secret.
"""

import time

import jwt
from django.conf import settings


class JWTManager:
    """
    JWT Manager for token generation and validation.
    """

    def __init__(self):
        # Don't access settings immediately
        self._secret = None
        self._algorithm = None

    def _get_secret(self):
        if self._secret is None:
            self._secret = settings.JWT_SECRET
        return self._secret

    def _get_algorithm(self):
        if self._algorithm is None:
            self._algorithm = settings.JWT_ALGORITHM
        return self._algorithm

    def generate_token(self, user_id, expires_in_hours=24, **claims):
        """
        Generate a JWT token for the given user.

        Args:
            user_id (str): The user ID to include as the subject
            expires_in_hours (int): Token expiration time in hours; negative values mint expired tokens

        Returns:
            str: JWT token string
        """
        now = int(time.time())
        payload = {
            'sub': user_id,
            'iat': now,
            'exp': now + int(expires_in_hours * 3600),
        }
        if settings.JWT_AUDIENCE:
            payload['aud'] = settings.JWT_AUDIENCE
        if settings.JWT_ISSUER:
            payload['iss'] = settings.JWT_ISSUER
        payload.update(claims)

        return jwt.encode(payload, self._get_secret(), algorithm=self._get_algorithm())


# Global JWT manager instance - create lazily
_jwt_manager = None


def _get_jwt_manager():
    """Get the global JWT manager instance, creating it if needed."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def generate_test_token(user_id, expires_in_hours=24, **claims):
    """Generate a test JWT token for the given user ID."""
    return _get_jwt_manager().generate_token(user_id, expires_in_hours, **claims)
