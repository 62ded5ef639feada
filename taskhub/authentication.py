import logging

import jwt
from django.conf import settings
from jwt import ExpiredSignatureError, InvalidTokenError
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

logger = logging.getLogger(__name__)


class TokenCaller:
    """Identity of the caller behind a verified bearer token."""

    is_authenticated = True
    is_anonymous = False

    def __init__(self, user_id, claims=None):
        self.user_id = user_id
        self.claims = claims or {}

    @property
    def pk(self):
        return self.user_id

    def __str__(self):
        return self.user_id


def verify_token(token: str) -> dict:
    """
    Verify and decode a bearer JWT.

    Audience and issuer are only enforced when they are configured.

    Raises:
        AuthenticationFailed: If the token is invalid, expired or has no subject
    """
    options = {
        'verify_aud': settings.JWT_AUDIENCE is not None,
        'verify_iss': settings.JWT_ISSUER is not None,
    }
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options=options,
        )
    except ExpiredSignatureError as e:
        logger.info("Rejected expired token", extra={"error": str(e)})
        raise AuthenticationFailed("Token has expired")
    except InvalidTokenError as e:
        logger.info("Rejected invalid token", extra={"error": str(e)})
        raise AuthenticationFailed(f"Invalid token: {str(e)}")

    if not payload.get('sub'):
        raise AuthenticationFailed("Token has no subject")
    return payload


class BearerTokenAuthentication(BaseAuthentication):
    keyword = 'Bearer'

    def authenticate(self, request):
        """
        Authenticate a request using a JWT provided in the Authorization header.

        Requests without an Authorization header are left unauthenticated so
        the permission layer can answer with 401. On success the token subject
        is attached to ``request.user_id`` and the claims to
        ``request.token_claims``.
        """
        auth_header = request.headers.get('Authorization', '')
        if not auth_header:
            return None

        parts = auth_header.split()
        if len(parts) != 2 or parts[0] != self.keyword:
            raise AuthenticationFailed("Wrong token format. Expected 'Bearer token'")

        payload = verify_token(parts[1])
        request.user_id = str(payload['sub'])
        request.token_claims = payload
        return (TokenCaller(request.user_id, payload), None)

    def authenticate_header(self, request):
        return self.keyword
