import logging
import secrets

import jwt
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

from .models import AppUser, UserStatus

logger = logging.getLogger(__name__)


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


# ============================================
# Token helpers
# ============================================
def _encode(user, token_type, lifetime):
    now = timezone.now()
    payload = {
        "sub": str(user.pk),
        "email": user.email,
        "role": user.role,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + lifetime).timestamp()),
    }
    if token_type == REFRESH_TOKEN_TYPE:
        # Unique per issue so a rotated refresh token never equals the previous one
        payload["jti"] = secrets.token_hex(8)
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token, expected_type):
    """
    Decodes and validates a token issued by this service.
    Raises jwt.InvalidTokenError (or a subclass) on any problem.
    """
    payload = jwt.decode(
        token,
        settings.JWT_SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
        options={"verify_exp": True, "require": ["exp", "sub", "type"]},
        leeway=10,
    )
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
    return payload


def issue_tokens(user):
    """
    Creates a fresh access/refresh pair and stores the refresh token on the user,
    which invalidates any refresh token handed out earlier.
    """
    access_token = _encode(user, ACCESS_TOKEN_TYPE, settings.JWT_ACCESS_TOKEN_LIFETIME)
    refresh_token = _encode(user, REFRESH_TOKEN_TYPE, settings.JWT_REFRESH_TOKEN_LIFETIME)

    user.refresh_token = refresh_token
    user.save(update_fields=["refresh_token", "updated_at"])

    return {
        "accessToken": access_token,
        "refreshToken": refresh_token,
        "expiresIn": int(settings.JWT_ACCESS_TOKEN_LIFETIME.total_seconds()),
    }


# ============================================
# DRF authentication class
# ============================================
class JWTAuthentication(BaseAuthentication):
    """
    Bearer-token authentication for the builder API.
    Returns (user, payload) on success, None when no bearer header is sent,
    and raises AuthenticationFailed otherwise.
    """
    keyword = "Bearer"

    def authenticate(self, request):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith(f"{self.keyword} "):
            return None  # Let other authentication classes try

        token = auth_header.split(" ", 1)[1].strip()
        if not token:
            raise AuthenticationFailed("Invalid token")

        try:
            payload = decode_token(token, ACCESS_TOKEN_TYPE)
        except jwt.ExpiredSignatureError:
            raise AuthenticationFailed("Token expired")
        except jwt.InvalidTokenError as e:
            logger.info(f"Auth failed: {str(e)}")
            raise AuthenticationFailed("Invalid token")

        user = self.get_user(payload)
        return (user, payload)

    def get_user(self, payload):
        try:
            user = AppUser.objects.get(pk=payload["sub"])
        except (AppUser.DoesNotExist, DjangoValidationError, ValueError):
            raise AuthenticationFailed("User not found")

        if user.status == UserStatus.SUSPENDED:
            raise AuthenticationFailed("Account suspended")

        return user

    def authenticate_header(self, request):
        return self.keyword
