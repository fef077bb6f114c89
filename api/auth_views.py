import logging
from datetime import timedelta

import jwt
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .authentication import REFRESH_TOKEN_TYPE, decode_token, issue_tokens
from .exceptions import APIError
from .models import AppUser, UserStatus
from .serializers import (
    AppUserSerializer,
    ChangePasswordSerializer,
    EmailSerializer,
    LoginSerializer,
    RefreshTokenSerializer,
    RegisterSerializer,
    ResetPasswordSerializer,
)
from .tasks import send_email_task
from .throttles import AuthRequestThrottle
from .utils import generate_token

logger = logging.getLogger(__name__)


# ============================================
# Email helpers
# ============================================
def send_verification_email(user):
    link = f"{settings.FRONTEND_URL}/verify-email/{user.verification_token}"
    subject = "Verify your Landing Pad account"
    text = (
        f"Hi {user.first_name},\n\n"
        f"Please confirm your email address by opening the link below:\n{link}\n\n"
        "If you did not create an account, you can ignore this email."
    )
    html = (
        f"<p>Hi {user.first_name},</p>"
        f'<p>Please confirm your email address: <a href="{link}">verify my email</a></p>'
        "<p>If you did not create an account, you can ignore this email.</p>"
    )
    transaction.on_commit(lambda: send_email_task.delay(subject, text, [user.email], html_message=html))


def send_password_reset_email(user):
    link = f"{settings.FRONTEND_URL}/reset-password/{user.reset_password_token}"
    minutes = settings.PASSWORD_RESET_TIMEOUT_SECONDS // 60
    subject = "Reset your Landing Pad password"
    text = (
        f"Hi {user.first_name},\n\n"
        f"Use the link below to choose a new password. It expires in {minutes} minutes.\n{link}\n\n"
        "If you did not ask for a reset, you can ignore this email."
    )
    html = (
        f"<p>Hi {user.first_name},</p>"
        f'<p><a href="{link}">Choose a new password</a>. The link expires in {minutes} minutes.</p>'
        "<p>If you did not ask for a reset, you can ignore this email.</p>"
    )
    transaction.on_commit(lambda: send_email_task.delay(subject, text, [user.email], html_message=html))


class AuthAPIView(APIView):
    """Public auth endpoints share the stricter auth throttle."""
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [AuthRequestThrottle]


# ============================================
# Registration and login
# ============================================
class RegisterView(AuthAPIView):
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            user = serializer.save(verification_token=generate_token())
            send_verification_email(user)

        logger.info(f"User registered: {user.email}")
        return Response(
            {
                "success": True,
                "message": "Registration successful. Please check your email to verify your account.",
                "user": AppUserSerializer(user).data,
            },
            status=status.HTTP_201_CREATED,
        )


class LoginView(AuthAPIView):
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        email = serializer.validated_data["email"].strip().lower()
        user = AppUser.objects.filter(email=email).first()

        if user is None or not user.check_password(serializer.validated_data["password"]):
            raise APIError("Invalid email or password", status.HTTP_401_UNAUTHORIZED)

        if user.status == UserStatus.PENDING:
            return Response(
                {
                    "success": False,
                    "message": "Please verify your email before logging in",
                    "error": "email_not_verified",
                    "verificationRequired": True,
                },
                status=status.HTTP_403_FORBIDDEN,
            )

        if user.status == UserStatus.SUSPENDED:
            raise APIError("Your account has been suspended", status.HTTP_403_FORBIDDEN)

        user.last_login = timezone.now()
        user.save(update_fields=["last_login", "updated_at"])
        tokens = issue_tokens(user)

        logger.info(f"User logged in: {user.email}")
        return Response({"success": True, "user": AppUserSerializer(user).data, **tokens})


class RefreshTokenView(AuthAPIView):
    def post(self, request):
        serializer = RefreshTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        token = serializer.validated_data["refreshToken"]

        try:
            payload = decode_token(token, REFRESH_TOKEN_TYPE)
        except jwt.InvalidTokenError:
            raise APIError("Invalid refresh token", status.HTTP_401_UNAUTHORIZED)

        user = AppUser.objects.filter(pk=payload["sub"]).first()

        # Only the most recently issued refresh token is accepted
        if user is None or user.refresh_token != token:
            raise APIError("Invalid refresh token", status.HTTP_401_UNAUTHORIZED)

        if user.status == UserStatus.SUSPENDED:
            raise APIError("Your account has been suspended", status.HTTP_403_FORBIDDEN)

        return Response({"success": True, **issue_tokens(user)})


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [AuthRequestThrottle]

    def post(self, request):
        user = request.user
        user.refresh_token = None
        user.save(update_fields=["refresh_token", "updated_at"])
        return Response({"success": True, "message": "Logged out successfully"})


class MeView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [AuthRequestThrottle]

    def get(self, request):
        return Response({"success": True, "user": AppUserSerializer(request.user).data})


# ============================================
# Email verification
# ============================================
class VerifyEmailView(AuthAPIView):
    def get(self, request, token):
        user = AppUser.objects.filter(verification_token=token).first()
        if user is None:
            logger.warning(f"Invalid or expired verification token attempted: {token[:8]}...")
            raise APIError("Invalid or expired verification token", status.HTTP_400_BAD_REQUEST)

        user.email_verified = True
        user.verification_token = None
        if user.status == UserStatus.PENDING:
            user.status = UserStatus.ACTIVE
        user.save()

        logger.info(f"Email verified: {user.email}")
        return Response({"success": True, "message": "Email verified successfully. You can now log in."})


class ResendVerificationView(AuthAPIView):
    """
    Resends the verification link.
    Never reveals whether an account exists for the email.
    """

    def post(self, request):
        serializer = EmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        generic = {
            "success": True,
            "message": "If an account exists for this email, a verification email has been sent.",
        }

        user = AppUser.objects.filter(email=serializer.validated_data["email"].strip().lower()).first()
        if user is None:
            return Response(generic)

        if user.email_verified:
            raise APIError("This email address has already been verified.", status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            user.verification_token = generate_token()
            user.save(update_fields=["verification_token", "updated_at"])
            send_verification_email(user)

        return Response(generic)


# ============================================
# Passwords
# ============================================
class ChangePasswordView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [AuthRequestThrottle]

    def post(self, request):
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = request.user

        if not user.check_password(serializer.validated_data["currentPassword"]):
            raise APIError("Current password is incorrect", status.HTTP_400_BAD_REQUEST)

        user.set_password(serializer.validated_data["newPassword"])
        user.refresh_token = None  # Forces a new login on other devices
        user.save(update_fields=["password", "refresh_token", "updated_at"])

        logger.info(f"Password changed for {user.email}")
        return Response({"success": True, "message": "Password changed successfully"})


class ForgotPasswordView(AuthAPIView):
    def post(self, request):
        serializer = EmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = AppUser.objects.filter(email=serializer.validated_data["email"].strip().lower()).first()
        if user is not None and user.status != UserStatus.SUSPENDED:
            with transaction.atomic():
                user.reset_password_token = generate_token()
                user.reset_password_expires = timezone.now() + timedelta(
                    seconds=settings.PASSWORD_RESET_TIMEOUT_SECONDS
                )
                user.save(update_fields=["reset_password_token", "reset_password_expires", "updated_at"])
                send_password_reset_email(user)

        return Response({
            "success": True,
            "message": "If an account exists for this email, a password reset link has been sent.",
        })


class ResetPasswordView(AuthAPIView):
    def post(self, request):
        serializer = ResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = AppUser.objects.filter(reset_password_token=serializer.validated_data["token"]).first()
        if (
            user is None
            or user.reset_password_expires is None
            or user.reset_password_expires < timezone.now()
        ):
            raise APIError("Invalid or expired reset token", status.HTTP_400_BAD_REQUEST)

        user.set_password(serializer.validated_data["password"])
        user.reset_password_token = None
        user.reset_password_expires = None
        user.refresh_token = None
        user.save()

        logger.info(f"Password reset for {user.email}")
        return Response({"success": True, "message": "Password has been reset. You can now log in."})
