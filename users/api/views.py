import logging

from django.conf import settings
from django.contrib.auth import authenticate
from django.utils.decorators import method_decorator

from django_ratelimit.decorators import ratelimit
from rest_framework import permissions, serializers, status
from rest_framework.response import Response
from rest_framework.views import APIView

from users.blacklist import blacklist_token
from users.tokens import ADMIN_ROLE, admin_claims, issue_admin_token

logger = logging.getLogger(__name__)


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(trim_whitespace=False)


@method_decorator(
    ratelimit(
        key="ip",
        rate=getattr(settings, "ADMIN_LOGIN_RATE_LIMIT", "10/m"),
        method="POST",
        block=False,
    ),
    name="post",
)
class LoginView(APIView):
    """Exchange admin credentials for a bearer token."""

    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        if getattr(request, "limited", False):
            logger.warning(
                "Login rate limit triggered for %s", request.META.get("REMOTE_ADDR", "unknown")
            )
            return Response(
                {"message": "Too many login attempts. Please wait."},
                status=status.HTTP_429_TOO_MANY_REQUESTS,
            )

        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"message": "Username and password are required"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        username = serializer.validated_data["username"]
        user = authenticate(
            request, username=username, password=serializer.validated_data["password"]
        )
        if user is None or not user.is_staff:
            logger.warning("Failed admin login for %s", username)
            return Response(
                {"message": "Invalid credentials"}, status=status.HTTP_401_UNAUTHORIZED
            )

        logger.info("Admin %s logged in", user.get_username())
        return Response(
            {
                "message": "Login successful",
                "token": issue_admin_token(user),
                "user": admin_claims(user),
            }
        )


class VerifyTokenView(APIView):
    """Confirm that the presented bearer token is valid and not revoked."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        token = request.auth
        user = {
            "username": token.get("username", request.user.get_username()),
            "email": token.get("email", request.user.email),
            "role": token.get("role", ADMIN_ROLE),
        }
        return Response({"message": "Token is valid", "user": user})


class LogoutView(APIView):
    """Revoke the presented bearer token for the rest of its lifetime."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        blacklist_token(request.auth)
        logger.info("Admin %s logged out", request.user.get_username())
        return Response({"message": "Logout successful"})
