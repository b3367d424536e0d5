from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.tokens import RefreshToken

from users.serializers import UserSerializer
from users.services import AdmissionService
from .serializers import (
    LoginSerializer,
    PasswordResetConfirmSerializer,
    PasswordResetSerializer,
    RegisterSerializer,
    VerifySerializer,
)


def token_pair(user):
    refresh = RefreshToken.for_user(user)
    return {
        "access": str(refresh.access_token),
        "refresh": str(refresh),
    }


class RegisterView(APIView):
    """
    POST /api/auth/register/
    Body: {"email", "password", "nickname"}

    Creates the account and emails a verification link.
    """
    # allow unauthenticated
    permission_classes = []
    authentication_classes = []

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AdmissionService.register(
            serializer.validated_data["email"],
            serializer.validated_data["password"],
            nickname=serializer.validated_data.get("nickname", ""),
        )
        return Response(
            dict(token_pair(user), user=UserSerializer(user).data),
            status=status.HTTP_201_CREATED
        )


class LoginView(APIView):
    # allow unauthenticated
    permission_classes = []
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data['user']
        return Response(
            dict(token_pair(user), user=UserSerializer(user).data),
            status=status.HTTP_200_OK
        )


class VerifyEmailView(APIView):
    """
    POST /api/auth/verify/         Body: {"token"}   verify the email address
    POST /api/auth/verify/resend/  (authenticated)   send the link again
    """
    permission_classes = []
    authentication_classes = []

    def post(self, request):
        serializer = VerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = AdmissionService.verify_email(serializer.validated_data["token"])
        return Response(UserSerializer(user).data)


class ResendVerificationView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        AdmissionService.send_verification(request.user)
        return Response({"message": "Verification email sent."})


class PasswordResetView(APIView):
    """
    POST /api/auth/password/reset/
    Same answer whether or not the email is registered.
    """
    permission_classes = []
    authentication_classes = []

    def post(self, request):
        serializer = PasswordResetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        AdmissionService.send_password_reset(serializer.validated_data["email"])
        return Response({"message": "If the email is registered, a reset link has been sent."})


class PasswordResetConfirmView(APIView):
    permission_classes = []
    authentication_classes = []

    def post(self, request):
        serializer = PasswordResetConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        AdmissionService.reset_password(
            serializer.validated_data["uid"],
            serializer.validated_data["token"],
            serializer.validated_data["password"],
        )
        return Response({"message": "Password successfully reset!"})


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        return Response({
            "id": user.id,
            "participant_id": user.participant_id,
            "email": user.email,
            "nickname": user.nickname,
            "verified": user.verified,
            "is_staff": user.is_staff,
        })
