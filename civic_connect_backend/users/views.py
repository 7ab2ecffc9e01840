import logging
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.db import utils as db_utils
from django.shortcuts import get_object_or_404

from .capabilities import MANAGE_ROLES
from .gateway import AuthGateway, DuplicateAccount, InvalidCredentials
from .models import Profile
from .permissions import require_capability
from .serializers import (
    UserSerializer,
    ProfileSerializer,
    SignInSerializer,
    SignUpSerializer,
    ProfileRoleSerializer,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    DuplicateAccount: status.HTTP_409_CONFLICT,
    InvalidCredentials: status.HTTP_401_UNAUTHORIZED,
}


def _session_payload(session):
    return {
        "user": UserSerializer(session.user).data,
        "profile": ProfileSerializer(session.profile).data,
        "token": session.token,
    }


def _error_response(error):
    return Response(
        {"errors": {"auth": error.message}, "code": error.code},
        status=ERROR_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST),
    )


class SignUpView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = SignUpSerializer(data=request.data)
        if not serializer.is_valid():
            logger.info("Sign up rejected: %s", serializer.errors)
            return Response({"errors": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        result = AuthGateway(request, persist_session=False).sign_up(
            data['email'], data['password'], data['full_name']
        )
        if result.error:
            return _error_response(result.error)
        return Response(_session_payload(result.session), status=status.HTTP_201_CREATED)


class SignInView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = SignInSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"errors": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        result = AuthGateway(request, persist_session=False).sign_in(data['email'], data['password'])
        if result.error:
            return _error_response(result.error)
        return Response(_session_payload(result.session), status=status.HTTP_200_OK)


class SignOutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        AuthGateway(request, persist_session=False).sign_out()
        return Response(status=status.HTTP_204_NO_CONTENT)


class CurrentUserView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        try:
            logger.debug("Fetching current user: %s", request.user.pk)
            return Response({
                "user": UserSerializer(request.user).data,
                "profile": ProfileSerializer(request.user.profile).data,
            }, status=status.HTTP_200_OK)
        except db_utils.OperationalError:
            logger.exception("Database error fetching current user")
            return Response({"errors": {"service": "Database unavailable"}}, status=status.HTTP_503_SERVICE_UNAVAILABLE)


class ProfileRoleView(APIView):
    """
    Superadmin-only endpoint to change a profile's role and department
    """
    permission_classes = [IsAuthenticated, require_capability(MANAGE_ROLES)]

    def patch(self, request, pk):
        profile = get_object_or_404(Profile, pk=pk)
        serializer = ProfileRoleSerializer(profile, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response({"errors": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        logger.info(
            "User %s set profile %s to role=%s department=%s",
            request.user.pk, profile.pk, profile.role, profile.department,
        )
        return Response(ProfileSerializer(profile).data, status=status.HTTP_200_OK)
