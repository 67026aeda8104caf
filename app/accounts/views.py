"""
Views for the accounts API.

URL Structure:
    /api/v1/accounts/users/                  GET (communicable users), POST (create)
    /api/v1/accounts/users/{id}/             GET, DELETE
    /api/v1/accounts/users/me/               GET
    /api/v1/accounts/roles/creatable/        GET
    /api/v1/auth/logout/                     POST

Design Decisions:
    - The user list is the recipient picker: it only contains users whose
      role the caller may message
    - Creation and deletion go through UserService for role gating
"""

from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from access.services import AccessService
from accounts.models import User
from accounts.serializers import (
    LogoutSerializer,
    PublicUserSerializer,
    UserCreateSerializer,
    UserSerializer,
)
from accounts.services import UserService
from realtime.presence import PresenceService

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_communicable_users",
        summary="List users you can message",
        tags=["Accounts - Users"],
    ),
    retrieve=extend_schema(
        operation_id="get_user",
        summary="Get a user's public profile",
        tags=["Accounts - Users"],
    ),
    create=extend_schema(
        operation_id="create_user",
        summary="Create user",
        tags=["Accounts - Users"],
        request=UserCreateSerializer,
        responses={201: UserSerializer},
    ),
    destroy=extend_schema(
        operation_id="delete_user",
        summary="Delete a user of a lower role",
        tags=["Accounts - Users"],
    ),
)
class UserViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    User directory and management.

    list:
        Users the caller's role may message, excluding the caller.

    create:
        Create a user. The requested role must be one the caller may create.

    destroy:
        Delete a user. Requires manage_lower_roles and a lower target role.

    me:
        The caller's own account with capabilities.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = PublicUserSerializer

    def get_queryset(self):
        if self.action == "list":
            return AccessService.communicable_users(self.request.user)
        return User.objects.filter(is_active=True)

    def create(self, request):
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = UserService.create_user(creator=request.user, **serializer.validated_data)
        if not result.success:
            return Response(result.to_response(), status=result.http_status)

        return Response(UserSerializer(result.data).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        target = get_object_or_404(User, pk=pk)
        result = UserService.delete_user(actor=request.user, target=target)
        if not result.success:
            return Response(result.to_response(), status=result.http_status)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="get_current_user",
        summary="Get current user",
        tags=["Accounts - Users"],
        responses={200: UserSerializer},
    )
    @action(detail=False, methods=["get"])
    def me(self, request):
        return Response(UserSerializer(request.user).data)


class CreatableRolesView(APIView):
    """
    Roles the current user may assign when creating users.

    URL: /api/v1/accounts/roles/creatable/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_creatable_roles",
        summary="List roles you can create",
        tags=["Accounts - Users"],
    )
    def get(self, request):
        return Response({"roles": AccessService.roles_creatable_by(request.user.role)})


class LogoutView(APIView):
    """
    Log out: blacklist the refresh token and mark the user offline.

    URL: /api/v1/auth/logout/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="logout",
        summary="Log out",
        tags=["Auth"],
        request=LogoutSerializer,
    )
    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        refresh = serializer.validated_data.get("refresh")
        if refresh:
            try:
                RefreshToken(refresh).blacklist()
            except TokenError as e:
                return Response(
                    {"error": str(e), "error_code": "INVALID_TOKEN"},
                    status=status.HTTP_400_BAD_REQUEST,
                )

        PresenceService.set_offline(request.user.id)
        logger.info(f"User {request.user.id} logged out")
        return Response({"detail": "Logged out"})
