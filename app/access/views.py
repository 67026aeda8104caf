"""
Views for the access API.

URL Structure:
    /api/v1/access/chat-permissions/                   GET
    /api/v1/access/chat-permissions/{role}/            PATCH
    /api/v1/access/role-settings/{role}/{key}/         GET, PUT
    /api/v1/access/capabilities/                       GET (current user)
    /api/v1/access/capabilities/grants/                GET, POST, DELETE

Mutations require the modify_user_roles action; AccessService enforces it.
"""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from access.models import ChatPermission, RolePermission, RoleSetting
from access.roles import is_valid_role
from access.serializers import (
    CapabilityChangeSerializer,
    CapabilityGrantSerializer,
    ChatPermissionSerializer,
    ChatPermissionUpdateSerializer,
    RoleSettingSerializer,
)
from access.services import AccessService

TAG = "Access - Chat Permissions"


def _unknown_role_response(role: str) -> Response:
    return Response(
        {"error": f"Unknown role: {role}", "error_code": "NOT_FOUND"},
        status=status.HTTP_404_NOT_FOUND,
    )


class ChatPermissionListView(APIView):
    """Static chat table for every role."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_chat_permissions",
        summary="List chat permissions",
        tags=[TAG],
        responses={200: ChatPermissionSerializer(many=True)},
    )
    def get(self, request):
        rows = ChatPermission.objects.all()
        return Response(ChatPermissionSerializer(rows, many=True).data)


class ChatPermissionDetailView(APIView):
    """Update one role's chat table row."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="update_chat_permission",
        summary="Update chat permission for a role",
        tags=[TAG],
        request=ChatPermissionUpdateSerializer,
        responses={200: ChatPermissionSerializer},
    )
    def patch(self, request, role: str):
        if not is_valid_role(role):
            return _unknown_role_response(role)

        serializer = ChatPermissionUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        clear_limit = "daily_message_limit" in data and data["daily_message_limit"] is None
        result = AccessService.update_chat_permission(
            actor=request.user,
            role=role,
            can_chat_with=data.get("can_chat_with"),
            daily_message_limit=data.get("daily_message_limit"),
            clear_limit=clear_limit,
        )
        if not result.success:
            return Response(result.to_response(), status=result.http_status)
        return Response(ChatPermissionSerializer(result.data).data)


class RoleSettingView(APIView):
    """Read or replace a per-role settings blob."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_role_setting",
        summary="Get role setting",
        tags=[TAG],
        responses={200: RoleSettingSerializer},
    )
    def get(self, request, role: str, key: str):
        setting = get_object_or_404(RoleSetting, role=role, setting_key=key)
        return Response(RoleSettingSerializer(setting).data)

    @extend_schema(
        operation_id="put_role_setting",
        summary="Create or replace role setting",
        tags=[TAG],
        request=RoleSettingSerializer,
        responses={200: RoleSettingSerializer},
    )
    def put(self, request, role: str, key: str):
        if not is_valid_role(role):
            return _unknown_role_response(role)

        result = AccessService.update_role_setting(
            actor=request.user,
            role=role,
            setting_key=key,
            setting_value=request.data.get("setting_value"),
        )
        if not result.success:
            return Response(result.to_response(), status=result.http_status)
        return Response(RoleSettingSerializer(result.data).data)


class MyCapabilitiesView(APIView):
    """Capabilities and reachable roles for the current user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_my_capabilities",
        summary="Get my capabilities",
        tags=[TAG],
    )
    def get(self, request):
        role = request.user.role
        return Response(
            {
                "role": role,
                "capabilities": AccessService.capabilities_for(role),
                "can_chat_with": AccessService.communicable_roles(role),
                "daily_message_limit": AccessService.daily_limit_for(role),
            }
        )


class CapabilityGrantView(APIView):
    """List, grant and revoke capabilities."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_capability_grants",
        summary="List capability grants",
        tags=[TAG],
        responses={200: CapabilityGrantSerializer(many=True)},
    )
    def get(self, request):
        grants = RolePermission.objects.select_related("permission").order_by(
            "role", "permission__name"
        )
        return Response(CapabilityGrantSerializer(grants, many=True).data)

    @extend_schema(
        operation_id="grant_capability",
        summary="Grant capability to role",
        tags=[TAG],
        request=CapabilityChangeSerializer,
        responses={201: CapabilityGrantSerializer},
    )
    def post(self, request):
        serializer = CapabilityChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AccessService.grant_capability(
            actor=request.user,
            role=serializer.validated_data["role"],
            name=serializer.validated_data["capability"],
        )
        if not result.success:
            return Response(result.to_response(), status=result.http_status)
        return Response(
            CapabilityGrantSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="revoke_capability",
        summary="Revoke capability from role",
        tags=[TAG],
        request=CapabilityChangeSerializer,
    )
    def delete(self, request):
        serializer = CapabilityChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AccessService.revoke_capability(
            actor=request.user,
            role=serializer.validated_data["role"],
            name=serializer.validated_data["capability"],
        )
        if not result.success:
            return Response(result.to_response(), status=result.http_status)
        return Response(status=status.HTTP_204_NO_CONTENT)
