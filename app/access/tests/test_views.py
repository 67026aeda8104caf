"""
Tests for the access API.

Endpoints:
    GET    /api/v1/access/chat-permissions/
    PATCH  /api/v1/access/chat-permissions/{role}/
    GET    /api/v1/access/role-settings/{role}/{key}/
    PUT    /api/v1/access/role-settings/{role}/{key}/
    GET    /api/v1/access/capabilities/
    GET    /api/v1/access/capabilities/grants/
    POST   /api/v1/access/capabilities/grants/
    DELETE /api/v1/access/capabilities/grants/
"""

from rest_framework import status

from access.constants import CAPABILITIES
from access.models import ChatPermission, RolePermission


def chat_permissions_url():
    return "/api/v1/access/chat-permissions/"


def chat_permission_url(role):
    return f"/api/v1/access/chat-permissions/{role}/"


def role_setting_url(role, key="chat_restrictions"):
    return f"/api/v1/access/role-settings/{role}/{key}/"


def capabilities_url():
    return "/api/v1/access/capabilities/"


def grants_url():
    return "/api/v1/access/capabilities/grants/"


class TestChatPermissionList:
    def test_lists_one_row_per_role(self, authenticated_client_factory, student):
        response = authenticated_client_factory(student).get(chat_permissions_url())

        assert response.status_code == status.HTTP_200_OK
        roles = {row["role"] for row in response.data}
        assert roles == {"super_admin", "admin", "teacher", "student"}

    def test_requires_authentication(self, api_client, db):
        response = api_client.get(chat_permissions_url())

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestChatPermissionUpdate:
    def test_super_admin_updates_row(self, authenticated_client_factory, super_admin):
        client = authenticated_client_factory(super_admin)

        response = client.patch(
            chat_permission_url("student"),
            {"can_chat_with": ["teacher", "admin"], "daily_message_limit": 20},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["can_chat_with"] == ["teacher", "admin"]
        assert response.data["daily_message_limit"] == 20

    def test_null_limit_makes_role_unlimited(self, authenticated_client_factory, super_admin):
        client = authenticated_client_factory(super_admin)

        response = client.patch(
            chat_permission_url("teacher"), {"daily_message_limit": None}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert ChatPermission.objects.get(role="teacher").daily_message_limit is None

    def test_admin_is_forbidden(self, authenticated_client_factory, admin):
        response = authenticated_client_factory(admin).patch(
            chat_permission_url("student"), {"daily_message_limit": 999}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "PERMISSION_DENIED"

    def test_unknown_role_is_not_found(self, authenticated_client_factory, super_admin):
        response = authenticated_client_factory(super_admin).patch(
            chat_permission_url("guest"), {"daily_message_limit": 1}, format="json"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_invalid_role_in_list_is_rejected(self, authenticated_client_factory, super_admin):
        response = authenticated_client_factory(super_admin).patch(
            chat_permission_url("student"), {"can_chat_with": ["wizard"]}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestRoleSetting:
    def test_put_then_get(self, authenticated_client_factory, super_admin):
        client = authenticated_client_factory(super_admin)
        value = {"can_chat_with": ["teacher", "admin"], "max_daily_messages": 15}

        put = client.put(role_setting_url("student"), {"setting_value": value}, format="json")
        get = client.get(role_setting_url("student"))

        assert put.status_code == status.HTTP_200_OK
        assert get.status_code == status.HTTP_200_OK
        assert get.data["setting_value"] == value

    def test_get_missing_setting_is_not_found(self, authenticated_client_factory, super_admin):
        response = authenticated_client_factory(super_admin).get(role_setting_url("teacher"))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_invalid_value_is_rejected(self, authenticated_client_factory, super_admin):
        response = authenticated_client_factory(super_admin).put(
            role_setting_url("student"),
            {"setting_value": {"max_daily_messages": -1}},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "VALIDATION_ERROR"


class TestMyCapabilities:
    def test_student_view(self, authenticated_client_factory, student):
        response = authenticated_client_factory(student).get(capabilities_url())

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            "role": "student",
            "capabilities": [],
            "can_chat_with": ["teacher"],
            "daily_message_limit": 50,
        }

    def test_super_admin_view(self, authenticated_client_factory, super_admin):
        response = authenticated_client_factory(super_admin).get(capabilities_url())

        assert CAPABILITIES.CHAT_WITH_ANY_ROLE in response.data["capabilities"]
        assert response.data["daily_message_limit"] is None


class TestCapabilityGrants:
    def test_grant_and_revoke(self, authenticated_client_factory, super_admin):
        client = authenticated_client_factory(super_admin)
        body = {"role": "teacher", "capability": CAPABILITIES.DELETE_MESSAGES}

        granted = client.post(grants_url(), body, format="json")
        assert granted.status_code == status.HTTP_201_CREATED
        assert granted.data["capability"] == CAPABILITIES.DELETE_MESSAGES

        revoked = client.delete(grants_url(), body, format="json")
        assert revoked.status_code == status.HTTP_204_NO_CONTENT
        assert not RolePermission.objects.filter(
            role="teacher", permission__name=CAPABILITIES.DELETE_MESSAGES
        ).exists()

    def test_list_grants(self, authenticated_client_factory, admin):
        response = authenticated_client_factory(admin).get(grants_url())

        assert response.status_code == status.HTTP_200_OK
        assert {row["role"] for row in response.data} == {"super_admin"}

    def test_teacher_cannot_grant(self, authenticated_client_factory, teacher):
        response = authenticated_client_factory(teacher).post(
            grants_url(),
            {"role": "teacher", "capability": CAPABILITIES.CHAT_WITH_ANY_ROLE},
            format="json",
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
