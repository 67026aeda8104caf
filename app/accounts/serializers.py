"""
Serializers for the accounts app.

- PublicUserSerializer: Profile fields visible to other users
- UserSerializer: The authenticated user's own account
- UserCreateSerializer: Input for role-gated user creation
- LogoutSerializer: Refresh token to blacklist

Security:
    - Password fields are write-only
    - Presence fields are read-only; only PresenceService writes them
"""

from rest_framework import serializers

from access.roles import Role
from access.services import AccessService
from accounts.models import PUBLIC_PROFILE_FIELDS, User


class PublicUserSerializer(serializers.ModelSerializer):
    """Public profile attached to messages and returned by the user directory."""

    class Meta:
        model = User
        fields = list(PUBLIC_PROFILE_FIELDS)
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    """
    The current user's own account.

    Adds the user's capabilities and the roles they may create so clients
    can decide which management controls to show.
    """

    capabilities = serializers.SerializerMethodField()
    creatable_roles = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            *PUBLIC_PROFILE_FIELDS,
            "email",
            "date_joined",
            "capabilities",
            "creatable_roles",
        ]
        read_only_fields = fields

    def get_capabilities(self, obj) -> list[str]:
        return AccessService.capabilities_for(obj.role)

    def get_creatable_roles(self, obj) -> list[str]:
        return AccessService.roles_creatable_by(obj.role)


class UserCreateSerializer(serializers.Serializer):
    """Input for creating a user. Role gating happens in UserService."""

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={"input_type": "password"})
    name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    role = serializers.ChoiceField(choices=Role.choices, default=Role.STUDENT)
    avatar_url = serializers.URLField(required=False, allow_blank=True, default="")


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)
