"""
Serializers for the access API.
"""

from rest_framework import serializers

from access.models import ChatPermission, RolePermission, RoleSetting
from access.roles import Role


class ChatPermissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = ChatPermission
        fields = ["role", "can_chat_with", "daily_message_limit", "updated_at"]
        read_only_fields = fields


class ChatPermissionUpdateSerializer(serializers.Serializer):
    """
    Partial update of a role's chat row.

    Send ``daily_message_limit: null`` to make the role unlimited.
    """

    can_chat_with = serializers.ListField(
        child=serializers.ChoiceField(choices=Role.choices),
        required=False,
    )
    daily_message_limit = serializers.IntegerField(
        min_value=1,
        required=False,
        allow_null=True,
    )


class RoleSettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = RoleSetting
        fields = ["role", "setting_key", "setting_value", "updated_at"]
        read_only_fields = ["role", "setting_key", "updated_at"]


class CapabilityGrantSerializer(serializers.ModelSerializer):
    capability = serializers.CharField(source="permission.name", read_only=True)
    category = serializers.CharField(source="permission.category", read_only=True)

    class Meta:
        model = RolePermission
        fields = ["role", "capability", "category", "created_at"]
        read_only_fields = fields


class CapabilityChangeSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices)
    capability = serializers.CharField(max_length=100)
