"""
Serializers for the messaging API.

Output:
    MessageSerializer: Message with sender public profile and read receipts
    ConversationSerializer: Conversation seen from one participant
    GroupSerializer / GroupDetailSerializer: Group, optionally with members
    QuotaStatusSerializer: Daily quota

Input:
    MessageSendSerializer, ConversationOpenSerializer, GroupCreateSerializer,
    GroupMemberAddSerializer

Content and target rules are enforced by MessageService, so the input
serializers only check types.
"""

from rest_framework import serializers

from accounts.serializers import PublicUserSerializer
from messaging.models import Conversation, Group, GroupMembership, Message, MessageRead, MessageType


class MessageReadSerializer(serializers.ModelSerializer):
    user_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = MessageRead
        fields = ["user_id", "read_at"]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    """Message as delivered to clients, sender profile attached."""

    sender_id = serializers.UUIDField(read_only=True)
    sender = PublicUserSerializer(read_only=True)
    conversation_id = serializers.UUIDField(read_only=True, allow_null=True)
    group_id = serializers.UUIDField(read_only=True, allow_null=True)
    read_by = MessageReadSerializer(source="reads", many=True, read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "sender_id",
            "sender",
            "content",
            "message_type",
            "conversation_id",
            "group_id",
            "is_read",
            "read_by",
            "created_at",
        ]
        read_only_fields = fields


class MessageSendSerializer(serializers.Serializer):
    """Wire input for sending: ``{content, message_type, recipient_id? | conversation_id?, group_id?}``."""

    content = serializers.CharField(allow_blank=True, trim_whitespace=False)
    message_type = serializers.ChoiceField(choices=MessageType.choices)
    recipient_id = serializers.UUIDField(required=False, allow_null=True)
    conversation_id = serializers.UUIDField(required=False, allow_null=True)
    group_id = serializers.UUIDField(required=False, allow_null=True)


class ConversationSerializer(serializers.ModelSerializer):
    """
    Conversation from the requesting user's side.

    ``other_user`` is the participant that is not the requester.
    """

    other_user = serializers.SerializerMethodField()
    last_message = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = ["id", "other_user", "last_message", "last_message_at", "created_at"]
        read_only_fields = fields

    def get_other_user(self, obj) -> dict:
        user = self.context["request"].user
        return PublicUserSerializer(obj.other_participant(user)).data

    def get_last_message(self, obj) -> dict | None:
        message = (
            obj.messages.select_related("sender").order_by("-created_at", "-id").first()
        )
        if message is None:
            return None
        return MessageSerializer(message).data


class ConversationOpenSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()


class GroupMembershipSerializer(serializers.ModelSerializer):
    user = PublicUserSerializer(read_only=True)

    class Meta:
        model = GroupMembership
        fields = ["user", "role", "joined_at"]
        read_only_fields = fields


class GroupSerializer(serializers.ModelSerializer):
    member_count = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = [
            "id",
            "name",
            "description",
            "avatar_url",
            "created_by",
            "member_count",
            "created_at",
        ]
        read_only_fields = fields

    def get_member_count(self, obj) -> int:
        return obj.memberships.count()


class GroupDetailSerializer(GroupSerializer):
    members = GroupMembershipSerializer(source="memberships", many=True, read_only=True)

    class Meta(GroupSerializer.Meta):
        fields = [*GroupSerializer.Meta.fields, "members"]
        read_only_fields = fields


class GroupCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    avatar_url = serializers.URLField(required=False, allow_blank=True, default="")
    member_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)


class GroupMemberAddSerializer(serializers.Serializer):
    user_id = serializers.UUIDField()


class QuotaStatusSerializer(serializers.Serializer):
    limit = serializers.IntegerField(allow_null=True)
    used = serializers.IntegerField()
    remaining = serializers.IntegerField(allow_null=True)
