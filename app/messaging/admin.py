"""
Django admin configuration for messaging models.
"""

from django.contrib import admin

from messaging.models import Conversation, Group, GroupMembership, Message, MessageRead


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ["id", "participant_1", "participant_2", "last_message_at", "created_at"]
    raw_id_fields = ["participant_1", "participant_2"]
    readonly_fields = ["last_message_at"]


class GroupMembershipInline(admin.TabularInline):
    model = GroupMembership
    raw_id_fields = ["user"]
    extra = 0


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    list_display = ["name", "created_by", "created_at"]
    search_fields = ["name"]
    raw_id_fields = ["created_by"]
    inlines = [GroupMembershipInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ["id", "sender", "message_type", "conversation", "group", "is_read", "created_at"]
    list_filter = ["message_type", "is_read"]
    search_fields = ["content"]
    raw_id_fields = ["sender", "conversation", "group"]


@admin.register(MessageRead)
class MessageReadAdmin(admin.ModelAdmin):
    list_display = ["message", "user", "read_at"]
    raw_id_fields = ["message", "user"]
