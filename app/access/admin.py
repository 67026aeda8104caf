"""
Django admin configuration for access models.

Edits made here go through the model signals, so the cached role policy is
invalidated the same way as API edits.
"""

from django.contrib import admin

from access.models import ChatPermission, Permission, RolePermission, RoleSetting


@admin.register(ChatPermission)
class ChatPermissionAdmin(admin.ModelAdmin):
    list_display = ["role", "can_chat_with", "daily_message_limit", "updated_at"]
    ordering = ["role"]


@admin.register(Permission)
class PermissionAdmin(admin.ModelAdmin):
    list_display = ["name", "category", "description"]
    list_filter = ["category"]
    search_fields = ["name"]


@admin.register(RolePermission)
class RolePermissionAdmin(admin.ModelAdmin):
    list_display = ["role", "permission", "granted_by", "created_at"]
    list_filter = ["role"]
    raw_id_fields = ["granted_by"]


@admin.register(RoleSetting)
class RoleSettingAdmin(admin.ModelAdmin):
    list_display = ["role", "setting_key", "updated_at"]
    list_filter = ["role", "setting_key"]
    raw_id_fields = ["created_by"]
