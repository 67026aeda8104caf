"""
Role permission models.

Models:
    ChatPermission: Static per-role chat table (who a role may message, daily limit)
    Permission: Capability catalog entry
    RolePermission: Capability granted to a role
    RoleSetting: Arbitrary per-role settings blob, e.g. chat restriction overrides

Precedence when deciding whether two roles may communicate:
    capability grant > RoleSetting override > ChatPermission > hierarchy default

These tables are read-mostly. Every write invalidates the cached policy
snapshot (see access.signals).
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from core.models import BaseModel, UUIDPrimaryKeyMixin

from access.roles import Role, invalid_roles


def validate_role_list(value) -> None:
    """Validate that ``value`` is a list of known role values."""
    if not isinstance(value, list):
        raise ValidationError("Expected a list of roles.")
    bad = invalid_roles(value)
    if bad:
        raise ValidationError(f"Unknown roles: {', '.join(map(str, bad))}")


class PermissionCategory(models.TextChoices):
    """Grouping of capabilities in the catalog."""

    COMMUNICATION = "communication", "Communication"
    USER_MANAGEMENT = "user_management", "User Management"
    ADMINISTRATION = "administration", "Administration"
    MODERATION = "moderation", "Moderation"


class ChatPermission(UUIDPrimaryKeyMixin, BaseModel):
    """
    Static chat permissions for one role.

    Fields:
        role: The role this row configures (exactly one row per role)
        can_chat_with: List of role values this role may message
        daily_message_limit: Messages per day; NULL means unlimited
    """

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        unique=True,
        help_text="Role this row configures",
    )
    can_chat_with = models.JSONField(
        default=list,
        blank=True,
        validators=[validate_role_list],
        help_text="Roles this role may message",
    )
    daily_message_limit = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Messages per day (null for unlimited)",
    )

    class Meta:
        db_table = "access_chat_permission"
        ordering = ["role"]

    def __str__(self) -> str:
        limit = "unlimited" if self.daily_message_limit is None else self.daily_message_limit
        return f"ChatPermission({self.role}, {limit}/day)"


class Permission(UUIDPrimaryKeyMixin, BaseModel):
    """A named capability that can be granted to roles."""

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True, default="")
    category = models.CharField(
        max_length=30,
        choices=PermissionCategory.choices,
        db_index=True,
    )

    class Meta:
        db_table = "access_permission"
        ordering = ["category", "name"]

    def __str__(self) -> str:
        return self.name


class RolePermission(UUIDPrimaryKeyMixin, BaseModel):
    """Grant of a capability to a role."""

    role = models.CharField(max_length=20, choices=Role.choices, db_index=True)
    permission = models.ForeignKey(
        Permission,
        on_delete=models.CASCADE,
        related_name="grants",
    )
    granted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "access_role_permission"
        constraints = [
            models.UniqueConstraint(
                fields=["role", "permission"],
                name="unique_role_permission",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.role}:{self.permission_id}"


class RoleSetting(UUIDPrimaryKeyMixin, BaseModel):
    """
    Arbitrary settings blob for a role.

    The ``chat_restrictions`` key holds
    ``{"can_chat_with": [...], "max_daily_messages": int | None}``. Each inner
    key overrides the ChatPermission table only when it is present.
    """

    role = models.CharField(max_length=20, choices=Role.choices, db_index=True)
    setting_key = models.CharField(max_length=100)
    setting_value = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "access_role_setting"
        constraints = [
            models.UniqueConstraint(
                fields=["role", "setting_key"],
                name="unique_role_setting_key",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.role}:{self.setting_key}"
