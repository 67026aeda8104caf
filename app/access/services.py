"""
Access service layer.

Binds the pure resolver (access.resolver) to the cached role policy
(access.policy) and owns every mutation of the permission tables.

Services:
    AccessService: Communication checks, capability checks, role-gated
        user creation rules and administration of the permission tables

Usage:
    from access.services import AccessService

    if not AccessService.can_communicate(sender, recipient):
        ...

    AccessService.daily_limit_for("student")  # 50 with default seeds

    result = AccessService.update_chat_permission(
        actor=super_admin, role="student", can_chat_with=["teacher", "admin"]
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService, ServiceResult

from access.constants import (
    CAPABILITIES,
    CREATABLE_ROLES_DEFAULT,
    CREATABLE_ROLES_WITH_GRANT,
    ROLE_ACTIONS,
    ROLE_SETTING_KEYS,
)
from access.models import ChatPermission, Permission, RolePermission, RoleSetting
from access.policy import get_policy
from access.resolver import build_chain, resolve
from access.roles import invalid_roles, is_valid_role

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from accounts.models import User


class AccessService(BaseService):
    """
    Service for role-based access decisions and permission administration.

    Methods:
        can_communicate: Whether one user may message another
        can_roles_communicate: Same decision on bare role values
        communicable_users: Users a viewer may message
        has_capability: Whether a role holds a capability grant
        can_perform_action: Capability grant, else static role/action table
        roles_creatable_by: Roles a role may create users with
        daily_limit_for: Effective daily message limit for a role
        update_chat_permission: Edit the static table for a role
        update_role_setting: Upsert a RoleSetting blob
        grant_capability / revoke_capability: Edit RolePermission
    """

    # =========================================================================
    # Decisions
    # =========================================================================

    @classmethod
    def can_roles_communicate(cls, sender_role: str, recipient_role: str) -> bool:
        """Decide from role values alone using the full precedence chain."""
        policy = get_policy()
        rules = build_chain(
            has_capability=lambda name: policy.has_capability(sender_role, name),
            settings_restrictions=policy.setting_restrictions.get(sender_role),
            table_restrictions=policy.table_restrictions.get(sender_role),
        )
        return resolve(sender_role, recipient_role, rules)

    @classmethod
    def can_communicate(cls, sender: User, recipient: User) -> bool:
        """
        Decide whether ``sender`` may message ``recipient``.

        The check runs from the sender's side only. Self-targets are not a
        role question and are rejected by the conversation resolver.
        """
        allowed = cls.can_roles_communicate(sender.role, recipient.role)
        if not allowed:
            cls.get_logger().info(
                f"Denied {sender.role} {sender.id} -> {recipient.role} {recipient.id}"
            )
        return allowed

    @classmethod
    def communicable_roles(cls, viewer_role: str) -> list[str]:
        """Role values the viewer may message."""
        from access.roles import ALL_ROLES

        return [role for role in ALL_ROLES if cls.can_roles_communicate(viewer_role, role)]

    @classmethod
    def communicable_users(cls, viewer: User) -> QuerySet[User]:
        """Active users other than ``viewer`` whose role the viewer may message."""
        from accounts.models import User

        return (
            User.objects.filter(
                is_active=True,
                role__in=cls.communicable_roles(viewer.role),
            )
            .exclude(id=viewer.id)
            .order_by("name", "email")
        )

    @classmethod
    def has_capability(cls, role: str, name: str) -> bool:
        return get_policy().has_capability(role, name)

    @classmethod
    def capabilities_for(cls, role: str) -> list[str]:
        return sorted(get_policy().capabilities_for(role))

    @classmethod
    def can_perform_action(cls, role: str, action: str) -> bool:
        """A capability grant for ``action`` wins; otherwise use ROLE_ACTIONS."""
        if cls.has_capability(role, action):
            return True
        return role in ROLE_ACTIONS.get(action, ())

    @classmethod
    def roles_creatable_by(cls, role: str) -> list[str]:
        """Roles a user of ``role`` may assign when creating a user."""
        if cls.has_capability(role, CAPABILITIES.CREATE_USERS):
            return list(CREATABLE_ROLES_WITH_GRANT.get(role, ()))
        return list(CREATABLE_ROLES_DEFAULT.get(role, ()))

    @classmethod
    def daily_limit_for(cls, role: str) -> int | None:
        """Effective daily message limit for ``role``; None is unlimited."""
        return get_policy().daily_limit_for(role)

    # =========================================================================
    # Administration
    # =========================================================================

    @classmethod
    def _require_role_admin(cls, actor: User) -> ServiceResult | None:
        if cls.can_perform_action(actor.role, CAPABILITIES.MODIFY_USER_ROLES):
            return None
        return ServiceResult.failure(
            "You are not allowed to change role permissions",
            error_code="PERMISSION_DENIED",
            details={"actor_role": actor.role},
        )

    @classmethod
    def update_chat_permission(
        cls,
        actor: User,
        role: str,
        can_chat_with: list[str] | None = None,
        daily_message_limit: int | None = None,
        clear_limit: bool = False,
    ) -> ServiceResult[ChatPermission]:
        """
        Update the static chat table row for ``role``.

        Args:
            actor: User performing the change (needs modify_user_roles)
            role: Role whose row is updated (created if missing)
            can_chat_with: New allowed list; None leaves it unchanged
            daily_message_limit: New positive limit; None leaves it unchanged
            clear_limit: Set the limit to unlimited

        Error codes:
            PERMISSION_DENIED: Actor may not change role permissions
            VALIDATION_ERROR: Unknown role values or non-positive limit
        """
        denied = cls._require_role_admin(actor)
        if denied:
            return denied

        errors = {}
        if not is_valid_role(role):
            errors["role"] = [f"Unknown role: {role}"]
        if can_chat_with is not None and invalid_roles(can_chat_with):
            errors["can_chat_with"] = [
                f"Unknown roles: {', '.join(map(str, invalid_roles(can_chat_with)))}"
            ]
        if daily_message_limit is not None and daily_message_limit < 1:
            errors["daily_message_limit"] = ["Must be a positive integer."]
        if errors:
            return ServiceResult.failure(
                "Invalid chat permission",
                error_code="VALIDATION_ERROR",
                errors=errors,
            )

        with cls.atomic():
            row, _ = ChatPermission.objects.select_for_update().get_or_create(role=role)
            if can_chat_with is not None:
                row.can_chat_with = list(dict.fromkeys(can_chat_with))
            if clear_limit:
                row.daily_message_limit = None
            elif daily_message_limit is not None:
                row.daily_message_limit = daily_message_limit
            row.save()

        cls.get_logger().info(
            f"User {actor.id} updated chat permission for {role}: "
            f"can_chat_with={row.can_chat_with} limit={row.daily_message_limit}"
        )
        return ServiceResult.success(row)

    @classmethod
    def update_role_setting(
        cls,
        actor: User,
        role: str,
        setting_key: str,
        setting_value: dict,
    ) -> ServiceResult[RoleSetting]:
        """
        Create or replace the settings blob ``setting_key`` for ``role``.

        ``chat_restrictions`` blobs are validated: ``can_chat_with`` must be a
        list of roles and ``max_daily_messages`` a positive integer or null.
        """
        denied = cls._require_role_admin(actor)
        if denied:
            return denied

        errors = {}
        if not is_valid_role(role):
            errors["role"] = [f"Unknown role: {role}"]
        if not isinstance(setting_value, dict):
            errors["setting_value"] = ["Must be an object."]
        elif setting_key == ROLE_SETTING_KEYS.CHAT_RESTRICTIONS:
            errors.update(cls._validate_chat_restrictions(setting_value))
        if errors:
            return ServiceResult.failure(
                "Invalid role setting",
                error_code="VALIDATION_ERROR",
                errors=errors,
            )

        setting, _ = RoleSetting.objects.update_or_create(
            role=role,
            setting_key=setting_key,
            defaults={"setting_value": setting_value, "created_by": actor},
        )
        cls.get_logger().info(f"User {actor.id} set {role}:{setting_key}")
        return ServiceResult.success(setting)

    @staticmethod
    def _validate_chat_restrictions(value: dict) -> dict[str, list[str]]:
        errors = {}
        if "can_chat_with" in value:
            allowed = value["can_chat_with"]
            if not isinstance(allowed, list) or invalid_roles(allowed):
                errors["can_chat_with"] = ["Must be a list of valid roles."]
        if "max_daily_messages" in value:
            limit = value["max_daily_messages"]
            if limit is not None and (
                isinstance(limit, bool) or not isinstance(limit, int) or limit < 1
            ):
                errors["max_daily_messages"] = ["Must be a positive integer or null."]
        return errors

    @classmethod
    def grant_capability(
        cls, actor: User, role: str, name: str
    ) -> ServiceResult[RolePermission]:
        """Grant capability ``name`` to ``role`` (idempotent)."""
        denied = cls._require_role_admin(actor)
        if denied:
            return denied
        if not is_valid_role(role):
            return ServiceResult.failure(
                f"Unknown role: {role}", error_code="VALIDATION_ERROR"
            )

        permission = Permission.objects.filter(name=name).first()
        if permission is None:
            return ServiceResult.failure(
                f"Unknown capability: {name}",
                error_code="NOT_FOUND",
                details={"capability": name},
            )

        grant, created = RolePermission.objects.get_or_create(
            role=role,
            permission=permission,
            defaults={"granted_by": actor},
        )
        if created:
            cls.get_logger().info(f"User {actor.id} granted {name} to {role}")
        return ServiceResult.success(grant)

    @classmethod
    def revoke_capability(cls, actor: User, role: str, name: str) -> ServiceResult[None]:
        """Revoke capability ``name`` from ``role`` (no-op when not granted)."""
        denied = cls._require_role_admin(actor)
        if denied:
            return denied

        RolePermission.objects.filter(role=role, permission__name=name).delete()
        cls.get_logger().info(f"User {actor.id} revoked {name} from {role}")
        return ServiceResult.success(None)
