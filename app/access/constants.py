"""
Constants for role permissions, capabilities and role settings.

Import example:
    from access.constants import CAPABILITIES, ROLE_ACTIONS, POLICY_CONFIG
"""

from typing import Final


# =============================================================================
# Capabilities
# =============================================================================


class CAPABILITIES:
    """Names of grantable capabilities (rows of the Permission catalog)."""

    CHAT_WITH_ANY_ROLE: Final[str] = "chat_with_any_role"
    CHAT_CROSS_HIERARCHY: Final[str] = "chat_cross_hierarchy"
    BROADCAST_MESSAGES: Final[str] = "broadcast_messages"
    CREATE_USERS: Final[str] = "create_users"
    MANAGE_LOWER_ROLES: Final[str] = "manage_lower_roles"
    VIEW_ALL_CONVERSATIONS: Final[str] = "view_all_conversations"
    MODIFY_USER_ROLES: Final[str] = "modify_user_roles"
    ACCESS_ADMIN_PANEL: Final[str] = "access_admin_panel"
    DELETE_MESSAGES: Final[str] = "delete_messages"
    BAN_USERS: Final[str] = "ban_users"


# (name, category, description); seeded by migration 0002
PERMISSION_CATALOG: Final[tuple[tuple[str, str, str], ...]] = (
    ("chat_with_any_role", "communication", "Can chat with users of any role"),
    ("chat_cross_hierarchy", "communication", "Can chat across role hierarchy levels"),
    ("create_users", "user_management", "Can create new users"),
    ("manage_lower_roles", "user_management", "Can manage users of lower roles"),
    ("view_all_conversations", "administration", "Can view all conversations in the system"),
    ("delete_messages", "moderation", "Can delete messages"),
    ("ban_users", "moderation", "Can ban or suspend users"),
    ("modify_user_roles", "administration", "Can modify user roles"),
    ("access_admin_panel", "administration", "Can access administrative panel"),
    ("broadcast_messages", "communication", "Can send broadcast messages to all users"),
)


# =============================================================================
# Role defaults
# =============================================================================

# Static fallback when no capability grant exists for an action
ROLE_ACTIONS: Final[dict[str, tuple[str, ...]]] = {
    "create_users": ("super_admin", "admin", "teacher"),
    "manage_lower_roles": ("super_admin", "admin"),
    "access_admin_panel": ("super_admin", "admin"),
    "delete_messages": ("super_admin", "admin"),
    "ban_users": ("super_admin", "admin"),
    "modify_user_roles": ("super_admin",),
    "view_all_conversations": ("super_admin", "admin"),
    "broadcast_messages": ("super_admin", "admin"),
}

# Roles each role may create, depending on whether it holds create_users
CREATABLE_ROLES_WITH_GRANT: Final[dict[str, tuple[str, ...]]] = {
    "super_admin": ("super_admin", "admin", "teacher", "student"),
    "admin": ("teacher", "student"),
    "teacher": ("student",),
    "student": (),
}
CREATABLE_ROLES_DEFAULT: Final[dict[str, tuple[str, ...]]] = {
    "super_admin": ("admin", "teacher", "student"),
    "admin": ("teacher", "student"),
    "teacher": ("student",),
    "student": (),
}

# (role, can_chat_with, daily_message_limit); None means unlimited
DEFAULT_CHAT_PERMISSIONS: Final[tuple[tuple[str, tuple[str, ...], int | None], ...]] = (
    ("super_admin", ("super_admin", "admin", "teacher", "student"), None),
    ("admin", ("super_admin", "admin", "teacher", "student"), 500),
    ("teacher", ("admin", "teacher", "student"), 200),
    ("student", ("teacher",), 50),
)


# =============================================================================
# Role settings
# =============================================================================


class ROLE_SETTING_KEYS:
    """Known RoleSetting keys."""

    CHAT_RESTRICTIONS: Final[str] = "chat_restrictions"


# =============================================================================
# Policy cache
# =============================================================================


class POLICY_CONFIG:
    """Caching of the role policy snapshot."""

    CACHE_KEY: Final[str] = "access:role_policy"
    CACHE_TTL_SECONDS: Final[int] = 300
