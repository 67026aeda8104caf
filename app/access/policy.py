"""
Cached snapshot of the role permission tables.

The resolver needs four small tables on every send. They are read into one
immutable RolePolicy, kept in the Django cache and dropped whenever any of
the underlying rows change (access.signals).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.core.cache import cache

from access.constants import POLICY_CONFIG, ROLE_SETTING_KEYS

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class RolePolicy:
    """
    Immutable view of ChatPermission, RolePermission and RoleSetting.

    Attributes:
        capabilities: role -> capability names granted to it
        table_restrictions: role -> ``can_chat_with`` from ChatPermission
        table_limits: role -> ``daily_message_limit`` (None is unlimited)
        setting_restrictions: role -> ``can_chat_with`` from RoleSetting,
            only for roles whose settings blob has that key
        setting_limits: role -> ``max_daily_messages`` from RoleSetting,
            only for roles whose settings blob has that key
    """

    capabilities: dict[str, frozenset[str]] = field(default_factory=dict)
    table_restrictions: dict[str, tuple[str, ...]] = field(default_factory=dict)
    table_limits: dict[str, int | None] = field(default_factory=dict)
    setting_restrictions: dict[str, tuple[str, ...]] = field(default_factory=dict)
    setting_limits: dict[str, int | None] = field(default_factory=dict)

    def has_capability(self, role: str, name: str) -> bool:
        return name in self.capabilities.get(role, frozenset())

    def capabilities_for(self, role: str) -> frozenset[str]:
        return self.capabilities.get(role, frozenset())

    def daily_limit_for(self, role: str) -> int | None:
        """
        Daily message limit for ``role``.

        A RoleSetting ``max_daily_messages`` wins when present (including an
        explicit null). Otherwise the ChatPermission value is used. A role
        with neither is unlimited.
        """
        if role in self.setting_limits:
            return self.setting_limits[role]
        return self.table_limits.get(role)


def build_policy() -> RolePolicy:
    """Read the permission tables into a fresh RolePolicy."""
    from access.models import ChatPermission, RolePermission, RoleSetting

    capabilities: dict[str, set[str]] = {}
    for role, name in RolePermission.objects.values_list("role", "permission__name"):
        capabilities.setdefault(role, set()).add(name)

    table_restrictions = {}
    table_limits = {}
    for row in ChatPermission.objects.all():
        table_restrictions[row.role] = tuple(row.can_chat_with or ())
        table_limits[row.role] = row.daily_message_limit

    setting_restrictions = {}
    setting_limits = {}
    chat_settings = RoleSetting.objects.filter(
        setting_key=ROLE_SETTING_KEYS.CHAT_RESTRICTIONS
    )
    for row in chat_settings:
        value = row.setting_value if isinstance(row.setting_value, dict) else {}
        allowed = value.get("can_chat_with", _MISSING)
        if isinstance(allowed, list):
            setting_restrictions[row.role] = tuple(allowed)
        if "max_daily_messages" in value:
            setting_limits[row.role] = value["max_daily_messages"]

    return RolePolicy(
        capabilities={role: frozenset(names) for role, names in capabilities.items()},
        table_restrictions=table_restrictions,
        table_limits=table_limits,
        setting_restrictions=setting_restrictions,
        setting_limits=setting_limits,
    )


def get_policy() -> RolePolicy:
    """Return the cached RolePolicy, rebuilding it on a miss."""
    policy = cache.get(POLICY_CONFIG.CACHE_KEY)
    if policy is None:
        policy = build_policy()
        cache.set(POLICY_CONFIG.CACHE_KEY, policy, timeout=POLICY_CONFIG.CACHE_TTL_SECONDS)
        logger.debug("Rebuilt role policy snapshot")
    return policy


def invalidate_policy() -> None:
    """Drop the cached snapshot; the next read rebuilds it."""
    cache.delete(POLICY_CONFIG.CACHE_KEY)
