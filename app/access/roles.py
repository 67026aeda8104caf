"""
Role vocabulary and hierarchy.

The four roles are a closed set. Their numeric levels drive the hierarchy
fallback of the communication resolver and the "lower role" checks used by
user management.

This module has no model definitions so it can be imported before the app
registry is ready (accounts.models and the pure resolver both use it).
"""

from __future__ import annotations

from typing import Final

from django.db import models


class Role(models.TextChoices):
    """User role, highest first."""

    SUPER_ADMIN = "super_admin", "Super Admin"
    ADMIN = "admin", "Admin"
    TEACHER = "teacher", "Teacher"
    STUDENT = "student", "Student"


ROLE_LEVELS: Final[dict[str, int]] = {
    Role.SUPER_ADMIN.value: 4,
    Role.ADMIN.value: 3,
    Role.TEACHER.value: 2,
    Role.STUDENT.value: 1,
}

ALL_ROLES: Final[tuple[str, ...]] = tuple(ROLE_LEVELS)


def is_valid_role(role) -> bool:
    """Check whether ``role`` is one of the four known role values."""
    return isinstance(role, str) and role in ROLE_LEVELS


def role_level(role: str) -> int | None:
    """Numeric level of ``role``, or None if the role is unknown."""
    return ROLE_LEVELS.get(role) if is_valid_role(role) else None


def is_lower_role(role: str, than: str) -> bool:
    """True when ``role`` sits strictly below ``than`` in the hierarchy."""
    level, other = role_level(role), role_level(than)
    if level is None or other is None:
        return False
    return level < other


def invalid_roles(roles) -> list:
    """Return the entries of ``roles`` that are not valid role values."""
    return [role for role in roles if not is_valid_role(role)]
