"""
Account models.

This module defines the User model: an email-identified account with a chat
role and presence state.

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: UserService (role-gated creation, deletion)
    - realtime/presence.py: The only writer of is_online/last_seen

Lifecycle:
    Users are created by an authorized creator whose role may assign the new
    user's role (see AccessService.roles_creatable_by). Presence is mutated
    on connect/heartbeat/disconnect/logout. Deletion is an explicit admin
    action.
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from core.models import UUIDPrimaryKeyMixin

from access.roles import Role
from accounts.managers import UserManager

# Fields exposed to other users (message sender profile, user directory)
PUBLIC_PROFILE_FIELDS = ("id", "name", "role", "avatar_url", "is_online", "last_seen")


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Chat user identified by email.

    Fields:
        email: Primary identifier, unique, used for login
        name: Display name
        role: One of super_admin, admin, teacher, student
        avatar_url: Optional avatar reference
        is_online: Presence flag, owned by PresenceService
        last_seen: Time of the last presence transition or heartbeat
        created_by: User who created this account (null for seeds/superusers)
        is_active: Whether the account may log in
        is_staff: Whether the user can access Django admin
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    name = models.CharField(max_length=150, blank=True, default="")
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.STUDENT,
        db_index=True,
    )
    avatar_url = models.URLField(max_length=500, blank=True, default="")

    is_online = models.BooleanField(default=False, db_index=True)
    last_seen = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_users",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["name", "email"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.name or self.email

    def get_short_name(self):
        return self.name.split(" ")[0] if self.name else self.email.split("@")[0]

    def public_profile(self) -> dict:
        """Fields safe to show other users, JSON-ready."""
        return {
            "id": str(self.id),
            "name": self.name,
            "role": self.role,
            "avatar_url": self.avatar_url,
            "is_online": self.is_online,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
        }
