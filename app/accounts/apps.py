"""
Accounts application configuration.

This app provides the User model (email login, chat role, presence fields)
and role-gated user management.
"""

from django.apps import AppConfig


class AccountsConfig(AppConfig):
    """Configuration for the accounts application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "accounts"
    verbose_name = "Accounts"
