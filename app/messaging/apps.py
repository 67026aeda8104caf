"""
Messaging application configuration.

This app provides:
- One-to-one conversations between a canonical user pair
- Groups with admin/member memberships
- Messages with read receipts
- The daily message quota and the send pipeline
"""

from django.apps import AppConfig


class MessagingConfig(AppConfig):
    """Configuration for the messaging application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "messaging"
    verbose_name = "Messaging"
