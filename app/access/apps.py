"""
Access application configuration.

This app provides role-based chat permissions:
- The pure communication resolver
- Static per-role chat table and daily limits
- Capability catalog and grants
- Per-role settings overrides
"""

from django.apps import AppConfig


class AccessConfig(AppConfig):
    """Configuration for the access application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "access"
    verbose_name = "Access Control"

    def ready(self):
        """Connect cache invalidation handlers."""
        import access.signals  # noqa: F401
