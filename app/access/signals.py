"""
Signal handlers for the access app.

Any write to the permission tables drops the cached RolePolicy so the next
decision reads fresh rows. Handlers are connected in AccessConfig.ready().

The cache is cleared twice: immediately, so the writing transaction sees
its own change, and again on commit, since a concurrent reader may have
rebuilt the snapshot from the old committed rows in between.
"""

import logging

from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from access.models import ChatPermission, Permission, RolePermission, RoleSetting
from access.policy import invalidate_policy

logger = logging.getLogger(__name__)


@receiver(post_save, sender=ChatPermission)
@receiver(post_delete, sender=ChatPermission)
@receiver(post_save, sender=Permission)
@receiver(post_delete, sender=Permission)
@receiver(post_save, sender=RolePermission)
@receiver(post_delete, sender=RolePermission)
@receiver(post_save, sender=RoleSetting)
@receiver(post_delete, sender=RoleSetting)
def invalidate_role_policy(sender, instance, **kwargs):
    """Drop the cached role policy after a permission table changes."""
    invalidate_policy()
    transaction.on_commit(invalidate_policy)
    logger.debug(f"Role policy invalidated by {sender.__name__} {instance.pk}")
