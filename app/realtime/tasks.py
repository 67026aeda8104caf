"""
Celery tasks for presence.

Scheduled via django-celery-beat (see migrations/0001_presence_expiry_schedule.py).

Usage:
    from realtime.tasks import expire_stale_presence

    expire_stale_presence.delay()
"""

import logging

from celery import shared_task

from realtime.constants import PRESENCE_CONFIG
from realtime.presence import PresenceService

logger = logging.getLogger(__name__)


@shared_task
def expire_stale_presence(grace_seconds: int = PRESENCE_CONFIG.GRACE_PERIOD_SECONDS) -> dict:
    """
    Periodic task: mark users offline whose heartbeats stopped.

    A socket that dies without a close frame never triggers set_offline, so
    users who have not sent a heartbeat within ``grace_seconds`` are expired.

    Returns:
        Dict with count of users expired
    """
    expired = PresenceService.expire_stale(grace_seconds=grace_seconds)
    logger.info(f"Presence expiry run finished, expired={expired}")
    return {"expired": expired}
