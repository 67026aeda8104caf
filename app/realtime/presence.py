"""
Presence tracking.

PresenceService is the only writer of User.is_online and User.last_seen.
Every online/offline transition is an update-if-matches write, so two
sockets racing to flip the same user produce one transition and one
``user_status_changed`` event.

Triggers:
    set_online: socket connect, ``user_online`` socket event, REST online
    heartbeat: ``heartbeat`` socket event, REST heartbeat
    set_offline: socket disconnect, ``user_offline`` (page hidden/unload),
        logout
    expire_stale: Celery beat, for users whose heartbeats stopped without a
        clean disconnect

Usage:
    from realtime.presence import PresenceService

    PresenceService.set_online(user.id)
    PresenceService.heartbeat(user.id)
    PresenceService.set_offline(user.id)
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from django.db.models import Q
from django.utils import timezone

from core.services import BaseService, ServiceResult

from accounts.models import User
from realtime.broadcaster import Scope, get_broadcaster, publish_safely
from realtime.constants import EVENTS, PRESENCE_CONFIG

if TYPE_CHECKING:
    from realtime.broadcaster import Broadcaster


def status_payload(user_id, is_online: bool, last_seen: datetime | None) -> dict[str, Any]:
    return {
        "user_id": str(user_id),
        "is_online": is_online,
        "last_seen": last_seen.isoformat() if last_seen else None,
    }


class PresenceService(BaseService):
    """
    Service for user online/offline state.

    Methods:
        set_online: Mark a user online
        set_offline: Mark a user offline
        heartbeat: Refresh last_seen, flipping offline users back online
        expire_stale: Mark users offline whose last heartbeat is too old

    Each method returns the user's current status payload
    ``{user_id, is_online, last_seen}``. ``user_status_changed`` is published
    to all connected sockets only when ``is_online`` actually flips.
    """

    @classmethod
    def set_online(
        cls, user_id, broadcaster: Broadcaster | None = None
    ) -> ServiceResult[dict]:
        return cls._transition(user_id, online=True, broadcaster=broadcaster)

    @classmethod
    def set_offline(
        cls, user_id, broadcaster: Broadcaster | None = None
    ) -> ServiceResult[dict]:
        return cls._transition(user_id, online=False, broadcaster=broadcaster)

    @classmethod
    def heartbeat(
        cls, user_id, broadcaster: Broadcaster | None = None
    ) -> ServiceResult[dict]:
        """
        Record a heartbeat.

        Refreshes ``last_seen`` for a user who is already online without
        publishing anything. A heartbeat from an offline user (for example
        one expired by expire_stale) is a transition back online.
        """
        now = timezone.now()
        refreshed = User.objects.filter(id=user_id, is_online=True).update(last_seen=now)
        if refreshed:
            return ServiceResult.success(status_payload(user_id, True, now))
        return cls._transition(user_id, online=True, broadcaster=broadcaster, now=now)

    @classmethod
    def _transition(
        cls,
        user_id,
        online: bool,
        broadcaster: Broadcaster | None = None,
        now: datetime | None = None,
    ) -> ServiceResult[dict]:
        now = now or timezone.now()

        changed = User.objects.filter(id=user_id, is_online=not online).update(
            is_online=online, last_seen=now
        )
        if not changed:
            # Already in the requested state: refresh last_seen only
            if not User.objects.filter(id=user_id).update(last_seen=now):
                return ServiceResult.failure(
                    "User not found",
                    error_code="NOT_FOUND",
                    details={"user_id": str(user_id)},
                )
            return ServiceResult.success(status_payload(user_id, online, now))

        payload = status_payload(user_id, online, now)
        cls.get_logger().info(f"User {user_id} is now {'online' if online else 'offline'}")
        publish_safely(
            broadcaster or get_broadcaster(),
            EVENTS.USER_STATUS_CHANGED,
            Scope.all_users(),
            payload,
        )
        return ServiceResult.success(payload)

    @classmethod
    def expire_stale(
        cls,
        grace_seconds: int = PRESENCE_CONFIG.GRACE_PERIOD_SECONDS,
        now: datetime | None = None,
        broadcaster: Broadcaster | None = None,
    ) -> int:
        """
        Mark online users offline when their last heartbeat is older than
        ``grace_seconds``.

        Returns:
            Number of users expired
        """
        now = now or timezone.now()
        cutoff = now - timedelta(seconds=grace_seconds)
        stale = Q(last_seen__lt=cutoff) | Q(last_seen__isnull=True)
        broadcaster = broadcaster or get_broadcaster()

        expired = 0
        candidate_ids = list(
            User.objects.filter(stale, is_online=True).values_list("id", flat=True)
        )
        for user_id in candidate_ids:
            # Re-check staleness in the write so a heartbeat that landed in
            # between keeps the user online
            changed = User.objects.filter(stale, id=user_id, is_online=True).update(
                is_online=False, last_seen=now
            )
            if not changed:
                continue
            expired += 1
            publish_safely(
                broadcaster,
                EVENTS.USER_STATUS_CHANGED,
                Scope.all_users(),
                status_payload(user_id, False, now),
            )

        if expired:
            cls.get_logger().info(f"Expired presence for {expired} stale users")
        return expired
