"""
Daily message quota.

Usage is derived from persisted messages: the number of messages a user sent
since local midnight. There is no separate counter that could drift from the
message table.

The pre-send check (can_send / remaining_quota) is advisory. The binding
check is QuotaTracker.consume, which runs inside the send transaction after
locking the sender's row, so two concurrent sends for the last slot are
serialized and only one of them is inserted.

Usage:
    from messaging.quota import QuotaTracker

    QuotaTracker.remaining_quota(user.id)   # None means unlimited
    QuotaTracker.can_send(user.id)

    with transaction.atomic():
        QuotaTracker.consume(user)           # raises QuotaExceededError
        Message.objects.create(...)
"""

from __future__ import annotations

import logging
from datetime import datetime

from django.utils import timezone

from core.exceptions import QuotaExceededError

from access.services import AccessService
from accounts.models import User
from messaging.models import Message

logger = logging.getLogger(__name__)


def start_of_day(as_of: datetime | None = None) -> datetime:
    """Midnight of ``as_of``'s day in the server time zone (TIME_ZONE)."""
    local = timezone.localtime(as_of or timezone.now())
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


class QuotaTracker:
    """
    Read-derived daily message quota.

    Methods:
        used_today: Messages sent by the user in the current day window
        remaining_quota: Remaining sends today, None if unlimited
        can_send: Whether one more send is allowed
        consume: Binding check inside the send transaction
    """

    @staticmethod
    def used_today(user_id, as_of: datetime | None = None) -> int:
        """
        Messages sent in [start of day, as_of).

        Without ``as_of`` the window runs from local midnight to now and
        includes messages stamped in the current instant.
        """
        messages = Message.objects.filter(
            sender_id=user_id,
            created_at__gte=start_of_day(as_of),
        )
        if as_of is not None:
            messages = messages.filter(created_at__lt=as_of)
        return messages.count()

    @classmethod
    def remaining_quota(
        cls, user_id, role: str | None = None, as_of: datetime | None = None
    ) -> int | None:
        """
        Remaining sends for the day containing ``as_of``.

        Args:
            user_id: Sender id
            role: Sender role; looked up when not given
            as_of: Point in time to evaluate (defaults to now)

        Returns:
            None for unlimited roles, otherwise a non-negative count.
            Unknown users have 0 remaining.
        """
        stored_role = User.objects.filter(id=user_id).values_list("role", flat=True).first()
        if stored_role is None:
            return 0
        if role is None:
            role = stored_role

        limit = AccessService.daily_limit_for(role)
        if limit is None:
            return None
        return max(limit - cls.used_today(user_id, as_of=as_of), 0)

    @classmethod
    def can_send(cls, user_id, role: str | None = None) -> bool:
        remaining = cls.remaining_quota(user_id, role=role)
        return remaining is None or remaining > 0

    @classmethod
    def consume(cls, user: User) -> None:
        """
        Re-check the quota for ``user`` under a row lock.

        Must be called inside ``transaction.atomic()`` before inserting the
        message. Holding the sender's row lock until commit serializes
        concurrent sends by the same user.

        Raises:
            QuotaExceededError: No sends left today; details carry the limit
        """
        User.objects.select_for_update().only("id").get(id=user.id)

        limit = AccessService.daily_limit_for(user.role)
        if limit is None:
            return

        used = cls.used_today(user.id)
        if used >= limit:
            logger.info(f"User {user.id} ({user.role}) hit daily limit {limit}")
            raise QuotaExceededError(
                f"Daily message limit of {limit} reached",
                details={"limit": limit, "used": used},
            )
