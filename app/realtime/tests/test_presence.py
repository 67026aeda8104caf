"""
Tests for PresenceService.

Features tested:
- Online/offline transitions write is_online and last_seen
- user_status_changed is published only when is_online flips
- Heartbeats refresh last_seen and revive expired users
- Stale users are expired after the grace period

Design Decisions:
- Presence lives on the User row; PresenceService is its only writer
- Transitions are update-if-matches writes, so racing sockets publish once
"""

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone
from freezegun import freeze_time

from accounts.models import User
from realtime.constants import ALL_USERS_GROUP, EVENTS
from realtime.presence import PresenceService


def reload(user):
    return User.objects.get(id=user.id)


class TestSetOnline:
    def test_offline_user_goes_online(self, student, broadcaster):
        result = PresenceService.set_online(student.id)

        assert result.success is True
        assert result.data["is_online"] is True
        assert reload(student).is_online is True
        assert reload(student).last_seen is not None

    def test_publishes_to_all_users(self, student, broadcaster):
        PresenceService.set_online(student.id)

        [(event, scope, payload)] = broadcaster.events(EVENTS.USER_STATUS_CHANGED)
        assert scope.group_name == ALL_USERS_GROUP
        assert payload["user_id"] == str(student.id)
        assert payload["is_online"] is True

    def test_already_online_publishes_nothing(self, student, broadcaster):
        """
        Why it matters: a second tab connecting must not re-announce the
        user to everyone.
        """
        PresenceService.set_online(student.id)
        PresenceService.set_online(student.id)

        assert len(broadcaster.events(EVENTS.USER_STATUS_CHANGED)) == 1

    def test_unknown_user(self, db, broadcaster):
        result = PresenceService.set_online(uuid.uuid4())

        assert result.error_code == "NOT_FOUND"
        assert broadcaster.events() == []


class TestSetOffline:
    def test_online_user_goes_offline(self, student, broadcaster):
        PresenceService.set_online(student.id)

        result = PresenceService.set_offline(student.id)

        assert result.data["is_online"] is False
        assert reload(student).is_online is False
        assert [p["is_online"] for p in broadcaster.payloads(EVENTS.USER_STATUS_CHANGED)] == [
            True,
            False,
        ]

    def test_offline_user_stays_quiet(self, student, broadcaster):
        PresenceService.set_offline(student.id)

        assert broadcaster.events() == []

    def test_last_seen_updated_on_offline(self, student, broadcaster):
        with freeze_time("2026-03-10 08:00:00"):
            PresenceService.set_online(student.id)
        with freeze_time("2026-03-10 09:30:00"):
            PresenceService.set_offline(student.id)

        assert reload(student).last_seen.hour == 9


class TestHeartbeat:
    def test_online_user_refreshes_last_seen_silently(self, student, broadcaster):
        with freeze_time("2026-03-10 08:00:00"):
            PresenceService.set_online(student.id)
        broadcaster.reset()

        with freeze_time("2026-03-10 08:00:30"):
            result = PresenceService.heartbeat(student.id)

        assert result.data["is_online"] is True
        assert reload(student).last_seen.second == 30
        assert broadcaster.events() == []

    def test_heartbeat_revives_offline_user(self, student, broadcaster):
        result = PresenceService.heartbeat(student.id)

        assert result.data["is_online"] is True
        assert len(broadcaster.events(EVENTS.USER_STATUS_CHANGED)) == 1

    def test_unknown_user(self, db, broadcaster):
        assert PresenceService.heartbeat(uuid.uuid4()).error_code == "NOT_FOUND"


class TestExpireStale:
    def test_expires_users_past_grace(self, student, other_student, broadcaster):
        now = timezone.now()
        User.objects.filter(id=student.id).update(
            is_online=True, last_seen=now - timedelta(seconds=120)
        )
        User.objects.filter(id=other_student.id).update(
            is_online=True, last_seen=now - timedelta(seconds=10)
        )

        expired = PresenceService.expire_stale(grace_seconds=90, now=now)

        assert expired == 1
        assert reload(student).is_online is False
        assert reload(other_student).is_online is True
        [payload] = broadcaster.payloads(EVENTS.USER_STATUS_CHANGED)
        assert payload["user_id"] == str(student.id)

    def test_online_without_last_seen_is_stale(self, student, broadcaster):
        User.objects.filter(id=student.id).update(is_online=True, last_seen=None)

        assert PresenceService.expire_stale() == 1

    def test_offline_users_are_ignored(self, student, broadcaster):
        User.objects.filter(id=student.id).update(
            is_online=False, last_seen=timezone.now() - timedelta(days=3)
        )

        assert PresenceService.expire_stale() == 0
        assert broadcaster.events() == []

    @pytest.mark.parametrize("age_seconds, expected", [(89, 0), (91, 1)])
    def test_grace_boundary(self, student, broadcaster, age_seconds, expected):
        now = timezone.now()
        User.objects.filter(id=student.id).update(
            is_online=True, last_seen=now - timedelta(seconds=age_seconds)
        )

        assert PresenceService.expire_stale(grace_seconds=90, now=now) == expected
