"""
Tests for realtime Celery tasks.

Tasks are called directly (synchronously); the beat schedule itself is
covered by the migration that installs it.
"""

from datetime import timedelta

from django.utils import timezone
from django_celery_beat.models import PeriodicTask

from accounts.models import User
from realtime.constants import EVENTS
from realtime.tasks import expire_stale_presence


class TestExpireStalePresence:
    def test_expires_and_reports_count(self, student, teacher, broadcaster):
        stale = timezone.now() - timedelta(minutes=5)
        User.objects.filter(id__in=[student.id, teacher.id]).update(is_online=True, last_seen=stale)

        result = expire_stale_presence()

        assert result == {"expired": 2}
        assert not User.objects.filter(is_online=True).exists()
        assert len(broadcaster.events(EVENTS.USER_STATUS_CHANGED)) == 2

    def test_custom_grace(self, student, broadcaster):
        User.objects.filter(id=student.id).update(
            is_online=True, last_seen=timezone.now() - timedelta(seconds=30)
        )

        assert expire_stale_presence(grace_seconds=60) == {"expired": 0}
        assert expire_stale_presence(grace_seconds=10) == {"expired": 1}

    def test_nothing_to_do(self, db, broadcaster):
        assert expire_stale_presence() == {"expired": 0}


class TestBeatSchedule:
    def test_schedule_installed_by_migration(self, db):
        task = PeriodicTask.objects.get(task="realtime.tasks.expire_stale_presence")

        assert task.enabled is True
        assert task.interval.every == 1
        assert task.interval.period == "minutes"
