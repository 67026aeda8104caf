"""
Add celery-beat schedule for expiring stale presence.

Runs realtime.tasks.expire_stale_presence every minute so that users whose
sockets dropped without a clean disconnect are shown offline after the
grace period.
"""

from django.db import migrations

TASK_NAME = "Expire Stale Presence"


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for presence expiry."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "realtime.tasks.expire_stale_presence",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Marks users offline when no heartbeat arrived within the "
                "presence grace period and broadcasts user_status_changed."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
