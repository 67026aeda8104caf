"""
Celery configuration for the chat backend.

Periodic tasks are stored by django-celery-beat's DatabaseScheduler. The
presence expiry schedule is created by realtime's data migration.

Usage:
    from realtime.tasks import expire_stale_presence

    expire_stale_presence.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
